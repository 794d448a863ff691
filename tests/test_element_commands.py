from __future__ import annotations

from typing import Any, Dict, List, Tuple

import pytest

from browserrun.errors import ConfigurationError
from browserrun.protocol import ELEMENT_COMMANDS, ElementCommand, ElementCommandInvoker, validate_command_table


class FakeProtocol:
    """Answers every table action; elements exist only for selectors in ``known``."""

    def __init__(self, known: Dict[str, str]) -> None:
        self.known = known
        self.calls: List[Tuple[str, tuple]] = []

    def element(self, using: str, value: str) -> Dict[str, Any]:
        self.calls.append(("element", (using, value)))
        if value in self.known:
            return {"status": 0, "value": {"ELEMENT": self.known[value]}}
        return {"status": 7, "value": {"message": "no such element"}}

    def __getattr__(self, name: str):
        actions = {command.action for command in ELEMENT_COMMANDS.values()}
        if name not in actions:
            raise AttributeError(name)

        def action(*args: Any) -> Dict[str, Any]:
            self.calls.append((name, args))
            return {"status": 0, "value": f"{name}{args}"}

        return action


@pytest.mark.unit
def test_command_table_matches_protocol_actions() -> None:
    assert ELEMENT_COMMANDS["click"] == ElementCommand("element_id_click")
    assert ELEMENT_COMMANDS["get_attribute"] == ElementCommand("element_id_attribute", 1)
    assert ELEMENT_COMMANDS["move_to_element"] == ElementCommand("move_to", 2)
    assert ELEMENT_COMMANDS["set_value"] == ElementCommand("element_id_value", 1)
    assert ELEMENT_COMMANDS["get_value"] == ElementCommand("element_id_value")
    assert ELEMENT_COMMANDS["submit_form"] == ElementCommand("submit")
    assert len(ELEMENT_COMMANDS) == 14


@pytest.mark.unit
def test_validate_command_table_lists_missing_actions() -> None:
    class PartialProtocol:
        def element(self, using, value):
            return {}

        def element_id_click(self, element_id):
            return {}

    validate_command_table(PartialProtocol(), {"click": ElementCommand("element_id_click")})
    with pytest.raises(ConfigurationError, match="element_id_text"):
        validate_command_table(PartialProtocol())


@pytest.mark.unit
def test_invoke_locates_element_then_runs_action() -> None:
    protocol = FakeProtocol({"#main a": "el-1"})
    invoker = ElementCommandInvoker(protocol)
    received = []

    result = invoker.invoke("get_attribute", "#main a", "href", callback=received.append)

    assert protocol.calls == [
        ("element", ("css selector", "#main a")),
        ("element_id_attribute", ("el-1", "href")),
    ]
    assert received == [result]
    assert result["status"] == 0
    assert invoker.errors == []


@pytest.mark.unit
def test_commands_are_available_as_methods() -> None:
    protocol = FakeProtocol({"//form": "el-2"})
    invoker = ElementCommandInvoker(protocol)

    invoker.move_to_element("//form", 10, 20, using="xpath")

    assert protocol.calls[-1] == ("move_to", ("el-2", 10, 20))
    with pytest.raises(AttributeError):
        invoker.not_a_command


@pytest.mark.unit
def test_missing_element_records_error_and_skips_action() -> None:
    protocol = FakeProtocol({})
    invoker = ElementCommandInvoker(protocol)
    received = []

    result = invoker.invoke("click", ".missing", callback=received.append)

    assert result["status"] == 7
    assert received == [result]
    assert invoker.errors == ['Unable to locate element: ".missing" using: css selector']
    assert [name for name, _ in protocol.calls] == ["element"]


@pytest.mark.unit
def test_argument_count_and_unknown_commands() -> None:
    invoker = ElementCommandInvoker(FakeProtocol({"#a": "el"}))

    with pytest.raises(TypeError, match="set_value expects 1 extra argument"):
        invoker.invoke("set_value", "#a")
    with pytest.raises(TypeError, match="click expects 0 extra argument"):
        invoker.invoke("click", "#a", "extra")
    with pytest.raises(KeyError):
        invoker.invoke("double_click", "#a")
