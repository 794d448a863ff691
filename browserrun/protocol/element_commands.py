"""Element commands: locate an element by selector, then run a protocol action on it.

Each command is a row in ``ELEMENT_COMMANDS`` mapping the public command name
to the protocol action it calls with the located element id, plus the number
of extra arguments the action takes after the id.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from ..errors import ConfigurationError

LOGGER = logging.getLogger("browserrun.protocol")

DEFAULT_USING = "css selector"

ResultCallback = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class ElementCommand:
    """A protocol action applied to a located element."""
    action: str
    extra_args: int = 0


ELEMENT_COMMANDS: Mapping[str, ElementCommand] = {
    "click": ElementCommand("element_id_click"),
    "clear_value": ElementCommand("element_id_clear"),
    "get_attribute": ElementCommand("element_id_attribute", 1),
    "get_css_property": ElementCommand("element_id_css_property", 1),
    "get_element_size": ElementCommand("element_id_size"),
    "get_location": ElementCommand("element_id_location"),
    "get_location_in_view": ElementCommand("element_id_location_in_view"),
    "get_tag_name": ElementCommand("element_id_name"),
    "get_text": ElementCommand("element_id_text"),
    "get_value": ElementCommand("element_id_value"),
    "is_visible": ElementCommand("element_id_displayed"),
    "move_to_element": ElementCommand("move_to", 2),
    "set_value": ElementCommand("element_id_value", 1),
    "submit_form": ElementCommand("submit"),
}


def validate_command_table(protocol: Any, table: Mapping[str, ElementCommand] = ELEMENT_COMMANDS) -> None:
    """Check that ``protocol`` provides ``element`` and every action in ``table``.

    Raises:
        ConfigurationError: Listing every missing protocol action.
    """
    required = {"element"} | {command.action for command in table.values()}
    missing = sorted(name for name in required if not callable(getattr(protocol, name, None)))
    if missing:
        raise ConfigurationError(f"Protocol is missing actions: {', '.join(missing)}")


class ElementCommandInvoker:
    """Dispatches element commands against a WebDriver protocol object.

    The protocol object exposes ``element(using, value)`` returning a
    result mapping (``status`` 0 on success, ``value["ELEMENT"]`` holding
    the element id) and one method per action in the command table.
    """

    def __init__(self, protocol: Any, table: Mapping[str, ElementCommand] = ELEMENT_COMMANDS):
        validate_command_table(protocol, table)
        self.protocol = protocol
        self.table = table
        self.errors: list[str] = []

    def invoke(
        self,
        name: str,
        selector: str,
        *extra: Any,
        using: str = DEFAULT_USING,
        callback: Optional[ResultCallback] = None,
    ) -> dict[str, Any]:
        """Locate ``selector`` and run the action for command ``name`` on it.

        Args:
            name: Command name, e.g. ``"get_attribute"``.
            selector: Element selector.
            *extra: Action arguments following the element id.
            using: Locator strategy.
            callback: Receives the action result, or the lookup result
                when the element can't be located.

        Returns:
            The action result, or the failed lookup result.

        Raises:
            KeyError: Unknown command name.
            TypeError: Wrong number of extra arguments.
        """
        try:
            command = self.table[name]
        except KeyError:
            raise KeyError(f"Unknown element command: {name}") from None

        if len(extra) != command.extra_args:
            raise TypeError(f"{name} expects {command.extra_args} extra argument(s), {len(extra)} given")

        result = self.protocol.element(using, selector)
        if result.get("status") != 0:
            message = f'Unable to locate element: "{selector}" using: {using}'
            self.errors.append(message)
            LOGGER.error(message)
            if callback is not None:
                callback(result)
            return result

        element_id = result["value"]["ELEMENT"]
        action_result = getattr(self.protocol, command.action)(element_id, *extra)
        if callback is not None:
            callback(action_result)
        return action_result

    def __getattr__(self, name: str) -> Callable[..., dict[str, Any]]:
        # Command names are exposed as methods, e.g. invoker.click("#main")
        table = self.__dict__.get("table", ELEMENT_COMMANDS)
        if name not in table:
            raise AttributeError(name)

        def command(selector: str, *extra: Any, **kwargs: Any) -> dict[str, Any]:
            return self.invoke(name, selector, *extra, **kwargs)

        return command
