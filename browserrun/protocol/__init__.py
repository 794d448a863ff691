"""Protocol module - element commands over a WebDriver protocol object."""

from .element_commands import (
    DEFAULT_USING,
    ELEMENT_COMMANDS,
    ElementCommand,
    ElementCommandInvoker,
    validate_command_table,
)

__all__ = [
    "DEFAULT_USING",
    "ELEMENT_COMMANDS",
    "ElementCommand",
    "ElementCommandInvoker",
    "validate_command_table",
]
