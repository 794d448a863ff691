"""Per-child output buffering and streaming."""

from typing import Callable

import click

from .models import ChildHandle


class OutputAggregator:
    """Collects child output lines under each child's label.

    Lines are always kept on the child's handle in emission order. With
    live output they are also written as they arrive; otherwise ``flush``
    writes every child's lines contiguously, in registration order, once
    all children are done.
    """

    def __init__(self, live: bool = False, colors: bool = True, echo: Callable[[str], None] = click.echo):
        self.live = live
        self.colors = colors
        self._echo = echo
        self._children: dict[str, ChildHandle] = {}
        self._flushed = False

    def register(self, handle: ChildHandle) -> None:
        self._children[handle.label] = handle

    def append(self, handle: ChildHandle, line: str) -> None:
        handle.output.append(line)
        if self.live:
            self._echo(self.format_line(handle, line))

    def format_line(self, handle: ChildHandle, line: str) -> str:
        prefix = f" {handle.label} "
        if self.colors:
            fg, bg = handle.color
            prefix = click.style(prefix, fg=fg, bg=bg)
        return f"{prefix} {line}"

    def flush(self) -> None:
        """Write buffered output; a no-op in live mode or when already flushed."""
        if self.live or self._flushed:
            return
        self._flushed = True
        for handle in self._children.values():
            for line in handle.output:
                self._echo(self.format_line(handle, line))

    @property
    def outputs(self) -> dict[str, list[str]]:
        """Label to output lines, in registration order."""
        return {label: list(handle.output) for label, handle in self._children.items()}
