"""Result viewer: display the pipeline's output."""

import json
from typing import Any, Protocol

import click

_UNSET = object()


class Viewer(Protocol):
    def set(self, value: Any) -> None: ...


class JsonViewer:
    """Show pipeline results as JSON on stdout.

    Args:
        pretty: Indent output (default: True)
        live: Print on every ``set()``; otherwise only ``render()`` prints,
            so a one-shot command shows just the final result
    """

    def __init__(self, pretty: bool = True, live: bool = True):
        self.pretty = pretty
        self.live = live
        self.value: Any = _UNSET

    @property
    def shown(self) -> bool:
        """Whether any result has been set."""
        return self.value is not _UNSET

    def set(self, value: Any) -> None:
        self.value = value
        if self.live:
            self.render()

    def render(self) -> None:
        if not self.shown:
            return
        click.echo(
            json.dumps(
                self.value,
                indent=2 if self.pretty else None,
                ensure_ascii=False,
                default=str,
            )
        )


__all__ = ["JsonViewer", "Viewer"]
