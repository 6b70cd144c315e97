"""Progress reporting for long-running startup steps."""

import logging
from typing import Optional, Protocol

import click


class ProgressIndicator(Protocol):
    """Opaque progress sink handed to the provisioner by its host."""

    def set_indeterminate(self, indeterminate: bool) -> None:
        ...

    def set_text(self, text: str) -> None:
        ...


class LoggingProgressIndicator:
    """Reports progress text to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("prismalsp.progress")
        self.indeterminate = False
        self.text = ""

    def set_indeterminate(self, indeterminate: bool) -> None:
        self.indeterminate = indeterminate

    def set_text(self, text: str) -> None:
        self.text = text
        self.logger.info(text)


class ClickProgressIndicator:
    """Echoes progress text to stderr for the command-line entry points."""

    def __init__(self) -> None:
        self.indeterminate = False

    def set_indeterminate(self, indeterminate: bool) -> None:
        self.indeterminate = indeterminate

    def set_text(self, text: str) -> None:
        click.echo(text, err=True)
