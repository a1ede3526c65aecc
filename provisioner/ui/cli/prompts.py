"""
Terminal prompter — how a run talks to the person at the keyboard.
"""

from __future__ import annotations

import click

from provisioner.adapters.base import Prompter


class ClickPrompter(Prompter):
    """Prints through click and blocks on a key press for confirmations.

    Args:
        err: Write to stderr, keeping stdout clean for ``--json``.
    """

    def __init__(self, err: bool = False):
        self._err = err

    def notify(self, message: str) -> None:
        click.echo(err=self._err)
        for line in message.splitlines() or [""]:
            click.echo(f"   {line}", err=self._err)

    def wait_for_confirmation(self, message: str) -> None:
        click.echo(err=self._err)
        click.secho(f"👉 {message}", fg="yellow", bold=True, err=self._err)
        click.pause("   Press any key when done...", err=self._err)
