"""
Filesystem adapter — text files, directories and file flags.

Reads are plain Python. Writes honour the runner's dry-run switch and
report through receipts. Paths are used as given; callers expand ``~``
through the session.
"""

from __future__ import annotations

import logging
from pathlib import Path

from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter:
    """File and directory operations with receipts."""

    name = "filesystem"

    def __init__(self, runner: ShellRunner):
        self._runner = runner

    @property
    def dry_run(self) -> bool:
        return self._runner.dry_run

    def is_available(self) -> bool:
        return True

    # ── Queries ─────────────────────────────────────────────────

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def read(self, path: str) -> str:
        """File contents. Raises OSError when unreadable.

        Bytes that are not UTF-8 survive as surrogates, so a marker test and
        an append work on files in a legacy encoding.
        """
        return Path(path).read_text(encoding="utf-8", errors="surrogateescape")

    # ── Mutations ───────────────────────────────────────────────

    def append(self, path: str, text: str) -> Receipt:
        """Append ``text`` to an existing or new file."""
        if self.dry_run:
            return Receipt.skip(self.name, path, reason=f"dry-run: append {len(text)} bytes")
        try:
            with open(path, "a", encoding="utf-8") as fh:
                fh.write(text)
        except OSError as e:
            return Receipt.failure(self.name, path, error=f"Append failed: {e}")
        logger.debug("Appended %d bytes to %s", len(text), path)
        return Receipt.success(self.name, path, output=f"appended {len(text)} bytes")

    def write_if_absent(self, path: str, content: str) -> Receipt:
        """Create ``path`` with ``content`` unless it already exists."""
        target = Path(path)
        if target.exists():
            return Receipt.success(self.name, path, output="exists", metadata={"changed": False})
        if self.dry_run:
            return Receipt.skip(self.name, path, reason="dry-run: create file")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            return Receipt.failure(self.name, path, error=f"Write failed: {e}")
        return Receipt.success(self.name, path, output="created", metadata={"changed": True})

    def mkdir(self, path: str) -> Receipt:
        target = Path(path)
        if target.is_dir():
            return Receipt.success(self.name, path, output="exists", metadata={"changed": False})
        if self.dry_run:
            return Receipt.skip(self.name, path, reason="dry-run: mkdir")
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Receipt.failure(self.name, path, error=f"mkdir failed: {e}")
        return Receipt.success(self.name, path, output="created", metadata={"changed": True})

    def set_hidden(self, path: str, hidden: bool, sudo=None) -> Receipt:
        """Set or clear the BSD ``hidden`` flag on ``path``.

        ``sudo`` is a privilege broker, used when the path is not owned
        by the user (``/Volumes``).
        """
        argv = ["chflags", "hidden" if hidden else "nohidden", path]
        if sudo is not None:
            return sudo.run_privileged(argv, target=path)
        return self._runner.run(argv, target=path)
