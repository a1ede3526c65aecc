"""
Config file patcher — make sure a line is in a file, append it if not.

Append-only: existing content is never rewritten or removed, so a
patch applied twice leaves the file exactly as one application did.
A file that does not exist belongs to a tool that is not installed and
is left alone.
"""

from __future__ import annotations

import logging
import os
import re
from enum import StrEnum

from provisioner.core.errors import StepFailed

logger = logging.getLogger(__name__)

Marker = str | re.Pattern[str]


class PatchResult(StrEnum):
    MISSING_FILE = "missing_file"  # nothing to patch
    PRESENT = "present"            # marker found, untouched
    APPENDED = "appended"
    SKIPPED = "skipped"            # would append (dry-run)

    @property
    def changed(self) -> bool:
        return self == PatchResult.APPENDED


class ConfigFilePatcher:
    """Ensures lines are present in existing configuration files.

    Args:
        fs: Filesystem adapter (``exists``/``read``/``mkdir``/``append``).
    """

    def __init__(self, fs):
        self._fs = fs

    def ensure_line(self, path: str, marker: Marker, line: str) -> PatchResult:
        """Append ``line`` to ``path`` unless ``marker`` already occurs in it.

        ``marker`` is a substring, or a compiled pattern searched line by
        line (``re.MULTILINE``) when a substring would match too much.

        Raises:
            ValueError: If ``marker`` is empty.
            StepFailed: If the file cannot be read or appended to.
        """
        return self.ensure_block(path, marker, [line])

    def ensure_block(self, path: str, marker: Marker, lines: list[str]) -> PatchResult:
        """Append several lines under one marker, with the same guarantees."""
        if not _marker_text(marker):
            raise ValueError("marker must not be empty")

        if not self._fs.exists(path):
            logger.debug("Skip patch, %s does not exist", path)
            return PatchResult.MISSING_FILE

        try:
            content = self._fs.read(path)
        except (OSError, UnicodeDecodeError) as e:
            raise StepFailed(f"Cannot read {path}: {e}") from e

        if _contains(content, marker):
            return PatchResult.PRESENT

        text = "".join(f"{line}\n" for line in lines)
        if content and not content.endswith("\n"):
            text = "\n" + text

        parent = os.path.dirname(path)
        if parent:
            made = self._fs.mkdir(parent)
            if made.failed:
                raise StepFailed(f"Cannot create {parent}: {made.error}")

        receipt = self._fs.append(path, text)
        if receipt.skipped:
            return PatchResult.SKIPPED
        if receipt.failed:
            raise StepFailed(
                f"Cannot update {path}: {receipt.error}",
                hint=f"append {lines[0]!r} to {path}",
            )
        logger.info("Patched %s (%s)", path, _marker_text(marker))
        return PatchResult.APPENDED


def _marker_text(marker: Marker) -> str:
    return marker.pattern if isinstance(marker, re.Pattern) else marker


def _contains(content: str, marker: Marker) -> bool:
    if isinstance(marker, re.Pattern):
        return marker.search(content) is not None
    return marker in content
