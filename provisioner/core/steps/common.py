"""
Helpers shared by the step implementations.
"""

from __future__ import annotations

import logging
import os

from provisioner.core.engine.patcher import Marker, PatchResult
from provisioner.core.errors import StepFailed
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

ARM_BREW_PREFIX = "/opt/homebrew"
INTEL_BREW_PREFIX = "/usr/local"


def default_brew_prefix(arch: str) -> str:
    return ARM_BREW_PREFIX if arch == "arm64" else INTEL_BREW_PREFIX


def brew_prefix(session) -> str:
    """Homebrew prefix found by the homebrew step, else the default for this machine."""
    found = session.results.get("homebrew", {}).get("prefix")
    return found or default_brew_prefix(session.adapters.macos.arch())


def require(receipt: Receipt, message: str, hint: str = "") -> Receipt:
    """Raise ``StepFailed`` when ``receipt`` failed; pass it through otherwise."""
    if receipt.failed:
        raise StepFailed(f"{message}: {receipt.error}", hint=hint)
    return receipt


def note(session, receipt: Receipt, source: str, hint: str = "") -> bool:
    """Record a failed receipt against the current step and keep going.

    Returns whether the operation succeeded (or was skipped in dry-run).
    """
    if receipt.failed:
        session.record_failure(source, receipt.error or "failed", hint=hint)
        return False
    return True


def ensure_lines(session, path: str, marker: Marker, lines: list[str]) -> PatchResult | None:
    """Patch one file, recording a failure instead of raising."""
    try:
        return session.patcher().ensure_block(path, marker, lines)
    except StepFailed as e:
        session.record_failure(path, str(e), hint=e.hint)
        return None


def is_fish(path: str) -> bool:
    return path.endswith(".fish")


def rc_files(session) -> list[str]:
    return [session.expand(p) for p in session.manifest.shell_rc_files]


def ensure_brew_shellenv(session, path: str, prefix: str) -> PatchResult | None:
    brew = os.path.join(prefix, "bin", "brew")
    line = f"{brew} shellenv | source" if is_fish(path) else f'eval "$({brew} shellenv)"'
    return ensure_lines(session, path, "brew shellenv", [line])


def ensure_bun_path(session, path: str) -> PatchResult | None:
    if is_fish(path):
        return ensure_lines(session, path, "set -gx BUN_INSTALL", [
            'set -gx BUN_INSTALL "$HOME/.bun"',
            'set -gx PATH "$BUN_INSTALL/bin" $PATH',
        ])
    return ensure_lines(session, path, "export BUN_INSTALL", [
        'export BUN_INSTALL="$HOME/.bun"',
        'export PATH="$BUN_INSTALL/bin:$PATH"',
    ])
