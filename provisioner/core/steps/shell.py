"""
Shell and terminal steps — fish as login shell, fish and Ghostty config.
"""

from __future__ import annotations

import os
import re

from provisioner.core.engine.patcher import PatchResult
from provisioner.core.steps.common import (
    brew_prefix,
    ensure_brew_shellenv,
    ensure_bun_path,
    ensure_lines,
    note,
)

ETC_SHELLS = "/etc/shells"


def setup_fish(session) -> dict:
    adapters = session.adapters
    fish = os.path.join(brew_prefix(session), "bin", "fish")

    try:
        shells = adapters.fs.read(ETC_SHELLS)
    except OSError:
        shells = ""
    if fish not in shells.split():
        note(
            session,
            adapters.sudo.run_privileged(["tee", "-a", ETC_SHELLS], target=ETC_SHELLS, input_text=f"{fish}\n"),
            ETC_SHELLS,
            hint=f"echo {fish} | sudo tee -a {ETC_SHELLS}",
        )

    if not adapters.macos.login_shell().endswith("fish"):
        note(session, adapters.macos.change_shell(fish), "chsh", hint=f"chsh -s {fish}")

    # config.fish is created here, later steps only append to it
    config = session.expand(session.manifest.fish.config_path)
    note(session, adapters.fs.write_if_absent(config, ""), config)

    appended = 0
    ensure_brew_shellenv(session, config, brew_prefix(session))
    ensure_bun_path(session, config)
    for line in session.manifest.fish.lines:
        if ensure_lines(session, config, line, [line]) == PatchResult.APPENDED:
            appended += 1
    return {"shell": fish, "config": config, "appended": appended}


def setting_marker(key: str) -> re.Pattern[str]:
    """Matches a line that sets ``key``, and not a key that merely ends with it."""
    return re.compile(rf"^\s*{re.escape(key)}\s*=", re.MULTILINE)


def configure_ghostty(session) -> dict:
    cfg = session.manifest.ghostty
    path = session.expand(cfg.config_path)
    fs = session.adapters.fs

    note(session, fs.write_if_absent(path, ""), path)
    appended = []
    for key, value in cfg.settings.items():
        if ensure_lines(session, path, setting_marker(key), [f"{key} = {value}"]) == PatchResult.APPENDED:
            appended.append(key)
    return {"config": path, "appended": appended}
