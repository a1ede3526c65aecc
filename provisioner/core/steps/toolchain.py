"""
Toolchain steps — Rosetta, Command Line Tools, Homebrew, Xcode license.

Everything later depends on these: Homebrew needs the Command Line
Tools, every package needs Homebrew on PATH.
"""

from __future__ import annotations

import logging
import os
import time

from provisioner.core.engine.patcher import PatchResult
from provisioner.core.errors import StepFailed
from provisioner.core.steps.common import (
    default_brew_prefix,
    ensure_brew_shellenv,
    rc_files,
    require,
)

logger = logging.getLogger(__name__)

CLT_POLL_INTERVAL_S = 20.0
CLT_WAIT_TIMEOUT_S = 3600.0
CLT_INSTALLER_PROCESS = "Install Command Line Tools"


def install_rosetta(session) -> dict:
    macos = session.adapters.macos
    if macos.arch() != "arm64":
        return {"status": "not_needed"}
    if macos.process_running("oahd"):
        return {"status": "present"}
    require(
        session.adapters.sudo.run_privileged(
            ["softwareupdate", "--install-rosetta", "--agree-to-license"], target="rosetta",
        ),
        "Failed to install Rosetta 2",
        hint="sudo softwareupdate --install-rosetta --agree-to-license",
    )
    return {"status": "installed"}


def install_xcode_clt(session) -> dict:
    """Start the CLT installer and wait for it to finish.

    The installer is a GUI dialog. Progress is detected by polling
    ``xcode-select -p``; if the installer process disappears before the
    tools show up, the user cancelled it.
    """
    macos = session.adapters.macos
    if macos.command_ok(["xcode-select", "-p"]):
        return {"status": "present"}

    receipt = require(
        session.adapters.runner.run(["xcode-select", "--install"], target="xcode-clt"),
        "Failed to start the Command Line Tools installer",
        hint="xcode-select --install",
    )
    if receipt.skipped:
        return {"status": "skipped"}

    deadline = time.monotonic() + CLT_WAIT_TIMEOUT_S
    while not macos.command_ok(["xcode-select", "-p"]):
        if time.monotonic() > deadline:
            raise StepFailed("Timed out waiting for Command Line Tools", hint="xcode-select --install")
        if not macos.process_running(CLT_INSTALLER_PROCESS):
            raise StepFailed("Command Line Tools installation was cancelled", hint="xcode-select --install")
        time.sleep(CLT_POLL_INTERVAL_S)
    return {"status": "installed"}


def install_homebrew(session) -> dict:
    brew = session.adapters.brew
    fs = session.adapters.fs
    status = "present"

    prefix = brew.detect_prefix()
    if prefix is None:
        receipt = require(
            brew.install_homebrew(),
            "Failed to install Homebrew",
            hint='/bin/bash -c "$(curl -fsSL https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"',
        )
        prefix = default_brew_prefix(session.adapters.macos.arch())
        status = "skipped" if receipt.skipped else "installed"
        if status == "installed" and not fs.exists(os.path.join(prefix, "bin", "brew")):
            raise StepFailed(f"Homebrew installed but {prefix}/bin/brew is missing")

    session.prepend_path(os.path.join(prefix, "sbin"))
    session.prepend_path(os.path.join(prefix, "bin"))
    session.set_env("HOMEBREW_PREFIX", prefix)

    patched = []
    for path in rc_files(session):
        if ensure_brew_shellenv(session, path, prefix) == PatchResult.APPENDED:
            patched.append(path)
    logger.info("Homebrew at %s (%s)", prefix, status)
    return {"status": status, "prefix": prefix, "patched": patched}


def accept_xcode_license(session) -> dict:
    if session.adapters.macos.command_ok(["xcodebuild", "-license", "check"]):
        return {"status": "present"}
    require(
        session.adapters.sudo.run_privileged(["xcodebuild", "-license", "accept"], target="xcode-license"),
        "Failed to accept the Xcode license",
        hint="sudo xcodebuild -license accept",
    )
    return {"status": "accepted"}
