"""
Developer tools that are not installed through Homebrew:
aws-vault (GitHub release binary), Bun and nvm/Node (vendor installers).
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile

from provisioner.adapters.base import QueryError
from provisioner.core.errors import StepFailed
from provisioner.core.steps.common import ensure_bun_path, rc_files, require

logger = logging.getLogger(__name__)

BUN_INSTALL_URL = "https://bun.sh/install"
NVM_INSTALL_URL = "https://raw.githubusercontent.com/nvm-sh/nvm/refs/heads/main/install.sh"

_RELEASE_ARCH = {"arm64": "arm64", "x86_64": "amd64", "i386": "amd64"}


def _installed_version(session, program: str) -> str | None:
    """Last token of ``<program> --version`` without a leading ``v``."""
    runner = session.adapters.runner
    if runner.which(program) is None:
        return None
    receipt = runner.run([program, "--version"], mutating=False, timeout=30)
    if not receipt.ok:
        return None
    text = receipt.output or receipt.metadata.get("stderr", "")
    tokens = text.split()
    return tokens[-1].lstrip("v") if tokens else None


# ── aws-vault ───────────────────────────────────────────────────


def install_aws_vault(session) -> dict:
    """Install (or update to) the latest aws-vault release binary."""
    cfg = session.manifest.aws_vault
    current = _installed_version(session, "aws-vault")

    try:
        release = session.adapters.releases.latest(cfg.repo)
    except QueryError as e:
        raise StepFailed(str(e), hint=f"https://github.com/{cfg.repo}/releases/latest") from e

    if current and current == release.version:
        return {"status": "present", "version": current}

    arch = _RELEASE_ARCH.get(session.adapters.macos.arch(), "amd64")
    asset = release.find_asset("darwin", arch)
    if asset is None:
        raise StepFailed(f"No darwin-{arch} asset in {cfg.repo} {release.tag}")
    _, url = asset

    if session.dry_run:
        logger.info("[dry-run] would install aws-vault %s from %s", release.version, url)
        return {"status": "skipped", "version": release.version, "current": current}

    fd, tmp = tempfile.mkstemp(prefix="aws-vault-")
    os.close(fd)
    try:
        require(session.adapters.releases.download(url, tmp), "Failed to download aws-vault", hint=url)
        os.chmod(tmp, os.stat(tmp).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        require(
            session.adapters.sudo.run_privileged(["mv", tmp, cfg.install_path], target="aws-vault"),
            f"Failed to move aws-vault to {cfg.install_path}",
            hint=f"sudo mv {tmp} {cfg.install_path}",
        )
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)

    return {"status": "updated" if current else "installed", "version": release.version, "previous": current}


# ── Bun ─────────────────────────────────────────────────────────


def install_bun(session) -> dict:
    runner = session.adapters.runner
    bun_home = session.expand("~/.bun")
    bun_bin = os.path.join(bun_home, "bin")

    if _installed_version(session, "bun"):
        return {"status": "present"}

    status = "present"
    if not session.adapters.fs.exists(os.path.join(bun_bin, "bun")):
        receipt = require(
            runner.run(["/bin/bash", "-c", f"curl -fsSL {BUN_INSTALL_URL} | bash"], interactive=True, target="bun"),
            "Failed to install Bun",
            hint=f"curl -fsSL {BUN_INSTALL_URL} | bash",
        )
        status = "skipped" if receipt.skipped else "installed"

    for path in rc_files(session):
        ensure_bun_path(session, path)
    session.set_env("BUN_INSTALL", bun_home)
    session.prepend_path(bun_bin)

    if status == "installed" and runner.which("bun") is None:
        raise StepFailed("Bun installation could not be verified", hint=f"ls {bun_bin}")
    return {"status": status}


# ── nvm / Node ──────────────────────────────────────────────────


def install_node(session) -> dict:
    """nvm plus the current Node LTS as default. Skipped when ``~/.nvm`` exists."""
    runner = session.adapters.runner
    fs = session.adapters.fs
    nvm_dir = session.expand("~/.nvm")
    if fs.exists(nvm_dir):
        return {"status": "present"}

    receipt = require(
        runner.run(["/bin/bash", "-c", f"curl -o- {NVM_INSTALL_URL} | bash"], interactive=True, target="nvm"),
        "Failed to install nvm",
        hint=f"curl -o- {NVM_INSTALL_URL} | bash",
    )
    if receipt.skipped:
        return {"status": "skipped"}

    nvm_sh = os.path.join(nvm_dir, "nvm.sh")
    if not fs.exists(nvm_sh):
        raise StepFailed("nvm installation appears to be incomplete", hint=f"ls {nvm_dir}")

    session.set_env("NVM_DIR", nvm_dir)
    require(
        runner.run(
            ["/bin/bash", "-c", f'. "{nvm_sh}" && nvm install --lts && nvm alias default "lts/*"'],
            target="node",
        ),
        "Failed to install Node.js LTS",
        hint='nvm install --lts && nvm alias default "lts/*"',
    )
    return {"status": "installed"}
