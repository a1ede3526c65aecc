"""
Developer identity steps — git config, SSH key, and the closing notes.
"""

from __future__ import annotations

import os

from provisioner.core.errors import StepFailed
from provisioner.core.steps.common import note, require


def desired_git_config(session) -> dict[str, str]:
    """Manifest git config, with identity keys filled from the user profile."""
    user = session.manifest.user
    config = dict(session.manifest.git_config)
    if user.email:
        config.setdefault("user.email", user.email)
    if user.full_name:
        config.setdefault("user.name", user.full_name)
    return config


def configure_git(session) -> dict:
    """Set each global key that is currently unset. Existing values win."""
    git = session.adapters.git
    kept, written = [], []
    for key, value in desired_git_config(session).items():
        if git.get_config(key) is not None:
            kept.append(key)
            continue
        if note(session, git.set_config(key, value), f"git:{key}", hint=f"git config --global {key} {value!r}"):
            written.append(key)
    return {"kept": kept, "written": written}


def setup_ssh_keys(session) -> dict:
    adapters = session.adapters
    key = session.expand("~/.ssh/id_ed25519")
    if adapters.fs.exists(key):
        return {"status": "present", "key": key}

    note(session, adapters.fs.mkdir(os.path.dirname(key)), "~/.ssh")
    receipt = require(
        adapters.runner.run(
            ["ssh-keygen", "-t", "ed25519", "-C", session.manifest.user.email, "-f", key, "-N", ""],
            target="ssh-keygen",
        ),
        "Failed to generate SSH key",
        hint=f"ssh-keygen -t ed25519 -f {key}",
    )
    if receipt.skipped:
        return {"status": "skipped", "key": key}

    note(session, adapters.runner.run(["ssh-add", "--apple-use-keychain", key], target="ssh-add"),
         "ssh-add", hint=f"ssh-add --apple-use-keychain {key}")

    try:
        public = adapters.fs.read(f"{key}.pub")
    except OSError as e:
        raise StepFailed(f"Cannot read public key: {e}", hint=f"cat {key}.pub") from e
    adapters.prompter.notify(f"Add this SSH key to your GitHub account:\n{public.strip()}")
    adapters.prompter.wait_for_confirmation("Press Enter once you've added the key to GitHub...")
    return {"status": "generated", "key": key}


def post_install(session) -> dict:
    notes = session.manifest.post_install
    if notes:
        session.adapters.prompter.notify(
            "Post-installation steps:\n" + "\n".join(f"  • {n}" for n in notes)
        )
    return {"notes": notes}
