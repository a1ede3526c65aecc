"""
The provisioning pipeline — every step, in dependency order.

Order is the contract: the toolchain before packages, packages before
anything that calls an installed tool, the shell before its config is
patched, SSH keys before repositories are cloned over SSH.
"""

from provisioner.core.engine.orchestrator import Step
from provisioner.core.steps.developer import configure_git, post_install, setup_ssh_keys
from provisioner.core.steps.packages import clone_repositories, install_packages, install_store_apps
from provisioner.core.steps.shell import configure_ghostty, setup_fish
from provisioner.core.steps.system import apply_preferences, set_host_names
from provisioner.core.steps.toolchain import (
    accept_xcode_license,
    install_homebrew,
    install_rosetta,
    install_xcode_clt,
)
from provisioner.core.steps.tools import install_aws_vault, install_bun, install_node

PIPELINE: tuple[Step, ...] = (
    Step("rosetta", install_rosetta, "Rosetta 2 on Apple Silicon"),
    Step("xcode_clt", install_xcode_clt, "Xcode Command Line Tools"),
    Step("homebrew", install_homebrew, "Homebrew and its shell environment"),
    Step("xcode_license", accept_xcode_license, "Accept the Xcode license"),
    Step("packages", install_packages, "Homebrew formulas and casks"),
    Step("aws_vault", install_aws_vault, "Latest aws-vault release"),
    Step("bun", install_bun, "Bun runtime"),
    Step("store_apps", install_store_apps, "Mac App Store applications", gated=True),
    Step("host_names", set_host_names, "Computer, host and NetBIOS names"),
    Step("preferences", apply_preferences, "System and application preferences"),
    Step("fish_shell", setup_fish, "fish as login shell"),
    Step("ghostty", configure_ghostty, "Ghostty terminal settings"),
    Step("git_config", configure_git, "Global git configuration"),
    Step("node", install_node, "nvm and Node.js LTS"),
    Step("ssh_keys", setup_ssh_keys, "SSH key for GitHub"),
    Step("repositories", clone_repositories, "Source repositories"),
    Step("post_install", post_install, "Manual follow-up notes"),
)

STEP_NAMES = tuple(s.name for s in PIPELINE)


def build_steps(only: list[str] | tuple[str, ...] | None = None) -> list[Step]:
    """The pipeline, optionally restricted to ``only`` (declared order kept).

    Raises:
        ValueError: If ``only`` names an unknown step.
    """
    if not only:
        return list(PIPELINE)
    unknown = [name for name in only if name not in STEP_NAMES]
    if unknown:
        raise ValueError(f"Unknown step(s): {', '.join(unknown)}")
    wanted = set(only)
    return [s for s in PIPELINE if s.name in wanted]


__all__ = ["PIPELINE", "STEP_NAMES", "build_steps"]
