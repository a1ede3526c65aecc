"""
Adapter base — the contracts between the engine and the machine.

The engine never shells out directly. It talks to a package manager,
a version-control tool, a privilege broker and a human through the
interfaces below, which makes every one of them replaceable by a fake
in tests.

Mutating operations return a Receipt and never raise. Queries return
plain data and raise ``QueryError`` when the answer is unknowable
(the tool is missing, the listing failed), because guessing an empty
answer would make the engine re-install everything.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from provisioner.core.models.receipt import Receipt


class QueryError(RuntimeError):
    """A read-only probe could not produce an answer."""


class Adapter(ABC):
    """Abstract base class for all adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'brew', 'git', 'sudo')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        Should be fast and never raise.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PackageManager(Adapter):
    """Lists and installs packages of one or more resource kinds."""

    @property
    @abstractmethod
    def kinds(self) -> frozenset[str]:
        """Resource kinds this manager handles."""

    @abstractmethod
    def list_installed(self, kind: str) -> set[str]:
        """All installed identifiers of ``kind``, in one bulk query.

        Raises:
            QueryError: If the listing failed.
        """

    @abstractmethod
    def install(self, kind: str, identifier: str) -> Receipt:
        """Install one package. Never raises."""

    def install_hint(self, kind: str, identifier: str) -> str:
        """Command an operator can run to install by hand."""
        return ""


class VersionControl(Adapter):
    """Clones repositories and reads/writes tool configuration."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Whether a checkout directory exists at ``path``."""

    @abstractmethod
    def list_checkouts(self, base_dir: str) -> set[str]:
        """Names of all directories directly under ``base_dir``."""

    @abstractmethod
    def clone(self, remote: str, branch: str | None, path: str) -> Receipt:
        """Clone ``remote`` (optionally a single branch) into ``path``."""

    def clone_hint(self, remote: str, branch: str | None, path: str) -> str:
        """The command an operator runs to retry a failed clone."""
        if branch:
            return f"git clone --single-branch --branch {branch} {remote} {path}"
        return f"git clone {remote} {path}"

    @abstractmethod
    def get_config(self, key: str) -> str | None:
        """Global config value, or None when unset."""

    @abstractmethod
    def set_config(self, key: str, value: str) -> Receipt:
        """Set a global config value."""


class PrivilegeBroker(Adapter):
    """Obtains, validates and uses elevated privilege."""

    @abstractmethod
    def authenticate(self) -> bool:
        """Prompt the user once and cache the credential. True on success."""

    @abstractmethod
    def validate_session(self) -> bool:
        """Refresh the cached credential without prompting."""

    @abstractmethod
    def run_privileged(self, argv: list[str], *, target: str = "", input_text: str | None = None) -> Receipt:
        """Run a command with elevated privilege. Never raises."""

    @abstractmethod
    def drop(self) -> None:
        """Invalidate the cached credential."""


class Prompter(ABC):
    """The human on the other side of the terminal."""

    @abstractmethod
    def notify(self, message: str) -> None:
        """Show a message that needs no answer."""

    @abstractmethod
    def wait_for_confirmation(self, message: str) -> None:
        """Block until the user confirms an out-of-band action is done."""
