"""
Mock adapters — in-memory test doubles for every adapter interface.

Used by the test suite and by ``provision run --mock``. Each fake keeps
a call log so tests can assert on what was (and was not) attempted,
and can be told to fail specific operations.
"""

from __future__ import annotations

from provisioner.adapters.base import (
    PackageManager,
    PrivilegeBroker,
    Prompter,
    QueryError,
    VersionControl,
)
from provisioner.adapters.net.github import Release
from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt


class MockRunner(ShellRunner):
    """Shell runner that never starts a process.

    By default every command succeeds with empty output. Responses can
    be configured per command prefix: ``set_response(["brew", "list"], ...)``
    matches ``brew list --formula -1``.
    """

    name = "mock"

    def __init__(self, env: dict[str, str] | None = None, dry_run: bool = False):
        super().__init__(env=env if env is not None else {"PATH": "/usr/bin:/bin"}, dry_run=dry_run)
        self._responses: list[tuple[tuple[str, ...], Receipt]] = []
        self._call_log: list[list[str]] = []
        self.spawned: list[list[str]] = []
        self.missing: set[str] = set()  # programs `which` reports absent

    @property
    def call_log(self) -> list[list[str]]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return True

    def which(self, program: str) -> str | None:
        if program in self.missing:
            return None
        return f"/mock/bin/{program}"

    def set_response(self, prefix: list[str], receipt: Receipt) -> None:
        self._responses.insert(0, (tuple(prefix), receipt))

    def set_output(self, prefix: list[str], output: str) -> None:
        self.set_response(prefix, Receipt.success(self.name, " ".join(prefix), output=output))

    def set_failure(self, prefix: list[str], error: str = "Mock failure", return_code: int = 1) -> None:
        self.set_response(
            prefix,
            Receipt.failure(self.name, " ".join(prefix), error=error, metadata={"return_code": return_code}),
        )

    def run(self, argv: list[str], *, mutating: bool = True, target: str | None = None, **kwargs) -> Receipt:
        command = " ".join(argv)
        target = target or command
        if mutating and self.dry_run:
            return Receipt.skip(self.name, target, reason=f"dry-run: {command}", metadata={"command": command})
        self._call_log.append(list(argv))
        for prefix, receipt in self._responses:
            if tuple(argv[: len(prefix)]) == prefix:
                metadata = {**receipt.metadata, "command": command}
                return receipt.model_copy(update={"target": target, "metadata": metadata})
        return Receipt.success(self.name, target, metadata={"mock": True, "command": command, "return_code": 0})

    def spawn(self, argv: list[str]):
        self.spawned.append(list(argv))
        return None

    def ran(self, *prefix: str) -> bool:
        """Whether any logged command starts with ``prefix``."""
        return any(tuple(call[: len(prefix)]) == prefix for call in self._call_log)

    def reset(self) -> None:
        self._call_log.clear()
        self._responses.clear()
        self.spawned.clear()


class FakePackageManager(PackageManager):
    """Package manager backed by in-memory installed sets."""

    def __init__(self, adapter_name: str = "fake-pkg", kinds: tuple[str, ...] = ("formula", "cask")):
        self._name = adapter_name
        self._kinds = frozenset(kinds)
        self.installed: dict[str, set[str]] = {k: set() for k in kinds}
        self.install_log: list[tuple[str, str]] = []
        self.list_calls: list[str] = []
        self._failures: set[str] = set()
        self._list_errors: set[str] = set()

    @property
    def name(self) -> str:
        return self._name

    @property
    def kinds(self) -> frozenset[str]:
        return self._kinds

    def is_available(self) -> bool:
        return True

    def set_failure(self, identifier: str) -> None:
        self._failures.add(identifier)

    def set_list_error(self, kind: str) -> None:
        self._list_errors.add(kind)

    def list_installed(self, kind: str) -> set[str]:
        self.list_calls.append(kind)
        if kind in self._list_errors:
            raise QueryError(f"listing {kind} failed")
        return set(self.installed.get(kind, set()))

    def install(self, kind: str, identifier: str) -> Receipt:
        self.install_log.append((kind, identifier))
        if identifier in self._failures:
            return Receipt.failure(self._name, identifier, error=f"install {identifier} failed")
        self.installed.setdefault(kind, set()).add(identifier)
        return Receipt.success(self._name, identifier)

    def install_hint(self, kind: str, identifier: str) -> str:
        return f"{self._name} install {identifier}"


class FakeVersionControl(VersionControl):
    """Checkouts are path strings in a set; nothing touches the disk."""

    def __init__(self, checkouts: set[str] | None = None):
        self.checkouts: set[str] = set(checkouts or ())
        self.clone_log: list[tuple[str, str | None, str]] = []
        self.config: dict[str, str] = {}
        self._failures: set[str] = set()

    @property
    def name(self) -> str:
        return "fake-git"

    def is_available(self) -> bool:
        return True

    def set_failure(self, remote: str) -> None:
        self._failures.add(remote)

    def exists(self, path: str) -> bool:
        return path in self.checkouts

    def list_checkouts(self, base_dir: str) -> set[str]:
        prefix = base_dir.rstrip("/") + "/"
        return {p[len(prefix):] for p in self.checkouts if p.startswith(prefix) and "/" not in p[len(prefix):]}

    def clone(self, remote: str, branch: str | None, path: str) -> Receipt:
        self.clone_log.append((remote, branch, path))
        if remote in self._failures:
            return Receipt.failure(self.name, path, error=f"clone {remote} failed")
        self.checkouts.add(path)
        return Receipt.success(self.name, path)

    def get_config(self, key: str) -> str | None:
        return self.config.get(key)

    def set_config(self, key: str, value: str) -> Receipt:
        self.config[key] = value
        return Receipt.success(self.name, key)


class FakeSudo(PrivilegeBroker):
    """Privilege broker that grants (or denies) without prompting."""

    def __init__(self, grant: bool = True, valid: bool = True):
        self.grant = grant
        self.valid = valid
        self.authenticate_calls = 0
        self.validate_calls = 0
        self.drop_calls = 0
        self.run_log: list[list[str]] = []
        self._failures: set[str] = set()

    @property
    def name(self) -> str:
        return "fake-sudo"

    def is_available(self) -> bool:
        return True

    def set_failure(self, program: str) -> None:
        self._failures.add(program)

    def authenticate(self) -> bool:
        self.authenticate_calls += 1
        return self.grant

    def validate_session(self) -> bool:
        self.validate_calls += 1
        return self.valid

    def run_privileged(self, argv: list[str], *, target: str = "", input_text: str | None = None) -> Receipt:
        self.run_log.append(list(argv))
        target = target or " ".join(argv)
        if argv and argv[0] in self._failures:
            return Receipt.failure(self.name, target, error=f"{argv[0]} failed")
        return Receipt.success(self.name, target)

    def drop(self) -> None:
        self.drop_calls += 1


class FakeReleases:
    """GitHub releases lookup that returns a fixed release."""

    name = "fake-github"

    def __init__(self, release: Release | None = None):
        self.release = release or Release(tag="v7.2.0", assets={
            "aws-vault-darwin-arm64": "https://example.invalid/aws-vault-darwin-arm64",
            "aws-vault-darwin-amd64": "https://example.invalid/aws-vault-darwin-amd64",
        })
        self.downloads: list[tuple[str, str]] = []

    def is_available(self) -> bool:
        return True

    def latest(self, repo: str) -> Release:
        if self.release is None:
            raise QueryError(f"no release for {repo}")
        return self.release

    def download(self, url: str, dest: str) -> Receipt:
        self.downloads.append((url, dest))
        return Receipt.success(self.name, url, output=dest)


class ScriptedPrompter(Prompter):
    """Prompter that records messages and confirms immediately."""

    def __init__(self):
        self.messages: list[str] = []
        self.confirmations: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)

    def wait_for_confirmation(self, message: str) -> None:
        self.confirmations.append(message)


class FakeFilesystem:
    """In-memory filesystem: ``files`` maps path → content, ``dirs`` is a set."""

    name = "fake-fs"
    dry_run = False

    def __init__(self, files: dict[str, str] | None = None, dirs: set[str] | None = None):
        self.files: dict[str, str] = dict(files or {})
        self.dirs: set[str] = set(dirs or ())
        self.hidden_log: list[tuple[str, bool]] = []

    def is_available(self) -> bool:
        return True

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    def read(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def append(self, path: str, text: str) -> Receipt:
        self.files[path] = self.files.get(path, "") + text
        return Receipt.success(self.name, path)

    def write_if_absent(self, path: str, content: str) -> Receipt:
        if path in self.files:
            return Receipt.success(self.name, path, output="exists", metadata={"changed": False})
        self.files[path] = content
        return Receipt.success(self.name, path, output="created", metadata={"changed": True})

    def mkdir(self, path: str) -> Receipt:
        self.dirs.add(path)
        return Receipt.success(self.name, path)

    def set_hidden(self, path: str, hidden: bool, sudo=None) -> Receipt:
        self.hidden_log.append((path, hidden))
        return Receipt.success(self.name, path)
