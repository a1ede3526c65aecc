"""
Defaults adapter — macOS preference domains via ``defaults``.
"""

from __future__ import annotations

from typing import Any

from provisioner.adapters.base import PrivilegeBroker
from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt


def _scalar(value_type: str, value: Any) -> list[str]:
    if value_type == "bool":
        return ["-bool", "true" if value else "false"]
    if value_type == "int":
        return ["-int", str(int(value))]
    if value_type == "float":
        return ["-float", str(float(value))]
    return ["-string", str(value)]


def _infer_type(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    return "string"


def encode_value(value_type: str, value: Any) -> list[str]:
    """Command-line arguments for a typed ``defaults write`` value.

    ``array`` takes a list (possibly empty). ``dict`` takes a mapping of
    key to scalar; each scalar's type is inferred.
    """
    if value_type == "array":
        items = value or []
        return ["-array", *(str(v) for v in items)]
    if value_type == "dict":
        args = ["-dict"]
        for key, item in (value or {}).items():
            args += [str(key), *_scalar(_infer_type(item), item)]
        return args
    return _scalar(value_type, value)


class DefaultsAdapter:
    """Read and write user (or system) preferences."""

    name = "defaults"

    def __init__(self, runner: ShellRunner, sudo: PrivilegeBroker | None = None):
        self._runner = runner
        self._sudo = sudo

    def is_available(self) -> bool:
        return self._runner.which("defaults") is not None

    def write(
        self,
        domain: str,
        key: str,
        value_type: str,
        value: Any,
        *,
        current_host: bool = False,
        privileged: bool = False,
    ) -> Receipt:
        argv = ["defaults"]
        if current_host:
            argv.append("-currentHost")
        argv += ["write", domain, key, *encode_value(value_type, value)]
        target = f"{domain}:{key}"
        if privileged and self._sudo is not None:
            return self._sudo.run_privileged(argv, target=target)
        return self._runner.run(argv, target=target)

    def read(self, domain: str, key: str) -> str | None:
        """Current value as ``defaults read`` prints it, or None when unset."""
        receipt = self._runner.run(["defaults", "read", domain, key], mutating=False)
        return receipt.output if receipt.ok else None
