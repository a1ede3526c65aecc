"""
Mac App Store adapter (``mas``).

``mas list`` prints ``<id>  <name>  (<version>)`` per app; only the id
column is used. A failing ``mas list`` usually means the user is not
signed in to the App Store, which is why the same command doubles as
the store account gate probe.
"""

from __future__ import annotations

from provisioner.adapters.base import PackageManager, QueryError
from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt
from provisioner.core.models.resource import ResourceKind


class MasAdapter(PackageManager):

    def __init__(self, runner: ShellRunner):
        self._runner = runner

    @property
    def name(self) -> str:
        return "mas"

    @property
    def kinds(self) -> frozenset[str]:
        return frozenset({ResourceKind.STORE_APP})

    def is_available(self) -> bool:
        return self._runner.which("mas") is not None

    def list_installed(self, kind: str) -> set[str]:
        receipt = self._runner.run(["mas", "list"], mutating=False)
        if not receipt.ok:
            raise QueryError(f"mas list failed: {receipt.error}")
        ids = set()
        for line in receipt.output.splitlines():
            fields = line.split()
            if fields and fields[0].isdigit():
                ids.add(fields[0])
        return ids

    def install(self, kind: str, identifier: str) -> Receipt:
        return self._runner.run(["mas", "install", identifier], target=identifier)

    def install_hint(self, kind: str, identifier: str) -> str:
        return f"mas install {identifier}"
