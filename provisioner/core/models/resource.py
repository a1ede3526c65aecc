"""
Resource models — the things a provisioning run declares it wants.

Every resource belongs to a kind and carries an identifier that is
unique within that kind. How a resource is detected and acquired is
not part of the value: that lives in the kind's strategy
(see ``core/engine/reconciler.py``).
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class ResourceKind(StrEnum):
    """Kinds of resources the reconciler knows about."""

    FORMULA = "formula"
    CASK = "cask"
    STORE_APP = "store_app"
    REPOSITORY = "repository"
    CONFIG_LINE = "config_line"


class Resource(BaseModel):
    """A declared resource: a kind plus an identifier unique within it."""

    kind: ResourceKind
    identifier: str
    label: str = ""  # human-readable name, defaults to the identifier

    @property
    def display_name(self) -> str:
        return self.label or self.identifier


class StoreApp(BaseModel):
    """A Mac App Store application, identified by its numeric store id."""

    name: str
    id: int

    def to_resource(self) -> Resource:
        return Resource(kind=ResourceKind.STORE_APP, identifier=str(self.id), label=self.name)


class RepoEntry(BaseModel):
    """A source repository to clone into ``<base>/<directory>``.

    The directory name is the identity. When the directory exists the
    entry counts as satisfied: there is no fetch, pull, or check that
    the clone points at ``remote``/``branch``.
    """

    directory: str
    remote: str
    branch: str | None = None

    @field_validator("directory")
    @classmethod
    def _plain_directory(cls, value: str) -> str:
        value = value.strip()
        if not value or "/" in value or value in {".", ".."}:
            raise ValueError(f"repository directory must be a single path segment: {value!r}")
        return value

    @classmethod
    def parse(cls, spec: str) -> RepoEntry:
        """Parse the ``dir|remote#branch`` shorthand.

        ``branch`` is optional: ``"frankfurter|git@github.com:pal/frankfurter.git"``.
        """
        if "|" not in spec:
            raise ValueError(f"expected 'dir|remote[#branch]', got {spec!r}")
        directory, remote_branch = spec.split("|", 1)
        remote, _, branch = remote_branch.partition("#")
        return cls(directory=directory, remote=remote.strip(), branch=branch.strip() or None)

    def to_resource(self) -> Resource:
        return Resource(kind=ResourceKind.REPOSITORY, identifier=self.directory, label=self.remote)


class ConfigLine(BaseModel):
    """A line that must be present in a configuration file.

    ``marker`` is the substring whose presence means the line (or an
    equivalent the user wrote by hand) is already there.
    """

    path: str
    line: str
    marker: str = ""

    @property
    def effective_marker(self) -> str:
        return self.marker or self.line

    def to_resource(self) -> Resource:
        return Resource(
            kind=ResourceKind.CONFIG_LINE,
            identifier=f"{self.path}::{self.effective_marker}",
            label=self.line,
        )


class DesiredSet(BaseModel):
    """An ordered, duplicate-free collection of resources of one kind."""

    kind: ResourceKind
    resources: list[Resource] = Field(default_factory=list)

    @classmethod
    def of(cls, kind: ResourceKind, identifiers: list[str]) -> DesiredSet:
        """Build a desired set from plain identifiers, dropping duplicates."""
        seen: set[str] = set()
        resources = []
        for ident in identifiers:
            if ident in seen:
                continue
            seen.add(ident)
            resources.append(Resource(kind=kind, identifier=ident))
        return cls(kind=kind, resources=resources)

    @property
    def identifiers(self) -> list[str]:
        return [r.identifier for r in self.resources]

    def __len__(self) -> int:
        return len(self.resources)
