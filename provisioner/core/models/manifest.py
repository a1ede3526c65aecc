"""
Manifest model — the declared desired state of the workstation.

Loaded from ``provision.yml``. This is pure data: package names, app
ids, repository remotes, preference values. The engine never hardcodes
any of it.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from provisioner.core.models.resource import (
    DesiredSet,
    RepoEntry,
    Resource,
    ResourceKind,
    StoreApp,
)


class UserProfile(BaseModel):
    """Who the workstation belongs to."""

    full_name: str = ""
    email: str = ""
    host_name: str = ""  # empty = "<username>-macbookpro"


class AccountGateSpec(BaseModel):
    """An external account that must be signed in before gated steps run.

    ``probe`` is a command; exit status 0 means authenticated.
    """

    name: str
    probe: list[str]
    instructions: str = ""
    open_app: str | None = None  # app to open so the user can sign in


class RepositorySet(BaseModel):
    """Repositories to clone, in order, under ``base_dir``."""

    base_dir: str = "~/dev"
    entries: list[RepoEntry] = Field(default_factory=list)

    @field_validator("entries", mode="before")
    @classmethod
    def _parse_shorthand(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [RepoEntry.parse(v) if isinstance(v, str) else v for v in value]


class Preference(BaseModel):
    """A single ``defaults write`` preference."""

    domain: str
    key: str
    type: Literal["bool", "int", "float", "string", "array", "dict"] = "string"
    value: Any = None
    current_host: bool = False
    sudo: bool = False

    @property
    def identifier(self) -> str:
        return f"{self.domain}:{self.key}"


class FinderFavorite(BaseModel):
    name: str
    url: str


class FishConfig(BaseModel):
    """Fish shell setup: config lines ensured in ``config.fish``."""

    config_path: str = "~/.config/fish/config.fish"
    lines: list[str] = Field(default_factory=list)


class GhosttyConfig(BaseModel):
    config_path: str = "~/Library/Application Support/com.mitchellh.ghostty/config"
    settings: dict[str, str] = Field(default_factory=dict)


class AwsVaultConfig(BaseModel):
    repo: str = "99designs/aws-vault"
    install_path: str = "/usr/local/bin/aws-vault"


class Manifest(BaseModel):
    """Root manifest — everything a run wants to be true."""

    version: int = 1

    user: UserProfile = Field(default_factory=UserProfile)

    # ── Packages & apps ──────────────────────────────────────────
    formulas: list[str] = Field(default_factory=list)
    casks: list[str] = Field(default_factory=list)
    store_apps: list[StoreApp] = Field(default_factory=list)
    aws_vault: AwsVaultConfig = Field(default_factory=AwsVaultConfig)

    # ── Accounts ─────────────────────────────────────────────────
    gates: list[AccountGateSpec] = Field(default_factory=list)

    # ── Source & tooling config ──────────────────────────────────
    repositories: RepositorySet = Field(default_factory=RepositorySet)
    git_config: dict[str, str] = Field(default_factory=dict)
    shell_rc_files: list[str] = Field(
        default_factory=lambda: ["~/.bash_profile", "~/.zshrc", "~/.config/fish/config.fish"]
    )
    fish: FishConfig = Field(default_factory=FishConfig)
    ghostty: GhosttyConfig = Field(default_factory=GhosttyConfig)

    # ── System preferences ───────────────────────────────────────
    preferences: list[Preference] = Field(default_factory=list)
    finder_favorites: list[FinderFavorite] = Field(default_factory=list)
    restart_apps: list[str] = Field(default_factory=list)

    # ── Follow-up ────────────────────────────────────────────────
    post_install: list[str] = Field(default_factory=list)

    def desired(self, kind: ResourceKind) -> DesiredSet:
        """The desired set for a resource kind."""
        if kind == ResourceKind.FORMULA:
            return DesiredSet.of(kind, self.formulas)
        if kind == ResourceKind.CASK:
            return DesiredSet.of(kind, self.casks)
        if kind == ResourceKind.STORE_APP:
            return _dedup(kind, [app.to_resource() for app in self.store_apps])
        if kind == ResourceKind.REPOSITORY:
            return _dedup(kind, [entry.to_resource() for entry in self.repositories.entries])
        raise ValueError(f"No desired set for kind: {kind}")


def _dedup(kind: ResourceKind, resources: list[Resource]) -> DesiredSet:
    seen: set[str] = set()
    unique = []
    for res in resources:
        if res.identifier not in seen:
            seen.add(res.identifier)
            unique.append(res)
    return DesiredSet(kind=kind, resources=unique)
