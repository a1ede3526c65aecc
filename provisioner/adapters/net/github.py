"""
GitHub releases — latest release lookup and asset download.

Used for tools that ship as bare binaries on GitHub and are not (or
should not be) installed from Homebrew.
"""

from __future__ import annotations

import json
import logging
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from provisioner.adapters.base import QueryError
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

USER_AGENT = "provisioner/1.0"


@dataclass
class Release:
    """A published release: its tag and downloadable assets."""

    tag: str
    assets: dict[str, str] = field(default_factory=dict)  # name → download URL

    @property
    def version(self) -> str:
        return self.tag.lstrip("v")

    def find_asset(self, *fragments: str) -> tuple[str, str] | None:
        """First asset whose name contains every fragment."""
        for name, url in self.assets.items():
            if all(f in name for f in fragments):
                return name, url
        return None


class GitHubReleases:

    name = "github"

    def __init__(self, timeout: int = 15):
        self._timeout = timeout

    def is_available(self) -> bool:
        return True

    def latest(self, repo: str) -> Release:
        """Latest release of ``owner/repo``.

        Raises:
            QueryError: On any network or decoding failure.
        """
        api_url = f"https://api.github.com/repos/{repo}/releases/latest"
        req = urllib.request.Request(
            api_url,
            headers={
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                data: dict[str, Any] = json.loads(resp.read())
        except (OSError, ValueError) as exc:
            raise QueryError(f"Failed to fetch latest release of {repo}: {exc}") from exc

        assets = {
            a.get("name", ""): a.get("browser_download_url", "")
            for a in data.get("assets", [])
            if a.get("name")
        }
        return Release(tag=data.get("tag_name", ""), assets=assets)

    def download(self, url: str, dest: str) -> Receipt:
        """Download ``url`` to ``dest``."""
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with urllib.request.urlopen(req, timeout=60) as resp, open(dest, "wb") as fh:
                while chunk := resp.read(65536):
                    fh.write(chunk)
        except OSError as exc:
            return Receipt.failure(self.name, url, error=f"Download failed: {exc}")
        logger.debug("Downloaded %s -> %s", url, dest)
        return Receipt.success(self.name, url, output=dest)
