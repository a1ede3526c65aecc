"""
System steps — host names and preferences.

Every individual write is non-fatal: a preference macOS refuses is
recorded with the command to retry it, and the rest are still applied.
"""

from __future__ import annotations

import logging

from provisioner.adapters.system.macos import NAME_KEYS
from provisioner.core.steps.common import note

logger = logging.getLogger(__name__)

SMB_SERVER_DOMAIN = "/Library/Preferences/SystemConfiguration/com.apple.smb.server"


def desired_host_name(session) -> str:
    return session.manifest.user.host_name or f"{session.username}-macbookpro"


def set_host_names(session) -> dict:
    """Set each system name that differs from the desired host name."""
    macos = session.adapters.macos
    sudo = session.adapters.sudo
    defaults = session.adapters.defaults
    host = desired_host_name(session)

    differing = [key for key in NAME_KEYS if macos.get_name(key) != host]
    netbios_differs = defaults.read(SMB_SERVER_DOMAIN, "NetBIOSName") != host
    if not differing and not netbios_differs:
        return {"status": "present", "host_name": host, "changed": []}

    changed = []
    for key in differing:
        if note(session, macos.set_name(key, host, sudo=sudo), f"scutil:{key}", hint=f"sudo scutil --set {key} {host}"):
            changed.append(key)

    if netbios_differs:
        receipt = defaults.write(SMB_SERVER_DOMAIN, "NetBIOSName", "string", host, privileged=True)
        if note(
            session,
            receipt,
            "defaults:NetBIOSName",
            hint=f"sudo defaults write {SMB_SERVER_DOMAIN} NetBIOSName -string {host}",
        ):
            changed.append("NetBIOSName")

    return {"status": "set", "host_name": host, "changed": changed}


def _render_value(session, value):
    if isinstance(value, str):
        return session.render(value)
    if isinstance(value, list):
        return [_render_value(session, v) for v in value]
    if isinstance(value, dict):
        return {k: _render_value(session, v) for k, v in value.items()}
    return value


def apply_preferences(session) -> dict:
    """Write declared preferences, show hidden folders, add sidebar favorites, restart apps."""
    adapters = session.adapters
    manifest = session.manifest
    written = failed = 0

    for pref in manifest.preferences:
        receipt = adapters.defaults.write(
            pref.domain,
            pref.key,
            pref.type,
            _render_value(session, pref.value),
            current_host=pref.current_host,
            privileged=pref.sudo,
        )
        if note(session, receipt, f"preference:{pref.identifier}", hint=receipt.metadata.get("command", "")):
            written += 1
        else:
            failed += 1

    note(session, adapters.fs.set_hidden(session.expand("~/Library"), False), "chflags:~/Library")
    note(session, adapters.fs.set_hidden("/Volumes", False, sudo=adapters.sudo), "chflags:/Volumes")

    added = []
    if manifest.finder_favorites:
        existing = adapters.macos.sidebar_items()
        for fav in manifest.finder_favorites:
            if fav.name in existing:
                continue
            url = session.render(fav.url)
            if note(session, adapters.macos.add_sidebar_item(fav.name, url), f"sidebar:{fav.name}",
                    hint=f"mysides add {fav.name} {url}"):
                added.append(fav.name)

    for app in manifest.restart_apps:
        receipt = adapters.macos.restart_app(app)
        if receipt.failed:
            logger.debug("Could not restart %s: %s", app, receipt.error)

    return {"written": written, "failed": failed, "favorites_added": added}
