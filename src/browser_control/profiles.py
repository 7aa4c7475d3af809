"""
Profile Store

Persists named authentication profiles:
- profiles/<name>.json: Playwright storage state (cookies + local storage)
- profiles/profiles.meta.json: name -> {description, createdAt, updatedAt}

The store only upserts; deciding whether a description is required is the
caller's business.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from .errors import ValidationError
from .models import ProfileInfo, ProfileMeta

logger = logging.getLogger(__name__)

META_FILENAME = "profiles.meta.json"

# Profile and flow names become file names
NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_name(name: str, kind: str = "profile") -> str:
    """Reject names that are empty or could escape their directory."""
    if not name or not NAME_PATTERN.match(name) or name in (".", ".."):
        raise ValidationError(
            f"Invalid {kind} name {name!r}. Use letters, digits, '.', '_' or '-'."
        )
    return name


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def derive_domain(state: Optional[dict[str, Any]]) -> Optional[str]:
    """
    Derive a display domain from a storage state.

    Prefers the first stored origin, then the first cookie domain.
    """
    if not state:
        return None

    for origin in state.get("origins") or []:
        host = urlparse(origin.get("origin", "")).hostname
        if host:
            return host

    for cookie in state.get("cookies") or []:
        domain = (cookie.get("domain") or "").lstrip(".")
        if domain:
            return domain

    return None


class ProfileStore:
    """Reads and writes storage-state blobs plus their metadata."""

    def __init__(self, profiles_dir: Path):
        self.profiles_dir = Path(profiles_dir)

    @property
    def meta_path(self) -> Path:
        return self.profiles_dir / META_FILENAME

    @property
    def meta_backup_path(self) -> Path:
        return self.profiles_dir / f"{META_FILENAME}.bak"

    def state_path(self, name: str) -> Path:
        validate_name(name)
        if f"{name}.json" == META_FILENAME:
            raise ValidationError(f"Profile name {name!r} is reserved")
        return self.profiles_dir / f"{name}.json"

    def has_state(self, name: str) -> bool:
        return self.state_path(name).is_file()

    def load_state(self, name: str) -> Optional[dict[str, Any]]:
        """Return the stored storage state, or None if nothing was saved yet."""
        path = self.state_path(name)
        if not path.is_file():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _read_meta(self, backup_corrupt: bool = False) -> dict[str, dict[str, Any]]:
        """
        Load the metadata file.

        An unreadable file reads as empty. With ``backup_corrupt`` (set
        before a rewrite) it is first moved to ``profiles.meta.json.bak``
        so the other profiles' descriptions can be recovered by hand.
        """
        if not self.meta_path.is_file():
            return {}
        try:
            with open(self.meta_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            if backup_corrupt:
                self.meta_path.replace(self.meta_backup_path)
                logger.warning(
                    f"Unreadable {self.meta_path} ({e}); moved it to {self.meta_backup_path}"
                )
            else:
                logger.warning(f"Ignoring unreadable {self.meta_path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_meta(self, meta: dict[str, dict[str, Any]]) -> None:
        self.profiles_dir.mkdir(parents=True, exist_ok=True)
        with open(self.meta_path, "w", encoding="utf-8") as f:
            json.dump(meta, f, indent=2, ensure_ascii=False)

    def get_meta(self, name: str) -> Optional[ProfileMeta]:
        validate_name(name)
        entry = self._read_meta().get(name)
        if entry is None:
            return None
        return ProfileMeta.model_validate(entry)

    def save_state(
        self,
        name: str,
        state: dict[str, Any],
        description: Optional[str] = None,
    ) -> ProfileMeta:
        """
        Upsert a profile.

        The storage state is always overwritten. ``description`` only
        replaces the stored one when given; ``createdAt`` is kept.

        Returns:
            The metadata as stored after the write
        """
        path = self.state_path(name)
        self.profiles_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(state, f, indent=2, ensure_ascii=False)

        now = utc_now()
        meta = self._read_meta(backup_corrupt=True)
        entry = meta.get(name) or {"createdAt": now}
        if description is not None:
            entry["description"] = description
        entry["updatedAt"] = now
        meta[name] = entry
        self._write_meta(meta)

        logger.info(f"Saved auth profile '{name}' to {path}")
        return ProfileMeta.model_validate(entry)

    def list(self) -> list[ProfileInfo]:
        """List every profile that has metadata or a stored state file."""
        meta = self._read_meta()
        names = set(meta)
        if self.profiles_dir.is_dir():
            names.update(
                p.stem
                for p in self.profiles_dir.glob("*.json")
                if p.name != META_FILENAME
            )

        profiles = []
        for name in sorted(names):
            entry = meta.get(name, {})
            state = None
            if NAME_PATTERN.match(name):
                try:
                    state = self.load_state(name)
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Could not read profile '{name}': {e}")
            profiles.append(
                ProfileInfo(
                    name=name,
                    domain=derive_domain(state),
                    description=entry.get("description"),
                    created_at=entry.get("createdAt"),
                    updated_at=entry.get("updatedAt"),
                    has_state=state is not None,
                )
            )
        return profiles
