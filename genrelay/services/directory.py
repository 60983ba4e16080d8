# Provider Directory: read-only lookup of provider profiles for a caller.
# Persistence and credential encryption belong to the directory owner; the
# in-memory implementation below loads already-decrypted records from JSON.

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Protocol

from pydantic import BaseModel

from genrelay.core.errors import Forbidden, NotFound
from genrelay.providers.base import ProviderKind, ProviderProfile

logger = logging.getLogger(__name__)


def mask_credential(credential: str) -> str:
    if len(credential) <= 8:
        return "****"
    return credential[:4] + "****" + credential[-4:]


class ProviderView(BaseModel):
    """Profile as shown to callers: the credential only ever appears masked."""

    id: int
    name: str
    kind: str
    base_url: str
    model: str
    enabled: bool
    public: bool
    owned: bool
    credential_mask: str

    @classmethod
    def of(cls, profile: ProviderProfile, caller: str) -> "ProviderView":
        return cls(
            id=profile.id,
            name=profile.name,
            kind=profile.kind.value,
            base_url=profile.base_url,
            model=profile.model,
            enabled=profile.enabled,
            public=profile.public,
            owned=profile.owner == caller,
            credential_mask=mask_credential(profile.credential),
        )


class ProviderDirectory(Protocol):
    async def lookup(self, caller: str, provider_id: int) -> ProviderProfile: ...

    async def available(self, caller: str) -> List[ProviderProfile]: ...


def profile_from_record(record: Dict[str, Any]) -> ProviderProfile:
    return ProviderProfile(
        id=int(record["id"]),
        owner=str(record["owner"]),
        name=str(record.get("name") or ""),
        kind=ProviderKind.parse(record.get("kind", "")),
        base_url=str(record["base_url"]).strip(),
        model=str(record.get("model") or ""),
        credential=str(record.get("credential") or "").strip(),
        enabled=bool(record.get("enabled", True)),
        public=bool(record.get("public", False)),
    )


class InMemoryProviderDirectory:
    def __init__(self, profiles: Iterable[ProviderProfile] = ()) -> None:
        self._profiles: Dict[int, ProviderProfile] = {p.id: p for p in profiles}

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryProviderDirectory":
        p = Path(path)
        if not p.exists():
            logger.warning("providers file %s not found, directory is empty", p)
            return cls()
        records = json.loads(p.read_text(encoding="utf-8"))
        profiles = [profile_from_record(r) for r in records]
        logger.info("loaded %d providers from %s", len(profiles), p)
        return cls(profiles)

    async def lookup(self, caller: str, provider_id: int) -> ProviderProfile:
        profile = self._profiles.get(provider_id)
        if profile is None:
            raise NotFound("provider not found")
        if profile.owner != caller and not profile.public:
            raise Forbidden("provider belongs to another user")
        return profile

    async def available(self, caller: str) -> List[ProviderProfile]:
        # own providers first, then public ones; disabled ones are not offered
        mine = [p for p in self._profiles.values() if p.owner == caller and p.enabled]
        shared = [p for p in self._profiles.values() if p.owner != caller and p.public and p.enabled]
        return sorted(mine, key=lambda p: p.id) + sorted(shared, key=lambda p: p.id)
