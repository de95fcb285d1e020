from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

DEFAULT_CACHE_CONTROL = "public, max-age=31536000, immutable"


@dataclass(frozen=True)
class StoredObject:
    provider: str
    key: str
    url: str
    bucket: Optional[str] = None
    size: int = 0


class MediaBackend(Protocol):
    name: str
    bucket: str

    async def put_object(self, *, data: bytes, key: str, content_type: str) -> StoredObject:
        ...
