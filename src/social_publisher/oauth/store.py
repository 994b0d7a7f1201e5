"""Persistence boundary for OAuth connections."""

from __future__ import annotations

import copy
from typing import Optional, Protocol, runtime_checkable

from .models import OAuthConnection


@runtime_checkable
class ConnectionStore(Protocol):
    """Storage for connections, keyed by (user_id, platform).

    Implementations must keep at most one connection per key; upsert
    replaces any existing row.
    """

    async def get(self, user_id: str, platform: str) -> Optional[OAuthConnection]: ...

    async def upsert(self, connection: OAuthConnection) -> OAuthConnection: ...

    async def delete(self, user_id: str, platform: str) -> bool: ...

    async def list_for_user(self, user_id: str) -> list[OAuthConnection]: ...

    async def list_active(self) -> list[OAuthConnection]: ...


class InMemoryConnectionStore:
    """Process-local ConnectionStore.

    Returns copies so callers cannot mutate stored rows without an upsert.
    """

    def __init__(self):
        self._rows: dict[tuple[str, str], OAuthConnection] = {}

    async def get(self, user_id: str, platform: str) -> Optional[OAuthConnection]:
        row = self._rows.get((user_id, platform))
        return copy.deepcopy(row) if row else None

    async def upsert(self, connection: OAuthConnection) -> OAuthConnection:
        self._rows[connection.key] = copy.deepcopy(connection)
        return copy.deepcopy(connection)

    async def delete(self, user_id: str, platform: str) -> bool:
        return self._rows.pop((user_id, platform), None) is not None

    async def list_for_user(self, user_id: str) -> list[OAuthConnection]:
        return [copy.deepcopy(c) for (uid, _), c in self._rows.items() if uid == user_id]

    async def list_active(self) -> list[OAuthConnection]:
        return [copy.deepcopy(c) for c in self._rows.values() if c.active]

    def __len__(self) -> int:
        return len(self._rows)
