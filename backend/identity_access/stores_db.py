"""
Database-backed client state for production use (Postgres).

Why: In-memory client state is not durable and does not scale across
instances. This registry keeps the per-client key-value pairs (the session
fields) in Postgres while the cookie stays an opaque client id.

Expected table (one row per client and key):

    create table public.client_state (
        client_id text not null,
        key text not null,
        value text not null,
        updated_at timestamptz not null default now(),
        primary key (client_id, key)
    );

Note: This module uses psycopg3. It is imported only when enabled via
`SESSIONS_BACKEND=db`. Tests can continue to use the in-memory registry.
"""
from __future__ import annotations

from typing import Iterator, Mapping, MutableMapping, Optional
import os
import re
import secrets

try:
    import psycopg
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False


_TABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


class DBClientStorage(MutableMapping[str, str]):
    """Key-value view over the rows of a single client.

    `update()` writes every pair inside one transaction so a saved session is
    never observed half-written.
    """

    def __init__(self, dsn: str, table: str, client_id: str) -> None:
        self._dsn = dsn
        self._table = table
        self._client_id = client_id

    def __getitem__(self, key: str) -> str:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select value from {self._table} where client_id = %s and key = %s",
                    (self._client_id, key),
                )
                row = cur.fetchone()
        if not row:
            raise KeyError(key)
        return str(row[0])

    def __setitem__(self, key: str, value: str) -> None:
        self.update({key: value})

    def __delitem__(self, key: str) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"delete from {self._table} where client_id = %s and key = %s",
                    (self._client_id, key),
                )
                deleted = cur.rowcount
        if not deleted:
            raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select key from {self._table} where client_id = %s order by key",
                    (self._client_id,),
                )
                rows = cur.fetchall()
        return iter([str(r[0]) for r in rows])

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def update(self, other: Mapping[str, str] = (), **kwargs: str) -> None:  # type: ignore[override]
        pairs = dict(other)
        pairs.update(kwargs)
        if not pairs:
            return
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                for key, value in pairs.items():
                    cur.execute(
                        f"insert into {self._table} (client_id, key, value) values (%s, %s, %s) "
                        "on conflict (client_id, key) do update set value = excluded.value, updated_at = now()",
                        (self._client_id, key, str(value)),
                    )
            conn.commit()


class DBClientStateRegistry:
    """Postgres-backed replacement for `ClientStateRegistry`.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string.
    table:
        Fully qualified table name. Defaults to `public.client_state`.
    """

    def __init__(self, dsn: Optional[str] = None, table: str = "public.client_state") -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBClientStateRegistry")
        self._dsn = dsn or os.getenv("SESSION_DATABASE_URL") or os.getenv("DATABASE_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBClientStateRegistry")
        if not _TABLE_PATTERN.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table

    def new_client_id(self) -> str:
        return secrets.token_urlsafe(24)

    def storage_for(self, client_id: str) -> DBClientStorage:
        return DBClientStorage(self._dsn, self._table, client_id)

    def forget(self, client_id: str) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(f"delete from {self._table} where client_id = %s", (client_id,))
