"""
Postgres-backed record store for academic collections.

Design:
- One row per collection in ``public.academic_collections``; the whole
  collection lives in a ``jsonb`` array so load/save stay atomic per call.
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Driver errors are wrapped as ``StoreError`` so services can treat every
  adapter the same way.
"""
from __future__ import annotations

import json
import logging
import os
from typing import List, Optional

import psycopg
from psycopg.types.json import Jsonb

from .errors import StoreError
from .store import Record, ensure_collection

logger = logging.getLogger("unitrack.academics.store")

_CREATE_TABLE_SQL = """
    create table if not exists public.academic_collections (
        name text primary key,
        records jsonb not null default '[]'::jsonb,
        updated_at timestamptz not null default now()
    )
"""

_SELECT_SQL = "select records from public.academic_collections where name = %s"

_UPSERT_SQL = """
    insert into public.academic_collections (name, records, updated_at)
    values (%s, %s, now())
    on conflict (name) do update
       set records = excluded.records,
           updated_at = excluded.updated_at
"""


def _dsn() -> str:
    """Resolve the DSN: ACADEMICS_DATABASE_URL first, then DATABASE_URL."""
    for candidate in (os.getenv("ACADEMICS_DATABASE_URL"), os.getenv("DATABASE_URL")):
        if candidate and candidate.strip():
            return candidate.strip()
    raise RuntimeError("Database DSN unavailable for DBRecordStore")


class DBRecordStore:
    def __init__(self, dsn: Optional[str] = None, *, connect_timeout: int = 5) -> None:
        self._dsn = dsn or _dsn()
        self._connect_timeout = connect_timeout

    def _connect(self):
        return psycopg.connect(self._dsn, connect_timeout=self._connect_timeout)

    def ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(_CREATE_TABLE_SQL)
                    conn.commit()
        except psycopg.Error as exc:
            raise StoreError(f"schema_failed: {exc.__class__.__name__}") from exc

    def load(self, collection: str) -> List[Record]:
        name = ensure_collection(collection)
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(_SELECT_SQL, (name,))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StoreError(f"load_failed: {name}: {exc.__class__.__name__}") from exc
        if row is None:
            return []
        records = row[0]
        if isinstance(records, (str, bytes)):
            records = json.loads(records)
        if not isinstance(records, list):
            raise StoreError(f"load_failed: {name}: not a list")
        return records

    def save(self, collection: str, records: List[Record]) -> None:
        name = ensure_collection(collection)
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(_UPSERT_SQL, (name, Jsonb(list(records))))
                    conn.commit()
        except psycopg.Error as exc:
            raise StoreError(f"save_failed: {name}: {exc.__class__.__name__}") from exc
        logger.debug("academics.store.saved collection=%s count=%s", name, len(records))


__all__ = ["DBRecordStore"]
