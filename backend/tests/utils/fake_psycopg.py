"""
Lightweight psycopg stand-in for unit tests.

Provides ``install_fake_psycopg`` which monkeypatches a target module so that
``psycopg.connect`` returns an in-memory collection table. Designed to support
the subset of SQL used by DBRecordStore (CREATE TABLE/SELECT/INSERT ... ON
CONFLICT).
"""
from __future__ import annotations

import types
from typing import Any, Dict, List, Optional


class FakeJsonb:
    """Minimal replacement for psycopg.types.json.Jsonb used in tests."""

    def __init__(self, obj: Any) -> None:
        self.obj = obj


class FakeDriverError(Exception):
    """Plays the role of ``psycopg.Error``."""


class _FakeCursor:
    def __init__(self, table: Dict[str, Any], log: List[str]) -> None:
        self._table = table
        self._log = log
        self._row: Optional[tuple] = None

    def execute(self, sql: str, params: tuple | list | None = None) -> None:
        sql_low = " ".join((sql or "").lower().split())
        self._log.append(sql_low)
        if sql_low.startswith("create table"):
            self._row = None
        elif sql_low.startswith("select"):
            name = params[0]
            self._row = (self._table[name],) if name in self._table else None
        elif sql_low.startswith("insert into"):
            name, records = params
            self._table[name] = getattr(records, "obj", records)
            self._row = None
        else:
            raise AssertionError(f"Unexpected SQL in fake psycopg: {sql}")

    def fetchone(self):
        return self._row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeConn:
    def __init__(self, table: Dict[str, Any], log: List[str]) -> None:
        self._table = table
        self._log = log
        self.commits = 0

    def cursor(self):
        return _FakeCursor(self._table, self._log)

    def commit(self) -> None:
        self.commits += 1
        self._log.append("commit")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def install_fake_psycopg(monkeypatch, target_module, *, fail: bool = False):
    """
    Patch ``target_module`` so psycopg operations go against an in-memory table.

    Returns ``(table, log)``: the mutable dict acting as the backing table and
    the list of executed statements (plus ``"commit"`` markers). With
    ``fail=True`` every connect raises the fake driver error.
    """
    table: Dict[str, Any] = {}
    log: List[str] = []

    def fake_connect(dsn: str, connect_timeout: int | None = None):
        if fail:
            raise FakeDriverError("connection refused")
        return _FakeConn(table, log)

    fake_psycopg = types.SimpleNamespace(
        connect=fake_connect,
        Error=FakeDriverError,
        types=types.SimpleNamespace(json=types.SimpleNamespace(Jsonb=FakeJsonb)),
    )

    monkeypatch.setattr(target_module, "psycopg", fake_psycopg, raising=False)
    monkeypatch.setattr(target_module, "Jsonb", FakeJsonb, raising=False)
    return table, log


__all__ = ["install_fake_psycopg", "FakeJsonb", "FakeDriverError"]
