"""
Record store adapters: in-memory, JSON files and Postgres (fake psycopg).
"""
from __future__ import annotations

import json

import pytest

from academics import store_db
from academics.errors import StoreError
from academics.store import InMemoryRecordStore
from academics.store_json import JsonFileRecordStore
from utils.fake_psycopg import install_fake_psycopg


def test_memory_store_copies_on_load_and_save():
    records = [{"code": "BM", "name": "Business", "units": []}]
    store = InMemoryRecordStore({"courses": records})
    records[0]["name"] = "changed"

    loaded = store.load("courses")
    assert loaded[0]["name"] == "Business"
    loaded[0]["units"].append("BM001")
    assert store.load("courses")[0]["units"] == []


def test_memory_store_rejects_unknown_collection():
    with pytest.raises(ValueError):
        InMemoryRecordStore().load("grades")


def test_json_store_missing_file_loads_empty(tmp_path):
    store = JsonFileRecordStore(tmp_path)
    assert store.load("units") == []


def test_json_store_save_writes_one_file_per_collection(tmp_path):
    store = JsonFileRecordStore(tmp_path)
    store.save("units", [{"code": "BM001"}])

    assert json.loads((tmp_path / "units.json").read_text(encoding="utf-8")) == [{"code": "BM001"}]
    assert store.load("units") == [{"code": "BM001"}]
    leftovers = [p.name for p in tmp_path.iterdir() if p.name != "units.json"]
    assert leftovers == []


def test_json_store_corrupt_file_raises_store_error(tmp_path):
    (tmp_path / "teachers.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonFileRecordStore(tmp_path).load("teachers")


def test_db_store_upserts_collection_and_commits(monkeypatch):
    table, log = install_fake_psycopg(monkeypatch, store_db)
    store = store_db.DBRecordStore("postgresql://fake")

    assert store.load("courses") == []
    store.save("courses", [{"code": "BM", "name": "Business", "units": []}])

    assert table["courses"] == [{"code": "BM", "name": "Business", "units": []}]
    assert store.load("courses")[0]["code"] == "BM"
    assert "commit" in log


def test_db_store_decodes_text_payloads(monkeypatch):
    table, _ = install_fake_psycopg(monkeypatch, store_db)
    table["units"] = json.dumps([{"code": "CS101"}])
    assert store_db.DBRecordStore("postgresql://fake").load("units") == [{"code": "CS101"}]


def test_db_store_wraps_driver_errors(monkeypatch):
    install_fake_psycopg(monkeypatch, store_db, fail=True)
    store = store_db.DBRecordStore("postgresql://fake")
    with pytest.raises(StoreError) as excinfo:
        store.save("units", [])
    assert str(excinfo.value).startswith("save_failed")


def test_db_store_requires_dsn(monkeypatch):
    monkeypatch.delenv("ACADEMICS_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        store_db.DBRecordStore()


def test_db_store_dsn_prefers_academics_url(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://generic")
    monkeypatch.setenv("ACADEMICS_DATABASE_URL", "postgresql://academics")
    assert store_db._dsn() == "postgresql://academics"
