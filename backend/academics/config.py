"""
Configuration for the academics engine.

Intent:
    Read the environment once, validate it, and hand services an immutable
    settings object: which record store to wire, how grades are averaged,
    the course prefix length and the pass mark.

Env:
    ACADEMICS_STORE_BACKEND        memory | json | db (default: memory)
    ACADEMICS_DATA_DIR             directory of the JSON store (default: data)
    ACADEMICS_DATABASE_URL         DSN for the db backend (falls back to DATABASE_URL)
    ACADEMICS_GRADE_POLICY         exclude_ungraded | ungraded_as_zero
    ACADEMICS_COURSE_PREFIX_LENGTH 1..10 (default: 2)
    ACADEMICS_PASS_MARK            0..100 (default: 50)
    UNITRACK_ENV                   dev | test | prod | staging ...
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .metrics import DEFAULT_COURSE_PREFIX_LENGTH, DEFAULT_PASS_MARK, GradePolicy
from .store import InMemoryRecordStore, RecordStoreProtocol

STORE_BACKENDS = ("memory", "json", "db")


@dataclass(frozen=True)
class AcademicsConfig:
    store_backend: str = "memory"
    data_dir: str = "data"
    database_url: Optional[str] = None
    grade_policy: GradePolicy = GradePolicy.EXCLUDE_UNGRADED
    course_prefix_length: int = DEFAULT_COURSE_PREFIX_LENGTH
    pass_mark: int = DEFAULT_PASS_MARK


def _int_env(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < lo or value > hi:
        raise ValueError(f"{name} out of range ({lo}..{hi}), got: {value}")
    return value


def _is_prod_like() -> bool:
    env = (os.getenv("UNITRACK_ENV") or "dev").lower()
    return env in {"prod", "production", "stage", "staging"}


def load_academics_config() -> AcademicsConfig:
    """Parse and validate academics settings from environment variables.

    Behavior:
        - The in-memory store is refused in production/staging (data would be
          lost on restart).
        - The db backend requires a DSN.
        - Invalid values raise ValueError naming the variable.
    """
    backend = (os.getenv("ACADEMICS_STORE_BACKEND") or "memory").strip().lower()
    if backend not in STORE_BACKENDS:
        raise ValueError("ACADEMICS_STORE_BACKEND must be 'memory', 'json' or 'db'")
    if backend == "memory" and _is_prod_like():
        raise ValueError("ACADEMICS_STORE_BACKEND=memory is not allowed in production/staging environments.")

    database_url = (os.getenv("ACADEMICS_DATABASE_URL") or os.getenv("DATABASE_URL") or "").strip() or None
    if backend == "db" and not database_url:
        raise ValueError("ACADEMICS_DATABASE_URL (or DATABASE_URL) is required for ACADEMICS_STORE_BACKEND=db")

    raw_policy = (os.getenv("ACADEMICS_GRADE_POLICY") or GradePolicy.EXCLUDE_UNGRADED.value).strip().lower()
    try:
        policy = GradePolicy(raw_policy)
    except ValueError:
        raise ValueError("ACADEMICS_GRADE_POLICY must be 'exclude_ungraded' or 'ungraded_as_zero'")

    return AcademicsConfig(
        store_backend=backend,
        data_dir=(os.getenv("ACADEMICS_DATA_DIR") or "data").strip(),
        database_url=database_url,
        grade_policy=policy,
        course_prefix_length=_int_env("ACADEMICS_COURSE_PREFIX_LENGTH", DEFAULT_COURSE_PREFIX_LENGTH, lo=1, hi=10),
        pass_mark=_int_env("ACADEMICS_PASS_MARK", DEFAULT_PASS_MARK, lo=0, hi=100),
    )


def build_record_store(config: AcademicsConfig) -> RecordStoreProtocol:
    """Instantiate the record store selected by ``config.store_backend``."""
    if config.store_backend == "json":
        from .store_json import JsonFileRecordStore

        return JsonFileRecordStore(config.data_dir)
    if config.store_backend == "db":
        from .store_db import DBRecordStore

        return DBRecordStore(config.database_url)
    return InMemoryRecordStore()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure process logging from LOG_LEVEL (default INFO)."""
    level_name = level or os.getenv("LOG_LEVEL", "INFO")
    normalized_level = level_name.strip().upper() or "INFO"
    logging.basicConfig(level=normalized_level)


__all__ = [
    "STORE_BACKENDS",
    "AcademicsConfig",
    "load_academics_config",
    "build_record_store",
    "configure_logging",
]
