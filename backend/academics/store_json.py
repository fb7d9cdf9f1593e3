"""
Flat-file JSON store: one ``<collection>.json`` array per collection.

Behavior:
    - A missing file reads as an empty collection.
    - Saves write a temporary file in the same directory and ``os.replace`` it
      over the target, so readers never observe a half-written collection.
    - I/O and decode failures surface as ``StoreError`` with the collection name.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List

from .errors import StoreError
from .store import Record, ensure_collection

logger = logging.getLogger("unitrack.academics.store")


class JsonFileRecordStore:
    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self.data_dir = Path(data_dir)

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{ensure_collection(collection)}.json"

    def load(self, collection: str) -> List[Record]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StoreError(f"load_failed: {collection}: {exc.__class__.__name__}") from exc
        if not isinstance(data, list):
            raise StoreError(f"load_failed: {collection}: not a list")
        return data

    def save(self, collection: str, records: List[Record]) -> None:
        path = self._path(collection)
        tmp_name = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{collection}.", suffix=".tmp", dir=str(self.data_dir))
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"save_failed: {collection}: {exc.__class__.__name__}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
        logger.debug("academics.store.saved collection=%s count=%s", collection, len(records))


__all__ = ["JsonFileRecordStore"]
