"""JSON-file backed persistence for the Parley data store."""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .models import Snapshot

logger = logging.getLogger("parley.database")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_datastore_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the JSON data store."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "parley.json").resolve(strict=False)


class DataStore:
    """Process-wide store exposing whole-snapshot ``load``/``save`` only.

    ``load`` hands out a deep working copy; ``save`` replaces the held
    snapshot wholesale and, when a path is configured, rewrites the JSON file.
    """

    def __init__(self, path: Path | None = None) -> None:
        if path is not None:
            _ensure_directory(path)
        self._path = path
        self._snapshot = Snapshot()
        self._lock = threading.RLock()

    @property
    def path(self) -> Path | None:
        return self._path

    def initialize(self) -> None:
        """Read the persisted snapshot, if one exists."""

        if self._path is None or not self._path.exists():
            return

        with self._path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)

        with self._lock:
            self._snapshot = Snapshot.from_dict(raw or {})
        logger.info(
            "Loaded data store from %s (%s users, %s dms)",
            self._path,
            len(self._snapshot.users),
            len(self._snapshot.dms),
        )

    def load(self) -> Snapshot:
        with self._lock:
            return copy.deepcopy(self._snapshot)

    def save(self, snapshot: Snapshot) -> None:
        with self._lock:
            committed = copy.deepcopy(snapshot)
            if self._path is not None:
                self._write(committed)
            self._snapshot = committed

    def clear(self) -> None:
        """Reset every collection and both id sequences."""

        self.save(Snapshot())

    @contextmanager
    def transaction(self) -> Iterator[Snapshot]:
        """Hold the store lock across a load/mutate/save cycle.

        The working copy is committed only when the block exits cleanly, so a
        validation error raised inside the block leaves the store untouched.
        """

        with self._lock:
            snapshot = self.load()
            yield snapshot
            self.save(snapshot)

    @contextmanager
    def reading(self) -> Iterator[Snapshot]:
        with self._lock:
            yield self.load()

    def _write(self, snapshot: Snapshot) -> None:
        assert self._path is not None
        payload = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".parley-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["DataStore", "resolve_datastore_path"]
