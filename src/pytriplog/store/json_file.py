"""JSON file record store.

Entries are kept as one JSON array of camelCase records. Every commit
rewrites the whole array to a temporary file in the same directory and
renames it over the original, so readers only ever see the state before
or after a commit.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pytriplog.exceptions import PersistenceError
from pytriplog.models.trip import TripEntry
from pytriplog.store.base import apply_commit, pick_latest

_logger = logging.getLogger(__name__)


class JsonFileStore:
    """File-backed store, re-read on every operation.

    Re-reading keeps the compare-and-swap honest when another process
    writes the same file between two calls.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[TripEntry]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise PersistenceError(f"Cannot read {self._path}: {exc}") from exc

        if not text.strip():
            return []
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"{self._path} is not valid JSON: {exc}") from exc

        # Accept a bare array or an object wrapping it.
        if isinstance(data, dict):
            data = data.get("entries", [])
        if not isinstance(data, list):
            raise PersistenceError(f"{self._path} does not contain a list of trips")

        try:
            return [TripEntry.model_validate(item) for item in data]
        except ValidationError as exc:
            raise PersistenceError(f"{self._path} holds an invalid trip record: {exc}") from exc

    def _write(self, entries: list[TripEntry]) -> None:
        payload = json.dumps([entry.to_record() for entry in entries], indent=2)
        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write {self._path}: {exc}") from exc
        _logger.debug("Wrote %d trips to %s", len(entries), self._path)

    def _commit_sync(self, closed: TripEntry | None, opened: TripEntry) -> None:
        entries = self._load()
        self._write(apply_commit(entries, closed, opened))

    async def _run(self, func: Any, *args: Any) -> Any:
        return await asyncio.get_running_loop().run_in_executor(None, func, *args)

    async def latest(self) -> TripEntry | None:
        return pick_latest(await self._run(self._load))

    async def all(self) -> list[TripEntry]:
        entries: list[TripEntry] = await self._run(self._load)
        return entries

    async def get(self, entry_id: str) -> TripEntry | None:
        for entry in await self.all():
            if entry.id == entry_id:
                return entry
        return None

    async def commit(self, closed: TripEntry | None, opened: TripEntry) -> None:
        await self._run(self._commit_sync, closed, opened)

    async def replace_all(self, entries: Sequence[TripEntry]) -> None:
        await self._run(self._write, list(entries))
