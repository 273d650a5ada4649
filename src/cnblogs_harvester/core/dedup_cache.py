"""Single-generation cache of the previous harvest, used to skip repeats."""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from cnblogs_harvester.core.entities import ArticleRecord, ClassifyResult
from cnblogs_harvester.core.errors import PersistenceError

logger = logging.getLogger(__name__)


class DeduplicationCache:
    """Hold the full batch of the last successful cycle.

    The generation is replaced wholesale by ``advance`` and is never merged
    with older batches, so an article counts as repeated only if it appeared
    in the immediately preceding cycle.
    """

    def __init__(
        self,
        snapshot_path: Path,
        generation: Optional[Iterable[ArticleRecord]] = None,
    ) -> None:
        self.snapshot_path = snapshot_path
        self._generation: tuple[ArticleRecord, ...] = tuple(generation or ())
        self._urls = {record.url for record in self._generation}

    @classmethod
    def load(cls, snapshot_path: Path) -> "DeduplicationCache":
        """Seed the cache from the snapshot written by the last successful cycle.

        A missing, unreadable or corrupt snapshot yields an empty cache.
        """
        if not snapshot_path.exists():
            logger.info("No snapshot at %s, starting with an empty cache", snapshot_path)
            return cls(snapshot_path)

        try:
            data = json.loads(snapshot_path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            records = [ArticleRecord.from_dict(entry) for entry in data]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                "Snapshot %s could not be loaded and will be discarded: %s: %s",
                snapshot_path, type(e).__name__, e,
            )
            try:
                snapshot_path.unlink()
            except OSError as unlink_error:
                logger.warning("Could not remove snapshot %s: %s", snapshot_path, unlink_error)
            return cls(snapshot_path)

        logger.info("Loaded %d records from snapshot %s", len(records), snapshot_path)
        return cls(snapshot_path, records)

    @property
    def generation(self) -> tuple[ArticleRecord, ...]:
        return self._generation

    def __len__(self) -> int:
        return len(self._generation)

    def __contains__(self, record: ArticleRecord) -> bool:
        return record.url in self._urls

    def classify(self, batch: list[ArticleRecord]) -> ClassifyResult:
        """Split a batch into novel records and a repeat count.

        Does not touch the current generation.
        """
        novel = []
        duplicate_count = 0

        for record in batch:
            if record in self:
                duplicate_count += 1
            else:
                novel.append(record)

        return ClassifyResult(novel=novel, duplicate_count=duplicate_count)

    def advance(self, batch: list[ArticleRecord]) -> None:
        """Persist ``batch`` and make it the current generation.

        The in-memory generation only changes once the snapshot is on disk.

        Raises:
            PersistenceError: if the snapshot could not be written
        """
        self._write_snapshot(batch)
        self._generation = tuple(batch)
        self._urls = {record.url for record in self._generation}

    def _write_snapshot(self, batch: list[ArticleRecord]) -> None:
        tmp_path = self.snapshot_path.with_name(self.snapshot_path.name + ".part")
        payload = json.dumps([record.to_dict() for record in batch], indent=2, ensure_ascii=False)

        try:
            self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.snapshot_path)
        except OSError as e:
            raise PersistenceError(f"Could not write snapshot {self.snapshot_path}: {e}") from e
