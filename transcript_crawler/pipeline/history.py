# transcript_crawler/pipeline/history.py
"""Optional history sink: an append-only crawl_history table, written in the background."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, create_engine, insert, select
from sqlalchemy.engine import Engine

from transcript_crawler.pipeline.schema import HistoryRecord

logger = logging.getLogger(__name__)

metadata = MetaData()

crawl_history = Table(
    "crawl_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("video_id", String(11), nullable=False),
    Column("title", String(500), nullable=False),
    Column("thumbnail", String(500), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)


class HistoryStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "HistoryStore":
        return cls(create_engine(database_url))

    def add(self, record: HistoryRecord) -> None:
        with self.engine.begin() as conn:
            conn.execute(insert(crawl_history).values(**record.model_dump()))

    def recent(self, limit: int = 20) -> List[HistoryRecord]:
        """Most recent records first."""
        query = (
            select(crawl_history.c.video_id, crawl_history.c.title, crawl_history.c.thumbnail, crawl_history.c.created_at)
            .order_by(crawl_history.c.created_at.desc(), crawl_history.c.id.desc())
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
        return [HistoryRecord(**row) for row in rows]

    def dispose(self) -> None:
        self.engine.dispose()


class HistoryRecorder:
    """
    Fire-and-forget writer. record() never raises and a failed write is logged, not retried.
    """

    def __init__(self, store: HistoryStore) -> None:
        self.store = store
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="history")

    def record(self, record: HistoryRecord) -> Optional[Future]:
        try:
            return self._executor.submit(self._write, record)
        except RuntimeError as exc:
            logger.warning("History recorder unavailable: %s", exc)
            return None

    def _write(self, record: HistoryRecord) -> bool:
        try:
            self.store.add(record)
            return True
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("History write failed for %s: %s", record.video_id, exc)
            return False

    def recent(self, limit: int = 20) -> List[HistoryRecord]:
        try:
            return self.store.recent(limit)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("History fetch failed: %s", exc)
            return []

    def close(self, wait: bool = True) -> None:
        """Stop accepting records; queued writes still run, then the pool is disposed."""
        try:
            self._executor.submit(self.store.dispose)
        except RuntimeError:
            return
        self._executor.shutdown(wait=wait)
