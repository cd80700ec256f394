"""
Export pipeline: metadata index walk → join → row → sink.

For every key in the metadata index:
1. Count it
2. Look up the transaction record (absent: log, next key)
3. Decode the payload to trytes (invalid: log, next key)
4. Look up the metadata (absent: log, next key)
5. Build the row
6. Release both handles (on every path)
7. Write the row (failure: log, next key)

A single item's failure never aborts the run. Only the walk itself failing
(StoreError from the index) propagates.
"""

import logging
import time
from contextlib import ExitStack
from dataclasses import asdict, dataclass
from enum import Enum

from ..codec import DecodeError, Hash, transaction_to_trytes
from ..store import StoreError, TangleStore
from .rows import ExportRow, build_row
from .sink import JsonSink

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Lifecycle of a pipeline run."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DONE = "DONE"


@dataclass
class RunStats:
    """Run counters, reported once at the end."""

    total_seen: int = 0
    success_count: int = 0
    record_missing: int = 0
    metadata_missing: int = 0
    decode_failed: int = 0
    lookup_failed: int = 0
    write_failed: int = 0
    duration_ms: int = 0

    @property
    def failed(self) -> int:
        """Items seen but not written."""
        return (
            self.record_missing
            + self.metadata_missing
            + self.decode_failed
            + self.lookup_failed
            + self.write_failed
        )

    def to_dict(self) -> dict[str, int]:
        data = asdict(self)
        data["failed"] = self.failed
        return data


class ExportPipeline:
    """
    Single-pass, single-threaded exporter.

    The store and sink are opened by the caller and outlive the pipeline;
    the pipeline owns only its counters.
    """

    def __init__(self, store: TangleStore, sink: JsonSink, limit: int | None = None) -> None:
        """
        Args:
            store: Open tangle store
            sink: Open JSON sink
            limit: Stop after this many index keys (None = whole index)
        """
        self.store = store
        self.sink = sink
        self.limit = limit
        self.stats = RunStats()
        self.state = PipelineState.IDLE

    def run(self) -> RunStats:
        """Walk the metadata index once and export every joinable entry."""
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"pipeline cannot run from state {self.state.value}")

        self.state = PipelineState.RUNNING
        started = time.monotonic()

        try:
            logger.info(f"Transaction storage size: {self.store.transaction_count()}")
            for tx_hash in self.store.iter_metadata_hashes():
                if self.limit is not None and self.stats.total_seen >= self.limit:
                    logger.info(f"Stopping after {self.limit} transaction(s) (limit reached)")
                    break

                self.stats.total_seen += 1
                if self._export_one(tx_hash):
                    self.stats.success_count += 1
        finally:
            self.stats.duration_ms = int((time.monotonic() - started) * 1000)
            self.state = PipelineState.DONE

        logger.info(f"Total txs: {self.stats.total_seen}")
        logger.info(f"Success: {self.stats.success_count}")
        return self.stats

    def _export_one(self, tx_hash: Hash) -> bool:
        row = self._join(tx_hash)
        if row is None:
            return False

        if not self.sink.write(row):
            self.stats.write_failed += 1
            return False
        return True

    def _join(self, tx_hash: Hash) -> ExportRow | None:
        """Build the row for one key. Both handles are released before returning."""
        with ExitStack() as handles:
            try:
                cached_tx = self.store.get_cached_transaction(tx_hash)
            except StoreError as e:
                logger.warning(f"tx {tx_hash} lookup failed: {e}")
                self.stats.lookup_failed += 1
                return None
            if cached_tx is None:
                logger.warning(f"tx {tx_hash} not found")
                self.stats.record_missing += 1
                return None
            handles.enter_context(cached_tx)

            try:
                trytes = transaction_to_trytes(cached_tx.get().data)
            except DecodeError as e:
                logger.warning(f"cannot convert transaction {tx_hash} to trytes: {e}")
                self.stats.decode_failed += 1
                return None

            try:
                cached_metadata = self.store.get_cached_metadata(tx_hash)
            except StoreError as e:
                logger.warning(f"tx metadata {tx_hash} lookup failed: {e}")
                self.stats.lookup_failed += 1
                return None
            if cached_metadata is None:
                logger.warning(f"tx metadata {tx_hash} not found")
                self.stats.metadata_missing += 1
                return None
            handles.enter_context(cached_metadata)

            try:
                return build_row(tx_hash, cached_metadata.get(), trytes)
            except DecodeError as e:
                logger.warning(f"cannot convert hashes of tx {tx_hash} to trytes: {e}")
                self.stats.decode_failed += 1
                return None
