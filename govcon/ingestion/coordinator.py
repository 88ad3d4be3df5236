"""Ingestion orchestration: concurrent partition fetch, then idempotent upsert."""

import contextvars
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from govcon.adapters.base import BaseFetcher
from govcon.config.models import AppConfig
from govcon.domain.models import RawOpportunity
from govcon.logging import get_logger
from govcon.logging.context import log_context
from govcon.normalization.service import OpportunityNormalizer
from govcon.persistence.database import get_session
from govcon.persistence.exceptions import DataIntegrityError
from govcon.persistence.repositories import OpportunityRepository
from govcon.utils.timestamps import utc_now

from .models import IngestionResult, PartitionFetchResult

logger = get_logger(__name__, component="ingestion")

FetchFn = Callable[[str], List[RawOpportunity]]

MODE_STANDARD = "standard"
MODE_SOURCES_SOUGHT = "sources_sought"
MODE_SBIR_STTR = "sbir_sttr"


class IngestionCoordinator:
    """
    Pulls opportunities from the upstream source and reconciles them into the store.

    Each partition key is fetched in its own worker thread. Workers share only
    the fetcher (whose rate limiter is lock-guarded) and return their records;
    nothing is written until every fetch has finished or the deadline passed.
    Records are then upserted one at a time in the calling thread, keyed by
    solicitation number, each inside its own savepoint.

    A failed or late partition contributes zero records. A record with bad
    data is logged and skipped. Store failures propagate.
    """

    def __init__(
        self,
        fetcher: BaseFetcher,
        partition_keys: Optional[List[str]] = None,
        max_workers: int = 8,
        fetch_deadline_seconds: float = 120,
        sbir_enabled: bool = False,
        sbir_keywords: Optional[List[str]] = None,
        session_scope=get_session,
    ):
        """
        Initialize the coordinator.

        Args:
            fetcher: Upstream fetcher shared by all partition tasks
            partition_keys: Default NAICS codes when a call passes none
            max_workers: Upper bound on concurrent partition fetches
            fetch_deadline_seconds: Time allowed for the whole fetch phase
            sbir_enabled: Whether ingest_sbir_sttr does anything
            sbir_keywords: Default title keywords for the SBIR/STTR search
            session_scope: Context manager factory yielding a Session
        """
        self.fetcher = fetcher
        self.partition_keys = list(partition_keys or [])
        self.max_workers = max(1, max_workers)
        self.fetch_deadline_seconds = fetch_deadline_seconds
        self.sbir_enabled = sbir_enabled
        self.sbir_keywords = list(sbir_keywords or [])
        self._session_scope = session_scope
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, app_config: AppConfig, fetcher: BaseFetcher) -> "IngestionCoordinator":
        ingestion = app_config.ingestion
        return cls(
            fetcher=fetcher,
            partition_keys=ingestion.naics_codes,
            max_workers=app_config.advanced.max_fetch_workers,
            fetch_deadline_seconds=ingestion.fetch_deadline_seconds,
            sbir_enabled=ingestion.sbir_enabled,
            sbir_keywords=ingestion.sbir_keywords,
        )

    def run_ingestion(self, partition_keys: Optional[List[str]] = None) -> IngestionResult:
        """
        Fetch every partition with the standard query and upsert the results.

        Args:
            partition_keys: NAICS codes to fetch; defaults to the configured codes

        Returns:
            IngestionResult with new/updated counts and elapsed time

        Raises:
            PersistenceError: If the store itself fails
        """
        return self._run(MODE_STANDARD, self._keys(partition_keys), self.fetcher.fetch)

    def ingest_sources_sought(self, partition_keys: Optional[List[str]] = None) -> int:
        """
        Same fetch/merge/upsert as :meth:`run_ingestion`, using the alternate query.

        Returns:
            Number of opportunities saved (new + updated)
        """
        result = self._run(
            MODE_SOURCES_SOUGHT, self._keys(partition_keys), self.fetcher.fetch_alternate
        )
        return result.saved_count

    def ingest_sbir_sttr(self, keywords: Optional[List[str]] = None) -> IngestionResult:
        """
        Title-search SBIR/STTR notices and upsert them.

        Returns a zero result without calling upstream when SBIR/STTR
        ingestion is disabled or the fetcher has no title search.
        """
        fetch_by_title = getattr(self.fetcher, "fetch_by_title", None)
        if not self.sbir_enabled or fetch_by_title is None:
            logger.info(
                "SBIR/STTR ingestion is disabled",
                extra={"event": "ingestion.sbir.disabled"},
            )
            return IngestionResult(mode=MODE_SBIR_STTR)

        terms = _dedupe(keywords if keywords is not None else self.sbir_keywords)
        return self._run(MODE_SBIR_STTR, terms, fetch_by_title)

    def run_full_ingestion(self, partition_keys: Optional[List[str]] = None) -> IngestionResult:
        """Standard NAICS ingestion followed by the SBIR/STTR search, counts summed."""
        standard = self.run_ingestion(partition_keys)
        sbir = self.ingest_sbir_sttr()
        result = standard.combine(sbir, mode="full")

        logger.info(
            "Full ingestion completed",
            extra={
                "event": "ingestion.full.completed",
                "new_count": result.new_count,
                "updated_count": result.updated_count,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    def _keys(self, partition_keys: Optional[List[str]]) -> List[str]:
        return _dedupe(partition_keys if partition_keys is not None else self.partition_keys)

    def _run(self, mode: str, keys: List[str], fetch_fn: FetchFn) -> IngestionResult:
        run_id = uuid4().hex

        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id, mode=mode):
                logger.warning(
                    "Ingestion run skipped: previous run still in progress",
                    extra={"event": "ingestion.run.skipped", "reason": "lock_held"},
                )
            return IngestionResult(mode=mode, skipped_run=True)

        try:
            with log_context(run_id=run_id, mode=mode):
                started = time.monotonic()
                logger.info(
                    f"Ingestion run started for {len(keys)} partitions",
                    extra={"event": "ingestion.run.started", "partition_count": len(keys)},
                )

                records, partition_stats = self._fetch_all(keys, fetch_fn)
                result = self._upsert_all(records)
                result.mode = mode
                result.partition_stats = partition_stats
                result.duration_ms = int((time.monotonic() - started) * 1000)

                logger.info(
                    "Ingestion run completed",
                    extra={
                        "event": "ingestion.run.completed",
                        "fetched_count": len(records),
                        "new_count": result.new_count,
                        "updated_count": result.updated_count,
                        "skipped_count": result.skipped_count,
                        "failed_count": result.failed_count,
                        "failed_partitions": result.failed_partitions,
                        "duration_ms": result.duration_ms,
                    },
                )
                return result
        finally:
            self._lock.release()

    def _fetch_all(
        self, keys: List[str], fetch_fn: FetchFn
    ) -> Tuple[List[RawOpportunity], List[PartitionFetchResult]]:
        """Fork one fetch per key, join with a deadline, flatten in key order."""
        if not keys:
            return [], []

        executor = ThreadPoolExecutor(
            max_workers=min(len(keys), self.max_workers),
            thread_name_prefix="ingestion-fetch",
        )
        futures = {}
        try:
            for key in keys:
                # Each task gets its own copy; a Context cannot be entered twice at once
                ctx = contextvars.copy_context()
                futures[key] = executor.submit(ctx.run, self._fetch_partition, key, fetch_fn)

            _, not_done = wait(futures.values(), timeout=self.fetch_deadline_seconds)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        records: List[RawOpportunity] = []
        stats: List[PartitionFetchResult] = []
        for key, future in futures.items():
            if future in not_done:
                logger.error(
                    f"Fetch for partition {key} missed the {self.fetch_deadline_seconds}s deadline",
                    extra={"event": "ingestion.partition.timeout", "partition_key": key},
                )
                stats.append(
                    PartitionFetchResult(partition_key=key, succeeded=False, error="deadline exceeded")
                )
                continue

            partition_records, stat = future.result()
            records.extend(partition_records)
            stats.append(stat)

        return records, stats

    def _fetch_partition(
        self, key: str, fetch_fn: FetchFn
    ) -> Tuple[List[RawOpportunity], PartitionFetchResult]:
        """Run one fetch; any exception becomes an empty, failed partition."""
        with log_context(partition_key=key):
            started = time.monotonic()
            try:
                records = list(fetch_fn(key) or [])
            except Exception as e:
                duration_ms = int((time.monotonic() - started) * 1000)
                logger.error(
                    f"Fetch failed for partition {key}: {e}",
                    extra={
                        "event": "ingestion.partition.failed",
                        "error_type": type(e).__name__,
                        "duration_ms": duration_ms,
                    },
                )
                return [], PartitionFetchResult(
                    partition_key=key,
                    succeeded=False,
                    error=f"{type(e).__name__}: {e}",
                    duration_ms=duration_ms,
                )

            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                f"Fetched {len(records)} records for partition {key}",
                extra={
                    "event": "ingestion.partition.fetched",
                    "record_count": len(records),
                    "duration_ms": duration_ms,
                },
            )
            return records, PartitionFetchResult(
                partition_key=key, record_count=len(records), duration_ms=duration_ms
            )

    def _upsert_all(self, records: Iterable[RawOpportunity]) -> IngestionResult:
        """Sequentially upsert records keyed by solicitation number."""
        result = IngestionResult()

        with self._session_scope() as session:
            repo = OpportunityRepository(session)
            normalizer = OpportunityNormalizer(repo, fetched_at=utc_now())

            for raw in records:
                key = (raw.solicitation_number or "").strip()
                if not key:
                    result.skipped_count += 1
                    logger.warning(
                        f"Skipping record without solicitation number (notice {raw.notice_id})",
                        extra={"event": "ingestion.record.skipped", "notice_id": raw.notice_id},
                    )
                    continue

                try:
                    with session.begin_nested():
                        normalized = normalizer.normalize(raw)
                        repo.save(normalized.opportunity)
                except (ValueError, DataIntegrityError) as e:
                    # pydantic's ValidationError is a ValueError
                    result.failed_count += 1
                    logger.warning(
                        f"Failed to upsert opportunity {key}: {e}",
                        extra={
                            "event": "ingestion.record.failed",
                            "solicitation_number": key,
                            "error_type": type(e).__name__,
                        },
                    )
                    continue

                if normalized.is_new:
                    result.new_count += 1
                else:
                    result.updated_count += 1

                logger.debug(
                    f"Upserted opportunity {key}",
                    extra={
                        "event": "ingestion.record.upserted",
                        "solicitation_number": key,
                        "is_new": normalized.is_new,
                    },
                )

        return result


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        value = (value or "").strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)
