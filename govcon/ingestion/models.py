"""Result models for ingestion runs."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class PartitionFetchResult:
    """
    Outcome of fetching one partition key.

    Attributes:
        partition_key: NAICS code or title keyword that was fetched
        record_count: Records returned (0 when the fetch failed)
        succeeded: False when the fetch raised or missed the deadline
        error: Short error description for failed partitions
        duration_ms: Time spent in the fetch
    """

    partition_key: str
    record_count: int = 0
    succeeded: bool = True
    error: Optional[str] = None
    duration_ms: int = 0


@dataclass
class IngestionResult:
    """
    Aggregate counts for one ingestion run.

    Attributes:
        mode: Which upstream query mode ran ("standard", "sources_sought", "sbir_sttr")
        new_count: Opportunities created
        updated_count: Existing opportunities overwritten
        skipped_count: Records without a solicitation number
        failed_count: Records rejected during upsert (bad data)
        duration_ms: Wall-clock time of the run
        partition_stats: Per-partition fetch outcomes
        skipped_run: True when another run held the lock
    """

    mode: str = "standard"
    new_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    duration_ms: int = 0
    partition_stats: List[PartitionFetchResult] = field(default_factory=list)
    skipped_run: bool = False

    @property
    def saved_count(self) -> int:
        return self.new_count + self.updated_count

    @property
    def fetched_count(self) -> int:
        return sum(p.record_count for p in self.partition_stats)

    @property
    def failed_partitions(self) -> List[str]:
        return [p.partition_key for p in self.partition_stats if not p.succeeded]

    def combine(self, other: "IngestionResult", mode: Optional[str] = None) -> "IngestionResult":
        """Sum two results, e.g. the NAICS run and the SBIR/STTR run."""
        return IngestionResult(
            mode=mode or self.mode,
            new_count=self.new_count + other.new_count,
            updated_count=self.updated_count + other.updated_count,
            skipped_count=self.skipped_count + other.skipped_count,
            failed_count=self.failed_count + other.failed_count,
            duration_ms=self.duration_ms + other.duration_ms,
            partition_stats=self.partition_stats + other.partition_stats,
            skipped_run=self.skipped_run and other.skipped_run,
        )
