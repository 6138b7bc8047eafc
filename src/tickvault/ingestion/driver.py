"""Checkpointed, resumable ingestion over dates x symbols. 🔁

The driver walks calendar days (ascending) and, within each day, the symbol
catalog (in order). Each (date, symbol) pair is one unit of work:

    fetch -> write -> save checkpoint

Units run strictly one at a time. After every unit the outcome decides whether
the checkpoint advances:

- SUCCESS: ticks fetched and written, checkpoint advances
- DEGRADED_EMPTY: fetch returned nothing or failed, checkpoint advances
- FAILED: storage write failed, checkpoint stays on the previous unit

A failed unit is not retried within the run. By default the checkpoint is then
held for the rest of the run (later units are still processed), so the next
run resumes at the failed unit and the checkpoint invariant holds: every unit
before it has been ingested. A fetch failure, on the other hand, is recorded
as visited and will not be revisited by resume logic.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Sequence

from tqdm import tqdm

from tickvault.catalog import symbol_index
from tickvault.db.operations import UpsertWriter
from tickvault.db.schema import TableProvisioner
from tickvault.exceptions import CheckpointError, ConfigurationError, StorageError
from tickvault.logging_config import get_logger
from tickvault.models import Checkpoint, UnitOutcome
from tickvault.providers.base import TickFetcher
from tickvault.storage.checkpoints import CheckpointStore
from tickvault.utils import count_days, day_window, iter_days
from tickvault.utils.timestamps import ONE_DAY

logger = get_logger(__name__)


class DriverState(Enum):
    """Lifecycle of an ingestion run."""

    IDLE = "idle"
    RESUMING = "resuming"
    PROCESSING_SYMBOL = "processing_symbol"
    ADVANCING_SYMBOL = "advancing_symbol"
    ADVANCING_DATE = "advancing_date"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ResumePosition:
    """First unit of work to process: a date and an index into the catalog."""

    date: date
    symbol_index: int


@dataclass(frozen=True)
class UnitResult:
    """Result of one (date, symbol) unit of work."""

    date: date
    symbol: str
    outcome: UnitOutcome
    records_written: int = 0
    error: str | None = None


@dataclass
class RunSummary:
    """Aggregate statistics of a run."""

    state: DriverState = DriverState.IDLE
    resume_position: ResumePosition | None = None
    units_processed: int = 0
    outcomes: Counter = field(default_factory=Counter)
    records_written: int = 0
    checkpoint_failures: int = 0
    last_checkpoint: Checkpoint | None = None
    failed_units: list[tuple[date, str]] = field(default_factory=list)
    fetch_failures: list[tuple[date, str]] = field(default_factory=list)


def resolve_resume_position(
    checkpoint: Checkpoint | None,
    catalog: Sequence[str],
    start_date: date,
) -> ResumePosition:
    """Compute where a run starts from the persisted checkpoint.

    - No checkpoint: (start_date, first symbol)
    - Checkpoint (D, S) with S before the last symbol: (D, successor of S)
    - Checkpoint (D, last symbol): (D + 1 day, first symbol)
    - Checkpoint without a symbol, or with a symbol no longer in the catalog:
      (D, first symbol)

    Example:
        >>> resolve_resume_position(
        ...     Checkpoint(date(2024, 1, 1), "gbpusd"), ["eurusd", "gbpusd"], date(2020, 1, 1)
        ... )
        ResumePosition(date=datetime.date(2024, 1, 2), symbol_index=0)
    """
    if not catalog:
        raise ConfigurationError("Symbol catalog is empty")

    if checkpoint is None:
        return ResumePosition(start_date, 0)

    index = symbol_index(catalog, checkpoint.last_symbol)
    if index is None:
        if checkpoint.last_symbol is not None:
            logger.warning(
                f"⚠️  Checkpoint symbol {checkpoint.last_symbol!r} is not in the catalog, "
                f"restarting {checkpoint.date.isoformat()} from the first symbol"
            )
        return ResumePosition(checkpoint.date, 0)

    if index + 1 >= len(catalog):
        return ResumePosition(checkpoint.date + ONE_DAY, 0)
    return ResumePosition(checkpoint.date, index + 1)


class IngestionDriver:
    """Iterates dates x symbols, fetching, writing and checkpointing each unit."""

    def __init__(
        self,
        fetcher: TickFetcher,
        writer: UpsertWriter,
        checkpoint_store: CheckpointStore,
        catalog: Sequence[str],
        start_date: date,
        end_date: date,
        show_progress: bool = False,
        hold_checkpoint_on_failure: bool = True,
        on_unit: Callable[[UnitResult], None] | None = None,
        provisioner: TableProvisioner | None = None,
    ):
        """Initialize the driver.

        Args:
            fetcher: Fetch adapter returning ticks for (symbol, window).
            writer: Upsert writer for per-symbol tables.
            checkpoint_store: Durable resume point.
            catalog: Ordered symbols; the order must be stable across runs.
            start_date: First day to ingest when no checkpoint exists.
            end_date: Last day to ingest (inclusive).
            show_progress: Show a tqdm progress bar.
            hold_checkpoint_on_failure: After a storage failure, stop advancing the
                checkpoint for the rest of the run so the next run resumes at the
                failed unit. When False, later units advance past it.
            on_unit: Optional callback invoked after every unit.
            provisioner: Creates the table for symbols with an empty day. Defaults
                to the writer's provisioner.
        """
        self.fetcher = fetcher
        self.writer = writer
        self.checkpoint_store = checkpoint_store
        self.catalog = list(catalog)
        self.start_date = start_date
        self.end_date = end_date
        self.show_progress = show_progress
        self.hold_checkpoint_on_failure = hold_checkpoint_on_failure
        self.on_unit = on_unit
        self.provisioner = provisioner or getattr(writer, "provisioner", None)
        self.state = DriverState.IDLE
        self._consecutive_checkpoint_failures = 0
        self._checkpoint_held = False

    def _transition(self, state: DriverState) -> None:
        logger.debug(f"🔀 {self.state.value} -> {state.value}")
        self.state = state

    def _validate(self) -> None:
        if not self.catalog:
            raise ConfigurationError("Symbol catalog is empty")
        if len(set(self.catalog)) != len(self.catalog):
            raise ConfigurationError("Symbol catalog contains duplicates")
        if self.start_date > self.end_date:
            raise ConfigurationError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )

    def resume(self) -> ResumePosition:
        """Load the checkpoint and compute the first unit to process."""
        self._transition(DriverState.RESUMING)
        self._checkpoint_held = False
        self._consecutive_checkpoint_failures = 0
        try:
            self._validate()
            checkpoint = self.checkpoint_store.load()
            position = resolve_resume_position(checkpoint, self.catalog, self.start_date)
        except ConfigurationError:
            self._transition(DriverState.ABORTED)
            raise

        logger.info(
            f"▶️  Resuming at {position.date.isoformat()} / "
            f"{self.catalog[position.symbol_index]}"
        )
        return position

    def process_unit(self, day: date, symbol: str) -> UnitResult:
        """Fetch and write one (date, symbol) unit. Never raises for per-unit failures."""
        self._transition(DriverState.PROCESSING_SYMBOL)
        from_time, to_time = day_window(day)

        try:
            records = self.fetcher.fetch(symbol, from_time, to_time)
        except Exception as e:  # Any provider failure degrades to an empty unit
            logger.warning(
                f"⚠️  Fetch failed for {symbol} on {day.isoformat()}: {e} "
                f"(treated as empty, checkpoint advances)"
            )
            return UnitResult(day, symbol, UnitOutcome.DEGRADED_EMPTY, error=str(e))

        if not records:
            logger.info(f"ℹ️  No data for {symbol} on {day.isoformat()}")
            self._provision_empty(symbol)
            return UnitResult(day, symbol, UnitOutcome.DEGRADED_EMPTY)

        try:
            written = self.writer.write(symbol, records)
        except StorageError as e:
            logger.error(
                f"❌ Failed to store {symbol} for {day.isoformat()}: {e} "
                f"(checkpoint not advanced, retried next run)"
            )
            return UnitResult(day, symbol, UnitOutcome.FAILED, error=str(e))
        except Exception as e:
            logger.exception(f"❌ Unexpected error storing {symbol} for {day.isoformat()}")
            return UnitResult(day, symbol, UnitOutcome.FAILED, error=str(e))

        return UnitResult(day, symbol, UnitOutcome.SUCCESS, records_written=written)

    def _provision_empty(self, symbol: str) -> None:
        if self.provisioner is None:
            return
        try:
            self.provisioner.ensure(symbol)
        except StorageError as e:
            logger.warning(f"⚠️  Could not create table for {symbol}: {e}")

    def _persist_checkpoint(self, day: date, symbol: str, summary: RunSummary) -> None:
        try:
            summary.last_checkpoint = self.checkpoint_store.save(day, symbol)
        except CheckpointError as e:
            summary.checkpoint_failures += 1
            self._consecutive_checkpoint_failures += 1
            logger.error(f"❌ Checkpoint not saved for {symbol} on {day.isoformat()}: {e}")
            if self._consecutive_checkpoint_failures >= 2:
                logger.warning(
                    f"⚠️  {self._consecutive_checkpoint_failures} consecutive checkpoint "
                    f"failures: a restart will reprocess every unit since "
                    f"{summary.last_checkpoint.date.isoformat() if summary.last_checkpoint else 'the beginning'}"
                )
            return
        self._consecutive_checkpoint_failures = 0

    def _record(self, result: UnitResult, summary: RunSummary) -> None:
        summary.units_processed += 1
        summary.outcomes[result.outcome] += 1
        summary.records_written += result.records_written
        if result.outcome is UnitOutcome.DEGRADED_EMPTY and result.error is not None:
            summary.fetch_failures.append((result.date, result.symbol))
        if result.outcome is UnitOutcome.FAILED:
            summary.failed_units.append((result.date, result.symbol))
            if self.hold_checkpoint_on_failure and not self._checkpoint_held:
                self._checkpoint_held = True
                logger.warning(
                    f"⚠️  Checkpoint held before {result.symbol} on {result.date.isoformat()} "
                    f"for the rest of this run; the next run resumes there"
                )

        if result.outcome.advances_checkpoint and not self._checkpoint_held:
            self._persist_checkpoint(result.date, result.symbol, summary)

        if self.on_unit is not None:
            self.on_unit(result)

    def run(self) -> RunSummary:
        """Run until the configured end date. 🚀

        Returns:
            RunSummary describing the run (final state DONE).

        Raises:
            ConfigurationError: On invalid setup (final state ABORTED).
        """
        summary = RunSummary()
        position = self.resume()
        summary.resume_position = position

        total_units = max(
            0,
            count_days(position.date, self.end_date) * len(self.catalog) - position.symbol_index,
        )

        with tqdm(
            total=total_units,
            desc="Ingesting ticks",
            unit="unit",
            disable=not self.show_progress,
        ) as pbar:
            first_index = position.symbol_index
            for day in iter_days(position.date, self.end_date):
                logger.info(f"📅 Processing date: {day.isoformat()}")

                for symbol in self.catalog[first_index:]:
                    result = self.process_unit(day, symbol)
                    self._record(result, summary)
                    self._transition(DriverState.ADVANCING_SYMBOL)
                    pbar.update(1)
                    pbar.set_postfix_str(f"{day.isoformat()} {symbol}", refresh=False)

                first_index = 0
                self._transition(DriverState.ADVANCING_DATE)
                logger.info(f"✅ Completed processing for date: {day.isoformat()}")

        self._transition(DriverState.DONE)
        summary.state = self.state
        logger.info(
            f"🏁 Ingestion complete: {summary.units_processed} units, "
            f"{summary.records_written:,} records, "
            f"{summary.outcomes[UnitOutcome.FAILED]} failed, "
            f"{summary.outcomes[UnitOutcome.DEGRADED_EMPTY]} empty"
        )
        if summary.fetch_failures:
            logger.warning(
                f"⚠️  {len(summary.fetch_failures)} units had fetch failures and were recorded "
                f"as visited; they will not be retried automatically: "
                + ", ".join(f"{d.isoformat()}/{s}" for d, s in summary.fetch_failures)
            )
        return summary
