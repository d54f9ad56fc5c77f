import logging
import asyncio
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from restaurant_discovery.data.config import DiscoveryConfig
from restaurant_discovery.data.errors import ConfigError
from restaurant_discovery.data.models import (
    CandidateStatus,
    DiscoveryResult,
    DiscoverySource,
    DiscoveryStats,
    LocationCandidate,
    RejectedCandidate,
)
from restaurant_discovery.data.raw_models import RawCandidate
from restaurant_discovery.matchers.duplicate_resolver import DuplicateResolver
from restaurant_discovery.normalizers.normalizer import Normalizer
from restaurant_discovery.searchers.base import DiscoveryContext, SourceAdapter
from restaurant_discovery.utils.loader import ExistingLocationsProvider
from restaurant_discovery.validators.confidence_scorer import ValidationScorer

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    DEDUPLICATING = "deduplicating"
    VALIDATING = "validating"
    DONE = "done"


class DiscoveryOrchestrator:
    """Runs one discovery pass: fetch -> normalize -> deduplicate -> validate."""

    def __init__(
        self,
        adapters: List[SourceAdapter],
        existing_locations: Optional[ExistingLocationsProvider] = None,
        normalizer: Optional[Normalizer] = None
    ):
        """
        Initialize the discovery orchestrator.

        Args:
            adapters: Source adapters, in the order their results are processed
            existing_locations: Read interface over already approved locations
            normalizer: Optional Normalizer; built from the run config when omitted
        """
        self.adapters = list(adapters)
        self.existing_locations = existing_locations
        self.normalizer = normalizer
        self.state = RunState.IDLE

    def _transition(self, state: RunState) -> None:
        logger.info(f"Discovery state: {self.state.value} -> {state.value}")
        self.state = state

    async def run_discovery(
        self,
        config: Union[DiscoveryConfig, Dict[str, Any], None] = None
    ) -> DiscoveryResult:
        """
        Run a complete discovery pass.

        Upstream failures never propagate: failed or timed-out adapter calls
        contribute no candidates and are counted in the returned stats.

        Raises:
            ConfigError: If the configuration is malformed or an enabled
                source has no adapter. Raised before any adapter work starts.
        """
        config = DiscoveryConfig.from_input(config)
        adapters = self._select_adapters(config)

        self.state = RunState.IDLE
        start_time = time.monotonic()
        stats = DiscoveryStats()
        self._log_run_start(config, adapters)

        context = DiscoveryContext(
            region_centroid=config.region_centroid,
            search_radius_m=config.search_radius_m,
            max_results_per_query=config.max_results_per_query,
            region_keywords=config.region_keywords,
        )
        normalizer = self.normalizer or Normalizer(
            region_centroid=config.region_centroid,
            default_cuisine=config.default_cuisine,
        )
        scorer = ValidationScorer(
            region_keywords=config.region_keywords,
            domain_keywords=config.domain_keywords,
            strict_domain_match=config.strict_domain_match,
            confidence_threshold=config.confidence_threshold,
        )
        resolver = DuplicateResolver(
            duplicate_threshold=config.duplicate_threshold,
            confidence_fn=scorer.confidence,
        )

        # Step 1: Fetch from every adapter concurrently, existing data alongside
        self._transition(RunState.FETCHING)
        existing_task = asyncio.ensure_future(self._load_existing(stats))
        raw_batches = await self._fetch_all(adapters, config, context, stats)

        # Step 2: Normalize in discovery order
        self._transition(RunState.NORMALIZING)
        candidates = self._normalize_all(raw_batches, normalizer, stats)
        remaining = config.run_timeout - (time.monotonic() - start_time)
        existing = await self._await_existing(existing_task, remaining, stats)

        # Step 3: Resolve duplicates against existing records and within the batch
        self._transition(RunState.DEDUPLICATING)
        resolved = resolver.resolve(candidates, existing)

        # Step 4: Score and partition
        self._transition(RunState.VALIDATING)
        result = DiscoveryResult(stats=stats)
        for candidate, verdict in resolved:
            validation = scorer.score(candidate)
            if verdict.is_duplicate:
                result.duplicates.append(candidate.model_copy(update={
                    "validation": validation,
                    "status": CandidateStatus.DUPLICATE,
                    "duplicate_of": verdict.matched_id,
                }))
            elif validation.is_valid and validation.confidence > config.confidence_threshold:
                result.accepted.append(candidate.model_copy(update={
                    "validation": validation,
                    "status": CandidateStatus.PENDING,
                }))
            else:
                rejected = candidate.model_copy(update={
                    "validation": validation,
                    "status": CandidateStatus.REJECTED,
                })
                result.rejected.append(RejectedCandidate(candidate=rejected, validation=validation))

        self._transition(RunState.DONE)
        stats.final_state = self.state.value
        stats.duration_seconds = round(time.monotonic() - start_time, 3)
        self._log_run_completion(result)
        return result

    def _select_adapters(self, config: DiscoveryConfig) -> List[SourceAdapter]:
        available = {adapter.source for adapter in self.adapters}
        missing = [source.value for source in DiscoverySource if source in config.enabled_sources and source not in available]
        if missing:
            raise ConfigError(f"No adapter registered for enabled source(s): {', '.join(missing)}")
        return [adapter for adapter in self.adapters if adapter.source in config.enabled_sources]

    async def _await_existing(
        self,
        existing_task: asyncio.Future,
        remaining: float,
        stats: DiscoveryStats
    ) -> List[LocationCandidate]:
        """Wait for the existing-locations lookup for whatever is left of the run timeout."""
        try:
            # wait_for cancels the lookup on timeout
            return await asyncio.wait_for(existing_task, timeout=max(remaining, 0.0))
        except asyncio.TimeoutError:
            logger.error("Existing locations lookup did not finish within the run timeout, deduplicating within the batch only")
            stats.existing_lookup_failed = True
            return []

    async def _load_existing(self, stats: DiscoveryStats) -> List[LocationCandidate]:
        if self.existing_locations is None:
            return []
        try:
            existing = await self.existing_locations.get_existing_locations()
        except Exception as e:
            logger.error(f"Existing locations lookup failed, deduplicating within the batch only: {e}", exc_info=True)
            stats.existing_lookup_failed = True
            return []
        stats.existing_count = len(existing)
        logger.info(f"Loaded {len(existing)} existing locations")
        return list(existing)

    async def _fetch_all(
        self,
        adapters: List[SourceAdapter],
        config: DiscoveryConfig,
        context: DiscoveryContext,
        stats: DiscoveryStats
    ) -> List[Tuple[SourceAdapter, List[RawCandidate]]]:
        """
        Run one task per (adapter, query) under the concurrency gate.

        Returns batches in task-creation order, so downstream processing does
        not depend on which upstream answered first.
        """
        semaphore = asyncio.Semaphore(config.concurrency)
        jobs = [(adapter, query) for adapter in adapters for query in config.queries_for(adapter.source)]
        if not jobs:
            logger.warning("No queries configured for the enabled sources")
            return []

        logger.info(f"Dispatching {len(jobs)} adapter tasks (concurrency={config.concurrency})")
        tasks = [
            asyncio.create_task(self._run_adapter(adapter, query, context, semaphore, config, stats))
            for adapter, query in jobs
        ]

        done, pending = await asyncio.wait(tasks, timeout=config.run_timeout)
        if pending:
            logger.warning(f"Run timeout of {config.run_timeout}s reached, cancelling {len(pending)} unfinished adapter tasks")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            stats.cancelled_tasks = len(pending)

        batches = []
        for (adapter, query), task in zip(jobs, tasks):
            if task not in done or task.cancelled():
                continue
            raws = task.result()
            key = adapter.source.value
            stats.raw_counts[key] = stats.raw_counts.get(key, 0) + len(raws)
            batches.append((adapter, raws))
        return batches

    async def _run_adapter(
        self,
        adapter: SourceAdapter,
        query: str,
        context: DiscoveryContext,
        semaphore: asyncio.Semaphore,
        config: DiscoveryConfig,
        stats: DiscoveryStats
    ) -> List[RawCandidate]:
        timeout = min(adapter.timeout, config.adapter_timeout)
        async with semaphore:
            try:
                raws = await asyncio.wait_for(adapter.discover(query, context), timeout=timeout)
            except asyncio.TimeoutError:
                stats.timed_out_tasks += 1
                logger.warning(f"[{adapter.name}] '{query}' timed out after {timeout}s")
                return []
            except Exception as e:
                stats.failed_tasks += 1
                logger.error(f"[{adapter.name}] '{query}' failed: {e}", exc_info=True)
                return []

        logger.info(f"[{adapter.name}] '{query}' produced {len(raws)} raw candidates")
        return list(raws)

    def _normalize_all(
        self,
        raw_batches: List[Tuple[SourceAdapter, List[RawCandidate]]],
        normalizer: Normalizer,
        stats: DiscoveryStats
    ) -> List[LocationCandidate]:
        candidates = []
        for adapter, raws in raw_batches:
            for raw in raws:
                try:
                    candidate = normalizer.normalize(raw, adapter.source)
                except Exception as e:
                    stats.normalization_failures += 1
                    logger.warning(f"[{adapter.name}] Skipping raw record that failed normalization: {e}")
                    continue
                for field in candidate.defaulted_fields:
                    stats.defaults_applied[field] = stats.defaults_applied.get(field, 0) + 1
                candidates.append(candidate)
        logger.info(f"Normalized {len(candidates)} candidates")
        return candidates

    def _log_run_start(self, config: DiscoveryConfig, adapters: List[SourceAdapter]) -> None:
        logger.info("=" * 80)
        logger.info("STARTING DISCOVERY RUN")
        logger.info("=" * 80)
        logger.info(f"Configuration:")
        logger.info(f"  Sources: {', '.join(sorted(s.value for s in config.enabled_sources))}")
        logger.info(f"  Adapters: {', '.join(a.name for a in adapters)}")
        logger.info(f"  Concurrency: {config.concurrency}")
        logger.info(f"  Duplicate threshold: {config.duplicate_threshold}")
        logger.info(f"  Confidence threshold: {config.confidence_threshold}")
        logger.info(f"  Run timeout: {config.run_timeout}s")
        logger.info("=" * 80)

    def _log_run_completion(self, result: DiscoveryResult) -> None:
        stats = result.stats
        logger.info("\n" + "=" * 80)
        logger.info("DISCOVERY RUN COMPLETED")
        logger.info(f"Duration: {stats.duration_seconds}s")
        logger.info(f"  Raw candidates: {stats.raw_counts}")
        logger.info(f"  Accepted: {len(result.accepted)}")
        logger.info(f"  Duplicates: {len(result.duplicates)}")
        logger.info(f"  Rejected: {len(result.rejected)}")
        if stats.failed_tasks or stats.timed_out_tasks or stats.cancelled_tasks:
            logger.warning(
                f"  Failed tasks: {stats.failed_tasks}, timed out: {stats.timed_out_tasks}, "
                f"cancelled: {stats.cancelled_tasks}"
            )
        logger.info("=" * 80)
