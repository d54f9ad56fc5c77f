"""
E2E tests demonstrating dependency injection with mock implementations.

Mock clients (places API, social feed, page fetcher) are injected into the
real adapters, so the whole fetch -> normalize -> deduplicate -> validate
pass runs without network access.
"""
import asyncio
from typing import List

import pytest

from restaurant_discovery.data.defaults import ScrapingTarget, SelectorRules
from restaurant_discovery.data.errors import ConfigError
from restaurant_discovery.data.models import CandidateStatus, DiscoverySource
from restaurant_discovery.data.raw_models import ScrapedRaw
from restaurant_discovery.orchestrator.orchestrator import DiscoveryOrchestrator, RunState
from restaurant_discovery.searchers.base import DiscoveryContext, SourceAdapter
from restaurant_discovery.searchers.places_adapter import PlacesApiAdapter
from restaurant_discovery.searchers.scraping_adapter import ScrapingAdapter
from restaurant_discovery.searchers.social_adapter import SocialFeedAdapter
from restaurant_discovery.utils.loader import InMemoryExistingLocations
from restaurant_discovery.utils.report_generator import ModerationReportGenerator
from tests.fixtures.candidates import make_candidate
from tests.fixtures.mock_clients import (
    LISTING_HTML,
    MockPageFetcher,
    MockPlacesClient,
    MockSocialFeedClient,
)

LISTING_TARGET = ScrapingTarget(
    url="https://blog.example/food",
    selectors=SelectorRules(
        name=".restaurant-name",
        address=".address",
        phone=".phone",
        rating=".rating",
        price=".price",
        reviews=".review",
    ),
)

RUN_CONFIG = {
    "queries": {
        "api": ["amala lagos"],
        "scraping": ["amala"],
        "social": ["#amalalagos"],
    },
}


class ExplodingAdapter(SourceAdapter):
    def __init__(self, source: DiscoverySource):
        self.source = source
        self.name = f"exploding-{source.value}"

    async def discover(self, query: str, context: DiscoveryContext) -> List[ScrapedRaw]:
        raise RuntimeError("upstream unavailable")


class StaticAdapter(SourceAdapter):
    source = DiscoverySource.SCRAPING
    name = "static"

    async def discover(self, query: str, context: DiscoveryContext) -> List[ScrapedRaw]:
        return [ScrapedRaw(name="Amala Skye Bukka", address="Ikeja, Lagos", page_url="https://blog.example")]


class SlowAdapter(SourceAdapter):
    source = DiscoverySource.API
    name = "slow"

    async def discover(self, query: str, context: DiscoveryContext) -> List[ScrapedRaw]:
        await asyncio.sleep(10)
        return []


class FailingExistingLocations:
    async def get_existing_locations(self):
        raise ConnectionError("dataset offline")


class HangingExistingLocations:
    def __init__(self):
        self.cancelled = False

    async def get_existing_locations(self):
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


def build_adapters():
    return [
        PlacesApiAdapter(MockPlacesClient()),
        ScrapingAdapter(MockPageFetcher(LISTING_HTML), targets=[LISTING_TARGET]),
        SocialFeedAdapter(MockSocialFeedClient()),
    ]


class TestDiscoveryRun:
    """Full runs over mock upstreams"""

    @pytest.mark.asyncio
    async def test_e2e_with_mock_clients(self):
        """
        Real business logic over mocked upstreams:
        1. Every adapter contributes raw candidates
        2. Scraped records sharing a fallback phone collapse in-batch
        3. Every output candidate carries its validation result
        """
        orchestrator = DiscoveryOrchestrator(build_adapters())

        result = await orchestrator.run_discovery(RUN_CONFIG)

        assert [c.name for c in result.accepted] == [
            "Amala Shitta", "Iya Basira Buka", "Amala Skye Bukka", "Mama Tee",
        ]
        assert all(c.status == CandidateStatus.PENDING for c in result.accepted)

        [duplicate] = result.duplicates
        assert duplicate.name == "Olaiya Amala Joint"
        assert duplicate.status == CandidateStatus.DUPLICATE
        skye = next(c for c in result.accepted if c.name == "Amala Skye Bukka")
        assert duplicate.duplicate_of == skye.id

        assert result.stats.raw_counts == {"api": 2, "scraping": 2, "social": 1}
        assert result.stats.failed_tasks == 0
        assert result.stats.final_state == "done"
        assert orchestrator.state == RunState.DONE

        everything = result.accepted + result.duplicates + [r.candidate for r in result.rejected]
        assert all(c.validation is not None for c in everything)

        api_candidate = result.accepted[0]
        assert api_candidate.discovery_source == DiscoverySource.API
        assert not api_candidate.coordinates_estimated
        assert api_candidate.price_info.currency == "NGN"

    @pytest.mark.asyncio
    async def test_duplicate_of_existing_location(self):
        existing = InMemoryExistingLocations([
            make_candidate(
                name="Amala Shitta",
                address="Shitta Bus Stop, Surulere, Lagos",
                phone="08031112222",
                candidate_id="existing-1",
            ),
        ])
        orchestrator = DiscoveryOrchestrator(build_adapters(), existing_locations=existing)

        result = await orchestrator.run_discovery(RUN_CONFIG)

        shitta = next(c for c in result.duplicates if c.name == "Amala Shitta")
        assert shitta.duplicate_of == "existing-1"
        assert "Amala Shitta" not in [c.name for c in result.accepted]
        assert result.stats.existing_count == 1

    @pytest.mark.asyncio
    async def test_existing_lookup_failure_is_soft(self):
        orchestrator = DiscoveryOrchestrator(build_adapters(), existing_locations=FailingExistingLocations())

        result = await orchestrator.run_discovery(RUN_CONFIG)

        assert result.stats.existing_lookup_failed
        assert len(result.accepted) == 4

    @pytest.mark.asyncio
    async def test_stalled_existing_lookup_bounded_by_run_timeout(self):
        """A provider that never answers cannot outlive the run timeout"""
        provider = HangingExistingLocations()
        orchestrator = DiscoveryOrchestrator(build_adapters(), existing_locations=provider)
        config = dict(RUN_CONFIG, run_timeout=1.0, adapter_timeout=1.0)

        result = await asyncio.wait_for(orchestrator.run_discovery(config), timeout=5)

        assert result.stats.existing_lookup_failed
        assert provider.cancelled
        assert len(result.accepted) == 4
        assert result.stats.final_state == "done"

    @pytest.mark.asyncio
    async def test_rejected_candidates_keep_issues(self):
        config = dict(
            RUN_CONFIG,
            enabled_sources=["social"],
            region_keywords=["abuja"],
            strict_domain_match=True,
        )
        orchestrator = DiscoveryOrchestrator(build_adapters())

        result = await orchestrator.run_discovery(config)

        # Only the Abuja post survives the region filter and it mentions no cuisine keyword
        assert result.accepted == []
        [rejected] = result.rejected
        assert rejected.candidate.name == "Visiting Bode Canteen"
        assert rejected.candidate.status == CandidateStatus.REJECTED
        assert rejected.validation.confidence == pytest.approx(0.6)
        assert rejected.validation.issues == ["may not match target cuisine"]


class TestFailureIsolation:
    """Upstream failures never escape a run"""

    @pytest.mark.asyncio
    async def test_all_adapters_fail(self):
        adapters = [ExplodingAdapter(source) for source in DiscoverySource]
        orchestrator = DiscoveryOrchestrator(adapters)

        result = await orchestrator.run_discovery(RUN_CONFIG)

        assert result.is_empty
        assert result.stats.failed_tasks == 3
        assert result.stats.final_state == "done"

    @pytest.mark.asyncio
    async def test_one_failing_adapter_does_not_affect_others(self):
        adapters = [
            ExplodingAdapter(DiscoverySource.API),
            ScrapingAdapter(MockPageFetcher(LISTING_HTML), targets=[LISTING_TARGET]),
            SocialFeedAdapter(MockSocialFeedClient()),
        ]
        orchestrator = DiscoveryOrchestrator(adapters)

        result = await orchestrator.run_discovery(RUN_CONFIG)

        assert result.stats.failed_tasks == 1
        assert [c.name for c in result.accepted] == ["Amala Skye Bukka", "Mama Tee"]

    @pytest.mark.asyncio
    async def test_run_timeout_cancels_outstanding_work(self):
        """
        With one slot: the static task finishes, the first slow task hits the
        per-adapter timeout and the second is cancelled by the run timeout.
        """
        orchestrator = DiscoveryOrchestrator([StaticAdapter(), SlowAdapter()])
        config = {
            "enabled_sources": ["api", "scraping"],
            "queries": {"api": ["q1", "q2"], "scraping": ["fast"]},
            "concurrency": 1,
            "adapter_timeout": 0.5,
            "run_timeout": 0.8,
        }

        result = await orchestrator.run_discovery(config)

        assert result.stats.timed_out_tasks == 1
        assert result.stats.cancelled_tasks == 1
        assert [c.name for c in result.accepted] == ["Amala Skye Bukka"]


class TestConfiguration:
    """Configuration problems are reported before any adapter runs"""

    @pytest.mark.asyncio
    async def test_enabled_source_without_adapter(self):
        fetcher = MockPageFetcher(LISTING_HTML)
        orchestrator = DiscoveryOrchestrator([ScrapingAdapter(fetcher, targets=[LISTING_TARGET])])

        with pytest.raises(ConfigError):
            await orchestrator.run_discovery(RUN_CONFIG)
        assert fetcher.fetched_urls == []

    @pytest.mark.asyncio
    async def test_malformed_config(self):
        orchestrator = DiscoveryOrchestrator(build_adapters())
        with pytest.raises(ConfigError):
            await orchestrator.run_discovery({"concurrency": -1})

    @pytest.mark.asyncio
    async def test_disabled_sources_are_skipped(self):
        client = MockSocialFeedClient()
        adapters = [
            PlacesApiAdapter(MockPlacesClient()),
            SocialFeedAdapter(client),
        ]
        orchestrator = DiscoveryOrchestrator(adapters)

        result = await orchestrator.run_discovery(dict(RUN_CONFIG, enabled_sources=["api"]))

        assert client.search_calls == []
        assert result.stats.raw_counts == {"api": 2}


class TestModerationReport:
    """Report files written from a run"""

    @pytest.mark.asyncio
    async def test_report_files(self, tmp_path):
        result = await DiscoveryOrchestrator(build_adapters()).run_discovery(RUN_CONFIG)

        files = ModerationReportGenerator().run(result, str(tmp_path), timestamp="test")

        assert files["accepted"].endswith("accepted_candidates_test.csv")
        assert files["duplicates"].endswith("duplicate_candidates_test.csv")
        assert files["rejected"] is None
        accepted_csv = (tmp_path / "accepted_candidates_test.csv").read_text()
        assert "Amala Shitta" in accepted_csv
