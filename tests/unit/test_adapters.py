import pytest

from restaurant_discovery.data.defaults import ScrapingTarget, SelectorRules
from restaurant_discovery.searchers.base import DiscoveryContext
from restaurant_discovery.searchers.places_adapter import PlacesApiAdapter
from restaurant_discovery.searchers.scraping_adapter import ScrapingAdapter, build_search_url
from restaurant_discovery.searchers.social_adapter import SocialFeedAdapter, propose_name
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


@pytest.fixture
def context():
    return DiscoveryContext(region_keywords=["lagos"])


class TestPlacesApiAdapter:
    """Test search + details assembly"""

    @pytest.mark.asyncio
    async def test_search_and_details_combined(self, context):
        client = MockPlacesClient()
        adapter = PlacesApiAdapter(client)

        raws = await adapter.discover("amala lagos", context)

        assert [r.place_id for r in raws] == ["place-1", "place-2"]
        first = raws[0]
        assert first.phone == "0803 111 2222"
        assert first.price_level == 1
        assert first.open_now is True
        assert first.photo_urls == ["https://photos.example/photo-abc?w=400"]
        assert first.reviews[0].author == "Tola"
        assert first.source_url == "https://maps.google.com/place/place-1"
        assert len(first.opening_periods) == 2

    @pytest.mark.asyncio
    async def test_failed_detail_drops_only_that_place(self, context):
        adapter = PlacesApiAdapter(MockPlacesClient(failing_place_ids=["place-1"]))
        raws = await adapter.discover("amala lagos", context)
        assert [r.place_id for r in raws] == ["place-2"]

    @pytest.mark.asyncio
    async def test_repeated_query_uses_cache(self, context):
        client = MockPlacesClient()
        adapter = PlacesApiAdapter(client)

        await adapter.discover("amala lagos", context)
        await adapter.discover("Amala Lagos", context)

        assert client.search_calls == ["amala lagos"]
        assert client.details_calls == ["place-1", "place-2"]

    @pytest.mark.asyncio
    async def test_same_query_in_another_region_is_searched_again(self):
        client = MockPlacesClient()
        adapter = PlacesApiAdapter(client)

        await adapter.discover("amala", DiscoveryContext(region_centroid=(6.5244, 3.3792)))
        await adapter.discover("amala", DiscoveryContext(region_centroid=(9.0765, 7.3986)))
        await adapter.discover("amala", DiscoveryContext(region_centroid=(9.0765, 7.3986), search_radius_m=2000))

        assert client.search_calls == ["amala", "amala", "amala"]

    @pytest.mark.asyncio
    async def test_result_limit(self):
        adapter = PlacesApiAdapter(MockPlacesClient())
        raws = await adapter.discover("amala", DiscoveryContext(max_results_per_query=1))
        assert len(raws) == 1


class TestScrapingAdapter:
    """Test selector-rule extraction"""

    def test_build_search_url(self):
        assert build_search_url("https://a.example/list", "Best Amala") == "https://a.example/list?q=best+amala"
        assert build_search_url("https://a.example/list?page=1", "amala") == "https://a.example/list?page=1&q=amala"

    def test_extract_applies_rules(self):
        adapter = ScrapingAdapter(MockPageFetcher(LISTING_HTML), targets=[LISTING_TARGET])
        records = adapter.extract(LISTING_HTML, LISTING_TARGET, "https://blog.example/food?q=amala", ["lagos"])

        assert [r.name for r in records] == ["Amala Skye Bukka", "Olaiya Amala Joint"]
        first, second = records
        assert first.address == "12 Allen Avenue, Ikeja, Lagos"
        assert first.phone == "08031234567"
        assert first.rating_text == "4.6"
        assert first.price_text == "N1,500 - 3,000 per person"
        assert first.review_snippets == ["The gbegiri here is absolutely worth the queue."]
        # Non-numeric rating text is dropped; address falls back to the page's first one
        assert second.rating_text is None
        assert second.address == first.address

    def test_records_without_name_are_skipped(self):
        adapter = ScrapingAdapter(MockPageFetcher(""), targets=[LISTING_TARGET])
        records = adapter.extract("<div class='address'>Ikeja, Lagos</div>", LISTING_TARGET, "u")
        assert records == []

    def test_max_results_per_page(self):
        html = "".join(f"<h3 class='restaurant-name'>Buka Number {i}</h3>" for i in range(10))
        adapter = ScrapingAdapter(MockPageFetcher(html), targets=[LISTING_TARGET])
        assert len(adapter.extract(html, LISTING_TARGET, "u")) == 3

    @pytest.mark.asyncio
    async def test_discover_fetches_every_target(self, context):
        fetcher = MockPageFetcher(LISTING_HTML)
        second_target = LISTING_TARGET.model_copy(update={"url": "https://other.example/list"})
        adapter = ScrapingAdapter(fetcher, targets=[LISTING_TARGET, second_target])

        raws = await adapter.discover("amala", context)

        assert len(raws) == 4
        assert fetcher.fetched_urls == [
            "https://blog.example/food?q=amala",
            "https://other.example/list?q=amala",
        ]

    @pytest.mark.asyncio
    async def test_page_fetches_are_capped(self, context):
        fetcher = MockPageFetcher(LISTING_HTML, delay=0.02)
        targets = [LISTING_TARGET.model_copy(update={"url": f"https://t{i}.example"}) for i in range(5)]
        adapter = ScrapingAdapter(fetcher, targets=targets, max_concurrent_pages=2)

        await adapter.discover("amala", context)
        assert fetcher.max_active == 2

    @pytest.mark.asyncio
    async def test_repeated_page_is_fetched_once(self, context):
        fetcher = MockPageFetcher(LISTING_HTML)
        adapter = ScrapingAdapter(fetcher, targets=[LISTING_TARGET])

        first = await adapter.discover("amala", context)
        second = await adapter.discover("Amala", context)

        assert fetcher.fetched_urls == ["https://blog.example/food?q=amala"]
        assert [r.name for r in second] == [r.name for r in first]


class TestSocialFeedAdapter:
    """Test name proposal from posts"""

    @pytest.mark.parametrize("text,expected", [
        ("Had lunch at Mama Tee Bukka today", "Mama Tee"),
        ("Iya Basira Restaurant never disappoints", "Iya Basira"),
        ("check out Olaiya Amala spot", "Olaiya Amala"),
        ("amala is life", None),
        ("Lagos Restaurant", None),
    ])
    def test_propose_name(self, text, expected):
        assert propose_name(text) == expected

    @pytest.mark.asyncio
    async def test_discover_filters_by_region(self, context):
        client = MockSocialFeedClient()
        adapter = SocialFeedAdapter(client)

        raws = await adapter.discover("#amalalagos", context)

        assert len(raws) == 1
        raw = raws[0]
        assert raw.proposed_name == "Mama Tee"
        assert raw.post_url == "https://social.example/status/1001"
        assert (raw.lat, raw.lng) == (6.5, 3.36)
        assert raw.region_hint == "Lagos"

    @pytest.mark.asyncio
    async def test_no_region_keywords_keeps_all_named_posts(self):
        adapter = SocialFeedAdapter(MockSocialFeedClient())
        raws = await adapter.discover("#amala", DiscoveryContext(region_keywords=[]))
        assert len(raws) == 2
        assert raws[1].lat is None
