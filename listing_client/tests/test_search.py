from django.test import SimpleTestCase

from listing_client.api import ApiError
from listing_client.fetcher import ListingFetcher
from listing_client.filters import SearchFilters
from listing_client.notifications import Notifier
from listing_client.search import SearchResults
from .fakes import FakeAPI, FakeClock, FakeListingAPI

RESULTS = [
    {"id": 1, "location": "Andheri, Mumbai", "type": "rent", "rentalPrice": 40000,
     "createdAt": "2024-03-01T10:00:00Z"},
    {"id": 2, "location": "Baner, Pune", "type": "rent", "rentalPrice": 25000,
     "createdAt": "2024-02-01T10:00:00Z"},
]


class ListingFetcherTests(SimpleTestCase):

    def setUp(self):
        self.api = FakeAPI(FakeListingAPI(results=RESULTS))
        self.notifier = Notifier()
        self.fetcher = ListingFetcher(self.api, self.notifier)

    def test_initial_load_sends_location(self):
        self.assertTrue(self.fetcher.load(SearchFilters(location="Pune", type="rent")))

        self.assertEqual(self.api.listings.search_calls, [
            {"location": "Pune", "type": "rent", "sortBy": "date-desc"},
        ])
        self.assertEqual(self.fetcher.listings, RESULTS)
        self.assertFalse(self.fetcher.is_loading)
        self.assertTrue(self.fetcher.initial_load_done)

    def test_no_refresh_before_any_load_starts(self):
        changed = self.fetcher.on_filters_changed(SearchFilters(), SearchFilters(type="sale"))

        self.assertFalse(changed)
        self.assertEqual(self.api.listings.search_calls, [])

    def test_location_change_does_not_refetch(self):
        self.fetcher.load(SearchFilters())

        self.fetcher.on_filters_changed(SearchFilters(), SearchFilters(location="Goa"))

        self.assertEqual(len(self.api.listings.search_calls), 1)

    def test_server_filter_change_refreshes_without_location(self):
        self.fetcher.load(SearchFilters())

        self.fetcher.on_filters_changed(SearchFilters(), SearchFilters(location="Goa", bedrooms=2))

        self.assertEqual(self.api.listings.search_calls[-1], {"bedrooms": "2", "sortBy": "date-desc"})

    def test_error_clears_results_and_notifies(self):
        self.fetcher.load(SearchFilters())
        self.api.listings.error = ApiError(500, "boom")

        self.assertFalse(self.fetcher.refresh(SearchFilters(type="sale")))

        self.assertEqual(self.fetcher.listings, [])
        self.assertFalse(self.fetcher.is_refreshing)
        self.assertEqual(self.notifier.last.title, "Error")
        self.assertEqual(self.notifier.last.message, "Failed to fetch search results")

    def test_stale_response_is_dropped(self):
        fetcher = self.fetcher
        newer = [{"id": 99, "location": "Goa", "type": "rent", "rentalPrice": 1}]

        class RacingListingAPI(FakeListingAPI):
            # a second search starts and finishes while the first is in flight
            def search_listings(self, params):
                if not self.search_calls:
                    self.search_calls.append(params)
                    self.results = newer
                    fetcher.refresh(SearchFilters(type="rent"))
                    return RESULTS
                return super().search_listings(params)

        self.api.listings = RacingListingAPI()

        self.assertFalse(fetcher.load(SearchFilters()))
        self.assertEqual(fetcher.listings, newer)


class SearchResultsTests(SimpleTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.api = FakeAPI(FakeListingAPI(results=RESULTS))
        self.search = SearchResults(self.api, "?location=mumbai", timer_factory=self.clock)

    def test_results_are_refined_locally(self):
        self.search.open()

        self.assertEqual([item["id"] for item in self.search.results], [1])

    def test_sort_change_refetches_and_reorders(self):
        self.search.open()
        self.search.update_filters(location="", sort_by="price-asc")

        self.assertEqual(len(self.api.listings.search_calls), 2)
        self.assertEqual([item["id"] for item in self.search.results], [2, 1])
        self.assertEqual(self.search.query_string, "sortBy=price-asc")

    def test_debounced_price_triggers_one_refresh(self):
        self.search.open()

        for text in ("1", "12", "123"):
            self.search.price_inputs.type_min_price(text)
        self.clock.run_pending()

        self.assertEqual(len(self.api.listings.search_calls), 2)
        self.assertEqual(self.api.listings.search_calls[-1]["minPrice"], "123")

    def test_clear_filters_cancels_pending_prices(self):
        self.search.open()
        self.search.price_inputs.type_max_price("5000")

        self.search.clear_filters()
        self.clock.run_pending()

        self.assertEqual(self.search.query_string, "")
        self.assertIsNone(self.search.filters.max_price)
        self.assertEqual(self.search.price_inputs.max_text, "")

    def test_filter_change_during_first_load_refetches(self):
        page = None

        class SlowFirstLoad(FakeListingAPI):
            # the price box commits while the first search is still running
            def search_listings(self, params):
                first = not self.search_calls
                results = super().search_listings(params)
                if first:
                    page.store.update(min_price=500000)
                return results

        api = FakeAPI(SlowFirstLoad(results=RESULTS))
        page = SearchResults(api, "?type=rent", timer_factory=self.clock)

        self.assertFalse(page.open())

        calls = api.listings.search_calls
        self.assertEqual(len(calls), 2)
        self.assertEqual(calls[1], {"type": "rent", "minPrice": "500000", "sortBy": "date-desc"})
        self.assertFalse(page.is_loading)
        self.assertEqual(page.filters.min_price, 500000)

    def test_close_stops_refreshing(self):
        self.search.open()
        self.search.close()

        self.search.update_filters(type="sale")

        self.assertEqual(len(self.api.listings.search_calls), 1)
