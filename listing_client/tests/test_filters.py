from django.test import SimpleTestCase

from listing_client.filters import (
    BASELINE, DEFAULT_SORT, FilterStateStore, SearchFilters, format_number, parse_number,
)


class ParseNumberTests(SimpleTestCase):

    def test_parse_number(self):
        self.assertEqual(parse_number("1500"), 1500)
        self.assertEqual(parse_number(" 12.5 "), 12.5)
        self.assertEqual(parse_number(7), 7)
        self.assertIsNone(parse_number(""))
        self.assertIsNone(parse_number("abc"))
        self.assertIsNone(parse_number("inf"))
        self.assertIsNone(parse_number(None))

    def test_format_number_drops_trailing_zero(self):
        self.assertEqual(format_number(1500.0), "1500")
        self.assertEqual(format_number(12.5), "12.5")
        self.assertEqual(format_number(3), "3")


class SearchFiltersTests(SimpleTestCase):

    def test_defaults(self):
        self.assertEqual(BASELINE.sort_by, DEFAULT_SORT)
        self.assertEqual(BASELINE.to_query_string(), "sortBy=date-desc")

    def test_only_set_values_are_written(self):
        filters = SearchFilters(location="Pune", min_price=1000, bedrooms=2, sort_by="price-asc")

        self.assertEqual(filters.to_params(), {
            "location": "Pune",
            "minPrice": "1000",
            "bedrooms": "2",
            "sortBy": "price-asc",
        })

    def test_query_string_round_trip(self):
        filters = SearchFilters(
            location="Bandra West, Mumbai", type="sale", min_price=500000, max_price=2500000.5,
            bedrooms=2, bathrooms=1, property_type="apartment", min_area=600, max_area=1500,
            sort_by="price-desc",
        )

        self.assertEqual(SearchFilters.from_query_string(filters.to_query_string()), filters)

    def test_parse_ignores_unknown_values(self):
        filters = SearchFilters.from_query_string("?type=lease&minPrice=cheap&bedrooms=3&sortBy=random")

        self.assertEqual(filters.type, "")
        self.assertIsNone(filters.min_price)
        self.assertEqual(filters.bedrooms, 3)
        self.assertEqual(filters.sort_by, DEFAULT_SORT)

    def test_first_occurrence_wins(self):
        filters = SearchFilters.from_query_string("location=Goa&location=Delhi")
        self.assertEqual(filters.location, "Goa")

    def test_server_params_leave_out_location(self):
        filters = SearchFilters(location="Goa", type="rent")

        self.assertNotIn("location", filters.server_params())
        self.assertEqual(filters.server_params(include_location=True)["location"], "Goa")

    def test_location_is_not_part_of_server_key(self):
        self.assertEqual(
            SearchFilters(location="Goa").server_key(),
            SearchFilters(location="Delhi").server_key(),
        )
        self.assertNotEqual(
            SearchFilters(type="rent").server_key(),
            SearchFilters(type="sale").server_key(),
        )

    def test_replace_parses_numbers_and_resets_cleared_values(self):
        filters = SearchFilters(type="rent", sort_by="price-asc")

        updated = filters.replace(min_price="2000", type=None, sort_by=None)

        self.assertEqual(updated.min_price, 2000)
        self.assertEqual(updated.type, "")
        self.assertEqual(updated.sort_by, DEFAULT_SORT)

    def test_replace_drops_unknown_choices(self):
        filters = SearchFilters(type="rent", sort_by="price-asc")

        updated = filters.replace(type="lease", sort_by="")

        self.assertEqual(updated.type, "")
        self.assertEqual(updated.sort_by, DEFAULT_SORT)


class FilterStateStoreTests(SimpleTestCase):

    def test_initial_state_comes_from_the_url(self):
        store = FilterStateStore("?type=sale&bedrooms=2")

        self.assertEqual(store.filters.type, "sale")
        self.assertEqual(store.filters.bedrooms, 2)
        self.assertEqual(store.query_string, "type=sale&bedrooms=2&sortBy=date-desc")

    def test_update_rewrites_query_string_and_notifies(self):
        store = FilterStateStore()
        seen = []
        store.subscribe(lambda previous, current: seen.append((previous, current)))

        store.update(type="rent", max_price="30000")

        self.assertEqual(store.query_string, "type=rent&maxPrice=30000&sortBy=date-desc")
        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0][0], BASELINE)
        self.assertEqual(seen[0][1].max_price, 30000)

    def test_clear_restores_baseline_and_empty_query(self):
        store = FilterStateStore("location=Goa&type=sale&minPrice=100&sortBy=price-asc")

        store.clear()

        self.assertEqual(store.filters, BASELINE)
        self.assertEqual(store.query_string, "")

    def test_load_from_url_replaces_state(self):
        store = FilterStateStore("type=sale&bedrooms=3")

        store.load_from_url("?location=Goa")

        self.assertEqual(store.filters, SearchFilters(location="Goa"))

    def test_garbage_url_values_are_dropped_from_query_string(self):
        store = FilterStateStore()

        store.load_from_url("minPrice=abc&type=sale&propertyType=castle")

        self.assertIsNone(store.filters.min_price)
        self.assertEqual(store.query_string, "type=sale&sortBy=date-desc")
        self.assertEqual(FilterStateStore("?minPrice=abc").query_string, "sortBy=date-desc")

    def test_updated_state_survives_reload(self):
        store = FilterStateStore()

        store.update(type="rent", sort_by="")
        self.assertEqual(FilterStateStore(store.query_string).filters, store.filters)

        store.update(type="lease", property_type="castle", location=None)
        self.assertEqual(FilterStateStore(store.query_string).filters, store.filters)

    def test_unsubscribe(self):
        store = FilterStateStore()
        seen = []
        unsubscribe = store.subscribe(lambda previous, current: seen.append(current))

        unsubscribe()
        store.update(type="rent")

        self.assertEqual(seen, [])
