import threading

from .debounce import DEBOUNCE_DELAY, PriceInputs
from .fetcher import ListingFetcher
from .filters import FilterStateStore
from .notifications import Notifier
from .refiner import refine


class SearchResults:
    """
    The search page without the rendering: URL-backed filter state,
    debounced price boxes, server fetches, and local refinement.
    """

    def __init__(self, api, query_string='', notifier=None,
                 delay=DEBOUNCE_DELAY, timer_factory=threading.Timer):
        self.notifier = notifier or Notifier()
        self.store = FilterStateStore(query_string)
        self.fetcher = ListingFetcher(api, self.notifier)
        self.price_inputs = PriceInputs(self.store, delay=delay, timer_factory=timer_factory)
        self._unsubscribe = self.store.subscribe(self.fetcher.on_filters_changed)

    @property
    def filters(self):
        return self.store.filters

    @property
    def query_string(self):
        return self.store.query_string

    @property
    def is_loading(self):
        return self.fetcher.is_loading

    @property
    def is_refreshing(self):
        return self.fetcher.is_refreshing

    @property
    def results(self):
        filters = self.store.filters
        return refine(self.fetcher.listings, filters.location, filters.sort_by)

    def open(self):
        return self.fetcher.load(self.store.filters)

    def navigate(self, query_string):
        self.store.load_from_url(query_string)
        self.price_inputs.sync_from_store()

    def update_filters(self, **changes):
        return self.store.update(**changes)

    def clear_filters(self):
        self.price_inputs.cancel()
        filters = self.store.clear()
        self.price_inputs.sync_from_store()
        return filters

    def close(self):
        self.price_inputs.cancel()
        self._unsubscribe()
