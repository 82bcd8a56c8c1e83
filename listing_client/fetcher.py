import logging
import threading

from .api import ApiError

logger = logging.getLogger(__name__)

FETCH_ERROR_TITLE = "Error"
FETCH_ERROR_MESSAGE = "Failed to fetch search results"


class ListingFetcher:
    """
    Runs server searches for the search page.

    The first load blocks the page (`is_loading`) and may carry the URL's
    location; later refreshes keep showing the old results
    (`is_refreshing`) and never send location. A response that comes back
    after a newer fetch has started is dropped.
    """

    def __init__(self, api, notifier):
        self.api = api
        self.notifier = notifier
        self.listings = []
        self.is_loading = False
        self.is_refreshing = False
        self.initial_load_done = False
        self._generation = 0
        self._lock = threading.Lock()

    def load(self, filters):
        return self._fetch(filters.server_params(include_location=True), initial=True)

    def refresh(self, filters):
        return self._fetch(filters.server_params(), initial=False)

    def on_filters_changed(self, previous, current):
        """
        Store listener: only server-evaluated filters trigger a fetch. A
        change during a slow first load refetches too; the generation check
        then drops the first response.
        """
        if self._generation == 0:
            return False
        if previous.server_key() == current.server_key():
            return False
        return self.refresh(current)

    def _fetch(self, params, initial):
        with self._lock:
            self._generation += 1
            generation = self._generation
            if initial:
                self.is_loading = True
            else:
                self.is_refreshing = True

        logger.debug(f"Searching listings with {params}")
        try:
            results = self.api.listings.search_listings(params)
        except ApiError as e:
            with self._lock:
                if generation != self._generation:
                    return False
                self._finish([])
            logger.warning(f"Listing search failed ({e.status_code}): {e.message}")
            self.notifier.error(FETCH_ERROR_TITLE, FETCH_ERROR_MESSAGE)
            return False

        with self._lock:
            if generation != self._generation:
                logger.debug(f"Dropping stale search response #{generation}")
                return False
            self._finish(list(results or []))
        return True

    def _finish(self, listings):
        self.listings = listings
        self.is_loading = False
        self.is_refreshing = False
        self.initial_load_done = True
