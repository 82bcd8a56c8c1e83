import logging
import threading

from .filters import format_number, parse_number

logger = logging.getLogger(__name__)

DEBOUNCE_DELAY = 0.8  # seconds of quiet before a typed price is committed


class DelayedTask:
    """
    A call scheduled `delay` seconds from start(). cancel() wins over a
    run that has not begun yet; once fired it can't be cancelled.
    """

    def __init__(self, delay, fn, *args, timer_factory=threading.Timer):
        self.delay = delay
        self.fn = fn
        self.args = args
        self._lock = threading.Lock()
        self._cancelled = False
        self._fired = False
        self._timer = timer_factory(delay, self._run)
        if hasattr(self._timer, 'daemon'):
            self._timer.daemon = True

    @property
    def cancelled(self):
        return self._cancelled

    @property
    def fired(self):
        return self._fired

    def start(self):
        self._timer.start()
        return self

    def cancel(self):
        with self._lock:
            if self._fired:
                return False
            self._cancelled = True
        self._timer.cancel()
        return True

    def _run(self):
        with self._lock:
            if self._cancelled:
                return
            self._fired = True
        self.fn(*self.args)


class Debouncer:
    """
    Commits only the last value pushed, once `delay` passes without a new
    push. Every push restarts the wait.
    """

    def __init__(self, callback, delay=DEBOUNCE_DELAY, timer_factory=threading.Timer):
        self.callback = callback
        self.delay = delay
        self.timer_factory = timer_factory
        self._lock = threading.Lock()
        self._commit_lock = threading.Lock()
        self._generation = 0
        self._task = None

    @property
    def pending(self):
        return self._task is not None

    def push(self, value):
        with self._lock:
            if self._task is not None:
                self._task.cancel()
            self._generation += 1
            task = DelayedTask(
                self.delay, self._fire, self._generation, value,
                timer_factory=self.timer_factory,
            )
            self._task = task
        task.start()

    def _fire(self, generation, value):
        with self._lock:
            if self._task is None or generation != self._generation:
                return
            self._task = None
        self._commit(value)

    def _commit(self, value):
        with self._commit_lock:
            self.callback(value)

    def flush(self):
        """Commit the pending value now instead of waiting."""
        with self._lock:
            task = self._task
            if task is None or not task.cancel():
                return False
            self._task = None
        self._commit(task.args[1])
        return True

    def cancel(self):
        with self._lock:
            task, self._task = self._task, None
        if task is not None:
            task.cancel()


class PriceInputs:
    """
    The min/max price text boxes of the search page. Text updates at
    once; the parsed number reaches the store only after typing settles.
    """

    def __init__(self, store, delay=DEBOUNCE_DELAY, timer_factory=threading.Timer):
        self.store = store
        self.min_text = ''
        self.max_text = ''
        self._min = Debouncer(self._commit_min, delay=delay, timer_factory=timer_factory)
        self._max = Debouncer(self._commit_max, delay=delay, timer_factory=timer_factory)
        self.sync_from_store()

    def type_min_price(self, text):
        self.min_text = text
        self._min.push(parse_number(text))

    def type_max_price(self, text):
        self.max_text = text
        self._max.push(parse_number(text))

    def _commit_min(self, value):
        if value != self.store.filters.min_price:
            logger.debug(f"Committing minPrice={value}")
            self.store.update(min_price=value)

    def _commit_max(self, value):
        if value != self.store.filters.max_price:
            logger.debug(f"Committing maxPrice={value}")
            self.store.update(max_price=value)

    def sync_from_store(self):
        """Show the store's prices, e.g. after navigation or clearing."""
        filters = self.store.filters
        self.min_text = format_number(filters.min_price) if filters.min_price is not None else ''
        self.max_text = format_number(filters.max_price) if filters.max_price is not None else ''

    @property
    def pending(self):
        return self._min.pending or self._max.pending

    def flush(self):
        self._min.flush()
        self._max.flush()

    def cancel(self):
        self._min.cancel()
        self._max.cancel()
