"""Search filter state and its URL query-string form.

The query string is the shareable copy of the state: only defined,
non-empty values are written, and parsing it back gives an equal
SearchFilters.
"""

import dataclasses
import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

logger = logging.getLogger(__name__)

Number = Union[int, float]

LISTING_TYPES = ('rent', 'sale')
PROPERTY_TYPES = ('apartment', 'house', 'land', 'other')
SORT_OPTIONS = ('price-asc', 'price-desc', 'date-desc', 'date-asc')
DEFAULT_SORT = 'date-desc'

# attribute name -> query parameter name, in URL order
PARAM_NAMES = (
    ('location', 'location'),
    ('type', 'type'),
    ('min_price', 'minPrice'),
    ('max_price', 'maxPrice'),
    ('bedrooms', 'bedrooms'),
    ('bathrooms', 'bathrooms'),
    ('property_type', 'propertyType'),
    ('min_area', 'minArea'),
    ('max_area', 'maxArea'),
    ('sort_by', 'sortBy'),
)
NUMERIC_FIELDS = frozenset(('min_price', 'max_price', 'bedrooms', 'bathrooms', 'min_area', 'max_area'))
CHOICE_FIELDS = {
    'type': LISTING_TYPES,
    'property_type': PROPERTY_TYPES,
    'sort_by': SORT_OPTIONS,
}

# Evaluated by the server; a change to any of these needs a new fetch.
# Location is refined locally instead.
SERVER_FIELDS = (
    'type', 'min_price', 'max_price', 'bedrooms', 'bathrooms',
    'property_type', 'min_area', 'max_area', 'sort_by',
)


def parse_number(text) -> Optional[Number]:
    """'1500' -> 1500, '12.5' -> 12.5; blank or garbage -> None."""
    if text is None:
        return None
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return text if math.isfinite(text) else None
    text = str(text).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def format_number(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_set(value) -> bool:
    return value is not None and value != ''


@dataclass(frozen=True)
class SearchFilters:
    location: str = ''
    type: str = ''
    min_price: Optional[Number] = None
    max_price: Optional[Number] = None
    bedrooms: Optional[Number] = None
    bathrooms: Optional[Number] = None
    property_type: str = ''
    min_area: Optional[Number] = None
    max_area: Optional[Number] = None
    sort_by: str = DEFAULT_SORT

    def to_params(self) -> dict:
        params = {}
        for attr, param in PARAM_NAMES:
            value = getattr(self, attr)
            if not _is_set(value):
                continue
            params[param] = format_number(value) if attr in NUMERIC_FIELDS else str(value)
        return params

    def to_query_string(self) -> str:
        return urlencode(self.to_params())

    def server_params(self, include_location: bool = False) -> dict:
        """Query parameters for the search endpoint."""
        params = self.to_params()
        if not include_location:
            params.pop('location', None)
        return params

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> 'SearchFilters':
        values = {}
        for attr, param in PARAM_NAMES:
            raw = params.get(param)
            if raw is None or raw == '':
                continue
            if attr in NUMERIC_FIELDS:
                number = parse_number(raw)
                if number is not None:
                    values[attr] = number
            elif attr in CHOICE_FIELDS:
                if raw in CHOICE_FIELDS[attr]:
                    values[attr] = raw
                else:
                    logger.debug(f"Ignoring unknown {param}={raw!r}")
            else:
                values[attr] = raw
        return cls(**values)

    @classmethod
    def from_query_string(cls, query: str) -> 'SearchFilters':
        params = {}
        # first occurrence wins, like URLSearchParams.get
        for key, value in parse_qsl((query or '').lstrip('?'), keep_blank_values=True):
            params.setdefault(key, value)
        return cls.from_params(params)

    def replace(self, **changes) -> 'SearchFilters':
        for attr, value in list(changes.items()):
            if attr in NUMERIC_FIELDS:
                changes[attr] = parse_number(value)
            elif attr in CHOICE_FIELDS:
                if value not in CHOICE_FIELDS[attr]:
                    if value:
                        logger.debug(f"Dropping unknown {attr}={value!r}")
                    value = DEFAULT_SORT if attr == 'sort_by' else ''
                changes[attr] = value
            elif value is None:
                changes[attr] = ''
        return dataclasses.replace(self, **changes)

    def server_key(self) -> Tuple:
        return tuple(getattr(self, attr) for attr in SERVER_FIELDS)


BASELINE = SearchFilters()


def _canonical_query(query_string, filters):
    """An empty URL stays empty; anything else is rewritten from what parsed."""
    if not (query_string or '').lstrip('?'):
        return ''
    return filters.to_query_string()


Listener = Callable[[SearchFilters, SearchFilters], None]


class FilterStateStore:
    """
    Holds the current SearchFilters and the query string that mirrors them.
    Listeners get (previous, current) after every change.
    """

    def __init__(self, query_string: str = ''):
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._filters = SearchFilters.from_query_string(query_string)
        self._query_string = _canonical_query(query_string, self._filters)

    @property
    def filters(self) -> SearchFilters:
        return self._filters

    @property
    def query_string(self) -> str:
        return self._query_string

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def update(self, **changes) -> SearchFilters:
        with self._lock:
            previous = self._filters
            self._filters = previous.replace(**changes)
            self._query_string = self._filters.to_query_string()
            current = self._filters
        self._notify(previous, current)
        return current

    def clear(self) -> SearchFilters:
        with self._lock:
            previous = self._filters
            self._filters = BASELINE
            self._query_string = ''
        self._notify(previous, BASELINE)
        return BASELINE

    def load_from_url(self, query_string: str) -> SearchFilters:
        """Navigation: the URL replaces whatever state we had."""
        with self._lock:
            previous = self._filters
            self._filters = SearchFilters.from_query_string(query_string)
            self._query_string = _canonical_query(query_string, self._filters)
            current = self._filters
        self._notify(previous, current)
        return current

    def _notify(self, previous, current):
        for listener in list(self._listeners):
            listener(previous, current)
