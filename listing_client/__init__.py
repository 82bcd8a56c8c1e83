"""Python client for the Homestead marketplace API: search and listing forms."""

from .api import ApiError, MarketplaceAPI
from .filters import DEFAULT_SORT, FilterStateStore, SearchFilters
from .forms import ImageFile, ListingAccessError, ListingForm
from .notifications import Notifier
from .refiner import effective_price, refine
from .search import SearchResults
from .session import Session

__all__ = [
    'ApiError',
    'DEFAULT_SORT',
    'FilterStateStore',
    'ImageFile',
    'ListingAccessError',
    'ListingForm',
    'MarketplaceAPI',
    'Notifier',
    'SearchFilters',
    'SearchResults',
    'Session',
    'effective_price',
    'refine',
]
