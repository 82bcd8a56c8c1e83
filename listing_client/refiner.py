"""Narrow and order an already-fetched result set without a round trip."""

from datetime import datetime
from decimal import Decimal, InvalidOperation

from .filters import DEFAULT_SORT


def _number(value):
    if value is None or value == '':
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def effective_price(listing):
    """
    What a listing actually costs: the discounted price of a sale when it
    is positive, else the selling price; the rent for rentals.
    """
    if listing.get('type') == 'sale':
        discounted = _number(listing.get('discountedPrice'))
        if discounted is not None and discounted > 0:
            return discounted
        return _number(listing.get('sellingPrice'))
    return _number(listing.get('rentalPrice'))


def _price_key(listing):
    return effective_price(listing) or Decimal(0)


def _created_key(listing):
    value = listing.get('createdAt')
    if not value:
        return 0.0
    if isinstance(value, datetime):
        return value.timestamp()
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).timestamp()
    except ValueError:
        return 0.0


SORT_KEYS = {
    'price-asc': (_price_key, False),
    'price-desc': (_price_key, True),
    'date-asc': (_created_key, False),
    'date-desc': (_created_key, True),
}


def matches_location(listing, location):
    if not location:
        return True
    return location.casefold() in (listing.get('location') or '').casefold()


def refine(listings, location='', sort_by=DEFAULT_SORT):
    """
    Keep listings whose location contains `location` (any case) and sort
    them by `sort_by`. The sort is stable; an empty sort keeps the input order.
    """
    refined = [listing for listing in listings if matches_location(listing, location)]
    if sort_by in SORT_KEYS:
        key, reverse = SORT_KEYS[sort_by]
        refined.sort(key=key, reverse=reverse)
    return refined
