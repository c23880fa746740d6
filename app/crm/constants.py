"""
Central constants for the customer records application.
"""
from __future__ import annotations

# Nationality codes: domestic citizen / foreign national
NATIONALITY_DOMESTIC = "WNI"
NATIONALITY_FOREIGN = "WNA"
NATIONALITY_CODES = frozenset({NATIONALITY_DOMESTIC, NATIONALITY_FOREIGN})

# Blob container (key namespace) for customer photos
PHOTO_CONTAINER = "customer-photos"
PHOTO_KEY_PREFIX = "public"

# List view sort keys
SORT_FIELDS = frozenset({"name", "email", "date"})
DEFAULT_SORT = "name-asc"

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}
