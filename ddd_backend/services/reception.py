"""
DDD Service Backend - Reception Number Service
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial reception counter helpers

The stored lucrari.numar_ordine is the counter value after the increment;
every user-facing view shows numar_ordine - 1, which is the counter value
read when the certificate was rendered.
"""

import logging
from typing import Optional

from ddd_backend.errors import ExternalCallError

logger = logging.getLogger(__name__)


def display_order_number(stored: Optional[int]) -> Optional[int]:
    """Order number shown in listings, exports and on the certificate"""
    if stored is None:
        return None
    return stored - 1


async def fetch_reception_number(store) -> int:
    number = await store.fetch_reception_number()
    logger.debug(f"Current reception number: {number}")
    return number


async def increment_reception_number(store, expected: Optional[int] = None) -> int:
    """Increment the shared counter and return the stored order number"""
    new_number = await store.increment_reception_number()
    if new_number is None:
        raise ExternalCallError("Reception counter did not return a value")
    if expected is not None and new_number != expected:
        logger.warning(
            f"Reception number moved concurrently: expected {expected}, "
            f"got {new_number}"
        )
    return new_number
