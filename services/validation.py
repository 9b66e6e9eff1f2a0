"""Contains all the logic relating to syntactic validation of email addresses"""

import re

from typing import Any, Iterable, Optional

from .errors import InvalidAddress, ValidationFailed

# local@domain.tld with at least one dot after the @, matched against the whole string
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_email_valid(email: Any) -> bool:
    """Check `email` against the syntactic email pattern.

    Args:
        email (Any): Candidate address. Anything that is not a string is invalid.

    Returns:
        bool: `True` if `email` looks like `local@domain.tld`, else `False`
    """
    return isinstance(email, str) and EMAIL_PATTERN.fullmatch(email) is not None


def partition_emails(addresses: Any) -> tuple[list, list]:
    """Split `addresses` into valid and invalid addresses, preserving order.

    Args:
        addresses (Any): The value submitted as the address list

    Raises:
        ValidationFailed: If `addresses` is missing, not a list, or empty

    Returns:
        tuple[list, list]: Valid addresses and invalid addresses. Every input
        element appears in exactly one of the two.
    """
    if addresses is None or not isinstance(addresses, list):
        raise ValidationFailed("Emails array is required")

    if not addresses:
        raise ValidationFailed("addresses required")

    valid, invalid = [], []
    for address in addresses:
        (valid if is_email_valid(address) else invalid).append(address)

    return valid, invalid


def first_invalid_address(addresses: Iterable[str]) -> Optional[str]:
    """Return the first address that fails validation, or None."""
    for address in addresses:
        if not is_email_valid(address):
            return address
    return None


def ensure_addresses_valid(addresses: Iterable[str]) -> None:
    """Raise `InvalidAddress` for the first bad address in `addresses`."""
    offending = first_invalid_address(addresses)
    if offending is not None:
        raise InvalidAddress(offending)
