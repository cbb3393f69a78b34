"""Input validation utilities for the API client."""

from solders.pubkey import Pubkey

from .error import InvalidParameterError

MAX_PAGINATION_LIMIT = 1000


def validate_pubkey(value: str, field_name: str) -> None:
    """Validate that a string is a valid Solana pubkey (Base58).

    Uses solders.Pubkey for proper validation including length check.

    Raises:
        InvalidParameterError: If not a valid pubkey
    """
    if not value or not value.strip():
        raise InvalidParameterError(f"{field_name} cannot be empty")

    try:
        Pubkey.from_string(value)
    except Exception:
        raise InvalidParameterError(f"{field_name} is not a valid pubkey")


def validate_limit(limit: int) -> None:
    """Validate pagination limit is within bounds.

    Raises:
        InvalidParameterError: If limit is out of bounds
    """
    if limit < 1 or limit > MAX_PAGINATION_LIMIT:
        raise InvalidParameterError(f"Limit must be 1-{MAX_PAGINATION_LIMIT}")


def validate_page(page: int) -> None:
    if page < 1:
        raise InvalidParameterError("Page must be 1 or greater")
