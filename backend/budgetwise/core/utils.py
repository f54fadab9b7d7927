"""
Utility functions for the application.
"""
from typing import Any, Dict
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def round_half_up(value: Decimal, places: int = 0) -> Decimal:
    """Round like a calculator does (0.5 goes up), not banker's rounding."""
    exponent = Decimal(1).scaleb(-places)
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = details
    return response


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite drops the offset) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
