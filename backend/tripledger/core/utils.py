"""
Utility functions for the application.
"""
from typing import Any, Dict
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def quantize(value: Decimal, places: int) -> Decimal:
    """Round a Decimal to a fixed number of decimal places."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = details
    return response
