"""
SQL utilities for consistent handling of query results.

SQLModel/SQLAlchemy may return COUNT results as int or as a 1-tuple/Row.
Use scalar_int() to safely coerce to int everywhere.
"""
from typing import Any


def scalar_int(x: Any) -> int:
    """Convert COUNT/aggregate result to int. Handles int, None or 1-tuple/Row."""
    if x is None:
        return 0
    try:
        return int(x[0])
    except (TypeError, IndexError, KeyError):
        return int(x)
