"""
Reusable parsers for the messy values that come back from spreadsheet webhooks.

These parsers handle:
- Dates typed by hand into a sheet, in several formats, or missing entirely
- Header names whose casing and spacing drift between exports
- Quantities that arrive as ints, floats or strings
- Free-text product names that need case and punctuation normalization
"""

import re
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from .models import EPOCH


class DateParser:
    """
    Robust date parser for sheet-entered dates.

    ISO-8601 instants (with or without a trailing Z) are tried first, then the
    explicit formats below. Naive results are read as UTC.
    To extend: Add new format patterns to DATE_FORMATS.
    """

    # Formats seen in sheet exports, ordered by specificity
    DATE_FORMATS = [
        "%Y-%m-%d %H:%M:%S",  # 2025-03-18 14:05:00
        "%Y-%m-%d %H:%M",     # 2025-03-18 14:05
        "%Y-%m-%d",           # 2025-03-18
        "%m/%d/%Y %H:%M:%S",  # 03/18/2025 14:05:00
        "%m/%d/%Y",           # 03/18/2025
        "%d-%m-%Y",           # 18-03-2025
        "%d/%m/%Y",           # 18/03/2025 (only reached when day > 12)
        "%Y/%m/%d",           # 2025/03/18
        "%d %b %Y",           # 18 Mar 2025
        "%b %d, %Y",          # Mar 18, 2025
    ]

    def __init__(self, custom_formats: list[str] | None = None):
        """
        Args:
            custom_formats: Additional date formats to try (prepended to defaults)
        """
        self.formats = (custom_formats or []) + self.DATE_FORMATS
        self._cache: dict[str, datetime | None] = {}

    def parse(self, date_str: Any) -> datetime | None:
        """Parse a date value, returning None when nothing matches."""
        if isinstance(date_str, datetime):
            return _as_utc(date_str)
        if date_str is None or (not isinstance(date_str, str) and pd.isna(date_str)):
            return None

        date_str = str(date_str).strip()
        if not date_str:
            return None

        if date_str in self._cache:
            return self._cache[date_str]

        result = self._parse_iso(date_str)
        if result is None:
            for fmt in self.formats:
                try:
                    parsed = datetime.strptime(date_str, fmt)
                except ValueError:
                    continue
                result = _as_utc(parsed)
                break

        self._cache[date_str] = result
        return result

    def parse_or_epoch(self, date_str: Any) -> datetime:
        """Parse a date, falling back to EPOCH so the row still sorts first."""
        return self.parse(date_str) or EPOCH

    @staticmethod
    def _parse_iso(date_str: str) -> datetime | None:
        candidate = date_str[:-1] + "+00:00" if date_str.endswith("Z") else date_str
        try:
            return _as_utc(datetime.fromisoformat(candidate))
        except (ValueError, OverflowError):
            return None


def _as_utc(value: datetime) -> datetime | None:
    """UTC view of a datetime; None when the instant falls outside datetime's range."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        return None


def normalize_column_name(name: Any) -> str:
    """'Order ID' -> 'order_id', ' Products ' -> 'products'."""
    text = str(name).strip().lower()
    return re.sub(r"[^a-z0-9]+", "_", text).strip("_")


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize column names so lookups are case-insensitive."""
    df = df.copy()
    df.columns = [normalize_column_name(c) for c in df.columns]
    # Two headers can collapse to the same name; keep the first
    return df.loc[:, ~df.columns.duplicated()]


def clean_text(value: Any) -> str:
    """Stringify a cell, mapping missing values to an empty string."""
    if value is None:
        return ""
    if not isinstance(value, str) and pd.isna(value):
        return ""
    return str(value).strip()


def parse_quantity(value: Any) -> int:
    """
    Parse a quantity cell as an int.

    Handles "12", 12, 12.0 and "12.0". Anything unparseable is 0.
    """
    text = clean_text(value)
    if not text:
        return 0
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        # "inf", "1e999" and friends
        return 0


def parse_order_number(value: Any) -> str | None:
    """Order IDs arrive as ints, floats (1437.0) or strings."""
    if isinstance(value, float) and not pd.isna(value) and value.is_integer():
        return str(int(value))
    text = clean_text(value)
    return text or None


class ProductNameNormalizer:
    """
    Normalizes free-text product names for keyword matching.

    Handles:
    - Case normalization
    - Extra whitespace
    - Hyphens/underscores used as separators ("colostrum-p" -> "colostrum p")
    """

    def __init__(self, lowercase: bool = True):
        self.lowercase = lowercase

    def normalize(self, name: Any) -> str:
        """Normalize a product name."""
        result = clean_text(name)
        if not result:
            return ""

        result = result.replace("-", " ").replace("_", " ")

        # Normalize whitespace
        result = " ".join(result.split())

        if self.lowercase:
            result = result.lower()

        return result
