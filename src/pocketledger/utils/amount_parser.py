"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "200000"
    - "200,000"
    - "-50,000.50"
    - "₫50,000" / "50.000đ" / "1.200.000 VND" (dong has no fraction, so
      both dots and commas are thousands separators)
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    is_dong = re.search(r"[₫đ]|VND", amount_str, flags=re.IGNORECASE) is not None

    # Remove currency symbols and codes
    amount_str = re.sub(r"[$€£¥₫đ]|VND", "", amount_str, flags=re.IGNORECASE)

    # Remove thousands separators
    amount_str = amount_str.replace(",", "").replace(" ", "")
    if is_dong:
        amount_str = amount_str.replace(".", "")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def coerce_decimal(value) -> Decimal:
    """Normalize a stored numeric value to Decimal.

    Missing or unparseable values become ``Decimal("0")`` so that balance
    computations never fail on malformed documents.

    Args:
        value: Raw value from a document (Decimal, int, float, str or None)

    Returns:
        Decimal value
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    if isinstance(value, (int, float)):
        value = str(value)
    if isinstance(value, str):
        try:
            result = Decimal(value.strip().replace(",", ""))
        except InvalidOperation:
            return Decimal("0")
        return result if result.is_finite() else Decimal("0")
    return Decimal("0")
