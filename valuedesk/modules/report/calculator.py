"""
Derived-Value Calculator
========================

Values the report prints but the record does not store directly:
Indian-numbering words, percentage-of-base, rounding, line-item totals.

None of these functions raise on bad input; each has its own fallback.
"""

import math
import re
from typing import Any, Dict, Mapping, Optional

from valuedesk.core.config import settings
from valuedesk.modules.report.field_schema import LINE_ITEM_FIELDS, VALUE_WORD_FIELDS
from valuedesk.modules.report.resolver import NA


ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
TEENS = ["Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen",
         "Sixteen", "Seventeen", "Eighteen", "Nineteen"]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"^-?(\d+\.?\d*|\.\d+)")

CURRENCY_SYMBOL = "₹"


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a possibly currency-formatted value ("₹ 12,34,567/-") to a float.

    Everything except digits, dot and minus is stripped first; the longest
    numeric prefix of what remains is used. None when nothing numeric is left.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    return float(match.group(0))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


def _convert_hundreds(n: int) -> str:
    words = []
    hundred, remainder = divmod(n, 100)
    if hundred:
        words.append(f"{ONES[hundred]} Hundred")
    if remainder >= 20:
        words.append(TENS[remainder // 10])
        if remainder % 10:
            words.append(ONES[remainder % 10])
    elif remainder >= 10:
        words.append(TEENS[remainder - 10])
    elif remainder > 0:
        words.append(ONES[remainder])
    return " ".join(words)


def _indian_words(n: int) -> str:
    """Words for a positive integer using Indian grouping (3, then 2, 2, rest)"""
    parts = []
    crore, n = divmod(n, 10_000_000)
    lac, n = divmod(n, 100_000)
    thousand, n = divmod(n, 1000)

    if crore:
        # Crore counts above 99 are themselves written in Indian numbering
        parts.append(f"{_indian_words(crore)} Crore")
    if lac:
        parts.append(f"{_convert_hundreds(lac)} Lac")
    if thousand:
        parts.append(f"{_convert_hundreds(thousand)} Thousand")
    if n:
        parts.append(_convert_hundreds(n))
    return " ".join(parts)


def number_to_words(value: Any) -> str:
    """
    Spell out an amount in Indian numbering, uppercased.

    The amount is rounded to the nearest whole unit first. Zero gives "Zero";
    missing or unparsable input gives an empty string. Negative amounts are
    spelled by magnitude.

    >>> number_to_words(100000)
    'ONE LAC'
    """
    amount = parse_amount(value)
    if amount is None:
        return ""
    n = abs(round_half_up(amount))
    if n == 0:
        return "Zero"
    return _indian_words(n).strip().upper()


def format_indian_number(value: Any) -> str:
    """Group digits the Indian way: 1234567 -> 12,34,567"""
    amount = parse_amount(value)
    if amount is None:
        return str(value)
    n = round_half_up(amount)
    sign = "-" if n < 0 else ""
    digits = str(abs(n))
    if len(digits) <= 3:
        return sign + digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return sign + ",".join(groups + [tail])


def calculate_percentage(base_value: Any, percentage: float) -> int:
    """round(base * percentage / 100); 0 when the base is missing or unparsable"""
    if not base_value:
        return 0
    amount = parse_amount(base_value)
    if amount is None:
        return 0
    return round_half_up(amount * percentage / 100)


def round_to_nearest_1000(value: Any) -> Any:
    """
    Round to the nearest thousand.

    Missing input gives "NA"; input that does not parse is returned unchanged.
    """
    if not value or value == NA:
        return NA
    amount = parse_amount(value)
    if amount is None:
        return value
    return round_half_up(amount / 1000) * 1000


def format_currency_with_words(value: Any, percentage: float = 100) -> Any:
    """₹ <grouped>/- (<WORDS>) for ``percentage`` of ``value``"""
    if not value or value == NA:
        return NA
    amount = parse_amount(value)
    if amount is None:
        return value
    final_value = round_half_up(amount * percentage / 100)
    return f"{CURRENCY_SYMBOL} {format_indian_number(final_value)}/- ({number_to_words(final_value)})"


def _usable_amount(value: Any) -> Optional[float]:
    if not value or value in (NA, "Nil"):
        return None
    return parse_amount(value)


def aggregate_total(fields: Mapping[str, Any], item_fields=LINE_ITEM_FIELDS) -> Optional[int]:
    """
    Sum the line items that carry a usable amount.

    "NA", "Nil" and unparsable items are skipped. None when nothing was summed
    to a positive total.
    """
    total = 0.0
    for name in item_fields:
        amount = _usable_amount(fields.get(name))
        if amount is not None:
            total += amount
    if total <= 0:
        return None
    return round_half_up(total)


def rupees_in_words(value: Any) -> Optional[str]:
    amount = _usable_amount(value)
    if amount is None or amount <= 0:
        return None
    return f"Rupees {number_to_words(amount)} Only"


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == NA


def _area_types(fields: Mapping[str, Any]) -> str:
    areas = [
        label for key, label in (
            ("residentialArea", "Residential"),
            ("commercialArea", "Commercial"),
            ("industrialArea", "Industrial"),
        )
        if fields.get(key) == "Yes"
    ]
    return " / ".join(areas) if areas else NA


def _documents_produced(fields: Mapping[str, Any]) -> str:
    documents = [
        f"{label}: {fields[key]}" for key, label in (
            ("agreementForSale", "Agreement for Sale"),
            ("commencementCertificate", "Commencement Certificate"),
            ("occupancyCertificate", "Occupancy Certificate"),
        )
        if not _is_missing(fields.get(key))
    ]
    return "; ".join(documents) if documents else NA


def derive(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Add derived values to a normalized field map.

    Only fills gaps: anything the record already supplies is left untouched.
    Returns a new mapping.
    """
    derived = dict(fields)

    # Total of the valuation line items
    if _is_missing(derived.get("totalValuationItems")):
        total = aggregate_total(derived)
        if total is not None:
            derived["totalValuationItems"] = format_indian_number(total)
            derived["totalValuationItemsWords"] = f"{number_to_words(total)} ONLY"
    elif _is_missing(derived.get("totalValuationItemsWords")):
        amount = parse_amount(derived["totalValuationItems"])
        if amount is not None:
            derived["totalValuationItemsWords"] = f"{number_to_words(amount)} ONLY"

    if _is_missing(derived.get("totalValueSay")):
        say = round_to_nearest_1000(derived.get("totalValuationItems"))
        derived["totalValueSay"] = format_indian_number(say) if isinstance(say, int) else say

    # Realisable and distress values as a share of fair market value
    fair_market = derived.get("fairMarketValue")
    if _usable_amount(fair_market) is not None:
        for key, percent in (
            ("realisableValue", settings.REALISABLE_VALUE_PERCENT),
            ("distressValue", settings.DISTRESS_VALUE_PERCENT),
        ):
            if _is_missing(derived.get(key)):
                derived[key] = format_indian_number(calculate_percentage(fair_market, percent))

    for value_field, words_field in VALUE_WORD_FIELDS:
        if _is_missing(derived.get(words_field)):
            words = rupees_in_words(derived.get(value_field))
            if words:
                derived[words_field] = words

    derived["areaTypes"] = _area_types(derived)
    if _is_missing(derived.get("listOfDocumentsProduced")):
        derived["listOfDocumentsProduced"] = _documents_produced(derived)

    return derived
