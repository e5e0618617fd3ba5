from __future__ import annotations

import math
import numbers
import re
from typing import Any

"""Declarative field tables for TSB branch sheets.

Labeled fields map a semantic name to the header spellings seen across file
vintages, in priority order. Current files carry a trailing semicolon on most
labels and a dotless-i typo ("Prımler") on two of them; older files do not.

Unlabeled claim columns have no stable header text and are read by fixed
0-based column position (DEFAULT_CLAIM_COLUMN_OFFSETS).
"""

__all__ = [
    "BRANCH_CODES",
    "COMPANY_NAME_ANCHOR",
    "COMPANY_TYPE_LABEL",
    "COMPANY_CODE_LABEL",
    "COMPANY_TYPE_FALLBACK_INDEX",
    "COMPANY_CODE_FALLBACK_INDEX",
    "DEFAULT_CLAIM_COLUMN_OFFSETS",
    "FIELD_HEADER_VARIANTS",
    "HEADER_SCAN_LIMIT",
    "RETAINED_COMPANY_TYPE",
    "TOTAL_ROW_MARKER",
    "parse_number",
]

# Treasury branch codes published as one sheet each (701-799 with gaps, 855, 856)
_BRANCH_GAPS = {709, 762, 763, 764, 787, 788}
BRANCH_CODES: tuple[str, ...] = tuple(
    str(code) for code in range(701, 800) if code not in _BRANCH_GAPS
) + ("855", "856")

# Plain decimal prefix only: no "_" separators, "inf" or "nan" spellings
_NUMERIC_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

COMPANY_NAME_ANCHOR = "Şirket Adı"
COMPANY_TYPE_LABEL = "Şirket Tipi"
COMPANY_CODE_LABEL = "Şirket Kodu"
COMPANY_CODE_FALLBACK_INDEX = 1
COMPANY_TYPE_FALLBACK_INDEX = 2

# Only non-life ("Hayat Dışı") companies are retained
RETAINED_COMPANY_TYPE = "HD"
# First-column marker of the summary footer; nothing below it is company data
TOTAL_ROW_MARKER = "TOPLAM"
HEADER_SCAN_LIMIT = 30


def _variants(*labels: str) -> tuple[str, ...]:
    """Expand each label into its semicolon-terminated form followed by the bare form."""
    out: list[str] = []
    for label in labels:
        for candidate in (f"{label};", label):
            if candidate not in out:
                out.append(candidate)
    return tuple(out)


FIELD_HEADER_VARIANTS: dict[str, tuple[str, ...]] = {
    "gross_written_premium": _variants("Brüt Yazılan Primler (+/-)"),
    "ceded_to_reinsurer": _variants("Reasüröre Devredilen Primler (+/-)"),
    "transferred_to_sgk": _variants("SGK ya Aktarılan Primler (-)"),
    "unearned_premium_reserve": _variants("Kazanılmamış Primler Karşılığı (+/-)"),
    "previous_unearned_premium_reserve": _variants(
        "Devreden Kazanılmamış Primler Karşılığı (+/-)"
    ),
    "reinsurer_share_unearned": _variants(
        "Kazanılmamış Prımler Karşılığında Reasürör Payı (+/-)",
        "Kazanılmamış Primler Karşılığında Reasürör Payı (+/-)",
    ),
    "previous_reinsurer_share_unearned": _variants(
        "Devreden Kazanılmamış Primler Karşılığında Reasürör Payı (+/-)"
    ),
    "sgk_share_unearned": _variants(
        "Kazanılmamış Prımler Karşılığında SGK Payı (+/-)",
        "Kazanılmamış Primler Karşılığında SGK Payı (+/-)",
    ),
    "previous_sgk_share_unearned": _variants(
        "Devreden Kazanılmamış Primler Karşılığında SGK Payı (+/-)"
    ),
    "technical_investment_income": _variants(
        "Teknik Olmayan Bölümden Aktarılan Yatırım Gelirleri"
    ),
    "gross_paid_claims": _variants("Brüt Ödenen Tazminatlar (+/-)"),
    "reinsurer_share_paid_claims": _variants("Ödenen Tazminatlarda Reasürör Payı (+/-)"),
}

DEFAULT_CLAIM_COLUMN_OFFSETS: dict[str, int] = {
    "incurred_claims": 111,  # Tahakkuk Eden (Muallak Tazminat Karşılığı)
    "unreported_claims": 117,  # Raporlanmayan (Muallak Tazminat Karşılığı)
    "discount_provision": 119,  # Nakit Akışlarından Kaynaklanan İskonto
    "reinsurer_share_incurred": 123,  # Tahakkuk Eden (... Reasürör Payı)
    "reinsurer_share_unreported": 129,  # Raporlanmayan (... Reasürör Payı)
}


def parse_number(value: Any) -> float:
    """Coerce a raw cell to a finite float; never raises.

    Blank / None / NaN -> 0. Numbers pass through. Strings follow the Turkish locale:
    comma is the decimal separator, so when a comma is present any periods are
    thousands separators and are dropped ("1.234,56" -> 1234.56, "12,5" -> 12.5).
    The longest numeric prefix is used ("12,5 TL" -> 12.5). Anything unparsable -> 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, numbers.Number):
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        return number if math.isfinite(number) else 0.0
    text = str(value).strip()
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    if not text:
        return 0.0
    return _leading_float(text)


def _leading_float(text: str) -> float:
    match = _NUMERIC_PREFIX.match(text)
    if match is None:
        return 0.0
    number = float(match.group())
    return number if math.isfinite(number) else 0.0
