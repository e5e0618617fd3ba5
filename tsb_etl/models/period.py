from __future__ import annotations

import re
from dataclasses import dataclass

"""Reporting period model (YYYYQ tokens).

A period token is the 4-digit year followed by a single quarter digit, e.g. "20244".
Lexicographic order of tokens equals chronological order for this domain.
"""

__all__ = [
    "Period",
    "PeriodError",
    "period_from_filename",
]

_TOKEN_RE = re.compile(r"^(\d{4})([1-4])$")
# "20244.xlsx"
_SIMPLE_NAME_RE = re.compile(r"^(\d{4})(\d)\.xlsx$", re.IGNORECASE)
# "3 Company Level Income Statement Details 2024 4.xlsx"
_VERBOSE_NAME_RE = re.compile(r"(\d{4})\s+(\d{1,2})")


class PeriodError(ValueError):
    """Raised when a string cannot be interpreted as a YYYYQ period."""


@dataclass(frozen=True, order=True)
class Period:
    year: int
    quarter: int

    def __post_init__(self) -> None:
        if self.quarter not in (1, 2, 3, 4):
            raise PeriodError(f"quarter out of range: {self.quarter}")

    @classmethod
    def parse(cls, token: str) -> Period:
        m = _TOKEN_RE.match(str(token).strip())
        if not m:
            raise PeriodError(f"invalid period token: {token!r}")
        return cls(year=int(m.group(1)), quarter=int(m.group(2)))

    @property
    def token(self) -> str:
        return f"{self.year}{self.quarter}"

    def previous_year_end(self) -> Period:
        """Q4 of the prior year, whatever the current quarter is."""
        return Period(self.year - 1, 4)

    def previous_quarter(self) -> Period:
        if self.quarter == 1:
            return Period(self.year - 1, 4)
        return Period(self.year, self.quarter - 1)

    def __str__(self) -> str:
        return self.token


def period_from_filename(file_name: str) -> Period:
    """Resolve the reporting period encoded in a workbook file name.

    Accepts ``<YYYY><Q>.xlsx`` and the verbose regulator naming ``... <YYYY> <Q>.xlsx``.

    Raises:
        PeriodError: when no period can be derived or the quarter is not 1-4
    """
    m = _SIMPLE_NAME_RE.match(file_name) or _VERBOSE_NAME_RE.search(file_name)
    if not m:
        raise PeriodError(f"cannot derive period from file name: {file_name}")
    return Period(year=int(m.group(1)), quarter=int(m.group(2)))
