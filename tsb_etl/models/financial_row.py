from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

"""FinancialRow model: one company x branch x period record.

Raw figures come straight from the branch sheet, net figures are derived by
services.net_metrics, and the PYE_* / PQ_* companions are filled in only by the
cross-period enricher. Numeric raw/net fields are never None; companions are None
when no comparable prior period exists.
"""

__all__ = [
    "FinancialRow",
    "LABELED_FIELDS",
    "OFFSET_FIELDS",
    "RAW_FIELDS",
    "NET_FIELDS",
    "COMPANION_SOURCE_FIELDS",
    "PYE_FIELDS",
    "PQ_FIELDS",
]

# Figures located by header label
LABELED_FIELDS: tuple[str, ...] = (
    "gross_written_premium",
    "ceded_to_reinsurer",
    "transferred_to_sgk",
    "unearned_premium_reserve",
    "previous_unearned_premium_reserve",
    "reinsurer_share_unearned",
    "previous_reinsurer_share_unearned",
    "sgk_share_unearned",
    "previous_sgk_share_unearned",
    "technical_investment_income",
    "gross_paid_claims",
    "reinsurer_share_paid_claims",
)

# Figures located by fixed column position (no reliable header)
OFFSET_FIELDS: tuple[str, ...] = (
    "incurred_claims",
    "unreported_claims",
    "discount_provision",
    "reinsurer_share_incurred",
    "reinsurer_share_unreported",
)

RAW_FIELDS: tuple[str, ...] = LABELED_FIELDS + OFFSET_FIELDS

NET_FIELDS: tuple[str, ...] = (
    "net_premium",
    "net_unearned_reserve",
    "net_payment",
    "net_unreported",
    "net_incurred",
    "net_earned_premium",
)

# Net figures copied from the previous-year-end / previous-quarter row
COMPANION_SOURCE_FIELDS: tuple[str, ...] = (
    "net_payment",
    "net_unreported",
    "net_incurred",
    "net_earned_premium",
)
PYE_FIELDS: tuple[str, ...] = tuple(f"pye_{f}" for f in COMPANION_SOURCE_FIELDS)
PQ_FIELDS: tuple[str, ...] = tuple(f"pq_{f}" for f in COMPANION_SOURCE_FIELDS)


@dataclass(frozen=True)
class FinancialRow:
    company_name: str
    company_code: str
    company_type: str
    branch_code: str  # sheet name (hazine kodu)
    period: str  # YYYYQ

    gross_written_premium: float = 0.0
    ceded_to_reinsurer: float = 0.0
    transferred_to_sgk: float = 0.0
    unearned_premium_reserve: float = 0.0
    previous_unearned_premium_reserve: float = 0.0
    reinsurer_share_unearned: float = 0.0
    previous_reinsurer_share_unearned: float = 0.0
    sgk_share_unearned: float = 0.0
    previous_sgk_share_unearned: float = 0.0
    technical_investment_income: float = 0.0
    gross_paid_claims: float = 0.0
    reinsurer_share_paid_claims: float = 0.0
    incurred_claims: float = 0.0
    unreported_claims: float = 0.0
    discount_provision: float = 0.0
    reinsurer_share_incurred: float = 0.0
    reinsurer_share_unreported: float = 0.0

    net_premium: float = 0.0
    net_unearned_reserve: float = 0.0
    net_payment: float = 0.0
    net_unreported: float = 0.0
    net_incurred: float = 0.0
    net_earned_premium: float = 0.0

    pye_net_payment: float | None = None
    pye_net_unreported: float | None = None
    pye_net_incurred: float | None = None
    pye_net_earned_premium: float | None = None
    pq_net_payment: float | None = None
    pq_net_unreported: float | None = None
    pq_net_incurred: float | None = None
    pq_net_earned_premium: float | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity used for de-duplication and companion lookups."""
        return (self.company_name, self.branch_code, self.period)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
