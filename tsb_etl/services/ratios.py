from __future__ import annotations

from ..models.financial_row import FinancialRow

"""Net ultimate and loss ratio, as computed by the analytics layer.

Unlike the signed sums of services.net_metrics these use magnitudes: reserve
releases can make net claim figures negative, and the ratio wants size. An unset
previous-year-end companion counts as 0.
"""

__all__ = [
    "net_ultimate",
    "loss_ratio",
]


def net_ultimate(row: FinancialRow) -> float:
    """|payment| + |incurred| + |unreported| - |PYE incurred| - |PYE unreported|."""
    return (
        abs(row.net_payment)
        + abs(row.net_incurred)
        + abs(row.net_unreported)
        - abs(row.pye_net_incurred or 0)
        - abs(row.pye_net_unreported or 0)
    )


def loss_ratio(row: FinancialRow) -> float:
    """Net ultimate as a percentage of net earned premium (0 when premium <= 0)."""
    if row.net_earned_premium <= 0:
        return 0.0
    return net_ultimate(row) / row.net_earned_premium * 100
