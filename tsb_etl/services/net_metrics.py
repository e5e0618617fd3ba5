from __future__ import annotations

from collections.abc import Mapping

"""Net metric calculator.

Every "net" figure is a plain signed sum of raw figures: the regulator already
publishes ceded shares and reserve releases with their sign, so no abs() here.
(The downstream ultimate/loss ratio in services.ratios does use magnitudes; the
two layers differ on purpose and must stay that way.)
"""

__all__ = [
    "compute_net_metrics",
]


def compute_net_metrics(raw: Mapping[str, float]) -> dict[str, float]:
    """Derive the six net fields from raw sheet figures.

    Missing raw keys count as 0.

    >>> compute_net_metrics({"gross_written_premium": 1000000,
    ...     "ceded_to_reinsurer": -200000, "transferred_to_sgk": -50000})["net_premium"]
    750000.0
    """
    def v(name: str) -> float:
        return float(raw.get(name, 0) or 0)

    net_premium = v("gross_written_premium") + v("ceded_to_reinsurer") + v("transferred_to_sgk")
    net_unearned_reserve = (
        v("unearned_premium_reserve")
        + v("previous_unearned_premium_reserve")
        + v("reinsurer_share_unearned")
        + v("previous_reinsurer_share_unearned")
        + v("sgk_share_unearned")
        + v("previous_sgk_share_unearned")
    )
    net_payment = v("gross_paid_claims") + v("reinsurer_share_paid_claims")
    net_unreported = v("unreported_claims") + v("reinsurer_share_unreported")
    net_incurred = v("incurred_claims") + v("reinsurer_share_incurred")

    return {
        "net_premium": net_premium,
        "net_unearned_reserve": net_unearned_reserve,
        "net_payment": net_payment,
        "net_unreported": net_unreported,
        "net_incurred": net_incurred,
        "net_earned_premium": net_premium + net_unearned_reserve,
    }
