# Overview: Service-layer operations for client loyalty; tier thresholds, point rules and visit crediting.

"""
Loyalty Service

WHY: Tier, points, spend and visit count are denormalized on the client row.
Keeping the rules in one place means the Python tier function and the SQL
CASE used in atomic updates can never disagree.

RULES:
- Tier is derived from lifetime spend (cents):
    >= 200000 platinum, >= 100000 gold, >= 50000 silver, otherwise bronze
- POS sales earn floor(paid / 10) points
- Completed appointments earn floor(total / 100) points
"""

from __future__ import annotations

from sqlalchemy import case

from ..models import Client
from .concurrency import atomic_increment
from zenstyle.time_utils import utcnow


TIER_BRONZE = "bronze"
TIER_SILVER = "silver"
TIER_GOLD = "gold"
TIER_PLATINUM = "platinum"

# Highest threshold first; first match wins
TIER_THRESHOLDS = (
    (200000, TIER_PLATINUM),
    (100000, TIER_GOLD),
    (50000, TIER_SILVER),
)
TIER_ORDER = (TIER_BRONZE, TIER_SILVER, TIER_GOLD, TIER_PLATINUM)


class LoyaltyError(Exception):
    """Raised when loyalty cannot be credited."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def tier_for(total_spent_cents: int) -> str:
    for threshold, tier in TIER_THRESHOLDS:
        if total_spent_cents >= threshold:
            return tier
    return TIER_BRONZE


def tier_case(total_spent_expr):
    """SQL CASE equivalent of tier_for(), evaluated inside the UPDATE."""
    return case(
        *[(total_spent_expr >= threshold, tier) for threshold, tier in TIER_THRESHOLDS],
        else_=TIER_BRONZE,
    )


def sale_points(paid_cents: int) -> int:
    return max(0, paid_cents) // 10


def visit_points(total_cents: int) -> int:
    return max(0, total_cents) // 100


def award_visit(client_id: int, *, amount_cents: int, points: int) -> None:
    """
    Credit one visit to a client in a single atomic UPDATE.

    Adds points, spend and one visit, stamps last_visit and recomputes the
    tier from the post-increment spend. Does not commit.
    """
    if amount_cents < 0 or points < 0:
        raise LoyaltyError("Loyalty amounts must be non-negative")

    new_total = Client.total_spent_cents + amount_cents
    updated = atomic_increment(
        Client,
        client_id,
        loyalty_points=points,
        total_spent_cents=amount_cents,
        visit_count=1,
        values={"last_visit": utcnow(), "tier": tier_case(new_total)},
    )
    if not updated:
        raise LoyaltyError("Client not found", {"client_id": client_id})
