# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Profit distribution planner.

The net profit of a month is split into four fixed buckets:

    withdrawal    50 %
    reinvestment  30 %
    taxes         10 %
    reserve       10 %

When the net profit is zero or negative there is nothing to distribute and
the planner returns the UNAVAILABLE marker instead of a zero-valued plan,
so the presentation layer can show an explicit "no distribution" state.

Saved plans are snapshots keyed by (owner, month): saving again for the
same month overwrites the previous snapshot.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from .db import DatabaseConfig, DistributionRow, fetch_distributions, upsert_distribution
from .errors import ValidationError
from .periods import month_label, parse_month

logger = logging.getLogger(__name__)

WITHDRAWAL_RATIO = Decimal("0.50")
REINVESTMENT_RATIO = Decimal("0.30")
TAXES_RATIO = Decimal("0.10")
RESERVE_RATIO = Decimal("0.10")


class Unavailable(Enum):
    """Marker returned when the net profit leaves nothing to distribute."""

    UNAVAILABLE = "unavailable"

    def __str__(self) -> str:
        return self.value


UNAVAILABLE = Unavailable.UNAVAILABLE


@dataclass(frozen=True)
class DistributionPlan:
    """Split of one month's net profit into the four allocation buckets."""

    month: str
    net_profit: Decimal
    withdrawal: Decimal
    reinvestment: Decimal
    taxes: Decimal
    reserve: Decimal

    @property
    def allocated(self) -> Decimal:
        return self.withdrawal + self.reinvestment + self.taxes + self.reserve


@dataclass(frozen=True)
class SaveAck:
    """Acknowledgement of a saved distribution plan."""

    owner_id: str
    month: str
    saved_at: datetime
    created: bool


PlanOrUnavailable = Union[DistributionPlan, Unavailable]


def _normalize_month(month: str) -> str:
    year, m = parse_month(month)
    return month_label(year, m)


def plan_distribution(month: str, net_profit: Decimal) -> PlanOrUnavailable:
    """
    Split a month's net profit into withdrawal, reinvestment, taxes and reserve.

    Returns
    -------
    DistributionPlan or UNAVAILABLE
        UNAVAILABLE when net_profit <= 0.
    """
    month = _normalize_month(month)
    if net_profit <= 0:
        return UNAVAILABLE

    return DistributionPlan(
        month=month,
        net_profit=net_profit,
        withdrawal=net_profit * WITHDRAWAL_RATIO,
        reinvestment=net_profit * REINVESTMENT_RATIO,
        taxes=net_profit * TAXES_RATIO,
        reserve=net_profit * RESERVE_RATIO,
    )


def _row_to_plan(row: DistributionRow) -> DistributionPlan:
    return DistributionPlan(
        month=row.month,
        net_profit=row.net_profit,
        withdrawal=row.withdrawal,
        reinvestment=row.reinvestment,
        taxes=row.taxes,
        reserve=row.reserve,
    )


def save_distribution(
    cfg: DatabaseConfig,
    owner_id: str,
    month: str,
    plan: DistributionPlan,
) -> SaveAck:
    """
    Persist a plan for (owner_id, month), overwriting any earlier save.

    Raises
    ------
    ValidationError
        If the month is malformed, does not match the plan's month, or the
        plan is not a DistributionPlan (e.g. UNAVAILABLE).
    DataAccessError
        If the plan cannot be written.
    """
    if not isinstance(plan, DistributionPlan):
        raise ValidationError("Only an available distribution plan can be saved.")
    month = _normalize_month(month)
    if _normalize_month(plan.month) != month:
        raise ValidationError(
            f"Plan month {plan.month!r} does not match the requested month {month!r}."
        )

    row, created = upsert_distribution(
        cfg,
        owner_id=owner_id,
        month=month,
        net_profit=plan.net_profit,
        withdrawal=plan.withdrawal,
        reinvestment=plan.reinvestment,
        taxes=plan.taxes,
        reserve=plan.reserve,
    )
    logger.info(
        "%s distribution plan for owner %s, month %s",
        "Saved" if created else "Overwrote",
        owner_id,
        month,
    )
    return SaveAck(owner_id=owner_id, month=month, saved_at=row.saved_at, created=created)


def get_saved_distribution(
    cfg: DatabaseConfig, owner_id: str, month: str
) -> Optional[DistributionPlan]:
    """Return the plan saved for (owner_id, month), or None."""
    rows = fetch_distributions(cfg, owner_id, _normalize_month(month))
    if not rows:
        return None
    return _row_to_plan(rows[0])


def list_saved_distributions(cfg: DatabaseConfig, owner_id: str) -> list[DistributionPlan]:
    """Return every plan saved by an owner, newest month first."""
    return [_row_to_plan(r) for r in fetch_distributions(cfg, owner_id)]
