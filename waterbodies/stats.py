"""
Observation statistics shown alongside the charts.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from waterbodies.observations import Observation

AUSTRALIA_APPLICATION = "australia"
IOS_PLATFORM = "iOS"


@dataclass(frozen=True)
class ItemAmount:
    item: Optional[str] = None
    amount: int = -1


@dataclass
class ObservationStats:
    """Counts and most-common values over a set of observations."""
    iphones: int = 0
    androids: int = 0
    eow_au: int = 0
    eow_global: int = 0
    most_reported_fu: ItemAmount = field(default_factory=ItemAmount)
    most_used_device: ItemAmount = field(default_factory=ItemAmount)
    most_active_user: ItemAmount = field(default_factory=ItemAmount)
    avg_fu: float = 0.0


def _increment(counts: Dict[str, int], item) -> None:
    if item:
        counts[str(item)] = counts.get(str(item), 0) + 1


def largest_amount(counts: Dict[str, int]) -> ItemAmount:
    """The first item with the highest count, or ItemAmount(None, -1) when empty."""
    best = ItemAmount()
    for item, amount in counts.items():
        if amount > best.amount:
            best = ItemAmount(item, amount)
    return best


def calculate_stats(observations: Sequence[Observation]) -> ObservationStats:
    """
    Summarise a set of observations.

    Only users of the Australian application count towards the most active user.
    """
    stats = ObservationStats()
    users: Dict[str, int] = {}
    fu_values: Dict[str, int] = {}
    devices: Dict[str, int] = {}

    for obs in observations:
        attrs = obs.attributes
        if attrs.application == AUSTRALIA_APPLICATION:
            _increment(users, attrs.user_n_code)
            stats.eow_au += 1
        else:
            stats.eow_global += 1
        _increment(fu_values, attrs.fu_value)
        _increment(devices, attrs.device_model)
        if attrs.device_platform == IOS_PLATFORM:
            stats.iphones += 1
        else:
            stats.androids += 1

    # FU keys in ascending numeric order, so ties keep the lowest FU
    stats.most_reported_fu = largest_amount(dict(sorted(fu_values.items(), key=lambda kv: int(kv[0]))))
    stats.most_used_device = largest_amount(devices)
    stats.most_active_user = largest_amount(users)
    if observations:
        stats.avg_fu = sum(int(fu) * n for fu, n in fu_values.items()) / len(observations)
    return stats
