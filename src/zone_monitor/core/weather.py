"""Market "weather" outlook derived from how many symbols sit in each pair of zones."""
from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel

from ..models import ZoneCount

# Group name -> (zones, icon). Order matters for tie breaking.
WEATHER_GROUPS: dict[str, tuple[tuple[str, ...], str]] = {
    "group1": (("Z1", "Z2"), "rain"),
    "group2": (("Z3", "Z4"), "clouds"),
    "group3": (("Z5", "Z6"), "sun_clouds"),
    "group4": (("Z7", "Z8"), "sun"),
}


class WeatherOutlook(BaseModel):
    group: str
    icon: str
    totals: dict[str, int]


def group_totals(zone_counts: Iterable[ZoneCount]) -> dict[str, int]:
    zone_to_group = {zone: group for group, (zones, _icon) in WEATHER_GROUPS.items() for zone in zones}
    totals = {group: 0 for group in WEATHER_GROUPS}
    for zc in zone_counts:
        group = zone_to_group.get(zc.zone)
        if group is not None:
            totals[group] += zc.count
    return totals


def weather_outlook(zone_counts: Iterable[ZoneCount]) -> WeatherOutlook:
    """Pick the busiest zone group.

    A later group replaces the current pick unless the current one is strictly
    larger, so ties (including all zeros) resolve to the later group.
    """

    totals = group_totals(zone_counts)
    selected = None
    for group, total in totals.items():
        if selected is None or not totals[selected] > total:
            selected = group
    return WeatherOutlook(group=selected, icon=WEATHER_GROUPS[selected][1], totals=totals)
