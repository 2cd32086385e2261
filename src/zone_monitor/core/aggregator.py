"""Pure derivations over a list of trade records: ordering, highlights, pressure and per-zone series."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from pydantic import BaseModel

from ..models import TradeRecord, ZoneCount

ZONES: tuple[str, ...] = tuple(f"Z{i}" for i in range(1, 9))
HIGHLIGHT_FIELDS: tuple[str, ...] = ("performance_24", "performance_btc_24", "amplitude_ma_200")
TABLE_FIELDS: tuple[str, ...] = ("performance_24", "performance_btc_24")
POSITION_BINS = 10

# Pressure bands, evaluated top to bottom. Exactly 0.5 falls through to neutral.
STRONG_BUY_ABOVE = 0.7
BUY_ABOVE = 0.5
STRONG_SELL_BELOW = 0.3
SELL_BELOW = 0.5

_NON_DIGITS = re.compile(r"[^0-9]")


class Highlight(str, Enum):
    MAX = "max"
    MIN = "min"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Pressure(str, Enum):
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    NEUTRAL = "neutral"
    SELL = "sell"
    STRONG_SELL = "strong_sell"


@dataclass(frozen=True, slots=True)
class Extrema:
    max: float
    min: float


class ZonePoint(BaseModel):
    zone: str
    value: float


class ZoneSeries(BaseModel):
    """The eight charted series, each holding one point per zone in Z1..Z8 order."""

    trade_share: list[ZonePoint]
    quote_volume_share: list[ZonePoint]
    buyer_pressure: list[ZonePoint]
    seller_pressure: list[ZonePoint]
    btc_performance_sum: list[ZonePoint]
    performance_sum: list[ZonePoint]
    amplitude_sum: list[ZonePoint]
    buy_quote_volume_share: list[ZonePoint]


class PositionBucket(BaseModel):
    range: str
    count: int


class CountAxis(BaseModel):
    max_y: int
    ticks: list[int]


def zone_rank(zone: str) -> int:
    """Numeric rank of a zone label: every non-digit is stripped, unparsable means 0."""

    digits = _NON_DIGITS.sub("", zone or "")
    if not digits:
        return 0
    try:
        return int(digits)
    except ValueError:
        # Longer than the int() digit limit
        return 0


def sort_records(records: Iterable[TradeRecord]) -> list[TradeRecord]:
    """Hottest zone first, then best 24h performance, then best BTC performance.

    ``list.sort`` stays stable with ``reverse=True`` so full ties keep input order.
    """

    ordered = list(records)
    ordered.sort(
        key=lambda r: (zone_rank(r.zone), r.performance_24, r.performance_btc_24),
        reverse=True,
    )
    return ordered


def _check_field(field: str) -> None:
    if field not in HIGHLIGHT_FIELDS:
        raise ValueError(f"Unsupported highlight field '{field}'. Available: {', '.join(HIGHLIGHT_FIELDS)}")


def extrema(records: Sequence[TradeRecord], field: str) -> Extrema | None:
    _check_field(field)
    if not records:
        return None
    values = [getattr(record, field) for record in records]
    return Extrema(max=max(values), min=min(values))


def classify_highlight(value: float, bounds: Extrema) -> Highlight:
    # Exact comparisons; when max == min every value is reported as max.
    if value == bounds.max:
        return Highlight.MAX
    if value == bounds.min:
        return Highlight.MIN
    if value > 0:
        return Highlight.POSITIVE
    if value < 0:
        return Highlight.NEGATIVE
    return Highlight.NEUTRAL


def highlight_records(
    records: Sequence[TradeRecord],
    fields: Sequence[str] = TABLE_FIELDS,
) -> list[dict[str, Highlight]]:
    bounds = {field: extrema(records, field) for field in fields}
    highlights: list[dict[str, Highlight]] = []
    for record in records:
        highlights.append(
            {field: classify_highlight(getattr(record, field), bounds[field]) for field in fields}
        )
    return highlights


def buy_pressure(record: TradeRecord) -> float:
    if record.volume == 0:
        return 0.0
    return record.taker_buy_base_volume / record.volume


def sell_pressure(record: TradeRecord) -> float:
    if record.volume == 0:
        return 0.0
    return 1 - buy_pressure(record)


def classify_pressure(ratio: float) -> Pressure:
    if ratio > STRONG_BUY_ABOVE:
        return Pressure.STRONG_BUY
    if ratio > BUY_ABOVE:
        return Pressure.BUY
    if ratio < STRONG_SELL_BELOW:
        return Pressure.STRONG_SELL
    if ratio < SELL_BELOW:
        return Pressure.SELL
    return Pressure.NEUTRAL


def record_pressure(record: TradeRecord) -> Pressure:
    """Pressure class of a record; no volume means no data, reported as neutral."""

    if record.volume == 0:
        return Pressure.NEUTRAL
    return classify_pressure(buy_pressure(record))


@dataclass(slots=True)
class _ZoneTotals:
    trades_count: float = 0.0
    quote_volume: float = 0.0
    volume: float = 0.0
    taker_buy_base_volume: float = 0.0
    taker_buy_quote_volume: float = 0.0
    performance_btc_24: float = 0.0
    performance_24: float = 0.0
    amplitude_ma_200: float = 0.0

    def add(self, record: TradeRecord) -> None:
        self.trades_count += record.trades_count
        self.quote_volume += record.quote_volume
        self.volume += record.volume
        self.taker_buy_base_volume += record.taker_buy_base_volume
        self.taker_buy_quote_volume += record.taker_buy_quote_volume
        self.performance_btc_24 += record.performance_btc_24
        self.performance_24 += record.performance_24
        self.amplitude_ma_200 += record.amplitude_ma_200


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _share(totals: dict[str, _ZoneTotals], attr: str) -> list[ZonePoint]:
    grand_total = sum(getattr(totals[zone], attr) for zone in ZONES)
    return [ZonePoint(zone=zone, value=_ratio(getattr(totals[zone], attr), grand_total)) for zone in ZONES]


def _sum(totals: dict[str, _ZoneTotals], attr: str) -> list[ZonePoint]:
    return [ZonePoint(zone=zone, value=getattr(totals[zone], attr)) for zone in ZONES]


def zone_series(records: Iterable[TradeRecord]) -> ZoneSeries:
    """Derive every per-zone chart series in a single pass.

    Records whose zone is not one of Z1..Z8 contribute nothing, so shares are
    taken over the eight enumerated zones and sum to 1 whenever their total is
    non-zero.
    """

    totals = {zone: _ZoneTotals() for zone in ZONES}
    for record in records:
        bucket = totals.get(record.zone)
        if bucket is not None:
            bucket.add(record)

    buyer = [
        ZonePoint(zone=zone, value=_ratio(totals[zone].taker_buy_base_volume, totals[zone].volume))
        for zone in ZONES
    ]
    seller = [ZonePoint(zone=point.zone, value=1 - point.value) for point in buyer]

    return ZoneSeries(
        trade_share=_share(totals, "trades_count"),
        quote_volume_share=_share(totals, "quote_volume"),
        buyer_pressure=buyer,
        seller_pressure=seller,
        btc_performance_sum=_sum(totals, "performance_btc_24"),
        performance_sum=_sum(totals, "performance_24"),
        amplitude_sum=_sum(totals, "amplitude_ma_200"),
        buy_quote_volume_share=_share(totals, "taker_buy_quote_volume"),
    )


def position_bin(log_position: float, scale: float = 100.0) -> int | None:
    """Bin index for a 0-1 position fraction; None for NaN/inf, clamped to [0, 9] otherwise."""

    percent = log_position * scale
    if not math.isfinite(percent):
        return None
    return min(max(math.floor(percent / 10), 0), POSITION_BINS - 1)


def bucket_positions(records: Iterable[TradeRecord], scale: float = 100.0) -> list[PositionBucket]:
    counts = [0] * POSITION_BINS
    for record in records:
        index = position_bin(record.log_position, scale)
        if index is not None:
            counts[index] += 1
    return [
        PositionBucket(range=f"{i * 10}% - {(i + 1) * 10}%", count=count)
        for i, count in enumerate(counts)
    ]


def count_axis(zone_counts: Iterable[ZoneCount], step: int = 20) -> CountAxis:
    """Y axis for the symbols-per-zone chart: the max count rounded up to a multiple of ``step``."""

    if step <= 0:
        raise ValueError("step must be positive")
    max_count = max((zc.count for zc in zone_counts), default=0)
    max_y = math.ceil(max_count / step) * step
    return CountAxis(max_y=max_y, ticks=list(range(0, max_y + 1, step)))
