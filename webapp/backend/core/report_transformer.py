"""
Shapes GA4 report rows into dashboard view models.

Everything here is pure: no I/O, no state. Malformed or missing input
degrades to zero/placeholder values instead of raising, so callers never
see transformer-level errors.

Rows are addressed by position (as the GA4 API returns them) or by header
name when the row carries its headers.
"""
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .dashboard_models import TimeSeriesPoint, Totals

ValueRef = Union[int, str]

UNKNOWN_KEY = "Unknown"
TOTALS_METRICS = ("activeUsers", "newUsers", "userEngagementDuration")


@dataclass(frozen=True)
class ReportRow:
    """One GA4 result row: ordered dimension values and ordered metric values"""
    dimension_values: Tuple[Optional[str], ...] = ()
    metric_values: Tuple[Optional[str], ...] = ()
    dimension_headers: Tuple[str, ...] = ()
    metric_headers: Tuple[str, ...] = ()

    @classmethod
    def from_values(cls, dimensions: Sequence[Any] = (), metrics: Sequence[Any] = (),
                    dimension_headers: Sequence[str] = (), metric_headers: Sequence[str] = ()) -> "ReportRow":
        return cls(
            dimension_values=tuple(dimensions or ()),
            metric_values=tuple(metrics or ()),
            dimension_headers=tuple(dimension_headers or ()),
            metric_headers=tuple(metric_headers or ()),
        )

    @classmethod
    def from_rest(cls, row: Mapping[str, Any]) -> "ReportRow":
        """Build from the REST JSON shape {"dimensionValues": [{"value": ..}], "metricValues": [...]}"""
        def values(key):
            return tuple(
                _cell_text(cell.get("value")) if isinstance(cell, Mapping) else None
                for cell in (row.get(key) or [])
            )
        return cls(dimension_values=values("dimensionValues"), metric_values=values("metricValues"))

    def dimension(self, ref: ValueRef) -> Optional[str]:
        return _lookup(self.dimension_values, self.dimension_headers, ref)

    def metric(self, ref: ValueRef) -> Optional[str]:
        return _lookup(self.metric_values, self.metric_headers, ref)


@dataclass(frozen=True)
class RankedItem:
    """A breakdown row compared against the previous period"""
    key: str
    value: Union[int, float]
    previous: Union[int, float]
    change_pct: Optional[float]
    key_field: str = "key"
    value_field: str = "value"

    @property
    def previous_field(self) -> str:
        return "prev" + self.value_field[:1].upper() + self.value_field[1:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            self.key_field: self.key,
            self.value_field: self.value,
            self.previous_field: self.previous,
            "changePct": self.change_pct,
        }


def _cell_text(value: Any) -> Optional[str]:
    # REST cells carry strings; bare numbers are tolerated, anything else is dropped
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _lookup(values: Tuple, headers: Tuple[str, ...], ref: ValueRef) -> Optional[str]:
    if isinstance(ref, str):
        if ref not in headers:
            return None
        ref = headers.index(ref)
    if 0 <= ref < len(values):
        return values[ref]
    return None


def _rows(rows: Optional[Iterable[Any]]) -> List[ReportRow]:
    out = []
    for row in rows or []:
        if isinstance(row, ReportRow):
            out.append(row)
        elif isinstance(row, Mapping):
            out.append(ReportRow.from_rest(row))
    return out


def round_half_away(value: float, places: int = 0) -> Union[int, float]:
    """Round half away from zero; returns int when places == 0"""
    exact = Decimal(repr(value))
    with localcontext() as ctx:
        # enough digits for the integer part plus the kept decimals
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        rounded = exact.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def to_number(raw: Any) -> Union[int, float]:
    """GA4 metric value to a number; missing or unparseable values become 0"""
    if raw is None or raw == "":
        return 0
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


def format_ga4_date(raw: Optional[str]) -> Optional[str]:
    """YYYYMMDD to YYYY-MM-DD; anything that is not an 8-character string passes through"""
    if not isinstance(raw, str) or len(raw) != 8:
        return raw
    return f"{raw[0:4]}-{raw[4:6]}-{raw[6:8]}"


def to_time_series(rows: Optional[Iterable[Any]]) -> List[TimeSeriesPoint]:
    """Rows of (date) x (activeUsers) to chart points, in the given order"""
    points = []
    for row in _rows(rows):
        date = format_ga4_date(row.dimension(0))
        if not isinstance(date, str):
            date = ""
        points.append(TimeSeriesPoint(date=date, activeUsers=int(to_number(row.metric(0)))))
    return points


def to_keyed_totals(rows: Optional[Iterable[Any]], key_index: ValueRef = 0,
                    metric_index: ValueRef = 0) -> Dict[str, Union[int, float]]:
    """Map each row's key dimension to its metric value.

    GA4 breakdowns return unique keys; when a key repeats the last row wins.
    """
    out: Dict[str, Union[int, float]] = {}
    for row in _rows(rows):
        key = row.dimension(key_index) or UNKNOWN_KEY
        out[key] = to_number(row.metric(metric_index))
    return out


def percent_change(current: Any, previous: Any) -> Optional[float]:
    """Period-over-period change in percent, one decimal.

    None when there is no meaningful baseline (previous absent or zero) or
    when either input is not a finite number.
    """
    if current is None or previous is None:
        return None
    try:
        current = float(current)
        previous = float(previous)
    except (TypeError, ValueError):
        return None
    if previous == 0 or not math.isfinite(previous) or not math.isfinite(current):
        return None
    change = (current - previous) / previous * 100
    if not math.isfinite(change):
        return None
    return round_half_away(change, 1)


def build_ranked_list(cur_rows: Optional[Iterable[Any]], prev_rows: Optional[Iterable[Any]],
                      key_index: ValueRef = 0, metric_index: ValueRef = 0,
                      key_field: str = "key", value_field: str = "value") -> List[RankedItem]:
    """Current-period breakdown with previous values and change, in current-row order"""
    previous = to_keyed_totals(prev_rows, key_index, metric_index)
    items = []
    for row in _rows(cur_rows):
        key = row.dimension(key_index) or UNKNOWN_KEY
        value = to_number(row.metric(metric_index))
        prev_value = previous.get(key, 0)
        items.append(RankedItem(
            key=key,
            value=value,
            previous=prev_value,
            change_pct=percent_change(value, prev_value),
            key_field=key_field,
            value_field=value_field,
        ))
    return items


def build_totals(row: Optional[Any], metrics: Sequence[str] = TOTALS_METRICS) -> Totals:
    """KPI totals from the single row of an activeUsers/newUsers/userEngagementDuration report"""
    rows = _rows([row]) if row is not None else []
    if not rows:
        return Totals()
    row = rows[0]

    def metric(position: int) -> Union[int, float]:
        ref: ValueRef = metrics[position] if row.metric_headers else position
        return to_number(row.metric(ref))

    active_users = int(metric(0))
    new_users = int(metric(1))
    engagement_duration = metric(2)
    avg_engagement = round_half_away(engagement_duration / active_users, 0) if active_users > 0 else 0
    return Totals(
        activeUsers=active_users,
        newUsers=new_users,
        avgEngagementTimeSec=avg_engagement,
    )
