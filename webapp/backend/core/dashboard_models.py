"""
Request and response models for the GA4 dashboard
"""
import re
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

_DAYS_AGO = re.compile(r"^(\d+)daysAgo$")


def resolve_date_token(token: str, today: date) -> date:
    """Resolve a GA4 date token ('today', 'yesterday', 'NdaysAgo', 'YYYY-MM-DD')"""
    if token == "today":
        return today
    if token == "yesterday":
        return today - timedelta(days=1)
    match = _DAYS_AGO.match(token)
    if match:
        return today - timedelta(days=int(match.group(1)))
    return date.fromisoformat(token)


class DateRange(BaseModel):
    """Inclusive calendar window expressed in GA4 date tokens"""
    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    def resolve(self, today: Optional[date] = None) -> Tuple[date, date]:
        today = today or date.today()
        start = resolve_date_token(self.start, today)
        end = resolve_date_token(self.end, today)
        if end < start:
            raise ValueError(f"Date range ends before it starts: {self.start}..{self.end}")
        return start, end

    def label(self, today: Optional[date] = None) -> str:
        start, end = self.resolve(today)
        return f"{start.isoformat()} to {end.isoformat()}"


# GA Home style: last 7 complete days vs the 7 days before
CURRENT_RANGE = DateRange(start="7daysAgo", end="yesterday")
PREVIOUS_RANGE = DateRange(start="14daysAgo", end="8daysAgo")


class ReportQuery(BaseModel):
    """One GA4 runReport request"""
    model_config = ConfigDict(frozen=True)

    date_range: DateRange
    dimensions: List[str] = Field(default_factory=list)
    metrics: List[str]
    order_by: Optional[str] = None  # metric name, always descending
    limit: Optional[int] = None


class DelegatedCredential(BaseModel):
    """Access token obtained through the Google OAuth flow"""
    model_config = ConfigDict(frozen=True)

    access_token: str
    scopes: List[str] = Field(default_factory=list)


class TimeSeriesPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    activeUsers: int = 0


class Totals(BaseModel):
    model_config = ConfigDict(frozen=True)

    activeUsers: int = 0
    newUsers: int = 0
    avgEngagementTimeSec: int = 0


class TopPagesMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    rangeLabel: str


class ChannelSessions(BaseModel):
    """Sessions for one default channel group, current vs previous period"""
    model_config = ConfigDict(frozen=True)

    channel: str
    sessions: Union[int, float] = 0
    prevSessions: Union[int, float] = 0
    changePct: Optional[float] = None


class TopPage(BaseModel):
    """Views for one page title, current vs previous period"""
    model_config = ConfigDict(frozen=True)

    page: str
    views: Union[int, float] = 0
    prevViews: Union[int, float] = 0
    changePct: Optional[float] = None


class DashboardPayload(BaseModel):
    """Everything the dashboard page renders, assembled once per request"""
    model_config = ConfigDict(frozen=True)

    query: Dict[str, str]
    totals: Totals
    series: List[TimeSeriesPoint]
    prevSeries: List[TimeSeriesPoint]
    channelSessions: List[ChannelSessions]
    topPages: List[TopPage]
    topPagesMeta: TopPagesMeta
