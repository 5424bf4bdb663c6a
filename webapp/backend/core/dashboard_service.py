"""
Dashboard data service: fans out the GA4 report queries for one request and
assembles the DashboardPayload from the transformed results.
"""
import asyncio
import logging
from datetime import date
from typing import List, Optional

from .config import require_property_id
from .dashboard_models import (
    CURRENT_RANGE,
    PREVIOUS_RANGE,
    ChannelSessions,
    DashboardPayload,
    DateRange,
    DelegatedCredential,
    ReportQuery,
    TopPage,
    TopPagesMeta,
)
from .report_transformer import ReportRow, build_ranked_list, build_totals, to_time_series

logger = logging.getLogger(__name__)

CHANNEL_DIMENSION = "sessionDefaultChannelGroup"
PAGE_DIMENSION = "pageTitle"


def series_query(date_range: DateRange) -> ReportQuery:
    return ReportQuery(date_range=date_range, dimensions=["date"], metrics=["activeUsers"])


def totals_query(date_range: DateRange) -> ReportQuery:
    return ReportQuery(
        date_range=date_range,
        metrics=["activeUsers", "newUsers", "userEngagementDuration"],
    )


def channel_query(date_range: DateRange, limit: int) -> ReportQuery:
    return ReportQuery(
        date_range=date_range,
        dimensions=[CHANNEL_DIMENSION],
        metrics=["sessions"],
        order_by="sessions",
        limit=limit,
    )


def pages_query(date_range: DateRange, limit: int) -> ReportQuery:
    return ReportQuery(
        date_range=date_range,
        dimensions=[PAGE_DIMENSION],
        metrics=["screenPageViews"],
        order_by="screenPageViews",
        limit=limit,
    )


class DashboardService:
    """Builds the dashboard for one authenticated caller.

    The report source only needs an async ``run_report(property_id,
    credential, query)`` returning a list of ReportRow. Queries are
    independent and run concurrently; the first failure aborts the whole
    dashboard, there is no partial result.
    """

    def __init__(self, report_source, property_id, current_range: DateRange = CURRENT_RANGE,
                 previous_range: DateRange = PREVIOUS_RANGE):
        # Fails before any network call when the property is not configured
        self.property_id = require_property_id(property_id)
        self.report_source = report_source
        self.current_range = current_range
        self.previous_range = previous_range

    async def _run(self, credential: DelegatedCredential, query: ReportQuery) -> List[ReportRow]:
        return await self.report_source.run_report(self.property_id, credential, query)

    async def build_dashboard(self, credential: DelegatedCredential, source: str = "all",
                              today: Optional[date] = None, request_id: str = "") -> DashboardPayload:
        log_prefix = f"[{request_id}]" if request_id else ""
        cur, prev = self.current_range, self.previous_range
        logger.info(f"{log_prefix} Building dashboard for properties/{self.property_id} "
                    f"(current {cur.start}..{cur.end}, previous {prev.start}..{prev.end})")

        (series_rows, prev_series_rows, totals_rows,
         channel_rows, prev_channel_rows,
         page_rows, prev_page_rows) = await asyncio.gather(
            self._run(credential, series_query(cur)),
            self._run(credential, series_query(prev)),
            self._run(credential, totals_query(cur)),
            self._run(credential, channel_query(cur, limit=7)),
            self._run(credential, channel_query(prev, limit=50)),
            self._run(credential, pages_query(cur, limit=5)),
            self._run(credential, pages_query(prev, limit=50)),
        )

        channel_sessions = build_ranked_list(
            channel_rows, prev_channel_rows, CHANNEL_DIMENSION, "sessions",
            key_field="channel", value_field="sessions",
        )
        top_pages = build_ranked_list(
            page_rows, prev_page_rows, PAGE_DIMENSION, "screenPageViews",
            key_field="page", value_field="views",
        )

        payload = DashboardPayload(
            query={"source": source},
            totals=build_totals(totals_rows[0] if totals_rows else None),
            series=to_time_series(series_rows),
            prevSeries=to_time_series(prev_series_rows),
            channelSessions=[ChannelSessions(**item.to_dict()) for item in channel_sessions],
            topPages=[TopPage(**item.to_dict()) for item in top_pages],
            topPagesMeta=TopPagesMeta(rangeLabel=cur.label(today)),
        )
        logger.info(f"{log_prefix} Dashboard assembled: {len(payload.series)} days, "
                    f"{len(payload.channelSessions)} channels, {len(payload.topPages)} pages")
        return payload
