"""
GA4 report source: runs Data API reports with a delegated OAuth access token
"""
import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List

from google.analytics.data_v1beta import BetaAnalyticsDataClient
from google.analytics.data_v1beta.types import DateRange, Dimension, Metric, OrderBy, RunReportRequest
from google.api_core.exceptions import GoogleAPICallError
from google.oauth2.credentials import Credentials

from ..core.config import ANALYTICS_SCOPE
from ..core.dashboard_models import DelegatedCredential, ReportQuery
from ..core.errors import MalformedReportError, UpstreamReportError
from ..core.report_transformer import ReportRow

logger = logging.getLogger(__name__)


def build_run_report_request(property_id: str, query: ReportQuery) -> RunReportRequest:
    """Translate a ReportQuery into the Data API request message"""
    request = RunReportRequest(
        property=f"properties/{property_id}",
        date_ranges=[DateRange(start_date=query.date_range.start, end_date=query.date_range.end)],
        dimensions=[Dimension(name=name) for name in query.dimensions],
        metrics=[Metric(name=name) for name in query.metrics],
    )
    if query.order_by:
        request.order_bys = [
            OrderBy(metric=OrderBy.MetricOrderBy(metric_name=query.order_by), desc=True)
        ]
    if query.limit:
        request.limit = query.limit
    return request


def response_to_rows(response) -> List[ReportRow]:
    """Convert a RunReportResponse to ReportRows carrying their header names"""
    try:
        dimension_headers = tuple(header.name for header in response.dimension_headers)
        metric_headers = tuple(header.name for header in response.metric_headers)
        rows = []
        for row in response.rows:
            rows.append(ReportRow(
                dimension_values=tuple(value.value for value in row.dimension_values),
                metric_values=tuple(value.value for value in row.metric_values),
                dimension_headers=dimension_headers,
                metric_headers=metric_headers,
            ))
        return rows
    except (AttributeError, TypeError) as e:
        raise MalformedReportError(f"Unexpected GA4 report response: {e}") from e


class GA4ReportSource:
    """Data provider for Google Analytics 4 reports"""

    def __init__(self, client_factory: Callable[..., Any] = BetaAnalyticsDataClient):
        self._client_factory = client_factory

    def _client(self, credential: DelegatedCredential):
        credentials = Credentials(
            token=credential.access_token,
            scopes=list(credential.scopes) or [ANALYTICS_SCOPE],
        )
        return self._client_factory(credentials=credentials)

    def _run_report_sync(self, property_id: str, credential: DelegatedCredential,
                         query: ReportQuery) -> List[ReportRow]:
        request = build_run_report_request(property_id, query)
        logger.info(f"GA4 request properties/{property_id}: dimensions={query.dimensions}, "
                    f"metrics={query.metrics}, range={query.date_range.start}..{query.date_range.end}")
        try:
            response = self._client(credential).run_report(request)
        except GoogleAPICallError as e:
            status = int(e.code) if e.code is not None else "unknown"
            logger.error(f"GA4 REST error for properties/{property_id}: status={status}, message={e.message}")
            raise UpstreamReportError(status, e.message or str(e)) from e
        rows = response_to_rows(response)
        logger.debug(f"GA4 response properties/{property_id}: {len(rows)} rows")
        return rows

    async def run_report(self, property_id: str, credential: DelegatedCredential,
                         query: ReportQuery) -> List[ReportRow]:
        """Run one report; the blocking client call runs in the default executor"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self._run_report_sync, property_id, credential, query)
        )

    def _get_metadata_sync(self, property_id: str, credential: DelegatedCredential) -> Dict[str, Any]:
        name = f"properties/{property_id}/metadata"
        logger.info(f"GA4 metadata request {name}")
        try:
            response = self._client(credential).get_metadata(name=name)
        except GoogleAPICallError as e:
            status = int(e.code) if e.code is not None else "unknown"
            logger.error(f"GA4 metadata error for {name}: status={status}, message={e.message}")
            raise UpstreamReportError(status, e.message or str(e)) from e
        try:
            return type(response).to_dict(response)
        except (AttributeError, TypeError) as e:
            raise MalformedReportError(f"Unexpected GA4 metadata response: {e}") from e

    async def get_metadata(self, property_id: str, credential: DelegatedCredential) -> Dict[str, Any]:
        """Dimensions and metrics available on the property"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self._get_metadata_sync, property_id, credential)
        )
