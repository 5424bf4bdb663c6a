#!/usr/bin/env python3
"""
Tests for the dashboard HTTP API: success, 401, upstream and configuration failures.
"""
import unittest

from fastapi.testclient import TestClient

from webapp.backend.app import create_app
from webapp.backend.core.config import Settings
from webapp.backend.core.dashboard_models import DelegatedCredential
from webapp.backend.core.errors import MalformedReportError, UpstreamReportError
from webapp.backend.core.report_transformer import ReportRow
from webapp.backend.dependencies import get_delegated_credential


class StubReportSource:
    """Returns the same small channel report for every query"""

    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    async def run_report(self, property_id, credential, query):
        self.calls += 1
        if self.error:
            raise self.error
        if query.dimensions == ["sessionDefaultChannelGroup"]:
            value = "120" if query.date_range.start == "7daysAgo" else "100"
            return [ReportRow.from_values(["Organic Search"], [value],
                                          dimension_headers=["sessionDefaultChannelGroup"],
                                          metric_headers=["sessions"])]
        if query.dimensions == ["date"]:
            return [ReportRow.from_values(["20240101"], ["10"], ["date"], ["activeUsers"])]
        return []

    async def get_metadata(self, property_id, credential):
        if self.error:
            raise self.error
        return {"name": f"properties/{property_id}/metadata", "dimensions": [{"apiName": "date"}]}


def make_client(property_id="123456", report_source=None, authenticated=True):
    settings = Settings(ga4_property_id=property_id, session_secret="test-secret")
    app = create_app(settings, report_source=report_source or StubReportSource())
    if authenticated:
        app.dependency_overrides[get_delegated_credential] = lambda: DelegatedCredential(access_token="tok")
    return TestClient(app)


class TestDashboardEndpoint(unittest.TestCase):

    def test_dashboard_payload(self):
        response = make_client().get("/api/ga4?source=all")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["query"], {"source": "all"})
        self.assertEqual(data["series"], [{"date": "2024-01-01", "activeUsers": 10}])
        self.assertEqual(data["channelSessions"], [
            {"channel": "Organic Search", "sessions": 120, "prevSessions": 100, "changePct": 20.0}
        ])
        self.assertEqual(data["topPages"], [])
        self.assertEqual(data["totals"], {"activeUsers": 0, "newUsers": 0, "avgEngagementTimeSec": 0})
        self.assertIn(" to ", data["topPagesMeta"]["rangeLabel"])

    def test_source_defaults_to_all(self):
        data = make_client().get("/api/ga4").json()
        self.assertEqual(data["query"], {"source": "all"})

    def test_unauthenticated(self):
        source = StubReportSource()
        response = make_client(report_source=source, authenticated=False).get("/api/ga4")
        self.assertEqual(response.status_code, 401)
        self.assertIn("/auth/google", response.json()["error"])
        self.assertEqual(source.calls, 0)

    def test_upstream_failure(self):
        source = StubReportSource(error=UpstreamReportError(403, "User does not have sufficient permissions"))
        response = make_client(report_source=source).get("/api/ga4")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "GA4 REST HTTP 403: User does not have sufficient permissions"})

    def test_malformed_upstream_response(self):
        source = StubReportSource(error=MalformedReportError("Unexpected GA4 report response"))
        response = make_client(report_source=source).get("/api/ga4")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Unexpected GA4 report response")

    def test_unexpected_failure(self):
        source = StubReportSource(error=RuntimeError("connection reset"))
        response = make_client(report_source=source).get("/api/ga4")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "connection reset"})

    def test_missing_property_id(self):
        source = StubReportSource()
        response = make_client(property_id="", report_source=source).get("/api/ga4")
        self.assertEqual(response.status_code, 500)
        self.assertIn("GA4_PROPERTY_ID", response.json()["error"])
        self.assertEqual(source.calls, 0)


class TestMetadataEndpoint(unittest.TestCase):

    def test_metadata(self):
        response = make_client().get("/api/ga4/metadata")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "properties/123456/metadata")

    def test_metadata_requires_login(self):
        response = make_client(authenticated=False).get("/api/ga4/metadata")
        self.assertEqual(response.status_code, 401)

    def test_metadata_upstream_failure(self):
        source = StubReportSource(error=UpstreamReportError(404, "Property not found"))
        response = make_client(report_source=source).get("/api/ga4/metadata")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "GA4 REST HTTP 404: Property not found"})


class TestSiteRoutes(unittest.TestCase):

    def test_favicon(self):
        self.assertEqual(make_client().get("/favicon.ico").status_code, 204)

    def test_health(self):
        data = make_client().get("/health").json()
        self.assertEqual(data["status"], "healthy")

    def test_dashboard_page(self):
        response = make_client().get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("GA4", response.text)


if __name__ == "__main__":
    unittest.main()
