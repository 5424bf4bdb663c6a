"""
Error types surfaced by the dashboard API as {"error": message} responses
"""
from typing import Optional


class DashboardError(Exception):
    """Base error for a failed dashboard request"""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotAuthenticatedError(DashboardError):
    """Caller has no usable delegated credential in the session"""
    status_code = 401

    def __init__(self, message: str = "Not logged in. Visit /auth/google first."):
        super().__init__(message)


class ConfigurationError(DashboardError):
    """Required configuration is missing or invalid"""


class UpstreamReportError(DashboardError):
    """GA4 answered a report request with a non-success status"""

    def __init__(self, upstream_status, detail: str):
        super().__init__(f"GA4 REST HTTP {upstream_status}: {detail}")
        self.upstream_status = upstream_status
        self.detail = detail


class MalformedReportError(DashboardError):
    """GA4 response could not be read as a report"""
