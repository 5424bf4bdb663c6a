"""
FastAPI dependencies shared by the routers
"""
from fastapi import Depends, Request

from .core.config import Settings
from .core.dashboard_models import DelegatedCredential
from .core.dashboard_service import DashboardService
from .core.errors import NotAuthenticatedError

# Session key holding {"access_token": ..., "scopes": [...]}
SESSION_AUTH_KEY = "ga4_auth"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_report_source(request: Request):
    return request.app.state.report_source


def get_delegated_credential(request: Request) -> DelegatedCredential:
    """The caller's GA4 access token, or 401 when the session has none"""
    auth = request.session.get(SESSION_AUTH_KEY) or {}
    token = auth.get("access_token")
    if not token:
        raise NotAuthenticatedError()
    return DelegatedCredential(access_token=token, scopes=auth.get("scopes") or [])


def get_dashboard_service(settings: Settings = Depends(get_settings),
                          report_source=Depends(get_report_source)) -> DashboardService:
    return DashboardService(report_source, settings.ga4_property_id)
