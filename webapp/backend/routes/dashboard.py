"""
Dashboard data route
"""
import logging
import time
import uuid

from fastapi import APIRouter, Depends

from ..core.dashboard_models import DashboardPayload, DelegatedCredential
from ..core.dashboard_service import DashboardService
from ..core.errors import DashboardError
from ..dependencies import get_dashboard_service, get_delegated_credential

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ga4", response_model=DashboardPayload)
async def get_dashboard(source: str = "all",
                        credential: DelegatedCredential = Depends(get_delegated_credential),
                        service: DashboardService = Depends(get_dashboard_service)):
    """KPIs, daily active users and channel/page breakdowns, last 7 days vs the 7 before"""
    request_id = uuid.uuid4().hex[:8]
    start_time = time.time()
    logger.info(f"[{request_id}] Dashboard request (source={source})")
    try:
        payload = await service.build_dashboard(credential, source=source, request_id=request_id)
    except DashboardError as e:
        logger.error(f"[{request_id}] Dashboard failed: {e.message}")
        raise
    except Exception as e:
        logger.error(f"[{request_id}] GA4 ERROR: {e}", exc_info=True)
        raise DashboardError(str(e) or "GA4 request failed") from e

    duration = (time.time() - start_time) * 1000
    logger.info(f"[{request_id}] Dashboard completed in {duration:.1f}ms")
    return payload
