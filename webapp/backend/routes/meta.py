"""
Metadata route: dimensions and metrics available on the configured property
"""
from fastapi import APIRouter, Depends
import logging
from typing import Any, Dict

from ..core.config import Settings, require_property_id
from ..core.dashboard_models import DelegatedCredential
from ..core.errors import DashboardError
from ..dependencies import get_delegated_credential, get_report_source, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ga4/metadata")
async def get_metadata(credential: DelegatedCredential = Depends(get_delegated_credential),
                       settings: Settings = Depends(get_settings),
                       report_source=Depends(get_report_source)) -> Dict[str, Any]:
    """GA4 metadata for the property, passed through as returned by the API"""
    property_id = require_property_id(settings.ga4_property_id)
    try:
        return await report_source.get_metadata(property_id, credential)
    except DashboardError:
        raise
    except Exception as e:
        logger.error(f"Error getting metadata: {e}", exc_info=True)
        raise DashboardError(str(e) or "GA4 metadata request failed") from e
