# /bealigned/utils/dependencies.py

import secrets
import structlog
from fastapi import Request, HTTPException

from bealigned.config.settings import settings
from bealigned.utils.request_utils import get_remote_address

log = structlog.get_logger(__name__)


async def verify_metrics_access(request: Request):
    """Requires X-API-KEY when settings.api_key is set; open otherwise."""
    if settings.api_key:
        provided_key = request.headers.get("X-API-KEY")
        if not (provided_key and secrets.compare_digest(provided_key, settings.api_key)):
            log.warning("metrics_access_denied", client=get_remote_address(request))
            raise HTTPException(status_code=403, detail="Invalid or missing API key")
