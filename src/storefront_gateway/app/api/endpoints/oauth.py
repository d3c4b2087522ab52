"""
Storefront Gateway - OAuth Redirect Endpoint
Receives the provider redirect at the end of a platform authorization flow.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from storefront_sync.app.schemas.models import OAuthCallbackResult
from storefront_sync.app.sync.manager import IntegrationManager

from ..deps import get_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


def public_result(result: OAuthCallbackResult) -> Dict[str, Any]:
    """Callback result without the issued tokens."""
    return result.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"credentials"})


@router.get("/oauth-callback")
async def oauth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    platform: Optional[str] = Query(None),
    manager: IntegrationManager = Depends(get_manager),
) -> JSONResponse:
    """
    Complete a platform connection.

    Returns:
        The connection outcome; failed attempts are answered with 400
    """
    result = await manager.complete_connect({
        "code": code,
        "state": state,
        "error": error,
        "platform": platform,
    })

    if not result.success:
        logger.warning(f"OAuth callback rejected for {result.platform_id or 'unknown platform'}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=public_result(result))

    return JSONResponse(status_code=status.HTTP_200_OK, content=public_result(result))
