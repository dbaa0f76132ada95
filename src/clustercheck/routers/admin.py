"""
Override router.

Lets an operator force the node out of (or into) rotation regardless of what
the database reports. These routes only change the override; the next poll
of "/" or "/master" picks it up.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from clustercheck.core.config import settings
from clustercheck.core.dependencies import get_override_store
from clustercheck.core.metrics import count_override_change
from clustercheck.core.overrides import Override, OverrideError, OverrideStore

logger = logging.getLogger(__name__)

router = APIRouter()

limiter = Limiter(key_func=get_remote_address)


def _admin_limit() -> str:
    return settings.ADMIN_RATE_LIMIT


def _apply(request: Request, overrides: OverrideStore, override: Override) -> PlainTextResponse:
    client = request.client.host if request.client else "-"
    try:
        overrides.set(override)
    except OverrideError as e:
        logger.error("%s %s", client, e)
        return PlainTextResponse(f"{e}\n", status_code=500)
    logger.warning("%s override set to %s", client, override.value)
    count_override_change(override.value)
    return PlainTextResponse(f"override set to {override.value}\n")


@router.api_route("/fail", methods=["GET", "POST"])
@limiter.limit(_admin_limit)
async def force_fail(request: Request, overrides: OverrideStore = Depends(get_override_store)):
    """Report unavailable until reset."""
    return _apply(request, overrides, Override.FORCE_FAIL)


@router.api_route("/up", methods=["GET", "POST"])
@limiter.limit(_admin_limit)
async def force_up(request: Request, overrides: OverrideStore = Depends(get_override_store)):
    """Report available until reset, whatever the database says."""
    return _apply(request, overrides, Override.FORCE_UP)


@router.api_route("/reset", methods=["GET", "POST"])
@limiter.limit(_admin_limit)
async def reset(request: Request, overrides: OverrideStore = Depends(get_override_store)):
    """Go back to database-driven checks."""
    return _apply(request, overrides, Override.NONE)


@router.get("/override")
async def current_override(overrides: OverrideStore = Depends(get_override_store)):
    return PlainTextResponse(overrides.current().value + "\n")
