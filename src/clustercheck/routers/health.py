"""
Health check router.

The paths a load balancer polls. "/" evaluates with the global policy,
"/master" forces master-only routing for that request. Both answer with a
plain-text reason: 200 available, 503 unavailable. Query failures are turned
into 500 by the QueryFailure handler in main.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from clustercheck.core.checker import ClusterChecker
from clustercheck.core.config import settings
from clustercheck.core.dependencies import get_checker, get_override_store
from clustercheck.core.metrics import count_check
from clustercheck.core.overrides import OverrideStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def _check(
    request: Request,
    checker: ClusterChecker,
    overrides: OverrideStore,
    route: str,
    require_master: Optional[bool] = None,
) -> PlainTextResponse:
    verdict = await checker.check(overrides.current(), require_master=require_master)
    client = request.client.host if request.client else "-"
    if verdict.available:
        if settings.DEBUG:
            logger.info("%s %s", client, verdict.reason)
    else:
        logger.warning("%s %s", client, verdict.reason)
    count_check(route, verdict.state, verdict.http_status)
    return PlainTextResponse(verdict.reason + "\n", status_code=verdict.http_status)


@router.api_route("/", methods=["GET", "HEAD"])
async def cluster_check(
    request: Request,
    checker: ClusterChecker = Depends(get_checker),
    overrides: OverrideStore = Depends(get_override_store),
):
    """Availability under the global policy."""
    return await _check(request, checker, overrides, "/")


@router.api_route("/master", methods=["GET", "HEAD"])
async def master_check(
    request: Request,
    checker: ClusterChecker = Depends(get_checker),
    overrides: OverrideStore = Depends(get_override_store),
):
    """Availability for write traffic: only the node at wsrep_local_index 0."""
    return await _check(request, checker, overrides, "/master", require_master=True)
