"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    description="Request, booking, delivery, payment and email counters in Prometheus text format",
    response_class=Response,
)
async def metrics() -> Response:
    """Expose the service registry, not the process-wide default one."""
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
