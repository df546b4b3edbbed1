"""Prometheus scrape endpoint.

Serves every registered collector in text exposition format: the HTTP
metrics from MetricsMiddleware plus the progress counters
(lesson_events_total, test_attempts_total, logins_total, ...).
Keep it off the public ingress; label values reveal route templates
and traffic mix.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
