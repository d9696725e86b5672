"""Operations endpoints providing health checks, status counts, and metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.api.security_deps import ChatRouterDep, require_metrics_access
from app.domain.chat.schemas import StatusResponse
from app.domain.chat.service import ChatRouter
from app.obs import health


router = APIRouter(prefix="", tags=["ops"])


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return await health.liveness()


@router.get("/api/health", response_model=StatusResponse)
async def chat_status(chat_router: ChatRouter = ChatRouterDep) -> StatusResponse:
	return await health.chat_status(chat_router)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
