from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from qmaster.insights import GeminiClient
from qmaster.queue.service import QueueService


async def get_queue_service(request: Request) -> QueueService:
    service = getattr(request.app.state, "queue_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Queue service is not available")
    return service


async def get_gemini_client(request: Request) -> GeminiClient:
    """Return the configured Gemini client; an unconfigured one degrades to fallbacks."""

    client = getattr(request.app.state, "gemini_client", None)
    if client is None:
        return GeminiClient(api_key=None)
    return client


QueueServiceDep = Annotated[QueueService, Depends(get_queue_service)]
