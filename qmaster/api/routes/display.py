from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from qmaster.dependencies.queue import QueueServiceDep

from ..schemas import DisplayBoardResponse
from ..streaming import DisplayStreamer

router = APIRouter(prefix="/display", tags=["display"])


@router.get("", response_model=DisplayBoardResponse, summary="Now serving board")
async def display_board(service: QueueServiceDep) -> DisplayBoardResponse:
    return DisplayBoardResponse.model_validate(service.display_board())


@router.get("/stream", summary="Now serving board as server-sent events")
async def display_stream(
    request: Request,
    service: QueueServiceDep,
    limit: int | None = Query(default=None, ge=1),
) -> StreamingResponse:
    settings = getattr(request.app.state, "settings", None)
    interval = settings.display_stream_interval if settings is not None else 1.0
    streamer = DisplayStreamer(service, interval=interval)
    return StreamingResponse(streamer.iter_sse(limit=limit), media_type="text/event-stream")
