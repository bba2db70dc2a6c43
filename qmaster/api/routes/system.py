from fastapi import APIRouter

from qmaster.dependencies.auth import AdminUser
from qmaster.dependencies.queue import QueueServiceDep
from qmaster.queue.errors import QueueError

from ..errors import to_http_exception

router = APIRouter(prefix="/system", tags=["system"])


@router.post("/reset", summary="Restore factory defaults")
async def reset(service: QueueServiceDep, user: AdminUser) -> dict[str, str]:
    try:
        await service.reset(user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return {"status": "reset"}
