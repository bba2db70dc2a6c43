from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from qmaster.dependencies.queue import QueueServiceDep
from qmaster.metrics import PrometheusExporter

router = APIRouter(prefix="/metrics", tags=["health"])


@router.get("", response_class=PlainTextResponse, summary="Prometheus metrics")
async def metrics(service: QueueServiceDep) -> str:
    return PrometheusExporter(service.metrics).export()
