"""HTTP surface of the gateway."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .errors import register_error_handlers

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from commagg_health.registry import HealthRegistry

    from .service import DedupGateway


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self, status_code: int) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=self.model_dump(mode="json", by_alias=True, exclude_none=True),
        )


class SubmissionResponse(_CamelModel):
    message_id: str
    status: str
    trace_id: str
    info: str | None = None


class MessageStatusResponse(_CamelModel):
    message_id: str
    status: str
    attempts: int
    last_error: str | None = None


def create_app(
    gateway: DedupGateway,
    *,
    health: HealthRegistry | None = None,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[None]] | None = None,
) -> FastAPI:
    """Build the gateway app around an already-wired ``DedupGateway``."""
    app = FastAPI(title="commagg gateway", lifespan=lifespan)
    register_error_handlers(app)
    router = APIRouter()

    @router.post("/messages")
    async def submit_message(payload: dict[str, Any] = Body(...)) -> JSONResponse:
        result = await gateway.submit(payload)
        response = SubmissionResponse(
            message_id=result.message_id,
            status=result.status.value,
            trace_id=result.trace_id,
            info=result.info,
        )
        return response.to_response(200 if result.duplicate else 202)

    @router.get("/messages/{message_id}")
    async def get_message(message_id: str) -> JSONResponse:
        record = await gateway.lookup(message_id)
        response = MessageStatusResponse(
            message_id=record.message_id,
            status=record.status.value,
            attempts=record.attempts,
            last_error=record.last_error,
        )
        return response.to_response(200)

    @router.get("/health")
    async def health_check() -> JSONResponse:
        if health is None:
            return JSONResponse(status_code=200, content={"status": "healthy"})
        report = await health.status()
        status_code = 200 if report["status"] == "healthy" else 503
        return JSONResponse(status_code=status_code, content=report)

    app.include_router(router)
    return app
