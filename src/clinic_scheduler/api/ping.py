"""Ping API endpoint."""

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter(tags=["System"])


class PingResponse(BaseModel):
    """Ping response model."""

    ping: str = "pong"


@router.get("/ping", response_model=PingResponse)
async def ping() -> PingResponse:
    """
    Liveness probe returning a pong response.

    This endpoint is used for basic connectivity testing and does not require
    any backing service or an authenticated session.

    Returns:
        PingResponse: A simple response with {"ping": "pong"}
    """
    return PingResponse()
