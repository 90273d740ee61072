"""HTTP surface for the collaboration API.

  POST /api/collaboration                    -- action dispatch (start, get, ...)
  GET  /api/collaboration?action=health      -- service health
  GET  /api/collaboration?action=active_discussions
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from boardroom.api import handle_get, handle_post
from boardroom.service import CollaborationService

logger = logging.getLogger(__name__)

router = APIRouter()


def _service(request: Request) -> CollaborationService:
    return request.app.state.service


@router.post("/api/collaboration")
async def collaboration_post(request: Request) -> JSONResponse:
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse({"success": False, "error": "Request body must be valid JSON"}, status_code=400)
    try:
        status_code, body = await handle_post(_service(request), payload)
    except Exception as exc:
        logger.exception("Collaboration API error")
        return JSONResponse(
            {"error": "Internal server error", "details": str(exc)},
            status_code=500,
        )
    return JSONResponse(body, status_code=status_code)


@router.get("/api/collaboration")
async def collaboration_get(request: Request, action: str | None = None) -> JSONResponse:
    try:
        status_code, body = handle_get(_service(request), action)
    except Exception as exc:
        logger.exception("Collaboration API error")
        return JSONResponse(
            {"error": "Internal server error", "details": str(exc)},
            status_code=500,
        )
    return JSONResponse(body, status_code=status_code)


def create_app(service: CollaborationService) -> FastAPI:
    """Build the FastAPI app around an existing service instance."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await service.aclose()

    app = FastAPI(title="Boardroom Council", lifespan=lifespan)
    app.state.service = service
    app.include_router(router)
    return app
