"""Page capture endpoint.

Responses use the plain ``{content, url}`` / ``{error, content}`` bodies
rather than the ``ApiResponse`` envelope; ``/fetch-web`` clients read them
directly.
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from core.exceptions import InputValidationError
from dependencies.workspace import CaptureServiceDep
from schemas.capture import CaptureErrorResponse, CaptureResponse


router = APIRouter(tags=["capture"])


@router.get(
    "/fetch-web",
    response_model=CaptureResponse,
    responses={
        400: {"model": CaptureErrorResponse, "description": "Missing or invalid URL"},
        500: {"model": CaptureErrorResponse, "description": "Capture failed"},
    },
)
async def fetch_web(
    capture_service: CaptureServiceDep,
    url: str | None = Query(default=None, max_length=2048),
) -> CaptureResponse | JSONResponse:
    """Capture a page and return it as a sanitized, self-contained document."""
    try:
        result = await capture_service.capture(url)
    except InputValidationError as e:
        return JSONResponse(
            status_code=400, content=CaptureErrorResponse(content=str(e)).model_dump()
        )

    if not result.ok:
        return JSONResponse(
            status_code=result.status_code,
            content=CaptureErrorResponse(content=result.document.raw_content).model_dump(),
        )
    return CaptureResponse(content=result.document.raw_content, url=result.url)
