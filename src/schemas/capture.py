"""Response bodies of the ``/fetch-web`` endpoint."""

from pydantic import BaseModel, Field


class CaptureResponse(BaseModel):
    content: str = Field(..., description="Self-contained sanitized HTML document")
    url: str


class CaptureErrorResponse(BaseModel):
    error: bool = True
    content: str = Field(..., description="Human-readable error (Markdown)")
