"""Process-wide workspace dependency.

The service holds exactly one workspace per process. Tests replace it through
``app.dependency_overrides[get_workspace]``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from core.config import get_settings
from services.capture.pipeline import CaptureService
from services.workspace import Workspace


@lru_cache
def get_workspace() -> Workspace:
    return Workspace.from_settings(get_settings())


def get_capture_service(
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> CaptureService:
    return workspace.capture_service


WorkspaceDep = Annotated[Workspace, Depends(get_workspace)]
CaptureServiceDep = Annotated[CaptureService, Depends(get_capture_service)]
