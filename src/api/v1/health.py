from fastapi import APIRouter

from schemas.api import ApiResponse


router = APIRouter()


@router.get("/health", response_model=ApiResponse[dict[str, str]])
def health_check() -> ApiResponse[dict[str, str]]:
    """Liveness probe for the service process."""
    return ApiResponse(
        success=True,
        data={"status": "healthy", "message": "PageLens API is running"},
        message="Health check successful",
    )
