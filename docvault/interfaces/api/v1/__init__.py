from fastapi import APIRouter

from .action import router as action_router
from .audit import router as audit_router
from .document import router as document_router
from .tag import router as tag_router
from .task import router as task_router

router = APIRouter(prefix="/v1")
router.include_router(document_router)
router.include_router(tag_router)
router.include_router(action_router)
router.include_router(task_router)
router.include_router(audit_router)


@router.get(
    "/health",
    summary="API Health Check",
    description="Simple health check endpoint for monitoring and container orchestration.",
    responses={
        200: {"description": "API is healthy and responding"},
    },
)
async def health_check():
    """Health check endpoint for Docker health checks."""
    return {"status": "healthy", "message": "DocVault API is running"}
