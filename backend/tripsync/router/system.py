from fastapi import APIRouter

from tripsync.core.config import APP_NAME, APP_VERSION
from tripsync.models.common import APIResponse

router = APIRouter(tags=["System"])


@router.get("/", response_model=APIResponse, response_model_exclude_none=True)
def root():
    return APIResponse(data={"msg": f"{APP_NAME} {APP_VERSION}. See /docs for the API."})


@router.get("/health", response_model=APIResponse, response_model_exclude_none=True)
def health_check():
    return APIResponse(data={"status": "healthy", "service": "tripsync-server"})
