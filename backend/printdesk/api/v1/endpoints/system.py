# printdesk/api/v1/endpoints/system.py
from fastapi import APIRouter
from pydantic import BaseModel
import os

from printdesk.api.deps import StoreDep
from printdesk.core.config import settings

router = APIRouter()


class StatusResponse(BaseModel):
    project_name: str
    version: str | None
    build_timestamp: str | None
    status: str = "operational"
    database_status: str


APP_VERSION = os.getenv("APP_VERSION", "N/A")
BUILD_TIMESTAMP = os.getenv("BUILD_TIMESTAMP", "N/A")


@router.get("/health", summary="Basic Health Check")
async def health_check():
    return {"status": "ok"}


@router.get("/status", response_model=StatusResponse, summary="Detailed Service Status")
async def get_system_status(store: StoreDep):
    db_ok = await store.ping()
    return StatusResponse(
        project_name=settings.APP_NAME,
        version=APP_VERSION,
        build_timestamp=BUILD_TIMESTAMP,
        status="operational" if db_ok else "degraded",
        database_status="connected" if db_ok else "error",
    )
