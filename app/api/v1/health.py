"""Health check endpoint with database connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.common import ApiResponse, success
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=ApiResponse)
def get_health(db: Annotated[Session, Depends(get_db)]) -> ApiResponse:
    """Service status and database connectivity, for load balancers and monitoring."""
    db_status = "connected" if check_db_connected(db) else "disconnected"
    return success(
        data=HealthResponse(
            environment=settings.APP_ENV,
            database=db_status,
        )
    )
