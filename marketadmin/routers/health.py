"""Health check endpoint for the platform's service monitor."""

from fastapi import APIRouter
from pydantic import BaseModel

from marketadmin.database import check_db_connection
from marketadmin.settings import settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    environment: str
    database: str
    version: str = "1.0.0"


@router.get("/health", response_model=HealthResponse, include_in_schema=False)
def health_check() -> HealthResponse:
    """Returns "degraded" rather than failing when the database is unreachable."""
    db_ok = check_db_connection()
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        environment=settings.environment,
        database="connected" if db_ok else "unreachable",
    )
