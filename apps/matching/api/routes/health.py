"""Health check route."""

from fastapi import APIRouter

from matching.models.schemas import HealthResponse
from matching.services.connection_monitor import ConnectionState, get_connection_monitor

router = APIRouter()

_STATUS_BY_STATE = {
    ConnectionState.CONNECTED: ("healthy", "API is running"),
    ConnectionState.UNKNOWN: ("healthy", "API is running; database not yet probed"),
    ConnectionState.RECONNECTING: ("degraded", "Database connection lost; reconnecting"),
    ConnectionState.FAILED: ("unavailable", "Database unreachable; reconnection abandoned"),
}


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Service status and database connection state
    """
    monitor = get_connection_monitor()
    status, message = _STATUS_BY_STATE[monitor.state]
    return {"status": status, "message": message, "database": monitor.status()}
