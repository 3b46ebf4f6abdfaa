import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from vaultdrop.api.deps import get_store
from vaultdrop.core.errors import BackendUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ping", response_class=PlainTextResponse)
def ping(store=Depends(get_store)):
    """Liveness: pong only if the database answers."""
    try:
        store.health_check()
    except BackendUnavailableError as e:
        logger.error("Health check failed: %s", e)
        return PlainTextResponse("database unavailable", status_code=500)
    return PlainTextResponse("pong")
