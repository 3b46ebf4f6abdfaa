# vaultdrop/api/deps.py

import logging

from fastapi import HTTPException, Request

from vaultdrop.core.errors import RateLimitedError, ValidationError
from vaultdrop.core.message import MessageLifecycle
from vaultdrop.core.rate_limiter import client_identity

logger = logging.getLogger(__name__)


def get_lifecycle(request: Request) -> MessageLifecycle:
    return request.app.state.lifecycle


def get_store(request: Request):
    return request.app.state.store


def admit_client(request: Request) -> str:
    """
    Route dependency for create and consume: derive the client identity
    and spend one token from its bucket.
    """
    try:
        client_id = client_identity(request)
    except ValidationError as e:
        logger.warning("Rejected request without a usable client address: %s", e)
        raise HTTPException(status_code=400, detail="Could not identify client")

    try:
        request.app.state.rate_limiter.require(client_id)
    except RateLimitedError as e:
        logger.info("%s", e)
        raise HTTPException(status_code=429, detail="Too Many Requests")

    return client_id
