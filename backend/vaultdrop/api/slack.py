# vaultdrop/api/slack.py

import logging
import uuid

from fastapi import APIRouter, Depends, Form, HTTPException, Request

from vaultdrop.api.deps import admit_client, get_lifecycle
from vaultdrop.core.crypto import build_share_url, encrypt_message, generate_link_key
from vaultdrop.core.errors import BackendUnavailableError, ConflictError
from vaultdrop.core.message import Message, MessageLifecycle

logger = logging.getLogger(__name__)

router = APIRouter()

USAGE_HINT = "Usage: /vaultdrop <your secret message>"


@router.post("/slack-write")
def slack_write(
    request: Request,
    text: str = Form(default=""),
    client_id: str = Depends(admit_client),
    lifecycle: MessageLifecycle = Depends(get_lifecycle),
):
    """
    Slash command: encrypt the command text under a one-time key, store
    the ciphertext and answer with a link only the invoking user sees.
    """
    plaintext = text.strip()
    if not plaintext:
        return {"response_type": "ephemeral", "text": USAGE_HINT}

    handle = str(uuid.uuid4())
    key = generate_link_key()
    message = Message(handle=handle, payload=encrypt_message(key, plaintext))

    try:
        lifecycle.create(message)
    except (ConflictError, BackendUnavailableError):
        logger.exception("Could not store chat command message for %s", client_id)
        raise HTTPException(status_code=500, detail="We're sorry, there was an error!")

    base_url = request.app.state.settings.base_url
    return {"response_type": "ephemeral", "text": build_share_url(base_url, handle, key)}
