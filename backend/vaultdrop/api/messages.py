# vaultdrop/api/messages.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from vaultdrop.api.deps import admit_client, get_lifecycle
from vaultdrop.core.errors import (
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from vaultdrop.core.message import Message, MessageLifecycle

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_DETAIL = (
    "Sorry, this message has either already been viewed and destroyed "
    "or it never existed at all"
)
SERVER_ERROR_DETAIL = "We're sorry, there was an error!"


class StoreMessageSchema(BaseModel):
    # Older clients send uuid/message/email/reference_name/password
    model_config = ConfigDict(populate_by_name=True)

    handle: str = Field(validation_alias=AliasChoices("handle", "uuid"))
    payload: str = Field(validation_alias=AliasChoices("payload", "message"))
    notify_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("notifyAddress", "notify_address", "email")
    )
    reference_label: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("referenceLabel", "reference_label", "reference_name")
    )
    access_secret: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("accessSecret", "access_secret", "password")
    )


class MessageResponse(BaseModel):
    payload: str


def split_bin(bin_value: str) -> tuple[str, Optional[str]]:
    """``<handle>[;<accessSecret>]`` → (handle, secret or None)"""
    handle, _, secret = bin_value.partition(";")
    return handle, (secret or None)


@router.post("/msg")
def post_message(
    body: StoreMessageSchema,
    client_id: str = Depends(admit_client),
    lifecycle: MessageLifecycle = Depends(get_lifecycle),
):
    message = Message(
        handle=body.handle,
        payload=body.payload,
        # Empty strings from form-backed clients mean "not set"
        notify_address=body.notify_address or None,
        reference_label=body.reference_label or None,
        access_secret=body.access_secret or None,
    )

    try:
        lifecycle.create(message)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictError:
        raise HTTPException(status_code=409, detail="A message with this handle already exists")
    except BackendUnavailableError:
        logger.exception("Could not store message for %s", client_id)
        raise HTTPException(status_code=500, detail=SERVER_ERROR_DETAIL)

    return {"status": "stored"}


@router.get("/msg", response_model=MessageResponse)
def get_message(
    bin_value: str = Query(default="", alias="bin"),
    client_id: str = Depends(admit_client),
    lifecycle: MessageLifecycle = Depends(get_lifecycle),
):
    """
    Read a message once. Ex: /msg?bin=abc123 or /msg?bin=abc123;secret
    """
    handle, secret = split_bin(bin_value)

    try:
        message = lifecycle.consume(handle, secret)
    except (NotFoundError, UnauthorizedError):
        # A wrong secret must look exactly like a missing message
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    except BackendUnavailableError:
        logger.exception("Could not read message for %s", client_id)
        raise HTTPException(status_code=500, detail=SERVER_ERROR_DETAIL)

    # Only the ciphertext goes back; the rest of the record stays server side
    return MessageResponse(payload=message.payload)
