import hmac
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from vaultdrop.core.errors import NotFoundError, ValidationError
from vaultdrop.core.message_logic import utcnow

logger = logging.getLogger(__name__)

HANDLE_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


@dataclass(frozen=True)
class Message:
    handle: str
    payload: str
    notify_address: Optional[str] = None
    reference_label: Optional[str] = None
    access_secret: Optional[str] = None
    created_at: Optional[datetime] = None


def is_valid_handle(handle: Optional[str]) -> bool:
    return bool(handle) and HANDLE_PATTERN.fullmatch(handle) is not None


def secret_matches(message: Message, supplied_secret: Optional[str]) -> bool:
    """Constant-time check of the optional access secret."""
    if not message.access_secret:
        return True
    if supplied_secret is None:
        return False
    return hmac.compare_digest(
        message.access_secret.encode("utf-8"),
        supplied_secret.encode("utf-8"),
    )


class MessageLifecycle:
    """
    Create, read-once and expire transitions for stored messages.

    The store is the only copy of message state; this class keeps none.
    A message leaves the store exactly once, through whichever delete
    wins: a reader's take or an expiry.
    """

    def __init__(self, store, dispatcher=None, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock

    def create(self, message: Message) -> Message:
        """Persist a new message. Raises ConflictError if the handle exists."""
        if not is_valid_handle(message.handle):
            raise ValidationError("Malformed message handle")
        if not message.payload:
            raise ValidationError("Message payload is empty")

        stored = replace(message, created_at=self.clock())
        self.store.insert(stored)
        logger.debug("Stored message %s", stored.handle)
        return stored

    def consume(self, handle: str, supplied_secret: Optional[str] = None) -> Message:
        """
        Return the message to this caller and destroy it.

        Raises NotFoundError when there is nothing to return (including
        malformed handles) and UnauthorizedError on a secret mismatch,
        in which case the message stays available.
        """
        if not is_valid_handle(handle):
            raise NotFoundError(handle)

        def authorize(candidate: Message) -> bool:
            return secret_matches(candidate, supplied_secret)

        message = self.store.take_by_handle(handle, authorize)
        if message is None:
            raise NotFoundError(handle)

        if message.notify_address and self.dispatcher is not None:
            self.dispatcher.dispatch(message.notify_address, message.reference_label)

        return message

    def expire(self, handle: str) -> bool:
        """Destroy an undelivered message. True only if this call removed it."""
        if not is_valid_handle(handle):
            return False
        removed = self.store.delete_by_handle(handle)
        if removed:
            logger.info("Expired message %s", handle)
        return removed
