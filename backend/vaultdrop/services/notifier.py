# vaultdrop/services/notifier.py

import logging
import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

SUBJECT = "Your message has been read."


@dataclass(frozen=True)
class NotificationResult:
    address: str
    ok: bool
    error: Optional[str] = None


class Notifier(Protocol):
    def send(self, address: str, reference_label: Optional[str]) -> NotificationResult:
        ...


def read_receipt_body(reference_label: Optional[str]) -> str:
    if reference_label:
        return f'Your message with reference name: "{reference_label}" has been viewed and destroyed.'
    return "Your message has been viewed and destroyed."


class SMTPNotifier:
    """Sends the read receipt by email over STARTTLS."""

    def __init__(self, host: str, port: int, username: str, password: str,
                 sender: Optional[str] = None, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.timeout = timeout

    def build_email(self, address: str, reference_label: Optional[str]) -> EmailMessage:
        email = EmailMessage()
        email["To"] = address
        email["From"] = self.sender
        email["Subject"] = SUBJECT
        email.set_content(read_receipt_body(reference_label))
        return email

    def send(self, address: str, reference_label: Optional[str]) -> NotificationResult:
        email = self.build_email(address, reference_label)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                smtp.login(self.username, self.password)
                smtp.send_message(email)
        except (smtplib.SMTPException, OSError) as e:
            return NotificationResult(address, ok=False, error=str(e))
        return NotificationResult(address, ok=True)


class NullNotifier:
    """Used when no mail credentials are configured."""

    def send(self, address: str, reference_label: Optional[str]) -> NotificationResult:
        return NotificationResult(address, ok=False, error="notifications disabled")


class NotificationDispatcher:
    """
    Fire-and-forget front for a Notifier.

    dispatch() hands the send to a small thread pool and returns at once.
    The outcome is only logged: nothing is raised to the caller and
    nothing is retried.
    """

    def __init__(self, notifier: Notifier, max_workers: int = 2):
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notifier")

    def dispatch(self, address: str, reference_label: Optional[str] = None) -> Optional[Future]:
        try:
            future = self._executor.submit(self.notifier.send, address, reference_label)
        except RuntimeError:
            # Executor already shut down
            logger.warning("Dropped read receipt for %s: dispatcher is shut down", address)
            return None
        future.add_done_callback(self._log_outcome)
        return future

    @staticmethod
    def _log_outcome(future: Future):
        error = future.exception()
        if error is not None:
            logger.error("Read receipt crashed: %r", error)
            return

        result = future.result()
        if result.ok:
            logger.info("Read receipt sent to %s", result.address)
        else:
            logger.warning("Read receipt to %s not sent: %s", result.address, result.error)

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)
