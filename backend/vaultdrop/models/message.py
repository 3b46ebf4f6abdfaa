# vaultdrop/models/message.py

from sqlalchemy import Column, DateTime, Integer, String, Text

from vaultdrop.models.base import Base


class MessageRecord(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)

    # Client-assigned handle, one live row per handle
    handle = Column(String(64), unique=True, nullable=False, index=True)

    # Ciphertext as sent by the client; never parsed server side
    payload = Column(Text, nullable=False)

    notify_address = Column(String(320), nullable=True)
    reference_label = Column(String(255), nullable=True)
    access_secret = Column(String(255), nullable=True)

    # Naive UTC, only used for the TTL cutoff
    created_at = Column(DateTime, nullable=False, index=True)
