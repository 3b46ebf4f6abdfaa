from cryptography.hazmat.primitives.ciphers.aead import AESGCM
import base64
import binascii
import os
from urllib.parse import parse_qs, urlsplit

NONCE_SIZE = 12
KEY_SIZE = 32

# ---------- ENCODING ----------

def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError("Invalid base64url text") from e


# ---------- KEYS ----------

def generate_link_key() -> bytes:
    """
    Fresh AES-256 key for one message. It travels only inside the share
    link, never to the store.
    """
    return AESGCM.generate_key(bit_length=KEY_SIZE * 8)


# ---------- ENCRYPTION ----------

def encrypt_bytes(key: bytes, data: bytes) -> str:
    """
    AES-GCM → base64url(nonce (12) + ciphertext + tag (16))
    """
    aesgcm = AESGCM(key)
    nonce = os.urandom(NONCE_SIZE)
    return b64url_encode(nonce + aesgcm.encrypt(nonce, data, None))


def decrypt_bytes(key: bytes, token: str) -> bytes:
    """
    Reverse of encrypt_bytes. Raises cryptography's InvalidTag on a
    wrong key or tampered payload.
    """
    raw = b64url_decode(token)
    nonce = raw[:NONCE_SIZE]
    ciphertext = raw[NONCE_SIZE:]
    aesgcm = AESGCM(key)
    return aesgcm.decrypt(nonce, ciphertext, None)


def encrypt_message(key: bytes, plaintext: str) -> str:
    return encrypt_bytes(key, plaintext.encode("utf-8"))


def decrypt_message(key: bytes, token: str) -> str:
    return decrypt_bytes(key, token).decode("utf-8")


# ---------- SHARE LINKS ----------

def build_share_url(base_url: str, handle: str, key: bytes) -> str:
    """The key rides after '@' in the link; the server never sees it."""
    return f"{base_url.rstrip('/')}/msg?bin={handle}@{b64url_encode(key)}"


def parse_share_url(url: str) -> tuple[str, bytes]:
    """Split a share link into (handle, key)."""
    values = parse_qs(urlsplit(url).query).get("bin")
    if not values or "@" not in values[0]:
        raise ValueError(f"Not a share link: {url}")
    handle, _, encoded_key = values[0].partition("@")
    return handle, b64url_decode(encoded_key)
