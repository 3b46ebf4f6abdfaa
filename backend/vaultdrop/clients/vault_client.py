# vaultdrop/clients/vault_client.py

import argparse
import os
import sys
import uuid

import requests

from vaultdrop.core.crypto import (
    build_share_url,
    decrypt_bytes,
    encrypt_bytes,
    generate_link_key,
    parse_share_url,
)

# =========================
# CONFIGURATION
# =========================

TOR_PROXY = {
    'http': 'socks5h://127.0.0.1:9050',
    'https': 'socks5h://127.0.0.1:9050'
}

SERVER_URL = os.getenv("VAULTDROP_SERVER_URL", "http://127.0.0.1:4000")
PADDING_BLOCK_SIZE = 1024  # plaintext is padded up to a multiple of 1 KB


class VaultClientError(Exception):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


# =========================
# METADATA OBFUSCATION
# =========================

def pad_message(message_bytes: bytes, block_size: int = PADDING_BLOCK_SIZE) -> bytes:
    """Length prefix + message + random fill up to a whole block, so sizes leak less"""
    length_prefix = len(message_bytes).to_bytes(4, 'big')
    body = length_prefix + message_bytes
    fill = -len(body) % block_size
    return body + os.urandom(fill)


def unpad_message(padded_bytes: bytes) -> bytes:
    """Extract original message from padded data"""
    length = int.from_bytes(padded_bytes[:4], 'big')
    return padded_bytes[4:4 + length]


def create_tor_session():
    """Create a requests session that routes through Tor"""
    session = requests.Session()
    session.proxies = TOR_PROXY
    return session


# =========================
# VAULT CLIENT
# =========================

class VaultClient:
    """
    Encrypts locally, stores only ciphertext on the server, and hands
    back a link carrying the key. Reading the link destroys the message.
    """

    def __init__(self, server_url: str = SERVER_URL, share_base_url: str | None = None,
                 session=None, use_tor: bool = False, enable_padding: bool = True):
        self.server_url = server_url.rstrip("/")
        self.share_base_url = share_base_url or self.server_url
        self.enable_padding = enable_padding
        if session is not None:
            self.session = session
        else:
            self.session = create_tor_session() if use_tor else requests.Session()

    def write(self, text: str, notify_address: str | None = None,
              reference_label: str | None = None, access_secret: str | None = None) -> str:
        """Encrypt and store text; return the share link"""
        key = generate_link_key()
        data = text.encode("utf-8")
        if self.enable_padding:
            data = pad_message(data)

        handle = str(uuid.uuid4())
        body = {"handle": handle, "payload": encrypt_bytes(key, data)}
        if notify_address:
            body["notifyAddress"] = notify_address
        if reference_label:
            body["referenceLabel"] = reference_label
        if access_secret:
            body["accessSecret"] = access_secret

        resp = self.session.post(f"{self.server_url}/msg", json=body)
        if resp.status_code != 200:
            raise VaultClientError(resp.status_code, resp.text)
        return build_share_url(self.share_base_url, handle, key)

    def read(self, share_url: str, access_secret: str | None = None) -> str:
        """Fetch, destroy and decrypt the message behind a share link"""
        handle, key = parse_share_url(share_url)
        bin_value = f"{handle};{access_secret}" if access_secret else handle

        resp = self.session.get(f"{self.server_url}/msg", params={"bin": bin_value})
        if resp.status_code != 200:
            detail = resp.json().get("detail", resp.text) if resp.content else ""
            raise VaultClientError(resp.status_code, detail)

        data = decrypt_bytes(key, resp.json()["payload"])
        if self.enable_padding:
            data = unpad_message(data)
        return data.decode("utf-8")


# =========================
# COMMAND LINE
# =========================

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Write or read a one-time VaultDrop message.")
    parser.add_argument("--server", default=SERVER_URL, help="VaultDrop API base URL")
    parser.add_argument("--tor", action="store_true", help="Route requests through a local Tor proxy")
    sub = parser.add_subparsers(dest="command", required=True)

    write = sub.add_parser("write", help="Store a message and print its share link")
    write.add_argument("text", nargs="?", help="Message text (read from stdin if omitted)")
    write.add_argument("--email", help="Send a read receipt to this address")
    write.add_argument("--reference", help="Reference name included in the read receipt")
    write.add_argument("--password", help="Extra secret required to read the message")

    read = sub.add_parser("read", help="Read (and destroy) a message")
    read.add_argument("url", help="Share link")
    read.add_argument("--password", help="Secret the message was protected with")

    args = parser.parse_args(argv)
    client = VaultClient(args.server, use_tor=args.tor)

    try:
        if args.command == "write":
            text = args.text if args.text is not None else sys.stdin.read()
            print(client.write(text, args.email, args.reference, args.password))
        else:
            print(client.read(args.url, args.password))
    except VaultClientError as e:
        print(f"Error: {e.detail}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
