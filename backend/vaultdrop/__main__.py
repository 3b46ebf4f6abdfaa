"""Launch the VaultDrop server: python -m vaultdrop --port 4000"""

from __future__ import annotations

import argparse

import uvicorn

from vaultdrop.config import Settings
from vaultdrop.main import create_app


def main() -> None:
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Run the VaultDrop server.")
    parser.add_argument(
        "--host",
        type=str,
        default=settings.host,
        help=f"Host to bind the server to (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to bind the server to (default: {settings.port})",
    )
    args = parser.parse_args()

    app = create_app(settings)
    print(f"Serving application on port {args.port}")

    # In-flight requests get the grace window to finish, then connections are closed
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=int(settings.shutdown_grace_seconds),
    )


if __name__ == "__main__":
    main()
