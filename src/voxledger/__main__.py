"""Entry point for ``python -m voxledger``."""

import asyncio

from voxledger.api import run_server


def main() -> None:
    """Launch the VoxLedger HTTP API."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
