"""HTTP surface for the assistant (aiohttp)."""

from voxledger.api.server import create_app, run_server

__all__ = ["create_app", "run_server"]
