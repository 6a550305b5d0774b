"""
urlquery.api - Optional REST gateway
====================================

FastAPI app exposing query compilation and row extraction over HTTP.

Usage
-----
>>> from urlquery.api import create_app
>>> app = create_app()
>>> # Run with: uvicorn urlquery.api:app

Or run directly:
>>> python -m urlquery.api
"""

from pathlib import Path

from dotenv import load_dotenv

# .env is loaded before the gateway reads its environment
env_path = Path.cwd() / ".env"
if env_path.exists():
    load_dotenv(env_path)

from urlquery.api.gateway import GatewayConfig, create_app  # noqa: E402

app = create_app()

__all__ = [
    "create_app",
    "GatewayConfig",
    "app",
]
