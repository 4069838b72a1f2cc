"""CORS for the heritage scanning web app."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hscan.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow ``settings.cors_origins`` to call the progression API.

    The API only reads and posts, so other verbs are not offered. The
    request id is exposed so the app can quote it in bug reports.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )
