"""Shim exposing the Movie Discovery FastAPI app under the project name."""

from __future__ import annotations

from discovery.main import app, create_app

__all__ = ["app", "create_app"]
