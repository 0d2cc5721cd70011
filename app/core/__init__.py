"""Core module for the short-link service: settings, logging, Redis and auth."""

from app.core.config import settings

__all__ = ["settings"]
