"""Clients for external services."""

from .gist import GistAPIError, GistConnector, GistResponseError

__all__ = ["GistAPIError", "GistConnector", "GistResponseError"]
