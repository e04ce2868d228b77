"""Core package for the Parley messaging backend."""

from __future__ import annotations

from typing import Any

from .database import DataStore, resolve_datastore_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "DataStore",
    "resolve_datastore_path",
    "create_app",
]
