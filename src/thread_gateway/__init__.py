"""HTTP gateway in front of the OpenAI threads API with a JSON-file store.

This package provides a FastAPI application factory named ``create_app``
inside ``thread_gateway/server.py`` (see :func:`create_app`).

Typical usage
-------------
from thread_gateway import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --port 3001
"""

from __future__ import annotations

__all__ = ["create_app", "__version__", "get_version"]

__version__ = "0.3.0"


def get_version() -> str:
    """Return the package version."""
    return __version__


from .server import create_app  # noqa: E402
