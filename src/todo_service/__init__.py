"""
Todo REST service package.

Exposes the FastAPI app instance for convenience imports
(``from todo_service import app``).
"""

from .main import app  # noqa: F401
