from __future__ import annotations

from fastapi.responses import JSONResponse


class UTF8JSONResponse(JSONResponse):
    """JSON response that states its charset explicitly, as clients of this API expect."""

    media_type = "application/json; charset=UTF-8"
