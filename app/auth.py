"""Request identity helpers.

Sign-in happens upstream; the auth layer forwards the signed-in user's id in
the ``X-User-Id`` header.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

USER_ID_HEADER = "X-User-Id"


def get_request_user_id(request: Request) -> Optional[str]:
    """Return the calling user's id, or None if the request carries none."""
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    return user_id or None


def unauthorized() -> JSONResponse:
    return JSONResponse({"error": "No user"}, status_code=401)
