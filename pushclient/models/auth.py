from __future__ import annotations

from pydantic import BaseModel


class AuthResponse(BaseModel):
    """Body returned by the client-credentials token endpoint."""

    access_token: str
    expires_in: int = 0
    token_type: str = "bearer"
