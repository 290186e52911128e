from __future__ import annotations

import jwt

from dm_chat.application.dto.principal import Principal


class HS256Verifier:
    """Verify session JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        subject = str(payload["sub"])
        if not subject:
            raise jwt.InvalidTokenError("Empty subject")
        return Principal(
            user_id=subject,
            name=payload.get("name"),
            image=payload.get("picture", payload.get("image")),
        )
