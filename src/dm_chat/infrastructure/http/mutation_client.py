"""HTTP client for the durable message endpoints."""
from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Self

import httpx

from dm_chat.api.v1.schemas.common import PaginatedResponse
from dm_chat.api.v1.schemas.message import MessageCreateRequest, MessageEnvelope, MessageOut
from dm_chat.api.v1.schemas.room import RoomOut
from dm_chat.application.dto.message import MessageCreateInput
from dm_chat.application.exceptions import MutationError
from dm_chat.config import settings
from dm_chat.domain.entities.message import Message
from dm_chat.domain.entities.participant import Participant

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    """Pull ``{"message": ...}`` out of an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return ""


class HttpMutationClient:
    """Implements application.ports.mutation.MessageMutationClient over httpx.

    Every failure, timeouts included, surfaces as MutationError.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.CHAT_API_URL,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout if timeout is not None else settings.MUTATION_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def create_message(self, data: MessageCreateInput) -> Message:
        payload = MessageCreateRequest.from_input(data).to_wire()
        body = await self._request("POST", "/api/message/add", json=payload)
        try:
            return MessageEnvelope.model_validate(body).message.to_entity()
        except ValueError as exc:
            raise MutationError("Malformed server response") from exc

    async def list_messages(
        self,
        room_id: str,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        body = await self._request("GET", f"/api/rooms/{room_id}/messages", params=params)
        page = PaginatedResponse[MessageOut].model_validate(body)
        return [item.to_entity() for item in page.items]

    async def list_participants(self, room_id: str) -> list[Participant]:
        body = await self._request("GET", f"/api/rooms/{room_id}")
        room = RoomOut.model_validate(body)
        return [
            Participant(room_id=room.id, user_id=p.user.id, joined_at=room.created_at)
            for p in room.participants
        ]

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise MutationError() from exc

        if response.is_error:
            detail = _error_detail(response)
            logger.info("%s %s rejected: %s %s", method, url, response.status_code, detail)
            raise MutationError(detail, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise MutationError("Malformed server response") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
