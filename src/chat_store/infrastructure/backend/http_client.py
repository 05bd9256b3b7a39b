"""Thin httpx client for the remote chat backend."""
from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from chat_store.application.exceptions import BackendError
from chat_store.domain.entities.message import Message
from chat_store.domain.entities.outbox_entry import OutboxEntry
from chat_store.infrastructure.backend.schemas import BackendMessage, unwrap

logger = logging.getLogger(__name__)


class HttpChatBackend:
    """Implements application.ports.backend.ChatBackend over REST."""

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send_message(self, entry: OutboxEntry) -> Message:
        payload: dict[str, Any] = {
            "conversationId": entry.conversation_id,
            "type": str(entry.type),
            "content": entry.content,
            "tempId": entry.temp_id,
        }
        response = await self._request("POST", "/chat/messages", json=payload, expected=(200, 201))
        message = self._parse_message(unwrap(self._json(response)), entry.conversation_id)
        if message.temp_id is None:
            message = message.with_changes(temp_id=entry.temp_id)
        logger.debug("Backend confirmed %s as %s", entry.temp_id, message.id)
        return message

    async def fetch_messages(
        self,
        conversation_id: str,
        *,
        after: str | None = None,
        before: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        params: dict[str, Any] = {"limit": limit}
        if after is not None:
            params["after"] = after
        if before is not None:
            params["before"] = before
        response = await self._request(
            "GET",
            f"/chat/conversations/{conversation_id}/messages",
            params=params,
            expected=(200,),
        )
        data = unwrap(self._json(response))
        if not isinstance(data, list):
            return []
        return [self._parse_message(item, conversation_id) for item in data]

    async def is_reachable(self) -> bool:
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError as exc:
            logger.debug("Backend unreachable: %s", exc)
            return False
        return response.status_code < 500

    async def _request(
        self,
        method: str,
        path: str,
        *,
        expected: tuple[int, ...],
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise BackendError(f"{method} {path} failed: {exc}") from exc
        if response.status_code not in expected:
            raise BackendError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError("Backend returned invalid JSON") from exc

    @staticmethod
    def _parse_message(data: Any, conversation_id: str | None = None) -> Message:
        try:
            parsed = BackendMessage.model_validate(data)
        except PydanticValidationError as exc:
            raise BackendError(f"Unexpected message payload: {exc}") from exc
        if not parsed.conversation_id and conversation_id:
            parsed = parsed.model_copy(update={"conversation_id": conversation_id})
        return parsed.to_entity()
