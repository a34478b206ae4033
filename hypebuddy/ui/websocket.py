from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from hypebuddy.orchestrator.events import SessionState
from hypebuddy.telemetry.logging import get_logger


class StateBridge:
    """Fans conversation state snapshots out to websocket clients, per chat."""

    def __init__(self) -> None:
        self._clients: dict[str, set[WebSocket]] = defaultdict(set)
        self._latest: dict[str, dict[str, Any]] = {}
        self._router = APIRouter()
        self._router.add_api_websocket_route("/ws/chat/{chat_id}", self._websocket_handler)
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @property
    def router(self) -> APIRouter:
        return self._router

    def client_count(self, chat_id: str) -> int:
        return len(self._clients.get(chat_id, ()))

    async def _websocket_handler(self, websocket: WebSocket, chat_id: str) -> None:
        await websocket.accept()
        async with self._lock:
            self._clients[chat_id].add(websocket)
            latest = self._latest.get(chat_id)
        self._logger.info("ui.client.connected", chat_id=chat_id, count=self.client_count(chat_id))
        if latest is not None:
            await websocket.send_json(latest)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            async with self._lock:
                self._clients[chat_id].discard(websocket)
            self._logger.info("ui.client.disconnected", chat_id=chat_id, count=self.client_count(chat_id))

    async def publish_state(self, chat_id: str, state: SessionState) -> None:
        message = {"chat_id": chat_id, "state": state.to_dict()}
        async with self._lock:
            self._latest[chat_id] = message
            send_tasks = [client.send_json(message) for client in self._clients.get(chat_id, ())]
        if send_tasks:
            await asyncio.gather(*send_tasks, return_exceptions=True)

    async def forget(self, chat_id: str) -> None:
        async with self._lock:
            self._latest.pop(chat_id, None)
            clients = self._clients.pop(chat_id, set())
        for client in clients:
            await client.close()


__all__ = ["StateBridge"]
