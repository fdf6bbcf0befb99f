from typing import Dict, Set
from fastapi import WebSocket


class ConnectionManager:
    def __init__(self):
        self.active: Dict[int, Set[WebSocket]] = {}

    async def connect(self, user_id: int, websocket: WebSocket):
        self.active.setdefault(user_id, set()).add(websocket)
        await websocket.accept()

    def disconnect(self, user_id: int, websocket: WebSocket):
        sockets = self.active.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            self.active.pop(user_id, None)

    async def broadcast(self, user_id: int, message: dict):
        for ws in list(self.active.get(user_id, set())):
            try:
                await ws.send_json(message)
            except Exception:
                self.disconnect(user_id, ws)


async def publish_balance(user, op: str):
    await event_manager.broadcast(user.id, {
        "type": "balance_update",
        "userId": user.id,
        "balance": float(user.balance),
        "op": op,
    })


event_manager = ConnectionManager()
