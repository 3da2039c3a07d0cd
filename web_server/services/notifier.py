import json
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class MatchNotifier:
    """Pushes match events to connected students and advisors, keyed by uid."""

    def __init__(self):
        self.active_sockets: dict[str, WebSocket] = {}

    async def connect(self, uid: str, websocket: WebSocket):
        await websocket.accept()
        self.active_sockets[uid] = websocket

    def disconnect(self, uid: str):
        self.active_sockets.pop(uid, None)

    async def send_to_user(self, uid: str, data: dict) -> bool:
        """Send JSON to one user. Returns True if sent."""
        ws = self.active_sockets.get(uid)
        if ws is None:
            return False
        try:
            await ws.send_text(json.dumps(data))
            return True
        except Exception:
            logger.warning("Dropping socket for %s after failed send", uid, exc_info=True)
            self.disconnect(uid)
            return False

    async def broadcast_to_users(self, uids: list[str], data: dict) -> int:
        """Send JSON to several users. Returns how many received it."""
        delivered = 0
        for uid in uids:
            if await self.send_to_user(uid, data):
                delivered += 1
        return delivered


notifier = MatchNotifier()
