import json
from channels.generic.websocket import AsyncWebsocketConsumer

from records.services.integrity import UPDATES_GROUP


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes refresh notices (new bills, finished scans) to open dashboards."""
    GROUP = UPDATES_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def revenue_refresh(self, event):
        # event: {"type": "revenue.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))
