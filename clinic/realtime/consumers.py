import json

from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.services.slots import slot_group


class SlotUpdatesConsumer(AsyncWebsocketConsumer):
    """Streams slot changes (held, released, booked, freed) for one doctor."""

    async def connect(self):
        self.doctor_id = int(self.scope["url_route"]["kwargs"]["doctor_id"])
        self.group = slot_group(self.doctor_id)
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "doctorId": self.doctor_id}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # clients only listen; answer pings so proxies keep the socket open
        if text_data and text_data.strip() == "ping":
            await self.send(json.dumps({"type": "pong"}))

    async def slot_update(self, event):
        # event: {"type": "slot.update", "event": "...", "slotId": int, ...}
        await self.send(json.dumps(event))
