import asyncio
import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from incidents.models import User
from incidents.realtime.feed import feed_group, identity_group
from incidents.session import Identity, IdentityContext

logger = logging.getLogger(__name__)


class ReportFeedConsumer(AsyncWebsocketConsumer):
    """Pushes every report insert/update to signed-in hospital accounts.

    Close codes: 4001 not signed in (or signed out meanwhile), 4003 not a
    hospital account.
    """

    async def connect(self):
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return
        if getattr(user, "role", None) != User.ROLE_HOSPITAL:
            await self.close(code=4003)
            return
        self.session = IdentityContext(Identity.from_user(user))
        self._stop_watching = self.session.on_change(self._identity_changed)
        self.groups_joined = [feed_group(), identity_group(user.pk)]
        for group in self.groups_joined:
            await self.channel_layer.group_add(group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        if hasattr(self, "_stop_watching"):
            self._stop_watching()
        for group in getattr(self, "groups_joined", []):
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # the feed is push only; a client ping gets a pong so it can detect dead sockets
        if text_data and text_data.strip() == "ping":
            await self.send(json.dumps({"type": "pong"}))

    # group_send(feed_group(), {"type": "report.changed", "event": ..., "report": {...}})
    async def report_changed(self, event):
        logger.debug("pushing %s for report %s", event.get("event"), (event.get("report") or {}).get("id"))
        await self.send(json.dumps({"type": "report", "event": event.get("event"), "new": event.get("report")}))

    # group_send(identity_group(user_id), {"type": "identity.cleared"})
    async def identity_cleared(self, event):
        self.session.clear()

    def _identity_changed(self, identity):
        if identity is None:
            logger.info("closing report feed socket %s after sign-out", self.channel_name)
            self._closing = asyncio.ensure_future(self.close(code=4001))
