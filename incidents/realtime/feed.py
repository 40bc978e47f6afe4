"""
Change notifications for incident reports over the channel layer.

Writes publish to one group; readers either join it as a WebSocket
consumer or hold a :class:`ReportFeed`, an async iterator over the same
messages that stops delivering once ``unsubscribe()`` is called.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, NamedTuple, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings

logger = logging.getLogger(__name__)

EVENT_INSERT = 'INSERT'
EVENT_UPDATE = 'UPDATE'
MESSAGE_TYPE = 'report.changed'
SIGN_OUT_TYPE = 'identity.cleared'


class ChangeEvent(NamedTuple):
    event: str
    report: dict

    @classmethod
    def from_message(cls, message: dict) -> 'ChangeEvent':
        return cls(message.get('event', EVENT_UPDATE), dict(message.get('report') or {}))

    def as_message(self) -> dict:
        return {'type': MESSAGE_TYPE, 'event': self.event, 'report': self.report}


def feed_group() -> str:
    return settings.REPORT_FEED_GROUP


def identity_group(user_id: Any) -> str:
    """Per-account group told when that account signs out."""
    return f"identity.{user_id}"


def announce_sign_out(user_id: Any, channel_layer: Any = None) -> bool:
    layer = channel_layer or get_channel_layer()
    if layer is None:
        return False
    try:
        async_to_sync(layer.group_send)(identity_group(user_id), {'type': SIGN_OUT_TYPE})
    except Exception:
        logger.warning("sign-out broadcast failed for user %s", user_id, exc_info=True)
        return False
    return True


def publish(event: ChangeEvent, channel_layer: Any = None) -> bool:
    """Broadcast ``event`` to every subscriber; returns False if nothing was sent."""
    layer = channel_layer or get_channel_layer()
    if layer is None:
        return False
    try:
        async_to_sync(layer.group_send)(feed_group(), event.as_message())
    except Exception:
        # the write already committed; subscribers catch up on their next fetch
        logger.warning("report feed broadcast failed for %s", event.report.get('id'), exc_info=True)
        return False
    return True


class ReportFeed:
    """Cancellable subscription yielding :class:`ChangeEvent` items.

    Usage::

        async with store.subscribe() as feed:
            async for change in feed:
                ...

    ``unsubscribe()`` may be called from another task; a pending
    iteration then ends instead of delivering further events.
    """

    def __init__(self, channel_layer: Any = None, group: Optional[str] = None):
        self.channel_layer = channel_layer or get_channel_layer()
        self.group = group or feed_group()
        self.channel: Optional[str] = None
        self._closed = asyncio.Event()
        self._joined = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def open(self) -> 'ReportFeed':
        if self.channel is None and not self.closed:
            self.channel = await self.channel_layer.new_channel()
            await self.channel_layer.group_add(self.group, self.channel)
            self._joined = True
            logger.debug("subscribed %s to %s", self.channel, self.group)
        return self

    def cancel(self) -> None:
        """End iteration without leaving the group; ``unsubscribe()`` still has to run."""
        self._closed.set()

    async def unsubscribe(self) -> None:
        self._closed.set()
        if self._joined:
            self._joined = False
            await self.channel_layer.group_discard(self.group, self.channel)
            logger.debug("unsubscribed %s from %s", self.channel, self.group)

    async def __aenter__(self) -> 'ReportFeed':
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.unsubscribe()

    def __aiter__(self) -> 'ReportFeed':
        return self

    async def __anext__(self) -> ChangeEvent:
        await self.open()
        while not self.closed:
            receive = asyncio.ensure_future(self.channel_layer.receive(self.channel))
            closing = asyncio.ensure_future(self._closed.wait())
            done, _ = await asyncio.wait({receive, closing}, return_when=asyncio.FIRST_COMPLETED)
            if receive not in done:
                receive.cancel()
                break
            closing.cancel()
            message = receive.result()
            if message.get('type') == MESSAGE_TYPE:
                return ChangeEvent.from_message(message)
        raise StopAsyncIteration
