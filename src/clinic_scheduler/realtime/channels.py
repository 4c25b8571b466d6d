"""Channel membership for real-time connections."""

import asyncio
from typing import Any, Protocol

from loguru import logger


class Connection(Protocol):
    """What a channel needs from a connection (a Starlette ``WebSocket`` fits)."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...


class ChannelRegistry:
    """Tracks which connections joined which named channel.

    Broadcasts are best-effort: a connection whose send fails is removed from
    the channel and the failure is logged; the remaining members still receive
    the message. Membership changes only happen on the event loop thread.
    """

    def __init__(self):
        self._channels: dict[str, set[Connection]] = {}

    async def join(self, channel: str, connection: Connection) -> None:
        self._channels.setdefault(channel, set()).add(connection)
        logger.debug("Connection joined {} ({} member(s))", channel, self.member_count(channel))

    async def leave(self, channel: str, connection: Connection) -> None:
        members = self._channels.get(channel)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._channels[channel]
        logger.debug("Connection left {}", channel)

    def members(self, channel: str) -> set[Connection]:
        """Return a snapshot of the channel's connections."""
        return set(self._channels.get(channel, ()))

    def member_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    def channels(self) -> list[str]:
        return list(self._channels)

    async def broadcast(self, channel: str, message: dict[str, Any]) -> int:
        """Send a message to every member of the channel.

        Returns:
            Number of connections that accepted the message
        """
        members = list(self._channels.get(channel, ()))
        if not members:
            logger.trace("No receiver on {}, dropping {}", channel, message.get("type"))
            return 0

        results = await asyncio.gather(*(member.send_json(message) for member in members), return_exceptions=True)

        delivered = 0
        for member, result in zip(members, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("Dropping connection on {} after send failure: {}", channel, result)
                await self.leave(channel, member)
            else:
                delivered += 1
        return delivered
