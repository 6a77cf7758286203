"""
IrcFeedClient - listens to the recent-changes IRC channels

Joins one channel per monitored language (#en.wikipedia, #de.wikipedia, ...)
and hands every message of the announcing bot to the feed parser. Parsed
edit events go to a callback; everything else is ignored.

Connection loss is logged and followed by a reconnect after a short delay.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .feed_parser import parse_feed_message
from ..models.edit_event import EditEvent

logger = logging.getLogger(__name__)

JOIN_BATCH = 10


@dataclass
class IrcMessage:
    command: str
    prefix: str = ""
    params: List[str] = field(default_factory=list)

    @property
    def nick(self) -> str:
        return self.prefix.split('!', 1)[0]


def parse_irc_line(line: str) -> Optional[IrcMessage]:
    """Split a raw IRC line into prefix, command and parameters"""
    line = line.rstrip('\r\n')
    if not line:
        return None

    prefix = ""
    if line.startswith(':'):
        prefix, _, line = line[1:].partition(' ')

    trailing = None
    if ' :' in line:
        line, trailing = line.split(' :', 1)
    elif line.startswith(':'):
        line, trailing = '', line[1:]

    words = line.split()
    if not words:
        return None
    params = words[1:]
    if trailing is not None:
        params.append(trailing)
    return IrcMessage(command=words[0].upper(), prefix=prefix, params=params)


def _now_millis() -> int:
    return int(time.time() * 1000)


class IrcFeedClient:

    def __init__(
        self,
        server: str,
        port: int,
        nick: str,
        channels: List[str],
        feed_nick: str,
        on_event: Callable[[EditEvent], None],
        reconnect_delay: float = 5.0,
        clock: Callable[[], int] = _now_millis,
    ):
        self.server = server
        self.port = port
        self.nick = nick
        self.channels = channels
        self.feed_nick = feed_nick
        self.on_event = on_event
        self.reconnect_delay = reconnect_delay
        self.clock = clock
        self.running = False
        self.messages_seen = 0
        self.events_parsed = 0
        self._writer: Optional[asyncio.StreamWriter] = None

    @classmethod
    def from_settings(cls, settings, on_event: Callable[[EditEvent], None]) -> "IrcFeedClient":
        return cls(
            server=settings.irc_server,
            port=settings.irc_port,
            nick=settings.irc_nick,
            channels=settings.irc_channels,
            feed_nick=settings.irc_feed_nick,
            on_event=on_event,
            reconnect_delay=settings.irc_reconnect_delay_seconds,
        )

    async def run(self):
        """Stay connected until stopped"""
        self.running = True
        while self.running:
            try:
                await self._session()
            except asyncio.CancelledError:
                break
            except (OSError, asyncio.IncompleteReadError) as e:
                logger.warning(f"📡 IRC connection to {self.server} lost: {e}")

            if self.running:
                await asyncio.sleep(self.reconnect_delay)

        logger.info(
            f"📡 IRC feed stopped. Messages: {self.messages_seen}, edits: {self.events_parsed}"
        )

    def stop(self):
        self.running = False
        if self._writer is not None:
            self._writer.close()

    async def _session(self):
        logger.info(f"📡 Connecting to {self.server}:{self.port} as {self.nick}")
        reader, writer = await asyncio.open_connection(self.server, self.port)
        self._writer = writer
        try:
            await self._send(f"NICK {self.nick}")
            await self._send(f"USER {self.nick} 0 * :{self.nick}")
            while self.running:
                raw = await reader.readline()
                if not raw:
                    logger.warning("📡 IRC server closed the connection")
                    return
                reply = self.handle_line(raw.decode('utf-8', errors='replace'))
                for line in reply:
                    await self._send(line)
        finally:
            writer.close()
            self._writer = None

    async def _send(self, line: str):
        self._writer.write(f"{line}\r\n".encode('utf-8'))
        await self._writer.drain()

    def handle_line(self, raw: str) -> List[str]:
        """
        React to one line from the server.

        Returns the lines to send back (PONGs, JOINs after the welcome).
        """
        message = parse_irc_line(raw)
        if message is None:
            return []

        if message.command == 'PING':
            token = message.params[0] if message.params else ''
            return [f"PONG :{token}"]

        if message.command == '001':
            logger.info(f"📡 Joining {len(self.channels)} channels")
            # IRC lines are limited to 512 bytes
            return [
                f"JOIN {','.join(self.channels[i:i + JOIN_BATCH])}"
                for i in range(0, len(self.channels), JOIN_BATCH)
            ]

        if message.command == 'PRIVMSG' and len(message.params) >= 2:
            if message.nick != self.feed_nick:
                return []
            self.messages_seen += 1
            event = parse_feed_message(message.params[0], message.params[1], self.clock())
            if event is not None:
                self.events_parsed += 1
                self.on_event(event)

        return []
