"""Discord gateway listener that feeds chat messages to the command handler.

Only the parts of the gateway protocol needed to receive messages are handled:
HELLO starts the heartbeat and sends IDENTIFY, MESSAGE_CREATE dispatches are
passed to the ``on_message`` callback, and RECONNECT/INVALID_SESSION drop the
connection so it is re-established with backoff.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)

GATEWAY_URL = "wss://gateway.discord.gg/?v=10&encoding=json"

OP_DISPATCH = 0
OP_HEARTBEAT = 1
OP_IDENTIFY = 2
OP_RECONNECT = 7
OP_INVALID_SESSION = 9
OP_HELLO = 10

INTENT_GUILD_MESSAGES = 1 << 9
INTENT_DIRECT_MESSAGES = 1 << 12
INTENT_MESSAGE_CONTENT = 1 << 15
INTENTS = INTENT_GUILD_MESSAGES | INTENT_DIRECT_MESSAGES | INTENT_MESSAGE_CONTENT

# Authentication failed, or the bot asked for intents it is not allowed.
FATAL_CLOSE_CODES = {4004, 4010, 4011, 4012, 4013, 4014}


class GatewayError(Exception):
    """The gateway rejected the bot and reconnecting would not help."""


def _decode_message(message: aiohttp.WSMessage) -> Optional[Any]:
    if message.type == aiohttp.WSMsgType.TEXT:
        try:
            return json.loads(message.data)
        except json.JSONDecodeError:
            logger.debug("Ignoring a gateway frame that is not JSON")
    return None


class GatewayListener:
    """Keeps a gateway connection open and hands each user message to ``on_message``."""

    def __init__(
        self,
        auth_token: str,
        on_message,
        url: str = GATEWAY_URL,
        reconnect_min_delay: float = 1.0,
        reconnect_max_delay: float = 30.0,
    ):
        self.auth_token = auth_token
        self.on_message = on_message
        self.url = url
        self.reconnect_min_delay = reconnect_min_delay
        self.reconnect_max_delay = reconnect_max_delay
        self._seq: Optional[int] = None

    def identify_payload(self) -> dict:
        return {
            "op": OP_IDENTIFY,
            "d": {
                "token": self.auth_token,
                "intents": INTENTS,
                "properties": {"os": "linux", "browser": "league-announcer", "device": "league-announcer"},
            },
        }

    async def run(self) -> None:
        """Listen until cancelled, reconnecting with exponential backoff."""
        delay = self.reconnect_min_delay
        while True:
            try:
                async with aiohttp.ClientSession() as session:
                    async with session.ws_connect(self.url) as ws:
                        delay = self.reconnect_min_delay
                        await self.listen(ws)
            except asyncio.CancelledError:
                raise
            except GatewayError as e:
                logger.error("Discord gateway refused the connection, commands are disabled: %s", e)
                return
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning("Discord gateway connection failed: %s", e)
            except Exception:
                logger.exception("Unexpected error on the Discord gateway connection")
            logger.debug("Reconnecting to the Discord gateway in %.0fs", delay)
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.reconnect_max_delay)

    async def listen(self, ws) -> None:
        """Handle frames from one open connection until it closes or asks to reconnect."""
        heartbeat = None
        try:
            async for message in ws:
                payload = _decode_message(message)
                if not isinstance(payload, dict):
                    continue
                if payload.get("s") is not None:
                    self._seq = payload["s"]

                op = payload.get("op")
                if op == OP_HELLO:
                    interval = payload["d"]["heartbeat_interval"] / 1000
                    if heartbeat is None:
                        heartbeat = asyncio.create_task(self._heartbeat(ws, interval))
                    await ws.send_json(self.identify_payload())
                elif op == OP_HEARTBEAT:
                    await ws.send_json({"op": OP_HEARTBEAT, "d": self._seq})
                elif op in (OP_RECONNECT, OP_INVALID_SESSION):
                    logger.info("Discord gateway asked us to reconnect")
                    return
                elif op == OP_DISPATCH:
                    await self.dispatch(payload.get("t"), payload.get("d") or {})
        finally:
            if heartbeat is not None:
                heartbeat.cancel()
                with suppress(asyncio.CancelledError):
                    await heartbeat

        if ws.close_code in FATAL_CLOSE_CODES:
            raise GatewayError(f"closed with code {ws.close_code}")

    async def _heartbeat(self, ws, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await ws.send_json({"op": OP_HEARTBEAT, "d": self._seq})
            except (ConnectionResetError, aiohttp.ClientError) as e:
                logger.debug("Stopped heartbeating on a closed gateway connection: %s", e)
                return

    async def dispatch(self, event: Optional[str], data: dict) -> None:
        if event == "READY":
            logger.info("Connected to the Discord gateway as %s", (data.get("user") or {}).get("username"))
            return
        if event != "MESSAGE_CREATE" or (data.get("author") or {}).get("bot"):
            return
        try:
            await self.on_message(data)
        except Exception:
            logger.exception("Failed to handle message in channel %s", data.get("channel_id"))
