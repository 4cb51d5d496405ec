"""Discord delivery of match reports."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"
MAX_MESSAGE_LENGTH = 2000


class DeliveryError(Exception):
    """A message could not be delivered to Discord."""


class ChannelNotFound(DeliveryError):
    """The channel id does not exist or the bot cannot see it."""


@dataclass(frozen=True)
class Channel:
    id: str
    name: str = ""


class DiscordNotifier:
    """Posts messages to Discord channels through the bot REST API."""

    def __init__(self, auth_token: str, request_timeout: float = 5.0, dry_run: bool = False):
        self.auth_token = auth_token
        self.request_timeout = request_timeout
        self.dry_run = dry_run
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bot {self.auth_token}"}
            )

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, payload: Optional[dict] = None):
        await self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        try:
            async with self._session.request(
                method, f"{DISCORD_API}{path}", json=payload, timeout=timeout
            ) as response:
                if response.status == 404:
                    raise ChannelNotFound(f"{path} not found")
                if response.status >= 300:
                    body = await response.text()
                    raise DeliveryError(f"{method} {path} returned {response.status}: {body[:200]}")
                return await response.json()
        except asyncio.TimeoutError as e:
            raise DeliveryError(f"{method} {path} timed out after {self.request_timeout}s") from e
        except aiohttp.ClientError as e:
            raise DeliveryError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise DeliveryError(f"{method} {path} returned a body that is not JSON: {e}") from e

    async def send(self, channel: Channel, text: str) -> None:
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[: MAX_MESSAGE_LENGTH - 3] + "..."
        if self.dry_run:
            logger.info("[DRY RUN] Would post to #%s (%s): %s", channel.name, channel.id, text)
            return
        await self._request("POST", f"/channels/{channel.id}/messages", {"content": text})

    async def get_channel(self, channel_id: str) -> Channel:
        if self.dry_run:
            return Channel(id=str(channel_id), name=str(channel_id))
        data = await self._request("GET", f"/channels/{channel_id}")
        return Channel(id=str(data["id"]), name=data.get("name") or "")
