"""Shared fixtures for the announcer test suite."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp
import pytest

from announcer.notifier import Channel
from riotapi.riotapi import Summoner


def make_match(game_id, account_id, kills=10, deaths=2, assists=5, win=True, champion_name="Ahri", lane="MID"):
    """Match detail payload with the watched account plus one other player."""
    participant = {
        "participantId": 3,
        "championId": 103,
        "stats": {"kills": kills, "deaths": deaths, "assists": assists, "win": win},
        "timeline": {"lane": lane},
    }
    if champion_name is not None:
        participant["championName"] = champion_name
    return {
        "gameId": game_id,
        "participantIdentities": [
            {"participantId": 1, "player": {"accountId": 999, "summonerName": "Someone Else"}},
            {"participantId": 3, "player": {"accountId": account_id, "summonerName": "Faker"}},
        ],
        "participants": [
            {
                "participantId": 1,
                "championId": 22,
                "stats": {"kills": 0, "deaths": 9, "assists": 1, "win": not win},
                "timeline": {"lane": "BOTTOM"},
            },
            participant,
        ],
    }


class FakeResponse:
    """Stands in for an aiohttp response inside `async with`."""

    def __init__(self, status=200, body=None, reason="OK"):
        self.status = status
        self.reason = reason
        self._body = body

    async def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    async def text(self):
        return str(self._body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records request calls and returns a canned response or raises a canned error."""

    closed = False

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def _open(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    get = _open
    request = _open


class FakeWebSocket:
    """Replays gateway frames and records what the listener sends back."""

    def __init__(self, payloads, close_code=1000):
        self.frames = [
            SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=p if isinstance(p, str) else json.dumps(p))
            for p in payloads
        ]
        self.close_code = close_code
        self.sent = []

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for frame in self.frames:
            yield frame

    async def send_json(self, data):
        self.sent.append(data)


def message_create(content, channel_id="1234", bot=False, seq=None):
    return {
        "op": 0,
        "s": seq,
        "t": "MESSAGE_CREATE",
        "d": {"content": content, "channel_id": channel_id, "author": {"id": "7", "username": "someone", "bot": bot}},
    }


def make_matchlist(*game_ids):
    return [{"gameId": game_id, "champion": 103} for game_id in game_ids]


@pytest.fixture
def summoner():
    return Summoner(id=42, account_id=4242, name="Faker")


@pytest.fixture
def channel():
    return Channel(id="1234", name="general")


@pytest.fixture
def match_source(summoner):
    source = AsyncMock()
    source.fetch_recent_matches.return_value = make_matchlist(1002, 1001, 1000)
    source.fetch_match_detail.return_value = make_match(1002, summoner.account_id)
    source.get_summoner_by_name.return_value = summoner
    source.get_summoner_by_id.return_value = summoner
    return source


@pytest.fixture
def notifier(channel):
    notifier = AsyncMock()
    notifier.get_channel.return_value = channel
    return notifier
