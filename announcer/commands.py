"""Chat command handling for the announcer."""

import logging
from typing import Optional

from riotapi.riotapi import RiotAPIError

from announcer.registry import AlreadyWatched, normalize_key

logger = logging.getLogger(__name__)

HELP_MESSAGE = """league-announcer
Commands:
!leaguewatch <summonername> - Watch an account and report how they did after each game
!help - That's this!"""

WATCH_USAGE = "Unrecognized command, try '!leaguewatch <summonername>'"


async def handle_command(content: str, channel, announcer) -> Optional[str]:
    """Dispatch one chat message. Returns the reply text, or None if the message is not a command."""
    content = content.strip()
    if content.startswith("!leaguewatch"):
        return await cmd_league_watch(content, channel, announcer)
    if content.startswith("!help"):
        return HELP_MESSAGE
    return None


async def cmd_league_watch(content: str, channel, announcer) -> str:
    tokens = content.split(maxsplit=1)
    if len(tokens) != 2 or tokens[0] != "!leaguewatch":
        logger.debug("Ignoring an unrecognized command: %s", content)
        return WATCH_USAGE

    try:
        summoner = await announcer.match_source.get_summoner_by_name(tokens[1].strip())
    except RiotAPIError as e:
        logger.error("Failed to find summoner %s: %s", tokens[1], e)
        return f"Could not find that summoner: {e}"

    try:
        announcer.start_watching(normalize_key(summoner.name), summoner, channel)
    except AlreadyWatched:
        logger.info("Was asked to watch %s, but we're already watching them", summoner.name)
        return f"I'm already watching {summoner.name}"
    return f"Now watching {summoner.name}"
