"""Build the post-game report line for a watched summoner."""

import json
from functools import lru_cache
from pathlib import Path


FEEDING_DEATH_MARGIN = 5


class ParticipantNotFound(LookupError):
    """The match detail does not contain the watched summoner."""


## ---------------------------- Helper functions ---------------------------- ##
@lru_cache(maxsize=1)
def load_champion_data():
    '''
    Loads static champion data from a .json file.
    Used to match champion ids to their names when the match payload only carries the id.
    '''
    dataset_path = Path(__file__).resolve().parent / "datasets" / "champions.json"
    with dataset_path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return data.get("champions", {})


def get_champion_name(champion_id, champions=None) -> str:
    if champions is None:
        champions = load_champion_data()
    champion = champions.get(str(champion_id))
    return champion.get("name", str(champion_id)) if champion else str(champion_id)


def find_participant(summoner, match):
    '''
    Finds the summoner's participant record in a match detail payload.

    The identity record is matched on account id, then joined to the participant
    stats through its participant id.

    :param summoner: The watched Summoner.
    :param match: Match detail as returned by the match endpoint.
    :raises ParticipantNotFound: unless exactly one identity matches and it joins to a stats record.
    '''
    identities = [
        identity for identity in match.get("participantIdentities", [])
        if (identity.get("player") or {}).get("accountId") == summoner.account_id
    ]
    if not identities:
        raise ParticipantNotFound(
            f"{summoner.name} (account {summoner.account_id}) is not in match {match.get('gameId')}"
        )
    if len(identities) > 1:
        raise ParticipantNotFound(
            f"{summoner.name} (account {summoner.account_id}) appears {len(identities)} times in match {match.get('gameId')}"
        )
    participant_id = identities[0].get("participantId")

    for participant in match.get("participants", []):
        if participant.get("participantId") == participant_id and isinstance(participant.get("stats"), dict):
            return participant
    raise ParticipantNotFound(
        f"No stats for participant {participant_id} in match {match.get('gameId')}"
    )


def classify_outcome(kills: int, deaths: int, win: bool) -> str:
    """Map a kill/death line and the result to one of four fixed labels."""
    fed = deaths >= kills + FEEDING_DEATH_MARGIN
    match (win, fed):
        case (False, True):
            return "they were feeding"
        case (False, False):
            return "a tough loss"
        case (True, True):
            return "they got carried to a win"
        case _:
            return "a solid win"


def build_report(summoner, match, champions=None) -> str:
    """Format the one-line report for the summoner's performance in a match."""
    participant = find_participant(summoner, match)
    stats = participant["stats"]
    kills = int(stats.get("kills", 0))
    deaths = int(stats.get("deaths", 0))
    assists = int(stats.get("assists", 0))
    win = bool(stats.get("win", False))

    lane = (participant.get("timeline") or {}).get("lane") or "NONE"
    champion = participant.get("championName") or get_champion_name(
        participant.get("championId"), champions
    )
    statline = f"{kills}/{deaths}/{assists}"

    return (
        f"[{lane}] **{summoner.name}** just went {statline} as __{champion}__, "
        f"looks like {classify_outcome(kills, deaths, win)}"
    )
