"""Small shared helpers for reading match list payloads."""

NO_MATCH = 0


def latest_match_id(matches):
    """Return the id of the most recent match in a match list, or None if the list is empty.

    The match list is expected most recent first, which is how the Riot API
    orders it. The order is not re-derived here.
    """
    if not matches:
        return None
    game_id = matches[0].get("gameId")
    if game_id is None:
        return None
    return int(game_id)


def is_new_match(last_reported_match_id, matches) -> bool:
    """Whether the head of the match list is a match that has not been reported yet."""
    current_match_id = latest_match_id(matches)
    if current_match_id is None:
        return False
    return current_match_id != last_reported_match_id
