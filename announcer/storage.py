"""Persist the watch registry to disk and restore it at startup."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from announcer.registry import WatchEntry, WatchRegistry

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = Path("botdata.json")


class SaveError(Exception):
    """The registry could not be encoded or written to disk."""


class LoadError(Exception):
    """The state file could not be read or decoded."""


@dataclass(frozen=True)
class SerializedRecord:
    """On-disk projection of a WatchEntry. Only ids survive; the rest is re-resolved on load."""
    summoner_id: int
    channel_id: str
    last_reported_match_id: int

    def to_dict(self) -> dict:
        return {
            "summoner_id": self.summoner_id,
            "channel_id": self.channel_id,
            "last_reported_match_id": self.last_reported_match_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SerializedRecord":
        return cls(
            summoner_id=int(d["summoner_id"]),
            channel_id=str(d["channel_id"]),
            last_reported_match_id=int(d["last_reported_match_id"]),
        )


@dataclass
class LoadResult:
    registry: WatchRegistry
    failures: list[tuple[str, Exception]] = field(default_factory=list)


def flatten_entry(entry: WatchEntry) -> SerializedRecord:
    return SerializedRecord(
        summoner_id=entry.summoner.id,
        channel_id=entry.channel.id,
        last_reported_match_id=entry.last_reported_match_id,
    )


def flatten(registry: WatchRegistry) -> dict[str, SerializedRecord]:
    flattened = {}
    for key, entry in registry.snapshot():
        flattened[key] = flatten_entry(entry)
        logger.debug("Writing summoner %s to flattened index", key)
    return flattened


def encode_records(records: dict[str, SerializedRecord]) -> bytes:
    try:
        payload = {key: record.to_dict() for key, record in records.items()}
        return json.dumps(payload, indent=2, sort_keys=True).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SaveError(f"Could not encode bot state: {e}") from e


def save_records(records: dict[str, SerializedRecord], path: Path = DEFAULT_STATE_FILE) -> None:
    """Write records to ``path`` atomically: a temp file in the same directory is renamed over it."""
    data = encode_records(records)
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise SaveError(f"Could not write bot state to {path}: {e}") from e
    logger.debug("Wrote %d watches to %s", len(records), path)


def decode_records(raw: bytes) -> dict[str, SerializedRecord]:
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise LoadError(f"State file is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise LoadError("State file must be a JSON object keyed by watch key.")

    records = {}
    for key, value in payload.items():
        try:
            records[key] = SerializedRecord.from_dict(value)
        except (KeyError, TypeError, ValueError) as e:
            raise LoadError(f"Malformed record for {key}: {e}") from e
    return records


async def restore_registry(records: dict[str, SerializedRecord], resolve_summoner, resolve_channel) -> LoadResult:
    '''
    Rebuilds a registry from persisted records by resolving each summoner and channel id again.

    Records are resolved independently: one stale summoner or deleted channel is reported
    in ``failures`` and the remaining watches are still restored.

    :param records: Records as returned by decode_records().
    :param resolve_summoner: Coroutine function mapping a summoner id to a live Summoner.
    :param resolve_channel: Coroutine function mapping a channel id to a live Channel.
    '''
    result = LoadResult(registry=WatchRegistry())
    for key, record in records.items():
        try:
            summoner = await resolve_summoner(record.summoner_id)
            channel = await resolve_channel(record.channel_id)
            entry = WatchEntry(key, summoner, channel, record.last_reported_match_id)
            result.registry.insert(key, entry)
        except Exception as e:
            logger.debug("Could not restore %s: %s", key, e)
            result.failures.append((key, e))
    return result


async def load_state(path: Path, resolve_summoner, resolve_channel) -> LoadResult:
    """Read the state file at ``path`` and restore a registry from it."""
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise LoadError(f"Could not read bot state from {path}: {e}") from e
    records = decode_records(raw)
    return await restore_registry(records, resolve_summoner, resolve_channel)
