"""Main runtime for the league announcer.

Owns the watch registry and one worker per watch, restores watches from disk
at startup, saves them again at shutdown, and wires the Riot and Discord
clients together from the bot configuration.
"""

import asyncio
import logging
import signal
import sys
from contextlib import suppress
from pathlib import Path

# Allow running this file directly (e.g., python announcer/announcer.py).
if __package__ is None or __package__ == "":
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from riotapi.riotapi import RiotClient
from announcer.cli import build_cli_parser
from announcer.commands import handle_command
from announcer.config import ConfigError, config_from_env, load_config
from announcer.logging_utils import configure_rotating_logger, resolve_log_file, tail_logs
from announcer.gateway import GatewayListener
from announcer.notifier import Channel, DeliveryError, DiscordNotifier
from announcer.registry import WatchEntry, WatchRegistry
from announcer.storage import (
    DEFAULT_STATE_FILE,
    LoadError,
    SaveError,
    flatten,
    load_state,
    save_records,
)
from announcer.worker import POLL_INTERVAL_SECONDS, WatchWorker

logger = logging.getLogger("announcer")


class Announcer:
    """Explicit runtime context: registry, workers, and the clients they share."""

    def __init__(
        self,
        match_source,
        notifier,
        state_file: Path = DEFAULT_STATE_FILE,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.match_source = match_source
        self.notifier = notifier
        self.state_file = Path(state_file)
        self.poll_interval = poll_interval
        self.registry = WatchRegistry()
        self.workers: dict[str, WatchWorker] = {}

    def _spawn_worker(self, entry: WatchEntry) -> WatchWorker:
        worker = WatchWorker(
            entry,
            self.match_source,
            self.notifier,
            poll_interval=self.poll_interval,
            logger=logging.getLogger(f"announcer.worker.{entry.key}"),
        )
        self.workers[entry.key] = worker
        worker.start()
        logger.debug("Monitoring %s", entry.summoner.name)
        return worker

    def start_watching(self, key: str, summoner, channel) -> WatchEntry:
        """Register a new watch and start its worker. Raises AlreadyWatched if ``key`` is taken.

        Must be called from the event loop thread, since it creates the worker task.
        """
        entry = WatchEntry(key, summoner, channel)
        self.registry.insert(key, entry)
        self._spawn_worker(entry)
        logger.info("Started watching %s in #%s", summoner.name, channel.name or channel.id)
        return entry

    async def bootstrap(self):
        """Restore watches from the state file and start a worker for each.

        Falls back to an empty registry when the file is missing or unreadable.
        Must run before any watch is started.
        """
        if self.workers:
            raise RuntimeError("bootstrap() must run before any watch is started")
        try:
            result = await load_state(
                self.state_file,
                self.match_source.get_summoner_by_id,
                self.notifier.get_channel,
            )
        except LoadError as e:
            logger.warning("Could not load bot state from disk, proceeding with empty state: %s", e)
            return None

        for key, error in result.failures:
            logger.warning("Could not restore watch %s: %s", key, error)
        self.registry = result.registry
        for _, entry in self.registry.snapshot():
            self._spawn_worker(entry)
        logger.info("Loaded bot state from disk, loaded %d users", len(self.registry))
        return result

    def save_state(self) -> bool:
        try:
            save_records(flatten(self.registry), self.state_file)
        except SaveError as e:
            logger.error("Could not serialize bot state: %s", e)
            return False
        return True

    async def on_message(self, message: dict) -> None:
        """Answer a chat message from the gateway if it is a command."""
        content = message.get("content") or ""
        if not content.strip().startswith("!"):
            return
        channel_id = str(message.get("channel_id"))
        try:
            channel = await self.notifier.get_channel(channel_id)
        except DeliveryError as e:
            logger.debug("Could not look up channel %s: %s", channel_id, e)
            channel = Channel(id=channel_id)

        reply = await handle_command(content, channel, self)
        if reply is None:
            return
        try:
            await self.notifier.send(channel, reply)
        except DeliveryError as e:
            logger.error("Could not reply in channel %s: %s", channel_id, e)

    async def shutdown(self) -> bool:
        """Stop every worker, then write the registry to disk."""
        await asyncio.gather(*(worker.stop() for worker in self.workers.values()))
        self.workers.clear()
        logger.debug("Writing bot state to disk")
        return self.save_state()


async def seed_watches(announcer: Announcer, watches) -> None:
    for summoner_name, channel_id in watches:
        try:
            channel = await announcer.notifier.get_channel(channel_id)
        except DeliveryError as e:
            logger.error("Could not find channel %s for %s: %s", channel_id, summoner_name, e)
            continue
        reply = await handle_command(f"!leaguewatch {summoner_name}", channel, announcer)
        logger.info(reply)


async def main_async(config, watches=(), dry_run: bool = False):
    """Run the announcer until SIGINT/SIGTERM, then shut down cleanly."""
    riot = RiotClient(config.riot_api_key, region=config.region, request_timeout=config.request_timeout)
    notifier = DiscordNotifier(config.discord_auth_token, request_timeout=config.request_timeout, dry_run=dry_run)
    announcer = Announcer(riot, notifier, state_file=config.state_file, poll_interval=config.poll_interval)

    gateway = GatewayListener(config.discord_auth_token, announcer.on_message)

    gateway_task = None
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    try:
        await announcer.bootstrap()
        await seed_watches(announcer, watches)
        gateway_task = asyncio.create_task(gateway.run(), name="gateway")
        logger.info("Announcer is now running. Press CTRL-C to exit.")
        await stop_event.wait()
    finally:
        if gateway_task is not None:
            gateway_task.cancel()
            with suppress(asyncio.CancelledError):
                await gateway_task
        await announcer.shutdown()
        await riot.close()
        await notifier.close()


def main(argv=None) -> int:
    """Program entry point for the announcer."""
    cli_args = build_cli_parser().parse_args(argv)
    log_file = resolve_log_file()

    # Rather than run the announcer, tail (display) the log file.
    if cli_args.tail_logs:
        return tail_logs(log_file=log_file, lines=cli_args.tail_lines, follow=not cli_args.no_follow)

    _, log_file = configure_rotating_logger(
        logger_name="announcer",
        preferred_log_file=log_file,
        fallback_log_file=Path(__file__).resolve().parent / "logs" / "announcer.log",
        level=logging.DEBUG if cli_args.debug else logging.INFO,
    )

    try:
        config = load_config(cli_args.config) if cli_args.config else config_from_env()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    if cli_args.state_file:
        config.state_file = Path(cli_args.state_file)
    if cli_args.poll_interval is not None:
        config.poll_interval = cli_args.poll_interval

    logger.info("Starting announcer. Log file: %s", log_file)
    asyncio.run(main_async(config, watches=cli_args.watch, dry_run=cli_args.dry_run))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
