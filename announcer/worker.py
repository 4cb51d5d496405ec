"""Per-watch polling loop: poll, detect, fetch detail, report, advance."""

import asyncio
import enum
import logging
from contextlib import suppress

from matches.report import ParticipantNotFound, build_report
from matches.utils import is_new_match, latest_match_id
from riotapi.riotapi import RiotAPIError

from announcer.notifier import DeliveryError

POLL_INTERVAL_SECONDS = 10.0


class CycleResult(enum.Enum):
    NO_CHANGE = "no_change"
    FETCH_FAILED = "fetch_failed"
    DETAIL_FAILED = "detail_failed"
    PARTICIPANT_NOT_FOUND = "participant_not_found"
    DELIVERY_FAILED = "delivery_failed"
    REPORTED = "reported"


class WatchWorker:
    """Drive one watch entry's poll/detect/report cycle until stopped."""

    def __init__(
        self,
        entry,
        match_source,
        notifier,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        logger=None,
    ):
        self.entry = entry
        self.match_source = match_source
        self.notifier = notifier
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the polling task if it is not already running."""
        if not self.running:
            self._task = asyncio.create_task(
                self._poll_loop(), name=f"watch:{self.entry.key}"
            )
        return self._task

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.logger.exception("Unexpected error while polling %s", self.entry.summoner.name)

    async def run_cycle(self) -> CycleResult:
        """Run a single poll cycle.

        ``last_reported_match_id`` is only advanced after the report has been
        delivered, so a failed detail fetch or delivery is retried on the next
        cycle as long as the match is still the most recent one.
        """
        entry = self.entry
        summoner = entry.summoner

        try:
            matches = await self.match_source.fetch_recent_matches(summoner)
        except RiotAPIError as e:
            self.logger.debug("Match list fetch failed for %s: %s", summoner.name, e)
            return CycleResult.FETCH_FAILED

        if not is_new_match(entry.last_reported_match_id, matches):
            return CycleResult.NO_CHANGE
        current_match_id = latest_match_id(matches)

        try:
            match = await self.match_source.fetch_match_detail(current_match_id)
        except RiotAPIError as e:
            self.logger.warning("Failed to get match details for match %s: %s", current_match_id, e)
            return CycleResult.DETAIL_FAILED

        try:
            report = build_report(summoner, match)
        except ParticipantNotFound as e:
            self.logger.warning("Skipping match %s: %s", current_match_id, e)
            return CycleResult.PARTICIPANT_NOT_FOUND

        try:
            await self.notifier.send(entry.channel, report)
        except DeliveryError as e:
            self.logger.error(
                "Couldn't post message to channel %s: %s (%s)", entry.channel.name or entry.channel.id, report, e
            )
            return CycleResult.DELIVERY_FAILED

        entry.mark_reported(current_match_id)
        self.logger.info("Reported match %s for %s", current_match_id, summoner.name)
        return CycleResult.REPORTED
