import asyncio

from announcer.notifier import DeliveryError
from announcer.registry import WatchEntry
from announcer.worker import CycleResult, WatchWorker
from riotapi.riotapi import RiotAPIError
from conftest import make_match, make_matchlist


def _worker(entry, match_source, notifier, poll_interval=10.0):
    return WatchWorker(entry, match_source, notifier, poll_interval=poll_interval)


def test_new_match_is_reported(summoner, channel, match_source, notifier):
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)
    worker = _worker(entry, match_source, notifier)

    result = asyncio.run(worker.run_cycle())

    assert result is CycleResult.REPORTED
    match_source.fetch_match_detail.assert_awaited_once_with(1002)
    notifier.send.assert_awaited_once()
    sent_channel, text = notifier.send.await_args.args
    assert sent_channel == channel
    assert "10/2/5" in text and "Ahri" in text and "MID" in text
    assert entry.last_reported_match_id == 1002


def test_same_match_is_reported_once(summoner, channel, match_source, notifier):
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)
    worker = _worker(entry, match_source, notifier)

    async def cycles():
        return [await worker.run_cycle() for _ in range(4)]

    results = asyncio.run(cycles())

    assert results == [CycleResult.REPORTED] + [CycleResult.NO_CHANGE] * 3
    assert notifier.send.await_count == 1
    assert match_source.fetch_match_detail.await_count == 1


def test_no_change_when_head_already_reported(summoner, channel, match_source, notifier):
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1002)

    result = asyncio.run(_worker(entry, match_source, notifier).run_cycle())

    assert result is CycleResult.NO_CHANGE
    match_source.fetch_match_detail.assert_not_awaited()
    notifier.send.assert_not_awaited()


def test_empty_match_list_is_no_op(summoner, channel, match_source, notifier):
    match_source.fetch_recent_matches.return_value = []
    entry = WatchEntry("faker", summoner, channel)

    result = asyncio.run(_worker(entry, match_source, notifier).run_cycle())

    assert result is CycleResult.NO_CHANGE
    notifier.send.assert_not_awaited()


def test_match_list_failure_skips_cycle(summoner, channel, match_source, notifier):
    match_source.fetch_recent_matches.side_effect = RiotAPIError("timed out")
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)

    result = asyncio.run(_worker(entry, match_source, notifier).run_cycle())

    assert result is CycleResult.FETCH_FAILED
    assert entry.last_reported_match_id == 1001


def test_detail_failure_retried_next_cycle(summoner, channel, match_source, notifier):
    match_source.fetch_match_detail.side_effect = [
        RiotAPIError("503", status_code=503),
        make_match(1002, summoner.account_id),
    ]
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)
    worker = _worker(entry, match_source, notifier)

    async def cycles():
        first = await worker.run_cycle()
        after_first = entry.last_reported_match_id
        second = await worker.run_cycle()
        return first, after_first, second

    first, after_first, second = asyncio.run(cycles())

    assert first is CycleResult.DETAIL_FAILED
    assert after_first == 1001
    assert second is CycleResult.REPORTED
    assert entry.last_reported_match_id == 1002
    assert notifier.send.await_count == 1


def test_delivery_failure_retried_next_cycle(summoner, channel, match_source, notifier):
    notifier.send.side_effect = [DeliveryError("500"), None]
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)
    worker = _worker(entry, match_source, notifier)

    async def cycles():
        first = await worker.run_cycle()
        after_first = entry.last_reported_match_id
        second = await worker.run_cycle()
        third = await worker.run_cycle()
        return first, after_first, second, third

    first, after_first, second, third = asyncio.run(cycles())

    assert first is CycleResult.DELIVERY_FAILED
    assert after_first == 1001
    assert second is CycleResult.REPORTED
    assert third is CycleResult.NO_CHANGE
    assert entry.last_reported_match_id == 1002
    assert notifier.send.await_count == 2


def test_participant_missing_does_not_advance(summoner, channel, match_source, notifier):
    match_source.fetch_match_detail.return_value = make_match(1002, account_id=1)
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)

    result = asyncio.run(_worker(entry, match_source, notifier).run_cycle())

    assert result is CycleResult.PARTICIPANT_NOT_FOUND
    assert entry.last_reported_match_id == 1001
    notifier.send.assert_not_awaited()


def test_missing_stats_does_not_advance(summoner, channel, match_source, notifier):
    match = make_match(1002, summoner.account_id)
    del match["participants"][1]["stats"]
    match_source.fetch_match_detail.return_value = match
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)

    result = asyncio.run(_worker(entry, match_source, notifier).run_cycle())

    assert result is CycleResult.PARTICIPANT_NOT_FOUND
    assert entry.last_reported_match_id == 1001
    notifier.send.assert_not_awaited()


def test_newer_match_supersedes_undelivered_one(summoner, channel, match_source, notifier):
    match_source.fetch_recent_matches.side_effect = [
        make_matchlist(1002, 1001),
        make_matchlist(1003, 1002, 1001),
    ]
    match_source.fetch_match_detail.side_effect = lambda match_id: make_match(match_id, summoner.account_id)
    notifier.send.side_effect = [DeliveryError("down"), None]
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)
    worker = _worker(entry, match_source, notifier)

    async def cycles():
        return [await worker.run_cycle(), await worker.run_cycle()]

    assert asyncio.run(cycles()) == [CycleResult.DELIVERY_FAILED, CycleResult.REPORTED]
    assert entry.last_reported_match_id == 1003


def test_start_and_stop_poll_loop(summoner, channel, match_source, notifier):
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)
    worker = _worker(entry, match_source, notifier, poll_interval=0.01)

    async def run():
        worker.start()
        assert worker.running
        for _ in range(200):
            if entry.last_reported_match_id == 1002:
                break
            await asyncio.sleep(0.01)
        await worker.stop()

    asyncio.run(run())

    assert not worker.running
    assert entry.last_reported_match_id == 1002
    assert notifier.send.await_count == 1


def test_poll_loop_survives_unexpected_errors(summoner, channel, match_source, notifier):
    match_source.fetch_recent_matches.side_effect = [ValueError("bad payload")] + [make_matchlist(1002)] * 500
    entry = WatchEntry("faker", summoner, channel, last_reported_match_id=1001)
    worker = _worker(entry, match_source, notifier, poll_interval=0.01)

    async def run():
        worker.start()
        for _ in range(200):
            if entry.last_reported_match_id == 1002:
                break
            await asyncio.sleep(0.01)
        await worker.stop()

    asyncio.run(run())

    assert entry.last_reported_match_id == 1002
