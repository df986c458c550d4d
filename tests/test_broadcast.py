from __future__ import annotations

import asyncio
import threading

from gitstream.broadcast import BranchBroadcast
from gitstream.models import Branch

MAIN = Branch("main", is_current=True)
DEV = Branch("dev")


def test_every_subscriber_receives_publishes() -> None:
    broadcast = BranchBroadcast()
    first: list[Branch] = []
    second: list[Branch] = []
    broadcast.subscribe(first.append)
    broadcast.subscribe(second.append)
    broadcast.publish(MAIN)
    broadcast.publish(DEV)
    assert first == [MAIN, DEV]
    assert second == [MAIN, DEV]
    assert broadcast.latest == DEV


def test_late_subscriber_gets_latest_only() -> None:
    broadcast = BranchBroadcast()
    broadcast.publish(MAIN)
    broadcast.publish(DEV)
    seen: list[Branch] = []
    broadcast.subscribe(seen.append)
    assert seen == [DEV]


def test_unsubscribe_stops_delivery() -> None:
    broadcast = BranchBroadcast()
    seen: list[Branch] = []
    subscription = broadcast.subscribe(seen.append)
    assert subscription.active
    subscription.unsubscribe()
    assert not subscription.active
    broadcast.publish(MAIN)
    assert seen == []


def test_close_completes_and_detaches() -> None:
    broadcast = BranchBroadcast()
    seen: list[Branch] = []
    completed: list[str] = []
    subscription = broadcast.subscribe(seen.append, lambda: completed.append("early"))
    broadcast.close()
    assert completed == ["early"]
    assert not subscription.active
    broadcast.publish(MAIN)
    assert seen == []
    assert broadcast.latest is None

    late = broadcast.subscribe(seen.append, lambda: completed.append("late"))
    assert completed == ["early", "late"]
    assert not late.active


def test_wait_latest_returns_cached_value() -> None:
    broadcast = BranchBroadcast()
    broadcast.publish(MAIN)
    assert asyncio.run(broadcast.wait_latest()) == MAIN


def test_wait_latest_waits_for_publish_from_other_thread() -> None:
    broadcast = BranchBroadcast()

    async def scenario() -> Branch | None:
        waiter = asyncio.ensure_future(broadcast.wait_latest())
        await asyncio.sleep(0)
        threading.Thread(target=broadcast.publish, args=(DEV,)).start()
        return await asyncio.wait_for(waiter, timeout=5)

    assert asyncio.run(scenario()) == DEV


def test_wait_latest_returns_none_when_closed() -> None:
    broadcast = BranchBroadcast()

    async def scenario() -> Branch | None:
        waiter = asyncio.ensure_future(broadcast.wait_latest())
        await asyncio.sleep(0)
        broadcast.close()
        return await asyncio.wait_for(waiter, timeout=5)

    assert asyncio.run(scenario()) is None


def test_stream_yields_until_close() -> None:
    broadcast = BranchBroadcast()
    broadcast.publish(MAIN)

    async def scenario() -> list[Branch]:
        seen: list[Branch] = []

        async def consume() -> None:
            async for branch in broadcast.stream():
                seen.append(branch)

        task = asyncio.ensure_future(consume())
        await asyncio.sleep(0)
        broadcast.publish(DEV)
        broadcast.close()
        await asyncio.wait_for(task, timeout=5)
        return seen

    assert asyncio.run(scenario()) == [MAIN, DEV]


def test_failing_subscriber_does_not_block_others(caplog) -> None:
    broadcast = BranchBroadcast()
    seen: list[Branch] = []

    def explode(branch: Branch) -> None:
        raise RuntimeError("subscriber bug")

    broadcast.subscribe(explode)
    broadcast.subscribe(seen.append)
    broadcast.publish(DEV)
    assert seen == [DEV]
    assert broadcast.latest == DEV
    assert "subscriber failed on publish of dev" in caplog.text


def test_failing_completion_does_not_block_others(caplog) -> None:
    broadcast = BranchBroadcast()
    completed: list[str] = []

    def explode() -> None:
        raise RuntimeError("completion bug")

    first = broadcast.subscribe(lambda branch: None, explode)
    second = broadcast.subscribe(lambda branch: None, lambda: completed.append("second"))
    broadcast.close()
    assert completed == ["second"]
    assert not first.active and not second.active
    assert broadcast.closed
    assert "subscriber failed on completion" in caplog.text
