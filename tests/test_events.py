"""Tests for the event bus, debouncer, dispatcher and keyed locks."""

import asyncio
from dataclasses import dataclass

from intake_tracker.services.dispatch import BackgroundDispatcher
from intake_tracker.services.events import Debouncer, EventBus
from intake_tracker.services.locks import KeyedLocks


@dataclass(frozen=True)
class Ping:
    value: int


@dataclass(frozen=True)
class Pong:
    value: int


def test_event_bus_routes_by_type_in_order() -> None:
    bus = EventBus()
    seen: list[str] = []

    async def first(event: Ping) -> None:
        seen.append(f"first:{event.value}")

    async def second(event: Ping) -> None:
        seen.append(f"second:{event.value}")

    async def other(event: Pong) -> None:
        seen.append("pong")

    bus.subscribe(Ping, first)
    bus.subscribe(Ping, second)
    bus.subscribe(Pong, other)

    asyncio.run(bus.publish(Ping(1)))

    assert seen == ["first:1", "second:1"]


def test_event_bus_isolates_failing_handler() -> None:
    bus = EventBus()
    seen: list[int] = []

    async def broken(event: Ping) -> None:
        raise RuntimeError("boom")

    async def healthy(event: Ping) -> None:
        seen.append(event.value)

    bus.subscribe(Ping, broken)
    bus.subscribe(Ping, healthy)

    asyncio.run(bus.publish(Ping(7)))

    assert seen == [7]


def test_debouncer_runs_only_latest_call() -> None:
    debouncer = Debouncer(delay_seconds=0.02)
    runs: list[int] = []

    def make(value: int):
        async def run() -> None:
            runs.append(value)

        return run

    async def scenario():
        for value in range(5):
            debouncer.call("day", make(value))
            await asyncio.sleep(0)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert runs == [4]
    assert debouncer.pending == 0


def test_debouncer_keys_are_independent() -> None:
    debouncer = Debouncer(delay_seconds=0.01)
    runs: list[str] = []

    def make(value: str):
        async def run() -> None:
            runs.append(value)

        return run

    async def scenario():
        debouncer.call("a", make("a"))
        debouncer.call("b", make("b"))
        await debouncer.flush()

    asyncio.run(scenario())

    assert sorted(runs) == ["a", "b"]


def test_dispatcher_logs_failures_and_drains() -> None:
    dispatcher = BackgroundDispatcher()
    done: list[str] = []

    async def ok() -> None:
        await asyncio.sleep(0)
        done.append("ok")

    async def broken() -> None:
        raise RuntimeError("boom")

    async def scenario():
        dispatcher.schedule(ok(), name="ok")
        dispatcher.schedule(broken(), name="broken")
        assert dispatcher.pending == 2
        await dispatcher.drain()

    asyncio.run(scenario())

    assert done == ["ok"]
    assert dispatcher.pending == 0


def test_keyed_locks_serialize_same_key_and_clean_up() -> None:
    locks = KeyedLocks()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold("k"):
            order.append(f"{name}:start")
            await asyncio.sleep(0.01)
            order.append(f"{name}:end")

    async def scenario():
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(scenario())

    assert order == ["a:start", "a:end", "b:start", "b:end"]
    assert len(locks) == 0
