from __future__ import annotations

import asyncio
import logging

from dont_pick_it.announcer import (
    AnnouncementDispatcher,
    OfflineTtsAnnouncer,
    SilentAnnouncer,
    build_announcer,
)


class RecordingAnnouncer:
    def __init__(self) -> None:
        self.spoken: list[str] = []
        self.stopped = 0

    async def announce(self, text: str) -> None:
        self.spoken.append(text)

    def stop(self) -> None:
        self.stopped += 1


class BrokenAnnouncer:
    async def announce(self, text: str) -> None:
        raise RuntimeError("speech engine exploded")


def test_dispatch_delivers_on_running_loop() -> None:
    announcer = RecordingAnnouncer()
    dispatcher = AnnouncementDispatcher(announcer)

    async def scenario() -> None:
        dispatcher.dispatch("blue")
        dispatcher.dispatch("green", delay_s=0.01)
        assert dispatcher.pending_count == 2
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert announcer.spoken == ["blue", "green"]
    assert dispatcher.pending_count == 0


def test_delay_holds_back_the_utterance() -> None:
    announcer = RecordingAnnouncer()
    dispatcher = AnnouncementDispatcher(announcer)

    async def scenario() -> list[str]:
        dispatcher.dispatch("red", delay_s=0.2)
        await asyncio.sleep(0.01)
        early = list(announcer.spoken)
        dispatcher.cancel_all()
        return early

    early = asyncio.run(scenario())

    assert early == []
    assert announcer.spoken == []
    assert announcer.stopped == 1


def test_failing_announcer_is_logged_and_swallowed(caplog) -> None:
    dispatcher = AnnouncementDispatcher(BrokenAnnouncer())

    async def scenario() -> None:
        dispatcher.dispatch("yellow")
        await asyncio.sleep(0.01)

    with caplog.at_level(logging.WARNING, logger="dont_pick_it.announcer"):
        asyncio.run(scenario())

    assert any("yellow" in r.getMessage() for r in caplog.records)
    assert dispatcher.pending_count == 0


def test_dispatch_without_loop_is_dropped() -> None:
    announcer = RecordingAnnouncer()
    dispatcher = AnnouncementDispatcher(announcer)

    dispatcher.dispatch("blue")

    assert dispatcher.pending_count == 0
    assert announcer.spoken == []


def test_offline_tts_is_silent_under_dummy_audio(monkeypatch) -> None:
    monkeypatch.setenv("SDL_AUDIODRIVER", "dummy")

    tts = OfflineTtsAnnouncer()

    assert not tts.enabled
    assert tts.backend is None
    asyncio.run(tts.announce("blue"))


def test_build_announcer_falls_back_to_silent(monkeypatch) -> None:
    monkeypatch.setenv("SDL_AUDIODRIVER", "dummy")

    assert isinstance(build_announcer(disabled=True, forced_backend=None), SilentAnnouncer)
    assert isinstance(build_announcer(disabled=False, forced_backend="espeak"), SilentAnnouncer)


class FakeProcess:
    """Stands in for an asyncio child process; ``finish`` ends it normally."""

    def __init__(self, *, finishes: bool) -> None:
        self.returncode: int | None = None
        self.killed = False
        self._finishes = finishes
        self._done: asyncio.Event | None = None

    async def wait(self) -> int:
        if self._finishes:
            self.returncode = 0
            return 0
        self._done = asyncio.Event()
        await self._done.wait()
        assert self.returncode is not None
        return self.returncode

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9
        if self._done is not None:
            self._done.set()


def _speaking_tts(monkeypatch, backends: list[str]) -> OfflineTtsAnnouncer:
    monkeypatch.delenv("SDL_AUDIODRIVER", raising=False)
    monkeypatch.setattr(
        OfflineTtsAnnouncer,
        "_resolve_backends",
        classmethod(lambda cls, forced: list(backends)),
    )
    tts = OfflineTtsAnnouncer()
    assert tts.enabled
    return tts


def _fake_exec(monkeypatch, *, failing: set[str], finishes: bool) -> tuple[list[str], list[FakeProcess]]:
    launched: list[str] = []
    procs: list[FakeProcess] = []

    async def create_subprocess_exec(*argv, **kwargs):
        program = argv[0]
        launched.append(program)
        if any(program.endswith(name) for name in failing):
            raise OSError(f"cannot run {program}")
        proc = FakeProcess(finishes=finishes)
        procs.append(proc)
        return proc

    monkeypatch.setattr(asyncio, "create_subprocess_exec", create_subprocess_exec)
    return launched, procs


def test_backend_that_fails_to_launch_is_dropped(monkeypatch) -> None:
    tts = _speaking_tts(monkeypatch, ["say", "espeak"])
    launched, procs = _fake_exec(monkeypatch, failing={"say"}, finishes=True)

    asyncio.run(tts.announce("blue"))
    asyncio.run(tts.announce("green"))

    assert tts.backend == "espeak"
    assert tts.enabled
    assert launched[0].endswith("say")
    assert launched[1:] == ["espeak", "espeak"]
    assert len(procs) == 2


def test_all_backends_failing_disables_speech(monkeypatch) -> None:
    tts = _speaking_tts(monkeypatch, ["say", "espeak"])
    _fake_exec(monkeypatch, failing={"say", "espeak"}, finishes=True)

    asyncio.run(tts.announce("red"))

    assert not tts.enabled
    assert tts.backend is None


def test_overlong_utterance_is_killed(monkeypatch) -> None:
    tts = _speaking_tts(monkeypatch, ["espeak"])
    _, procs = _fake_exec(monkeypatch, failing=set(), finishes=False)
    tts._max_utterance_s = 0.01

    asyncio.run(tts.announce("yellow"))

    assert len(procs) == 1
    assert procs[0].killed


def test_stop_kills_every_overlapping_utterance(monkeypatch) -> None:
    tts = _speaking_tts(monkeypatch, ["espeak"])
    _, procs = _fake_exec(monkeypatch, failing=set(), finishes=False)

    async def scenario() -> None:
        first = asyncio.create_task(tts.announce("blue"))
        second = asyncio.create_task(tts.announce("green"))
        await asyncio.sleep(0.01)
        tts.stop()
        await asyncio.gather(first, second)

    asyncio.run(scenario())

    assert len(procs) == 2
    assert all(p.killed for p in procs)


def test_cancel_all_kills_children_of_cancelled_deliveries(monkeypatch) -> None:
    tts = _speaking_tts(monkeypatch, ["espeak"])
    _, procs = _fake_exec(monkeypatch, failing=set(), finishes=False)
    dispatcher = AnnouncementDispatcher(tts)

    async def scenario() -> None:
        dispatcher.dispatch("blue")
        dispatcher.dispatch("green")
        dispatcher.dispatch("red")
        await asyncio.sleep(0.01)
        dispatcher.cancel_all()
        await asyncio.sleep(0.01)

    asyncio.run(scenario())

    assert len(procs) == 3
    assert all(p.killed for p in procs)
    assert dispatcher.pending_count == 0
