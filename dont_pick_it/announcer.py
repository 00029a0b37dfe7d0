"""Spoken color announcements.

Speech is fire-and-forget: the session never waits on it and never sees its
errors. ``AnnouncementDispatcher`` schedules utterances on the running event
loop and logs anything an ``Announcer`` raises.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Announcer(Protocol):
    async def announce(self, text: str) -> None: ...


class AnnouncementSink(Protocol):
    """What the engine talks to; delivery is someone else's problem."""

    def dispatch(self, text: str, *, delay_s: float = 0.0) -> None: ...

    def cancel_all(self) -> None: ...


class SilentAnnouncer:
    async def announce(self, text: str) -> None:
        logger.debug("Announcement (silent): %s", text)


class OfflineTtsAnnouncer:
    """Best-effort offline TTS via isolated subprocesses.

    Each utterance runs in its own child process, so a broken speech engine
    cannot take the game down with it. Backends that fail to launch are
    dropped and the next one is tried.
    """

    SUPPORTED_BACKENDS: tuple[str, ...] = ("pyttsx3-subprocess", "say", "powershell", "espeak")

    # The product speaks slightly slower than the engines' defaults.
    _rate_wpm = 150
    _max_utterance_s = 6.0

    def __init__(self, *, disabled: bool = False, forced_backend: str | None = None) -> None:
        self._enabled = False
        self._backends: list[str] = []
        self._backend: str | None = None
        self._live_procs: set[asyncio.subprocess.Process] = set()

        if disabled:
            return
        if os.environ.get("SDL_AUDIODRIVER", "").strip().lower() == "dummy":
            # Keep automated/headless runs silent and stable.
            return

        self._backends = self._resolve_backends(forced_backend)
        self._backend = self._backends[0] if self._backends else None
        self._enabled = self._backend is not None
        if self._enabled:
            logger.info("Speech backend: %s", self._backend)
        else:
            logger.warning("No speech backend available; announcements are silent")

    @property
    def enabled(self) -> bool:
        return bool(self._enabled)

    @property
    def backend(self) -> str | None:
        return self._backend

    async def announce(self, text: str) -> None:
        if not self._enabled:
            return
        phrase = " ".join(str(text).strip().split())
        if phrase == "":
            return

        proc: asyncio.subprocess.Process | None = None
        while proc is None and self._enabled:
            try:
                proc = await self._launch_process(phrase)
            except OSError as exc:
                logger.warning("Speech backend %s failed to launch: %s", self._backend, exc)
                self._drop_current_backend()

        if proc is None:
            return

        self._live_procs.add(proc)
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._max_utterance_s)
        except asyncio.TimeoutError:
            logger.warning("Utterance %r exceeded %.1fs; terminating", phrase, self._max_utterance_s)
            self._terminate_process(proc)
        except asyncio.CancelledError:
            self._terminate_process(proc)
            raise
        finally:
            self._live_procs.discard(proc)

    def stop(self) -> None:
        """Kill every utterance still speaking."""
        procs = list(self._live_procs)
        self._live_procs.clear()
        for proc in procs:
            self._terminate_process(proc)

    @staticmethod
    def _terminate_process(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            return

    @classmethod
    def _resolve_backends(cls, forced: str | None) -> list[str]:
        forced = (forced or "").strip().lower()
        if forced in cls.SUPPORTED_BACKENDS and cls._backend_available(forced):
            return [forced]
        if forced:
            logger.warning("Requested speech backend %r is unavailable; auto-detecting", forced)

        candidates: list[str] = []
        if sys.platform == "darwin":
            candidates.append("say")
        if os.name == "nt":
            candidates.append("powershell")
        candidates.extend(("pyttsx3-subprocess", "espeak"))

        seen: set[str] = set()
        resolved: list[str] = []
        for name in candidates:
            if name in seen:
                continue
            seen.add(name)
            if cls._backend_available(name):
                resolved.append(name)
        return resolved

    @staticmethod
    def _backend_available(name: str) -> bool:
        if name == "say":
            return (shutil.which("say") is not None) or Path("/usr/bin/say").exists()
        if name == "powershell":
            return (shutil.which("powershell") is not None) or (shutil.which("pwsh") is not None)
        if name == "pyttsx3-subprocess":
            return importlib.util.find_spec("pyttsx3") is not None
        if name == "espeak":
            return shutil.which("espeak") is not None
        return False

    def _drop_current_backend(self) -> None:
        backend = self._backend
        if backend is None:
            self._enabled = False
            return
        self._backends = [name for name in self._backends if name != backend]
        self._backend = self._backends[0] if self._backends else None
        self._enabled = self._backend is not None

    def _command(self, text: str) -> list[str] | None:
        backend = self._backend
        if backend == "pyttsx3-subprocess":
            script = (
                "import sys\n"
                "txt=' '.join(sys.argv[1:]).strip()\n"
                "import pyttsx3\n"
                "e=pyttsx3.init()\n"
                f"e.setProperty('rate', {self._rate_wpm})\n"
                "e.setProperty('volume', 1.0)\n"
                "e.say(txt)\n"
                "e.runAndWait()\n"
            )
            return [sys.executable, "-c", script, text]
        if backend == "say":
            return [shutil.which("say") or "/usr/bin/say", "-r", str(self._rate_wpm), text]
        if backend == "powershell":
            ps_bin = shutil.which("powershell") or shutil.which("pwsh")
            if ps_bin is None:
                return None
            script = (
                "Add-Type -AssemblyName System.Speech; "
                "$s=New-Object System.Speech.Synthesis.SpeechSynthesizer; "
                "$s.Rate=-1; "
                "$txt=($args -join ' '); "
                "$s.Speak($txt);"
            )
            return [ps_bin, "-NoProfile", "-NonInteractive", "-Command", script, text]
        if backend == "espeak":
            return ["espeak", "-v", "en-us", "-s", str(self._rate_wpm), text]
        return None

    async def _launch_process(self, text: str) -> asyncio.subprocess.Process | None:
        argv = self._command(text)
        if argv is None:
            raise OSError(f"speech backend {self._backend!r} has no command")
        return await asyncio.create_subprocess_exec(
            *argv,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


class AnnouncementDispatcher:
    def __init__(self, announcer: Announcer) -> None:
        self._announcer = announcer
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def dispatch(self, text: str, *, delay_s: float = 0.0) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; dropping announcement %r", text)
            return
        task = loop.create_task(self._deliver(text, float(delay_s)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        stop = getattr(self._announcer, "stop", None)
        if callable(stop):
            stop()

    async def _deliver(self, text: str, delay_s: float) -> None:
        if delay_s > 0.0:
            await asyncio.sleep(delay_s)
        try:
            await self._announcer.announce(text)
        except Exception:
            logger.warning("Announcement %r failed", text, exc_info=True)


def build_announcer(*, disabled: bool, forced_backend: str | None) -> Announcer:
    if disabled:
        return SilentAnnouncer()
    tts = OfflineTtsAnnouncer(forced_backend=forced_backend)
    return tts if tts.enabled else SilentAnnouncer()
