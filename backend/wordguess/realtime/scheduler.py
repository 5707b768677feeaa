from __future__ import annotations

import logging
import random
import threading

from flask import Flask
from flask_socketio import SocketIO

from ..game import service
from ..runtime import Runtime
from .events import BOOST_HINT, Event


logger = logging.getLogger(__name__)


BOOST_HINTS = (
    "⏱ Tiny Diny adds +10s",
    "🍩 Donut adds +30s",
    "💸 Money Gun reveals a letter",
    "🌌 Galaxy reveals the word",
)


class HintRotation:
    def __init__(self, min_sec: int, max_sec: int, now: int, rng: random.Random | None = None) -> None:
        self.min_ms = min_sec * 1000
        self.max_ms = max(max_sec, min_sec) * 1000
        self.rng = rng or random.Random()
        self.index = 0
        self.next_at_ms = now + self.min_ms

    def due(self, now: int) -> str | None:
        if now < self.next_at_ms:
            return None
        text = BOOST_HINTS[self.index % len(BOOST_HINTS)]
        self.index += 1
        self.next_at_ms = now + self.rng.randint(self.min_ms, self.max_ms)
        return text


class Scheduler:
    """Fire-and-forget timers: poll auto-close and the periodic sweep.

    Timers never get cancelled. Each one carries the id of the thing it was
    created for and does nothing if that is no longer current.
    """

    def __init__(self, app: Flask, socketio: SocketIO, runtime: Runtime) -> None:
        self.app = app
        self.socketio = socketio
        self.runtime = runtime
        self._sweep_running = False
        self._sweep_lock = threading.Lock()
        self.hints = HintRotation(
            int(app.config.get("HINT_MIN_SEC", 90)),
            int(app.config.get("HINT_MAX_SEC", 120)),
            now=service.now_ms(),
        )

    @property
    def enabled(self) -> bool:
        if self.app.config.get("TESTING") and not self.app.config.get("ENABLE_SCHEDULER_IN_TESTS"):
            return False
        return True

    def schedule_poll_close(self, poll_id: int, ends_at_ms: int) -> None:
        if not self.enabled:
            return

        def _worker(expected_id: int, deadline_ms: int) -> None:
            delay = max(0.0, (deadline_ms - service.now_ms()) / 1000)
            self.socketio.sleep(delay)
            events = self.runtime.dispatch(service.stop_poll, expected_id)
            if not events:
                logger.info("[timer-abort] poll=%d already closed", expected_id)

        logger.info("[timer-set] poll=%d endsAt=%d", poll_id, ends_at_ms)
        self.socketio.start_background_task(_worker, poll_id, ends_at_ms)

    def sweep_once(self, now: int | None = None) -> list[Event]:
        now = now if now is not None else service.now_ms()
        out = list(self.runtime.dispatch(service.expire_winner, now))
        hint = self.hints.due(now)
        if hint:
            event = Event(BOOST_HINT, {"text": hint})
            self.runtime.fanout.publish([event])
            out.append(event)
        return out

    def ensure_sweep(self) -> None:
        if not self.enabled:
            return
        with self._sweep_lock:
            if self._sweep_running:
                return
            self._sweep_running = True
        interval = float(self.app.config.get("SWEEP_INTERVAL_SEC", 1.0))

        def _runner() -> None:
            logger.info("[sweep-start] interval=%.2fs", interval)
            while True:
                try:
                    self.sweep_once()
                except Exception:
                    logger.exception("[sweep] tick failed")
                self.socketio.sleep(interval)

        self.socketio.start_background_task(_runner)
