import logging
import threading
import time
from typing import Callable, Dict


class TaskScheduler:
    """One deferred callback per key, cancellable, fired at most once.

    ``start_task`` and ``sleep`` default to plain threads but are normally
    ``socketio.start_background_task`` / ``socketio.sleep`` so timers cooperate
    with whatever async mode the server runs in.
    """

    def __init__(self, start_task: Callable = None, sleep: Callable = None, logger=None):
        self._start_task = start_task or _start_thread
        self._sleep = sleep or time.sleep
        self.logger = logger or logging.getLogger(__name__)
        self._pending: Dict[str, object] = {}
        self._lock = threading.Lock()

    def schedule(self, key: str, delay_sec: float, callback: Callable[[], None]) -> None:
        """Arm ``callback`` for ``key``, replacing any timer already armed for it."""
        token = object()
        with self._lock:
            self._pending[key] = token
        self.logger.info(f"[timer-set] key={key} delay={delay_sec:.3f}s")
        self._start_task(self._worker, key, token, delay_sec, callback)

    def cancel(self, key: str) -> bool:
        with self._lock:
            cancelled = self._pending.pop(key, None) is not None
        if cancelled:
            self.logger.info(f"[timer-cancel] key={key}")
        return cancelled

    def is_scheduled(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def _claim(self, key: str, token: object) -> bool:
        # Only the timer currently armed for the key may fire, and only once
        with self._lock:
            if self._pending.get(key) is not token:
                return False
            del self._pending[key]
            return True

    def _worker(self, key: str, token: object, delay_sec: float, callback: Callable[[], None]) -> None:
        if delay_sec > 0:
            self._sleep(delay_sec)
        if not self._claim(key, token):
            self.logger.info(f"[timer-abort] key={key} cancelled or replaced")
            return
        self.logger.info(f"[timer-fire] key={key}")
        try:
            callback()
        except Exception:
            self.logger.exception(f"[timer-error] key={key}")


class RevealScheduler:
    """Fixed-period loop driving the global reveal scan."""

    def __init__(self, tick: Callable[[], None], interval_sec: float = 1.0,
                 start_task: Callable = None, sleep: Callable = None, logger=None):
        self.tick = tick
        self.interval_sec = interval_sec
        self._start_task = start_task or _start_thread
        self._sleep = sleep or time.sleep
        self.logger = logger or logging.getLogger(__name__)
        self._running = False
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> bool:
        with self._lock:
            if self._running:
                return False
            self._running = True
        self.logger.info(f"[reveal-loop] start interval={self.interval_sec}s")
        self._start_task(self._loop)
        return True

    def stop(self) -> None:
        self._running = False

    def _loop(self) -> None:
        while self._running:
            self._sleep(self.interval_sec)
            if not self._running:
                break
            try:
                self.tick()
            except Exception:
                # A bad room must not kill reveals for every other room
                self.logger.exception("[reveal-loop] tick failed")
        self.logger.info("[reveal-loop] stopped")


def _start_thread(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread
