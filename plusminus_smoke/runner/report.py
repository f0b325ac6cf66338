"""Failure collection for a smoke run."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from plusminus_smoke.errors import RuntimeSignalError

logger = logging.getLogger(__name__)

MAX_SIGNALS = 100
ALLOWED_FAILURE_PATHS = ("/favicon.ico",)


def _is_allowed_url(url: str) -> bool:
    return urlsplit(url or "").path.endswith(ALLOWED_FAILURE_PATHS)


@dataclass
class RunResult:
    """Accumulates failure reasons and timing for one run."""
    failures: list[str] = field(default_factory=list)
    rounds_completed: int = 0
    start_time: float = 0.0
    elapsed_seconds: float = 0.0

    def start(self):
        self.start_time = time.time()

    def finish(self):
        self.elapsed_seconds = time.time() - self.start_time

    def fail(self, reason: str):
        self.failures.append(reason)

    def extend(self, reasons: list[str]):
        self.failures.extend(reasons)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def format_summary(self) -> str:
        lines = []
        if self.ok:
            lines.append("SMOKE TEST OK")
        else:
            lines.append("SMOKE TEST FAILED")
            lines.extend(f"- {reason}" for reason in self.failures)
        lines.append(
            f"rounds completed: {self.rounds_completed}, "
            f"elapsed: {self.elapsed_seconds:.1f}s"
        )
        return "\n".join(lines)

    def print_summary(self):
        print(f"\n{'='*50}")
        print(self.format_summary())
        print(f"{'='*50}")


class FailureReporter:
    """Collects page errors, console errors and failed requests.

    Handlers only record; the runner calls ``raise_if_failed()`` between
    phases and the entry point drains whatever is left at the end.
    """

    def __init__(self, max_signals: int = MAX_SIGNALS):
        self.max_signals = max_signals
        self.signals: list[str] = []
        self.dropped = 0

    def attach(self, page):
        page.on("pageerror", self.on_page_error)
        page.on("console", self.on_console)
        page.on("requestfailed", self.on_request_failed)

    def record(self, signal: str):
        logger.error("Page signal: %s", signal)
        if len(self.signals) >= self.max_signals:
            self.dropped += 1
            return
        self.signals.append(signal)

    def on_page_error(self, error):
        message = getattr(error, "message", None) or str(error)
        self.record(f"pageerror: {message}")

    def on_console(self, msg):
        if msg.type != "error":
            return
        location = msg.location or {}
        if _is_allowed_url(location.get("url", "")):
            return
        self.record(f"console.error: {msg.text}")

    def on_request_failed(self, request):
        if _is_allowed_url(request.url):
            logger.debug("Ignoring failed request %s", request.url)
            return
        self.record(f"requestfailed: {request.method} {request.url} ({request.failure})")

    def drain(self) -> list[str]:
        """Return and clear the collected signals."""
        signals = list(self.signals)
        if self.dropped:
            signals.append(f"... {self.dropped} more signal(s) dropped")
        self.signals.clear()
        self.dropped = 0
        return signals

    def raise_if_failed(self):
        if self.signals:
            raise RuntimeSignalError(self.drain())
