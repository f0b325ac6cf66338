"""Shared fixtures: the fixture site and a scripted stand-in for a Playwright page."""

from __future__ import annotations

from pathlib import Path

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from plusminus_smoke.config import SmokeConfig, Timeouts
from plusminus_smoke.runner.report import FailureReporter
from plusminus_smoke.solver.problem_reader import ProblemSnapshot

SITE_ROOT = Path(__file__).resolve().parent / "fixtures" / "site"


class FakePage:
    """Records clicks and fills; waits succeed unless listed in ``missing``.

    ``snapshot`` and ``signature`` are what the reader functions return when
    the tests patch them onto this object. ``on_click`` hooks let a test
    change the displayed problem when a given selector is clicked.
    """

    def __init__(self, config: SmokeConfig):
        self.config = config
        self.clicks: list[str] = []
        self.fills: list[tuple[str, str]] = []
        self.missing: set[tuple[str, str]] = set()
        self.present: set[str] = set()
        self.storage: dict[str, str] = {config.storage_key: '{"answers": 1}'}
        self.snapshot = ProblemSnapshot.unknown()
        self.signature = "skill :: 1 + 1 ="
        self.on_click: dict[str, callable] = {}
        self.visited: list[str] = []
        self.handlers: dict[str, object] = {}

    def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)

    def on(self, event, handler):
        self.handlers[event] = handler

    def click(self, selector, timeout=None):
        self.clicks.append(selector)
        hook = self.on_click.get(selector)
        if hook is not None:
            hook()

    def fill(self, selector, value, timeout=None):
        self.fills.append((selector, value))

    def wait_for_selector(self, selector, state="visible", timeout=None):
        if (selector, state) in self.missing:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    def query_selector(self, selector):
        return object() if selector in self.present else None

    def evaluate(self, expression, arg=None):
        return self.storage.get(arg)

    def wait_for_timeout(self, ms):
        pass


@pytest.fixture
def site_root() -> Path:
    return SITE_ROOT


@pytest.fixture
def fast_config() -> SmokeConfig:
    return SmokeConfig(
        rounds=2,
        timeouts=Timeouts(advance=1, advance_poll=1),
    )


@pytest.fixture
def fake_page(fast_config) -> FakePage:
    return FakePage(fast_config)


@pytest.fixture
def reporter() -> FailureReporter:
    return FailureReporter()
