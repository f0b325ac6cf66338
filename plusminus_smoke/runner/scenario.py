"""Drives the PlusMinus page through one smoke scenario.

The sequence is fail-fast: every wait has an explicit timeout and a timeout
is a hard failure. The one exception is advancing to the next problem, which
tolerates a bounded number of repeats from the random generator.

All Playwright calls are synchronous.
"""

from __future__ import annotations

import logging
import time

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from plusminus_smoke.config import SmokeConfig
from plusminus_smoke.errors import (
    InterpretationError,
    InvariantError,
    LivenessError,
    PreconditionError,
    SmokeTestError,
)
from plusminus_smoke.runner.report import FailureReporter, RunResult
from plusminus_smoke.solver.answer_engine import ActionKind, AnswerAction, infer_answer
from plusminus_smoke.solver.problem_reader import get_problem_signature, read_problem

logger = logging.getLogger(__name__)


class ScenarioRunner:
    """Answer, advance and PIN-gate checks against a live page."""

    def __init__(self, page, config: SmokeConfig, reporter: FailureReporter):
        self.page = page
        self.config = config
        self.selectors = config.selectors
        self.timeouts = config.timeouts
        self.reporter = reporter

    def run(self, url: str, result: RunResult):
        self.open_page(url)
        self.wait_for_required_elements()
        self.reporter.raise_if_failed()

        for round_number in range(1, self.config.rounds + 1):
            logger.info("Round %d/%d", round_number, self.config.rounds)
            self.answer_current_problem()
            self.ensure_next_changes_exercise()
            result.rounds_completed = round_number
            self.reporter.raise_if_failed()

        self.check_pin_gate()
        self.reporter.raise_if_failed()

    # ------------------------------------------------------------------
    # Page primitives
    # ------------------------------------------------------------------

    def open_page(self, url: str):
        logger.info("Opening %s", url)
        try:
            self.page.goto(url, wait_until="domcontentloaded", timeout=self.timeouts.navigation)
        except PlaywrightError as e:
            raise PreconditionError(f"Cannot open {url}: {e}") from e

    def _wait(
        self,
        selector: str,
        timeout: int,
        what: str,
        state: str = "visible",
        error_cls: type[SmokeTestError] = LivenessError,
    ):
        try:
            self.page.wait_for_selector(selector, state=state, timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise error_cls(
                f"Timed out after {timeout}ms waiting for {what} ({selector} {state})"
            ) from e

    def _click(self, selector: str):
        try:
            self.page.click(selector, timeout=self.timeouts.click)
        except PlaywrightTimeoutError as e:
            raise PreconditionError(f"Cannot click {selector}: {e}") from e

    def _fill(self, selector: str, value: str):
        try:
            self.page.fill(selector, value, timeout=self.timeouts.click)
        except PlaywrightTimeoutError as e:
            raise PreconditionError(f"Cannot fill {selector}: {e}") from e

    def _is_present(self, selector: str) -> bool:
        return self.page.query_selector(selector) is not None

    # ------------------------------------------------------------------
    # Scenario steps
    # ------------------------------------------------------------------

    def wait_for_required_elements(self):
        for selector in self.selectors.required:
            self._wait(
                selector,
                self.timeouts.required_element,
                "required element",
                state="attached",
                error_cls=PreconditionError,
            )

    def answer_current_problem(self) -> AnswerAction:
        """Read, solve and submit the displayed problem."""
        snapshot = read_problem(self.page, self.selectors)
        if not snapshot.found:
            raise PreconditionError(
                f"Problem container {self.selectors.problem_container!r} not found"
            )
        bad = snapshot.malformed_markers
        if bad:
            raise InterpretationError(
                f"Problem contains {'/'.join(bad)}: {snapshot.eq_text!r}",
                eq_text=snapshot.eq_text,
            )

        action = infer_answer(snapshot, self.selectors.equals_symbol)
        self.perform(action)

        self._wait(self.selectors.feedback, self.timeouts.feedback_visible, "feedback")
        self.check_persisted_state()
        return action

    def perform(self, action: AnswerAction):
        if action.kind is ActionKind.COMPARE:
            self._click(self.selectors.keypad(action.keys))
            return
        for ch in action.keys:
            self._click(self.selectors.keypad(ch))
        self._click(self.selectors.confirm_button)

    def check_persisted_state(self):
        key = self.config.storage_key
        value = self.page.evaluate("(key) => window.localStorage.getItem(key)", key)
        if not value:
            raise InvariantError(
                f"localStorage[{key!r}] is missing or empty after answering"
            )

    def _advance(self):
        self._click(self.selectors.next_button)
        self._wait(
            self.selectors.feedback,
            self.timeouts.feedback_hidden,
            "feedback to hide",
            state="hidden",
        )

    def _wait_for_new_signature(self, before: str) -> bool:
        deadline = time.monotonic() + self.timeouts.advance / 1000
        while True:
            after = get_problem_signature(self.page, self.selectors)
            if after and after != before:
                return True
            if time.monotonic() >= deadline:
                return False
            self.page.wait_for_timeout(self.timeouts.advance_poll)

    def ensure_next_changes_exercise(self):
        """Click "next" and require a different problem.

        The generator is random and may repeat a problem, so an unchanged
        signature is answered and advanced again a few times before failing.
        """
        before = get_problem_signature(self.page, self.selectors)
        self._advance()

        attempts = self.config.max_advance_attempts
        for attempt in range(attempts):
            if self._wait_for_new_signature(before):
                return
            logger.warning(
                "Problem unchanged after next (retry %d/%d): %s",
                attempt + 1, attempts, before,
            )
            self.answer_current_problem()
            self._advance()

        if self._wait_for_new_signature(before):
            return
        raise LivenessError(
            f"Next did not change the exercise after {attempts + 1} attempts: {before}"
        )

    def check_pin_gate(self):
        """Wrong PIN keeps the parent dashboard closed, the default PIN opens it."""
        sel = self.selectors
        parent_open = f"{sel.parent_dialog}[open]"

        self._click(sel.dashboard_button)
        self._wait(f"{sel.pin_dialog}[open]", self.timeouts.pin_dialog, "PIN dialog")

        self._fill(sel.pin_input, self.config.wrong_pin)
        self._click(sel.pin_confirm)
        self._wait(sel.pin_message, self.timeouts.pin_message, "wrong-PIN message")
        if self._is_present(parent_open):
            raise InvariantError("Parent dashboard opened with a wrong PIN")

        self._fill(sel.pin_input, self.config.correct_pin)
        self._click(sel.pin_confirm)
        self._wait(parent_open, self.timeouts.parent_dialog, "parent dashboard")

        self._click(sel.parent_close)
        self._wait(parent_open, self.timeouts.pin_dialog, "parent dashboard to close", state="detached")
        logger.info("PIN gate OK")
