#!/usr/bin/env python3
"""Main entry point: smoke-test the PlusMinus page in a headless browser.

Serves the repository root on a loopback port, opens the module page in
Chromium, answers a few generated problems, checks that "next" advances and
that the parental dashboard is PIN-gated. Exits 0 on success, 1 on any
detected failure.

Usage:
    python -m plusminus_smoke.runner.smoke                  # serve the current directory
    python -m plusminus_smoke.runner.smoke --root ../site   # serve another checkout
    python -m plusminus_smoke.runner.smoke --headed         # watch the run
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from plusminus_smoke.config import PROJECT_ROOT, SmokeConfig, load_config
from plusminus_smoke.environment.browser_env import BrowserSession
from plusminus_smoke.environment.static_server import (
    StaticServer,
    find_module_path,
    wait_for_server_ready,
)
from plusminus_smoke.errors import SmokeTestError
from plusminus_smoke.runner.report import FailureReporter, RunResult
from plusminus_smoke.runner.scenario import ScenarioRunner

logger = logging.getLogger(__name__)


def run_smoke(config: SmokeConfig, root: Path, result: RunResult):
    """Run the whole scenario; raises on the first failure.

    Page signals still pending when the session ends are added to *result*.
    """
    module_path = find_module_path(root, config.module_candidates)

    with StaticServer(root) as server:
        wait_for_server_ready(
            server.base_url,
            attempts=config.server_ready_attempts,
            interval=config.server_ready_interval,
        )
        with BrowserSession(headless=config.headless) as session:
            reporter = FailureReporter()
            reporter.attach(session.page)
            runner = ScenarioRunner(session.page, config, reporter)
            try:
                runner.run(f"{server.base_url}{module_path}", result)
            finally:
                result.extend(reporter.drain())


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt(f"signal {signum}")


def main(argv: list[str] | None = None) -> int:
    load_dotenv(PROJECT_ROOT / ".env")
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s: %(message)s",
    )

    parser = argparse.ArgumentParser(description="Smoke-test the PlusMinus page")
    parser.add_argument("--root", default=".", help="Directory to serve (default: cwd)")
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    args = parser.parse_args(argv)

    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)

    result = RunResult()
    result.start()
    try:
        config = load_config(args.config)
        if args.headed:
            config = config.model_copy(update={"headless": False})
        run_smoke(config, Path(args.root).resolve(), result)
    except SmokeTestError as e:
        logger.error("%s: %s", type(e).__name__, e)
        result.fail(str(e))
    except KeyboardInterrupt:
        logger.error("Interrupted")
        result.fail("interrupted")
    except Exception as e:
        logger.error("Unexpected error: %s", e, exc_info=True)
        result.fail(f"{type(e).__name__}: {e}")

    result.finish()
    result.print_summary()
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
