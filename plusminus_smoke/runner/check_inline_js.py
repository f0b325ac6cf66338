#!/usr/bin/env python3
"""Check that the inline scripts of the page's HTML files parse.

Usage:
    python -m plusminus_smoke.runner.check_inline_js                       # configured files
    python -m plusminus_smoke.runner.check_inline_js plusminus/index.html  # explicit files
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from plusminus_smoke.config import load_config
from plusminus_smoke.environment.browser_env import BrowserSession
from plusminus_smoke.environment.inline_js import ScriptProblem, collect_scripts, compile_scripts
from plusminus_smoke.errors import SmokeTestError

logger = logging.getLogger(__name__)


def check_inline_js(root: Path, files: list[str], headless: bool = True) -> list[ScriptProblem]:
    scripts, problems = collect_scripts(root, files)
    if scripts:
        with BrowserSession(headless=headless) as session:
            problems.extend(compile_scripts(session.page, scripts))
    return problems


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    parser = argparse.ArgumentParser(description="Syntax-check inline <script> blocks")
    parser.add_argument("files", nargs="*", help="HTML files relative to --root")
    parser.add_argument("--root", default=".", help="Base directory (default: cwd)")
    parser.add_argument("--config", default=None, help="YAML config file")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        problems = check_inline_js(
            Path(args.root), args.files or config.inline_js_files, config.headless
        )
    except SmokeTestError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 1
    except Exception as e:
        logger.error("Unexpected error: %s", e, exc_info=True)
        return 1

    if problems:
        for p in problems:
            print(f"FAIL {p.label}: {p.message}", file=sys.stderr)
        return 1
    print("Inline JS syntax check passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
