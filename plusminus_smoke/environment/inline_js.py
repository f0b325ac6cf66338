"""Syntax check for the inline ``<script>`` blocks of the page's HTML files.

Scripts are extracted with BeautifulSoup and parsed inside the browser as
classic scripts, so the check uses the same parser the page is run with. Each
source is inserted into its own blank iframe, so top-level declarations of one
script never clash with another, and is prefixed with ``throw null;`` so its
body never runs. Only a SyntaxError reported by the parser counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

JS_SCRIPT_TYPES = {"text/javascript", "application/javascript", "module"}

# Returns null when the source parses, else "<ErrorName>: <message>".
_COMPILE_JS = """\
(source) => {
    const frame = document.createElement("iframe");
    document.documentElement.appendChild(frame);
    const win = frame.contentWindow;
    let problem = null;
    win.addEventListener("error", (event) => {
        const err = event.error;
        if (err && err.name === "SyntaxError") {
            problem = `${err.name}: ${err.message}`;
        } else if (!err && /SyntaxError/.test(event.message || "")) {
            problem = event.message.replace(/^Uncaught /, "");
        }
        event.preventDefault();
    });
    const el = win.document.createElement("script");
    el.textContent = "throw null;\\n" + source;
    try {
        win.document.documentElement.appendChild(el);
    } finally {
        frame.remove();
    }
    return problem;
}
"""


@dataclass(frozen=True)
class InlineScript:
    file: str
    index: int
    source: str

    @property
    def label(self) -> str:
        return f"{self.file}::script#{self.index}"


@dataclass(frozen=True)
class ScriptProblem:
    label: str
    message: str


def extract_scripts(html: str, file: str = "<html>") -> list[InlineScript]:
    """Return the inline JavaScript blocks of *html*, numbered from 1.

    External scripts (``src=``), blank bodies and non-JS types such as
    ``application/ld+json`` are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    scripts: list[InlineScript] = []
    for tag in soup.find_all("script"):
        if tag.has_attr("src"):
            continue
        script_type = (tag.get("type") or "").strip().lower()
        if script_type and script_type not in JS_SCRIPT_TYPES:
            continue
        source = tag.string or tag.get_text()
        if not source.strip():
            continue
        scripts.append(InlineScript(file=file, index=len(scripts) + 1, source=source))
    return scripts


def collect_scripts(root: Path, files: list[str]) -> tuple[list[InlineScript], list[ScriptProblem]]:
    """Read every file below *root*; missing or unreadable files are reported as problems."""
    scripts: list[InlineScript] = []
    problems: list[ScriptProblem] = []
    for name in files:
        path = root / name
        if not path.is_file():
            problems.append(ScriptProblem(label=name, message="missing file"))
            continue
        try:
            html = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            problems.append(ScriptProblem(label=name, message=f"unreadable file: {e}"))
            continue
        found = extract_scripts(html, file=name)
        logger.info("%s: %d inline script(s)", name, len(found))
        scripts.extend(found)
    return scripts, problems


def compile_scripts(page, scripts: list[InlineScript]) -> list[ScriptProblem]:
    """Parse each script in *page*; return one problem per syntax error."""
    problems: list[ScriptProblem] = []
    for script in scripts:
        error = page.evaluate(_COMPILE_JS, script.source)
        if error:
            logger.error("JS syntax error in %s: %s", script.label, error)
            problems.append(ScriptProblem(label=script.label, message=error))
    return problems
