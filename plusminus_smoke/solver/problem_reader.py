"""Read the currently displayed problem from the DOM.

Uses a single page.evaluate() call to collect the raw equation structure, then
normalizes it into an immutable ProblemSnapshot in Python.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from plusminus_smoke.config import Selectors

logger = logging.getLogger(__name__)

MALFORMED_MARKERS = ("NaN", "undefined")

_WHITESPACE_RE = re.compile(r"\s+")

# Collects the equation structure. Returns null when the container is absent.
_READ_PROBLEM_JS = """\
(sel) => {
    const eq = document.querySelector(sel.container);
    if (!eq) return null;
    const kids = Array.from(eq.children).map(el => ({
        id: el.id || '',
        tag: el.tagName,
        text: (el.textContent || '').trim(),
    }));
    const spans = Array.from(eq.querySelectorAll('span'))
        .map(s => (s.textContent || '').trim());
    const dots = document.querySelectorAll(sel.unitMarker).length;
    return { kids, spans, dots, text: eq.textContent || '' };
}
"""

_SIGNATURE_JS = """\
(sel) => {
    const eq = document.querySelector(sel.container);
    const skillEl = document.querySelector(sel.skill);
    const skill = skillEl ? (skillEl.textContent || '').trim() : '';
    const eqText = eq ? (eq.textContent || '').replace(/\\s+/g, ' ').trim() : '';
    return `${skill} :: ${eqText}`;
}
"""


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


@dataclass(frozen=True)
class EquationToken:
    id: str
    tag: str
    text: str


@dataclass(frozen=True)
class ProblemSnapshot:
    """Immutable structure of one displayed problem.

    ``eq_index`` and ``ans_index`` are positions among ``tokens`` of the
    equality marker and of the answer placeholder, -1 when absent.
    """

    tokens: tuple[EquationToken, ...] = ()
    spans: tuple[str, ...] = ()
    dots: int = 0
    eq_index: int = -1
    ans_index: int = -1
    eq_text: str = ""
    found: bool = True

    @classmethod
    def unknown(cls) -> "ProblemSnapshot":
        return cls(found=False)

    @classmethod
    def from_dom(
        cls,
        data: dict | None,
        answer_box_id: str = "ansBox",
        equals_symbol: str = "=",
    ) -> "ProblemSnapshot":
        """Normalize the raw structure returned by the page."""
        if not data:
            return cls.unknown()
        tokens = tuple(
            EquationToken(
                id=str(k.get("id") or ""),
                tag=str(k.get("tag") or "").upper(),
                text=str(k.get("text") or "").strip(),
            )
            for k in data.get("kids", [])
        )
        eq_index = next(
            (i for i, t in enumerate(tokens) if t.tag == "SPAN" and t.text == equals_symbol),
            -1,
        )
        ans_index = next(
            (i for i, t in enumerate(tokens) if t.id == answer_box_id), -1
        )
        return cls(
            tokens=tokens,
            spans=tuple(str(s).strip() for s in data.get("spans", [])),
            dots=int(data.get("dots") or 0),
            eq_index=eq_index,
            ans_index=ans_index,
            eq_text=collapse_whitespace(str(data.get("text") or "")),
        )

    @property
    def malformed_markers(self) -> list[str]:
        return [m for m in MALFORMED_MARKERS if m in self.eq_text]


def _selector_arg(selectors: Selectors) -> dict:
    return {
        "container": selectors.problem_container,
        "unitMarker": selectors.unit_marker,
        "skill": selectors.skill_label,
    }


def read_problem(page, selectors: Selectors) -> ProblemSnapshot:
    """Snapshot the displayed problem; the unknown sentinel if there is none."""
    data = page.evaluate(_READ_PROBLEM_JS, _selector_arg(selectors))
    snapshot = ProblemSnapshot.from_dom(
        data,
        answer_box_id=selectors.answer_box_id,
        equals_symbol=selectors.equals_symbol,
    )
    if not snapshot.found:
        logger.warning("Problem container %r not found", selectors.problem_container)
    else:
        logger.debug("Snapshot: %s", snapshot)
    return snapshot


def get_problem_signature(page, selectors: Selectors) -> str:
    """Cheap ``"<skill> :: <equation>"`` fingerprint of the displayed problem."""
    return page.evaluate(_SIGNATURE_JS, _selector_arg(selectors))
