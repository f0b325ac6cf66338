"""End-to-end runs against the fixture site in real Chromium.

Skipped when Chromium cannot be launched (``playwright install chromium``).
"""

import shutil

import pytest
from playwright.sync_api import Error as PlaywrightError

from plusminus_smoke.config import SmokeConfig
from plusminus_smoke.environment.browser_env import BrowserSession
from plusminus_smoke.environment.inline_js import InlineScript, compile_scripts
from plusminus_smoke.errors import InterpretationError, InvariantError, LivenessError
from plusminus_smoke.runner import smoke
from plusminus_smoke.runner.check_inline_js import check_inline_js
from plusminus_smoke.runner.report import RunResult

from conftest import SITE_ROOT

pytestmark = pytest.mark.e2e

PAGE = "plusminus/index.html"


@pytest.fixture(scope="module", autouse=True)
def chromium():
    try:
        with BrowserSession():
            pass
    except PlaywrightError as e:
        pytest.skip(f"Chromium not available: {e}")


@pytest.fixture(autouse=True)
def no_signal_handlers(monkeypatch):
    monkeypatch.setattr(smoke.signal, "signal", lambda signum, handler: None)
    monkeypatch.delenv("PLUSMINUS_SMOKE_CONFIG", raising=False)
    monkeypatch.delenv("PLUSMINUS_SMOKE_HEADED", raising=False)


def broken_site(tmp_path, old, new):
    """Copy the fixture site with one substitution applied to the page."""
    root = tmp_path / "site"
    shutil.copytree(SITE_ROOT, root)
    page = root / PAGE
    html = page.read_text(encoding="utf-8")
    assert old in html
    page.write_text(html.replace(old, new, 1), encoding="utf-8")
    return root


def test_every_problem_shape_is_answered():
    # Five rounds cover each shape the fixture cycles through.
    result = RunResult()
    smoke.run_smoke(SmokeConfig(rounds=5), SITE_ROOT, result)
    assert result.ok, result.failures
    assert result.rounds_completed == 5


def test_cli_passes_on_fixture(capsys):
    assert smoke.main(["--root", str(SITE_ROOT)]) == 0
    assert "SMOKE TEST OK" in capsys.readouterr().out


def test_wrong_answer_gets_no_feedback(tmp_path):
    # The fixture only shows feedback for the answer it expects.
    root = broken_site(tmp_path, 'answer: "7" },', 'answer: "8" },')
    with pytest.raises(LivenessError, match="feedback"):
        smoke.run_smoke(SmokeConfig(rounds=1), root, RunResult())


def test_pin_gate_bypass_detected(tmp_path):
    root = broken_site(
        tmp_path,
        '$("pinMsg").hidden = false;',
        '$("pinMsg").hidden = false; $("parentDlg").showModal();',
    )
    with pytest.raises(InvariantError):
        smoke.run_smoke(SmokeConfig(rounds=1), root, RunResult())


def test_malformed_problem_detected(tmp_path):
    root = broken_site(tmp_path, "<span>3</span><span>+</span>", "<span>NaN</span><span>+</span>")
    with pytest.raises(InterpretationError, match="NaN"):
        smoke.run_smoke(SmokeConfig(rounds=1), root, RunResult())


def test_uncaught_script_error_fails_run(tmp_path, capsys):
    root = broken_site(tmp_path, "</head>", '<script>throw new Error("boom");</script>\n</head>')
    assert smoke.main(["--root", str(root)]) == 1
    out = capsys.readouterr().out
    assert "SMOKE TEST FAILED" in out
    assert "boom" in out


def test_inline_scripts_compile():
    assert check_inline_js(SITE_ROOT, [PAGE]) == []


def test_inline_syntax_error_reported(tmp_path):
    (tmp_path / "index.html").write_text(
        "<script>let ok = 1;</script><script>function (</script>", encoding="utf-8"
    )
    problems = check_inline_js(tmp_path, ["index.html"])
    assert [p.label for p in problems] == ["index.html::script#2"]
    assert problems[0].message.startswith("SyntaxError")


def test_top_level_return_is_a_syntax_error(tmp_path):
    (tmp_path / "index.html").write_text("<script>return 1;</script>", encoding="utf-8")
    problems = check_inline_js(tmp_path, ["index.html"])
    assert len(problems) == 1
    assert problems[0].message.startswith("SyntaxError")


def test_scripts_are_parsed_not_run():
    scripts = [
        InlineScript(file="index.html", index=1, source='document.title = "ran";'),
        InlineScript(file="index.html", index=2, source="const x = 1;\nconst x = 2;"),
    ]
    with BrowserSession() as session:
        problems = compile_scripts(session.page, scripts)
        assert session.page.title() == ""
    assert [p.label for p in problems] == ["index.html::script#2"]


def test_scripts_do_not_share_globals():
    scripts = [
        InlineScript(file="index.html", index=1, source="const STORAGE_KEY = 1;"),
        InlineScript(file="plusminus/index.html", index=1, source="const STORAGE_KEY = 2;"),
    ]
    with BrowserSession() as session:
        assert compile_scripts(session.page, scripts) == []
