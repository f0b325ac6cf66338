"""Tests for inline script extraction and the check CLI."""

from playwright.sync_api import Error as PlaywrightError

from plusminus_smoke.environment.inline_js import (
    InlineScript,
    ScriptProblem,
    collect_scripts,
    compile_scripts,
    extract_scripts,
)
from plusminus_smoke.runner import check_inline_js

HTML = """\
<html><head>
<script src="app.js"></script>
<script type="application/ld+json">{"@type": "Thing"}</script>
<script>const a = 1;</script>
</head><body>
<script>   </script>
<script type="module">import x from "./x.js";</script>
<script type="text/javascript">function f() { return 2; }</script>
</body></html>
"""


def test_only_inline_javascript_is_kept():
    scripts = extract_scripts(HTML, file="index.html")
    assert [s.source for s in scripts] == [
        "const a = 1;",
        'import x from "./x.js";',
        "function f() { return 2; }",
    ]


def test_numbering_and_label():
    scripts = extract_scripts(HTML, file="plusminus/index.html")
    assert [s.index for s in scripts] == [1, 2, 3]
    assert scripts[0].label == "plusminus/index.html::script#1"


def test_no_scripts():
    assert extract_scripts("<p>nothing</p>") == []


def test_collect_reports_missing_files(tmp_path):
    (tmp_path / "index.html").write_text("<script>let x = 1;</script>", encoding="utf-8")
    scripts, problems = collect_scripts(tmp_path, ["index.html", "plusminus/index.html"])
    assert scripts == [InlineScript(file="index.html", index=1, source="let x = 1;")]
    assert problems == [ScriptProblem(label="plusminus/index.html", message="missing file")]


class CompilingPage:
    """Treats any source containing "(((" as a syntax error."""

    def evaluate(self, expression, source):
        return "SyntaxError: Unexpected token" if "(((" in source else None


def test_compile_reports_per_script():
    scripts = [
        InlineScript(file="index.html", index=1, source="let ok = 1;"),
        InlineScript(file="index.html", index=2, source="let bad = (((;"),
    ]
    problems = compile_scripts(CompilingPage(), scripts)
    assert problems == [ScriptProblem(label="index.html::script#2", message="SyntaxError: Unexpected token")]


def test_collect_reports_undecodable_file(tmp_path):
    (tmp_path / "index.html").write_bytes(b"<script>\xff\xfe</script>")
    scripts, problems = collect_scripts(tmp_path, ["index.html"])
    assert scripts == []
    assert len(problems) == 1
    assert problems[0].label == "index.html"
    assert problems[0].message.startswith("unreadable file")


class TestMain:
    def test_unreadable_file_fails_without_browser(self, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("PLUSMINUS_SMOKE_CONFIG", raising=False)
        (tmp_path / "index.html").write_bytes(b"\xff\xfe")
        assert check_inline_js.main(["index.html", "--root", str(tmp_path)]) == 1
        assert "FAIL index.html: unreadable file" in capsys.readouterr().err

    def test_browser_failure_is_reported(self, tmp_path, monkeypatch, caplog):
        monkeypatch.delenv("PLUSMINUS_SMOKE_CONFIG", raising=False)

        def no_browser(root, files, headless=True):
            raise PlaywrightError("Executable doesn't exist")

        monkeypatch.setattr(check_inline_js, "check_inline_js", no_browser)
        assert check_inline_js.main(["index.html", "--root", str(tmp_path)]) == 1
        assert "Executable doesn't exist" in caplog.text

    def test_passes(self, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("PLUSMINUS_SMOKE_CONFIG", raising=False)
        monkeypatch.setattr(check_inline_js, "check_inline_js", lambda root, files, headless=True: [])
        assert check_inline_js.main(["index.html", "--root", str(tmp_path)]) == 0
        assert "Inline JS syntax check passed" in capsys.readouterr().out
