"""Tests for streamcanvas.artifacts.repair: prose lead-in removal."""

from __future__ import annotations

import logging

from streamcanvas.artifacts.repair import code_start_tokens, looks_corrupted, repair_body


class TestLooksCorrupted:
    def test_lead_in_phrase_detected(self):
        assert looks_corrupted("I'll create a counter.\nfunction f() {}")
        assert looks_corrupted("Here's the page\n<html>")

    def test_clean_code(self):
        assert not looks_corrupted("function f() { return 1; }")

    def test_phrase_beyond_scan_window_ignored(self):
        body = "const x = 1;\n" + "// filler\n" * 20 + "// Let me explain"
        assert not looks_corrupted(body, scan_chars=150)

    def test_scan_window_configurable(self):
        body = "x" * 40 + " Let me"
        assert looks_corrupted(body, scan_chars=50)
        assert not looks_corrupted(body, scan_chars=20)


class TestCodeStartTokens:
    def test_declared_tag(self):
        assert code_start_tokens("svg") == ["<svg", "<SVG"]

    def test_tag_alias(self):
        assert code_start_tokens("js") == code_start_tokens("javascript")

    def test_falls_back_to_classified_language(self):
        # Untagged body using hooks classifies as react
        assert code_start_tokens("", "const [a] = useState(0)") == code_start_tokens("react")

    def test_unknown_tag_without_list(self):
        assert code_start_tokens("mermaid", "graph TD") == []


class TestRepairBody:
    def test_slices_from_line_start_token(self):
        body = "I'll create a counter.\nfunction Counter() { return 1; }"
        assert repair_body(body, "javascript") == "function Counter() { return 1; }"

    def test_html_doctype(self):
        body = "Here's your landing page:\n<!DOCTYPE html>\n<html><body></body></html>"
        assert repair_body(body, "html").startswith("<!DOCTYPE html>")

    def test_inline_token_when_no_line_starts_with_one(self):
        body = "I'll draw it: <svg width='10'></svg>"
        assert repair_body(body, "svg") == "<svg width='10'></svg>"

    def test_code_first_left_untouched(self):
        body = "const msg = \"I'll be back\";\nconsole.log(msg);"
        assert repair_body(body, "js") == body

    def test_clean_body_only_trimmed(self):
        assert repair_body("\n  body { margin: 0; }\n", "css") == "body { margin: 0; }"

    def test_unrepairable_returned_unchanged(self, caplog):
        body = "I'll make a diagram\ngraph TD; A-->B"
        with caplog.at_level(logging.WARNING, logger="streamcanvas.artifacts.repair"):
            assert repair_body(body, "mermaid") == body
        assert "no code start" in caplog.text

    def test_react_tag(self):
        body = "Let me build this component.\nexport default function App() {}"
        assert repair_body(body, "jsx") == "export default function App() {}"

    def test_never_raises_on_empty(self):
        assert repair_body("", "html") == ""
