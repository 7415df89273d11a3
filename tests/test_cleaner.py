"""Tests for umbrella_mime.cleaner."""

from __future__ import annotations

import pytest

from umbrella_mime.cleaner import clean_html


class TestCleanHtml:
    def test_clean_input_unchanged(self):
        assert clean_html("<p>Hello</p>") == "<p>Hello</p>"

    def test_none_passthrough(self):
        assert clean_html(None) is None

    def test_leaked_boundary_lines_removed(self):
        html = "--abc123\r\n<p>Hello</p>\r\n--abc123--\r\n"
        assert clean_html(html) == "<p>Hello</p>"

    def test_surrounding_whitespace_trimmed(self):
        assert clean_html("\n\n   <div>x</div>  \n\n") == "<div>x</div>"

    def test_preamble_before_first_tag_dropped(self):
        html = "This is a multi-part message in MIME format.\n<html><body>x</body></html>"
        assert clean_html(html) == "<html><body>x</body></html>"

    def test_comment_close_kept(self):
        html = "<style><!--\np { color: red }\n-->\n</style>"
        assert clean_html(html) == html

    def test_trailing_comment_close_kept(self):
        assert clean_html("<!--\nhidden\n-->") == "<!--\nhidden\n-->"

    def test_inner_dash_lines_kept(self):
        html = "<pre>\n-- \nsignature\n</pre>"
        assert clean_html(html) == html

    def test_no_tag_at_all(self):
        assert clean_html("just words") == "just words"

    def test_empty(self):
        assert clean_html("") == ""
        assert clean_html("--b--\n") == ""

    @pytest.mark.parametrize(
        "html",
        [
            "",
            "<p>x</p>",
            "--b\n\n--c\n<p>x</p>\n--b--",
            "junk <p>x</p>",
            "  --\n-->\n<a>",
            "text only",
            "\n\n<br>\n--\n",
            "prefix\n--b\n<p>",
        ],
    )
    def test_idempotent(self, html: str):
        once = clean_html(html)
        assert clean_html(once) == once
