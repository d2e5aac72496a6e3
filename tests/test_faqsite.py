"""
Test Suite for the FAQ Site Builder
===================================
Unit tests for models, the Markdown scanner, validation, footer injection
and rendering.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from faqsite.footer import DEFAULT_AUTHOR_BIO, FooterInjector, link_destination
from faqsite.link_checker import ExternalLinkChecker, LinkStatus
from faqsite.loader import CorpusError, MarkdownLoader
from faqsite.models import (
    CorpusReport,
    Document,
    Issue,
    IssueType,
    Link,
    LinkKind,
)
from faqsite.renderer import StaticRenderer, rewrite_href, root_prefix
from faqsite.state_machine import (
    FENCE_OPEN_PATTERN,
    HEADING_PATTERN,
    LINK_PATTERN,
    MarkdownScanner,
    classify_target,
    heading_slug,
    slugify,
    strip_markup,
)
from faqsite.validator import ValidationEngine, resolve_internal


def write_corpus(root: Path, files: dict[str, str]) -> Path:
    for name, text in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


FOOTED = """# Title

Body with [Other](other.md).

---

## Related Resources

- [Other](other.md)
- [IronPDF Docs](https://ironpdf.com/docs/)

## About the Author

Jane writes docs.
"""


# ═══════════════════════════════════════════════════════════════════════════════
# MODEL TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestLink:
    """Test Link model."""

    def test_internal_target_parts(self):
        link = Link(
            target="guides/merge%20pdfs.md#how-to",
            line=1,
            kind=LinkKind.INTERNAL,
        )
        assert link.target_path == "guides/merge pdfs.md"
        assert link.fragment == "how-to"

    def test_external_has_no_target_path(self):
        link = Link(
            target="https://ironpdf.com/docs/#top",
            line=3,
            kind=LinkKind.EXTERNAL,
        )
        assert link.target_path == ""
        assert link.fragment == "top"


class TestDocument:
    """Test Document model."""

    def test_output_name(self):
        assert Document(path="merge.md").output_name == "merge.html"
        assert Document(path="guides/split.md").output_name == "guides/split.html"

    def test_serialization(self):
        doc = Document(path="a.md", title="A")
        data = doc.model_dump(mode="json")
        assert data["output_name"] == "a.html"
        assert data["has_footer"] is False


class TestCorpusReport:
    """Test CorpusReport model."""

    def test_health_rate(self):
        report = CorpusReport(total_documents=8, clean_documents=6)
        assert report.health_rate == 75.0

    def test_empty_report(self):
        report = CorpusReport()
        assert report.health_rate == 0.0
        assert report.error_count == 0

    def test_error_count_uses_severity(self):
        report = CorpusReport(issues=[
            Issue(type=IssueType.BROKEN_LINK, severity=70, message=""),
            Issue(type=IssueType.ORPHAN_DOCUMENT, severity=5, message=""),
            Issue(type=IssueType.BROKEN_ANCHOR, severity=50, message=""),
        ])
        assert report.error_count == 2


# ═══════════════════════════════════════════════════════════════════════════════
# PATTERN TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestPatterns:
    """Test scanner regex patterns."""

    def test_heading_pattern(self):
        assert HEADING_PATTERN.match("# Title").group(2) == "Title"
        assert HEADING_PATTERN.match("### Closed ###").group(2) == "Closed"
        assert HEADING_PATTERN.match("# Merge PDFs in C#").group(2) == "Merge PDFs in C#"
        assert HEADING_PATTERN.match("   ## Indented").group(2) == "Indented"

        assert not HEADING_PATTERN.match("#hashtag")
        assert not HEADING_PATTERN.match("    # four spaces is code")
        assert not HEADING_PATTERN.match("####### seven")

    def test_fence_pattern(self):
        assert FENCE_OPEN_PATTERN.match("```csharp")
        assert FENCE_OPEN_PATTERN.match("~~~")
        assert FENCE_OPEN_PATTERN.match("````")
        assert not FENCE_OPEN_PATTERN.match("``")

    def test_link_pattern(self):
        match = LINK_PATTERN.search('See [docs](guide.md "Guide") now')
        assert match.group(2) == "docs"
        assert match.group(3) == "guide.md"

        match = LINK_PATTERN.search("![chart](img/chart.png)")
        assert match.group(1) == "!"

    def test_classify_target(self):
        assert classify_target("#usage") == LinkKind.ANCHOR
        assert classify_target("mailto:docs@example.com") == LinkKind.MAILTO
        assert classify_target("https://ironpdf.com") == LinkKind.EXTERNAL
        assert classify_target("//cdn.example.com/x.js") == LinkKind.EXTERNAL
        assert classify_target("../merge.md") == LinkKind.INTERNAL
        assert classify_target("split.md#usage") == LinkKind.INTERNAL

    def test_slugify(self):
        assert slugify("Merge PDFs in C#") == "merge-pdfs-in-c"
        assert slugify("How do I use `RenderHtmlAsPdf`?") == "how-do-i-use-renderhtmlaspdf"
        assert slugify("See [the docs](docs.md)") == "see-the-docs"
        assert slugify("snake_case stays") == "snake_case-stays"

    def test_heading_slug_deduplicates(self):
        seen: dict[str, int] = {}
        assert heading_slug("Usage", seen) == "usage"
        assert heading_slug("Usage", seen) == "usage-1"
        assert heading_slug("Usage", seen) == "usage-2"


# ═══════════════════════════════════════════════════════════════════════════════
# SCANNER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestMarkdownScanner:
    """Test the Markdown scanner state machine."""

    def scan(self, text: str, path: str = "doc.md") -> Document:
        return MarkdownScanner().scan(text, path=path)

    def test_headings_and_title(self):
        doc = self.scan(
            "# Merge PDFs in C#\n\n## How do I merge?\n\n## How do I merge?\n"
        )
        assert doc.title == "Merge PDFs in C#"
        assert [h.slug for h in doc.headings] == [
            "merge-pdfs-in-c", "how-do-i-merge", "how-do-i-merge-1",
        ]
        assert [h.line for h in doc.headings] == [1, 3, 5]
        assert doc.issues == []

    def test_setext_headings(self):
        doc = self.scan("Title\n=====\n\nSub\n---\n")
        assert [(h.level, h.text, h.line) for h in doc.headings] == [
            (1, "Title", 1), (2, "Sub", 4),
        ]
        assert doc.title == "Title"

    def test_fenced_code_block(self):
        doc = self.scan('# T\n\n```csharp\nvar x = "[a](b.md)";\n```\n')
        assert len(doc.code_blocks) == 1
        block = doc.code_blocks[0]
        assert block.language == "csharp"
        assert block.closed is True
        assert block.content == 'var x = "[a](b.md)";'
        assert (block.start_line, block.end_line) == (3, 5)
        assert doc.links == []

    def test_unclosed_fence(self):
        doc = self.scan("# T\n\n```cs\ncode\n")
        block = doc.code_blocks[0]
        assert block.closed is False
        unclosed = [i for i in doc.issues if i.type == IssueType.UNCLOSED_FENCE]
        assert len(unclosed) == 1
        assert unclosed[0].line == 3

    def test_longer_fence_needs_longer_close(self):
        doc = self.scan("# T\n````md\n```\ninner\n```\n````\n")
        assert len(doc.code_blocks) == 1
        assert doc.code_blocks[0].content == "```\ninner\n```"
        assert doc.code_blocks[0].closed is True

    def test_tilde_fence_ignores_backticks(self):
        doc = self.scan("# T\n~~~\n```\n~~~\n")
        assert doc.code_blocks[0].content == "```"
        assert doc.code_blocks[0].closed is True

    def test_headings_inside_fence_ignored(self):
        doc = self.scan("# T\n\n```\n# not a heading\n```\n")
        assert len(doc.headings) == 1

    def test_links(self):
        doc = self.scan(
            "# T\n\nSee [Merge](merge.md#how-to), ![img](img/a.png), "
            "[site](https://ironpdf.com) and <https://ironsoftware.com> "
            "and `[not](x.md)`.\n"
        )
        targets = [(l.target, l.kind, l.is_image) for l in doc.links]
        assert targets == [
            ("merge.md#how-to", LinkKind.INTERNAL, False),
            ("img/a.png", LinkKind.INTERNAL, True),
            ("https://ironpdf.com", LinkKind.EXTERNAL, False),
            ("https://ironsoftware.com", LinkKind.EXTERNAL, False),
        ]
        assert all(l.line == 3 for l in doc.links)

    def test_reference_definition(self):
        doc = self.scan('# T\n\n[docs]: https://ironpdf.com/docs/ "Docs"\n')
        assert len(doc.links) == 1
        assert doc.links[0].is_reference is True
        assert doc.links[0].target == "https://ironpdf.com/docs/"
        assert doc.links[0].kind == LinkKind.EXTERNAL

    def test_footer_detection(self):
        doc = self.scan(FOOTED)
        footer = doc.footer
        assert footer is not None
        assert footer.start_line == 7
        assert footer.has_rule is True
        assert footer.related_heading_level == 2
        assert footer.author_heading_level == 2
        assert footer.related_items == 2
        assert footer.unlinked_items == 0
        assert [l.target for l in footer.related_links] == [
            "other.md", "https://ironpdf.com/docs/",
        ]
        assert footer.author_bio == "Jane writes docs."
        assert footer.has_author_bio is True

    def test_footer_without_rule(self):
        doc = self.scan("# T\n\nBody.\n\n## Related Resources\n\n- [A](a.md)\n")
        assert doc.footer.has_rule is False
        assert doc.footer.has_author_bio is False

    def test_footer_item_without_link(self):
        doc = self.scan("# T\n\n---\n\n## Related Resources\n\n- plain text\n")
        assert doc.footer.related_items == 1
        assert doc.footer.unlinked_items == 1

    def test_missing_title_falls_back_to_stem(self):
        doc = self.scan("## Only h2\n", path="guides/html-to-pdf.md")
        assert doc.title == "Html To Pdf"
        assert any(i.type == IssueType.MISSING_TITLE for i in doc.issues)

    def test_title_keeps_lone_markers(self):
        doc = self.scan("# PdfDocument.Save_As and 2 * 3\n")
        assert doc.title == "PdfDocument.Save_As and 2 * 3"

    def test_title_strips_paired_markup(self):
        doc = self.scan("# Using **bold**, `code` and _em_\n")
        assert doc.title == "Using bold, code and em"
        assert strip_markup("*Save_As* __now__") == "Save_As now"

    def test_emphasized_footer_heading(self):
        doc = self.scan(
            "# T\n\nBody.\n\n---\n\n## **Related Resources**\n\n- [A](a.md)\n"
        )
        assert doc.footer is not None
        assert doc.footer.start_line == 7

    def test_multiple_titles(self):
        doc = self.scan("# A\n\n# B\n")
        issue = next(i for i in doc.issues if i.type == IssueType.MULTIPLE_TITLES)
        assert issue.line == 3

    def test_heading_level_skip(self):
        doc = self.scan("# A\n\n### C\n")
        assert [i.type for i in doc.issues] == [IssueType.HEADING_LEVEL_SKIP]

    def test_empty_document(self):
        doc = self.scan("", path="empty.md")
        types = {i.type for i in doc.issues}
        assert IssueType.EMPTY_DOCUMENT in types
        assert IssueType.MISSING_TITLE in types
        assert doc.title == "Empty"

    def test_prose_words_exclude_code(self):
        doc = self.scan("# T\n\none two three\n\n```\nnot counted here\n```\n")
        assert doc.prose_words == 3

    def test_scanner_reusable(self):
        scanner = MarkdownScanner()
        first = scanner.scan("# A\n\n```\n", path="a.md")
        second = scanner.scan("# B\n", path="b.md")
        assert first.issues
        assert second.issues == []
        assert [h.text for h in second.headings] == ["B"]


# ═══════════════════════════════════════════════════════════════════════════════
# LOADER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestMarkdownLoader:
    """Test corpus discovery and loading."""

    def test_discover_sorted_recursive(self, tmp_path):
        write_corpus(tmp_path, {
            "b.md": "# B\n",
            "a.md": "# A\n",
            "guides/c.md": "# C\n",
            "notes.txt": "ignored",
        })
        loader = MarkdownLoader(str(tmp_path))
        names = [p.relative_to(tmp_path).as_posix() for p in loader.discover()]
        assert names == ["a.md", "b.md", "guides/c.md"]

    def test_load_normalizes_text(self, tmp_path):
        path = tmp_path / "crlf.md"
        path.write_bytes(b"\xef\xbb\xbf# Title\r\n\r\nBody\r\n")
        doc = MarkdownLoader(str(tmp_path)).load(path)
        assert doc.source == "# Title\n\nBody\n"
        assert doc.title == "Title"
        assert doc.path == "crlf.md"
        assert doc.size_bytes == path.stat().st_size
        assert len(doc.content_hash) == 64

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            MarkdownLoader(str(tmp_path / "nope")).discover()

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "bad.md"
        path.write_bytes(b"# Title\n\xff\xfe\xfa\n")
        with pytest.raises(CorpusError):
            MarkdownLoader(str(tmp_path)).load(path)

    def test_progress_callback(self, tmp_path):
        write_corpus(tmp_path, {"a.md": "# A\n", "b.md": "# B\n"})
        calls = []
        MarkdownLoader(str(tmp_path)).load_corpus(
            progress_callback=lambda cur, total: calls.append((cur, total))
        )
        assert calls == [(1, 2), (2, 2)]


# ═══════════════════════════════════════════════════════════════════════════════
# VALIDATION TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestValidationEngine:
    """Test the corpus validation engine."""

    def load(self, root: Path) -> list[Document]:
        return MarkdownLoader(str(root)).load_corpus()

    def test_empty_corpus(self, tmp_path):
        report = ValidationEngine().validate([], str(tmp_path))
        assert report.total_documents == 0
        assert report.issues == []

    def test_resolve_internal(self):
        link = Link(target="../merge.md#x", line=1, kind=LinkKind.INTERNAL)
        assert resolve_internal("guides/split.md", link) == "merge.md"

        escape = Link(target="../outside.md", line=1, kind=LinkKind.INTERNAL)
        assert resolve_internal("merge.md", escape) is None

        rooted = Link(target="/guides/split.md", line=1, kind=LinkKind.INTERNAL)
        assert resolve_internal("deep/a.md", rooted) == "guides/split.md"

    def test_links_and_anchors(self, tmp_path):
        write_corpus(tmp_path, {
            "index.md": "# Home\n\n[Merge](merge.md) [Split](guides/split.md#usage)\n",
            "merge.md": (
                "# Merge\n\n## Usage\n\n"
                "[Home](index.md) [Missing](nope.md) "
                "[Bad anchor](guides/split.md#nope) [Self](#usage) "
                "[Self bad](#zzz) [Escape](../outside.md)\n"
            ),
            "guides/split.md": (
                "# Split\n\n## Usage\n\n"
                "[Merge](../merge.md#usage) ![pic](pic.png)\n"
            ),
        })
        (tmp_path / "guides" / "pic.png").write_bytes(b"\x89PNG")

        report = ValidationEngine(require_footer=False).validate(
            self.load(tmp_path), str(tmp_path)
        )

        assert report.total_documents == 3
        assert sorted(i.context["target"] for i in report.broken_links) == [
            "../outside.md", "nope.md",
        ]
        assert sorted(i.context["target"] for i in report.broken_anchors) == [
            "#zzz", "guides/split.md#nope",
        ]
        assert all(i.path == "merge.md" for i in report.broken_links)
        assert report.orphan_documents == []
        assert report.clean_documents == 2
        assert report.health_rate == 66.67
        assert report.error_count == 4
        assert report.issue_breakdown == {"broken_link": 2, "broken_anchor": 2}

    def test_orphan_documents(self, tmp_path):
        write_corpus(tmp_path, {
            "index.md": "# Home\n\n[A](a.md)\n",
            "a.md": "# A\n",
            "lonely.md": "# Lonely\n",
        })
        report = ValidationEngine(require_footer=False).validate(
            self.load(tmp_path), str(tmp_path)
        )
        assert report.orphan_documents == ["lonely.md"]
        assert report.error_count == 0

    def test_duplicate_titles(self, tmp_path):
        write_corpus(tmp_path, {
            "a.md": "# Same\n\n[b](b.md)\n",
            "b.md": "# same\n\n[a](a.md)\n",
        })
        report = ValidationEngine(require_footer=False).validate(
            self.load(tmp_path), str(tmp_path)
        )
        assert report.duplicate_titles == {"Same": ["a.md", "b.md"]}
        assert report.issue_breakdown["duplicate_title"] == 2

    def test_unclosed_fence_reported(self, tmp_path):
        write_corpus(tmp_path, {"a.md": "# A\n\n```csharp\nvar x = 1;\n"})
        report = ValidationEngine(require_footer=False).validate(
            self.load(tmp_path), str(tmp_path)
        )
        assert len(report.unclosed_fences) == 1
        assert report.unclosed_fences[0].context == {"language": "csharp"}

    def test_footer_checks(self, tmp_path):
        write_corpus(tmp_path, {
            "good.md": FOOTED.replace("other.md", "plain.md"),
            "plain.md": "# Plain\n\n[Good](good.md)\n",
            "odd.md": (
                "# Odd\n\n[Good](good.md)\n\n## Related Resources\n\n"
                "- not a link\n\n### About the Author\n\nBio.\n"
            ),
        })
        report = ValidationEngine(check_orphans=False).validate(
            self.load(tmp_path), str(tmp_path)
        )

        by_path: dict[str, list[str]] = {}
        for issue in report.footer_issues:
            by_path.setdefault(issue.path, []).append(issue.type.value)

        assert "good.md" not in by_path
        assert by_path["plain.md"] == ["missing_footer"]
        assert by_path["odd.md"] == ["footer_format"] * 3

    def test_external_links(self, tmp_path):
        write_corpus(tmp_path, {
            "a.md": "# A\n\n[ok](https://ironpdf.com) [bad](https://bad.example)\n",
        })

        class StubChecker:
            def check_many(self, urls):
                return {
                    "https://ironpdf.com": LinkStatus(
                        url="https://ironpdf.com", ok=True, status_code=200
                    ),
                    "https://bad.example": LinkStatus(
                        url="https://bad.example", ok=False,
                        status_code=404, reason="Not Found",
                    ),
                }

        report = ValidationEngine(require_footer=False).validate(
            self.load(tmp_path), str(tmp_path), external_checker=StubChecker()
        )
        unreachable = [
            i for i in report.issues
            if i.type == IssueType.EXTERNAL_LINK_UNREACHABLE
        ]
        assert len(unreachable) == 1
        assert "https://bad.example" in unreachable[0].message
        assert unreachable[0].context == {"status_code": 404}


class TestExternalLinkChecker:
    """Test the requests-based external link checker."""

    def make_session(self):
        session = MagicMock()
        session.headers = {}
        return session

    def response(self, status: int, reason: str = "OK"):
        resp = MagicMock()
        resp.status_code = status
        resp.reason = reason
        return resp

    def test_ok_and_cached(self):
        session = self.make_session()
        session.head.return_value = self.response(200)
        checker = ExternalLinkChecker(session=session)

        assert checker.check("https://ironpdf.com").ok is True
        assert checker.check("https://ironpdf.com").ok is True
        assert session.head.call_count == 1
        assert session.headers["User-Agent"].startswith("faqsite-link-checker/")

    def test_head_not_allowed_falls_back_to_get(self):
        session = self.make_session()
        session.head.return_value = self.response(405, "Method Not Allowed")
        session.get.return_value = self.response(200)
        checker = ExternalLinkChecker(session=session)

        status = checker.check("https://ironsoftware.com")
        assert status.ok is True
        assert status.status_code == 200
        session.get.assert_called_once()

    def test_not_found(self):
        session = self.make_session()
        session.head.return_value = self.response(404, "Not Found")
        status = ExternalLinkChecker(session=session).check("https://x.example")
        assert status.ok is False
        assert status.reason == "Not Found"

    def test_transport_error(self):
        session = self.make_session()
        session.head.side_effect = requests.ConnectionError("refused")
        status = ExternalLinkChecker(session=session).check("https://x.example")
        assert status.ok is False
        assert status.status_code is None
        assert status.reason == "ConnectionError"


# ═══════════════════════════════════════════════════════════════════════════════
# FOOTER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


ALPHA = (
    "# Alpha\n\nRead [Beta](b.md) and [Gamma](sub/c.md#part) and "
    "[Missing](missing.md) and [Alpha self](a.md).\n"
)

TITLES = {"a.md": "Alpha", "b.md": "Beta Title", "sub/c.md": "Gamma Title"}


class TestFooterInjector:
    """Test canonical footer injection."""

    def injector(self, **kwargs) -> FooterInjector:
        kwargs.setdefault("author_bio", "Jane Doe writes about PDFs.")
        kwargs.setdefault(
            "resources", [("IronPDF Docs", "https://ironpdf.com/docs/")]
        )
        return FooterInjector(**kwargs)

    def test_apply(self):
        doc = MarkdownScanner().scan(ALPHA, path="a.md")
        result = self.injector().apply(doc, TITLES)
        assert result == (
            "# Alpha\n\nRead [Beta](b.md) and [Gamma](sub/c.md#part) and "
            "[Missing](missing.md) and [Alpha self](a.md).\n"
            "\n"
            "---\n"
            "\n"
            "## Related Resources\n"
            "\n"
            "- [Beta Title](b.md)\n"
            "- [Gamma Title](sub/c.md)\n"
            "- [IronPDF Docs](https://ironpdf.com/docs/)\n"
            "\n"
            "## About the Author\n"
            "\n"
            "Jane Doe writes about PDFs.\n"
        )

    def test_apply_is_idempotent(self):
        injector = self.injector()
        once = injector.apply(MarkdownScanner().scan(ALPHA, path="a.md"), TITLES)
        twice = injector.apply(MarkdownScanner().scan(once, path="a.md"), TITLES)
        assert twice == once

    def test_injected_footer_validates_clean(self, tmp_path):
        write_corpus(tmp_path, {
            "a.md": self.injector().apply(
                MarkdownScanner().scan(ALPHA, path="a.md"), TITLES
            ),
        })
        doc = MarkdownLoader(str(tmp_path)).load(tmp_path / "a.md")
        assert doc.footer.has_rule is True
        assert doc.footer.has_related_resources is True
        assert doc.footer.has_author_bio is True
        assert doc.footer.unlinked_items == 0

    def test_replaces_existing_footer(self):
        doc = MarkdownScanner().scan(FOOTED, path="title.md")
        result = self.injector().apply(doc, {"title.md": "Title", "other.md": "Other Doc"})
        assert result.count("## Related Resources") == 1
        assert "- [Other Doc](other.md)" in result
        assert "Jane writes docs." not in result

    def test_keeps_existing_bio_without_configured_one(self):
        doc = MarkdownScanner().scan(FOOTED, path="title.md")
        result = FooterInjector(resources=[]).apply(doc, {"other.md": "Other"})
        assert result.endswith("## About the Author\n\nJane writes docs.\n")

    def test_default_bio(self):
        doc = MarkdownScanner().scan("# T\n\nBody.\n", path="t.md")
        result = FooterInjector(resources=[]).apply(doc, {})
        assert result.endswith(DEFAULT_AUTHOR_BIO + "\n")

    def test_related_limit(self):
        doc = MarkdownScanner().scan(ALPHA, path="a.md")
        items = self.injector(related_limit=1).related_items(doc, TITLES)
        assert [(i.title, i.target) for i in items] == [("Beta Title", "b.md")]

    def test_old_footer_links_kept(self):
        text = (
            "# Solo\n\nNo links here.\n\n---\n\n## Related Resources\n\n"
            "- [Delta](d.md)\n\n## About the Author\n\nBio.\n"
        )
        doc = MarkdownScanner().scan(text, path="solo.md")
        items = self.injector().related_items(doc, {"d.md": "Delta Title"})
        assert [(i.title, i.target) for i in items] == [("Delta Title", "d.md")]

    def test_closes_unterminated_fence(self):
        text = "# Alpha\n\n```csharp\nvar x = 1;\n\n---\n"
        injector = self.injector()
        once = injector.apply(MarkdownScanner().scan(text, path="a.md"), TITLES)
        assert once == (
            "# Alpha\n\n```csharp\nvar x = 1;\n\n---\n```\n"
            "\n"
            "---\n"
            "\n"
            "## Related Resources\n"
            "\n"
            "- [IronPDF Docs](https://ironpdf.com/docs/)\n"
            "\n"
            "## About the Author\n"
            "\n"
            "Jane Doe writes about PDFs.\n"
        )
        rescanned = MarkdownScanner().scan(once, path="a.md")
        assert rescanned.code_blocks[0].closed is True
        assert rescanned.footer is not None
        assert injector.apply(rescanned, TITLES) == once

    def test_targets_with_spaces_and_parens(self):
        text = "# Alpha\n\nSee [Merge](<merge pdfs.md>) and [Fill](forms(v2).md).\n"
        titles = {"merge pdfs.md": "Merge PDFs", "forms(v2).md": "Forms"}
        injector = self.injector()
        once = injector.apply(MarkdownScanner().scan(text, path="a.md"), titles)
        assert "- [Merge PDFs](<merge pdfs.md>)\n" in once
        assert "- [Forms](<forms(v2).md>)\n" in once

        rescanned = MarkdownScanner().scan(once, path="a.md")
        targets = [l.target for l in rescanned.footer.related_links]
        assert "merge pdfs.md" in targets
        assert "forms(v2).md" in targets
        assert injector.apply(rescanned, titles) == once

    def test_link_destination(self):
        assert link_destination("b.md") == "b.md"
        assert link_destination("merge pdfs.md") == "<merge pdfs.md>"
        assert link_destination("forms(v2).md") == "<forms(v2).md>"
        assert link_destination("a<b>.md") == "a%3Cb%3E.md"


# ═══════════════════════════════════════════════════════════════════════════════
# RENDERER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestStaticRenderer:
    """Test Markdown to HTML rendering."""

    def test_rewrite_href(self):
        assert rewrite_href("guides/split.md") == "guides/split.html"
        assert rewrite_href("merge.md#usage") == "merge.html#usage"
        assert rewrite_href("a.MD?x=1#y") == "a.html?x=1#y"
        assert rewrite_href("#usage") == "#usage"
        assert rewrite_href("img.png") == "img.png"
        assert rewrite_href("https://ironpdf.com/a.md") == "https://ironpdf.com/a.md"

    def test_root_prefix(self):
        assert root_prefix("a.html") == ""
        assert root_prefix("guides/split.html") == "../"
        assert root_prefix("compare/pdfsharp/html-to-pdf.html") == "../../"

    def test_heading_ids(self):
        html = StaticRenderer().render_markdown(
            "# Hello World\n\n## Usage\n\n## Usage\n"
        )
        assert '<h1 id="hello-world">Hello World</h1>' in html
        assert '<h2 id="usage">Usage</h2>' in html
        assert '<h2 id="usage-1">Usage</h2>' in html

    def test_heading_ids_match_scanner_slugs(self):
        text = (
            "# Merge PDFs in C#\n\n## How do I use `RenderHtmlAsPdf`?\n\n"
            "Setext Heading\n--------------\n"
        )
        doc = MarkdownScanner().scan(text, path="a.md")
        html = StaticRenderer().render_markdown(text)
        for heading in doc.headings:
            assert f'id="{heading.slug}"' in html

    def test_links_rewritten(self):
        html = StaticRenderer().render_markdown(
            "[Merge](merge.md#usage) [Ext](https://ironpdf.com/a.md)"
        )
        assert 'href="merge.html#usage"' in html
        assert 'href="https://ironpdf.com/a.md"' in html

    def test_code_block_escaped(self):
        html = StaticRenderer().render_markdown(
            "```csharp\nvar a = 1 < 2;\n```\n"
        )
        assert '<pre><code class="language-csharp">var a = 1 &lt; 2;' in html

    def test_page_is_deterministic(self):
        doc = MarkdownScanner().scan("# Hello\n\nBody.\n", path="guides/hello.md")
        renderer = StaticRenderer(site_title="My FAQ")
        first = renderer.render(doc)
        assert first == renderer.render(doc)
        assert "<title>Hello | My FAQ</title>" in first
        assert 'href="../index.html"' in first

    def test_page_escapes_title(self):
        doc = MarkdownScanner().scan("# A <b> & B\n", path="a.md")
        html = StaticRenderer(site_title="FAQ").render(doc)
        assert "<title>A &lt;b&gt; &amp; B | FAQ</title>" in html

    def test_index_sorted_by_title(self):
        docs = [
            Document(path="z.md", title="Alpha"),
            Document(path="a.md", title="Zulu"),
        ]
        html = StaticRenderer(site_title="FAQ").render_index(docs)
        assert html.index("Alpha") < html.index("Zulu")
        assert 'href="z.html"' in html
        assert "compare/index.html" not in html

    def test_sitemap(self):
        xml = StaticRenderer(base_url="https://faq.example.com/").render_sitemap(
            ["b.html", "a.html"]
        )
        assert "<loc>https://faq.example.com/a.html</loc>" in xml
        assert xml.index("a.html") < xml.index("b.html")
