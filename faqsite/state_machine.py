"""
Markdown Scanner
================
Deterministic line state machine that walks a front-matter-less Markdown
article and records its structure: headings, fenced code blocks, links and
the trailing Related Resources / About the Author footer.

Only what the integrity checks need is recognised. Rendering goes through
markdown-it in renderer.py; both sides share heading_slug() so anchors agree.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlsplit

from .models import (
    CodeBlock,
    Document,
    Footer,
    Heading,
    Issue,
    IssueType,
    Link,
    LinkKind,
)

logger = logging.getLogger(__name__)

# ─── Anchor Patterns ──────────────────────────────────────────────────────────

# "# Title", "### How do I merge PDFs? ###"
HEADING_PATTERN = re.compile(
    r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$"
)

# Setext underline: "=====" (h1) or "-----" (h2) below a paragraph
SETEXT_PATTERN = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")

# "```csharp", "~~~~", "```` text"
FENCE_OPEN_PATTERN = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
FENCE_CLOSE_PATTERN = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*$")

# "---", "***", "_ _ _"
RULE_PATTERN = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")

# "- item", "* item", "1. item"
LIST_ITEM_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(.*)$")

# Inline code spans, blanked out before link matching
INLINE_CODE_PATTERN = re.compile(r"(`+)(.+?)\1")

# "[text](target)", "![alt](src "title")", "[text](<target with spaces>)"
LINK_PATTERN = re.compile(
    r"(!?)\[((?:[^\[\]]|\[[^\[\]]*\])*)\]"
    r"\(\s*(<[^>]*>|[^\s()]*(?:\([^\s()]*\)[^\s()]*)*)"
    r"(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*\)"
)

# "<https://ironpdf.com>"
AUTOLINK_PATTERN = re.compile(r"<((?:https?|ftp|mailto):[^\s<>]+)>", re.IGNORECASE)

# "[id]: https://example.com "Title""
REFERENCE_DEF_PATTERN = re.compile(
    r"^ {0,3}\[([^\]]+)\]:\s*<?([^\s>]+)>?(?:\s+[\"'(].*[\"')])?\s*$"
)

# Footer section headings
RELATED_HEADING_PATTERN = re.compile(r"^related\s+resources\b", re.IGNORECASE)
AUTHOR_HEADING_PATTERN = re.compile(
    r"^about\s+the\s+author\b", re.IGNORECASE
)

# Paired emphasis and code spans; lone markers as in "Save_As" survive.
_MARKUP_PATTERNS = [
    (re.compile(r"(`+)(.+?)\1"), r"\2"),
    (re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*"), r"\1"),
    (re.compile(r"(?<!\w)__(?=\S)(.+?)(?<=\S)__(?!\w)"), r"\1"),
    (re.compile(r"\*(?=\S)(.+?)(?<=\S)\*"), r"\1"),
    (re.compile(r"(?<!\w)_(?=\S)(.+?)(?<=\S)_(?!\w)"), r"\1"),
]
_SLUG_DROP_PATTERN = re.compile(r"[^\w\- ]", re.UNICODE)
_HEADING_LINK_PATTERN = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")


# ─── Slugs & Targets ──────────────────────────────────────────────────────────


def slugify(text: str) -> str:
    """GitHub-style heading slug."""
    text = _HEADING_LINK_PATTERN.sub(r"\1", text)
    slug = " ".join(text.split()).lower()
    slug = _SLUG_DROP_PATTERN.sub("", slug)
    return slug.replace(" ", "-")


def heading_slug(text: str, seen: dict[str, int]) -> str:
    """Slug unique within one document; repeats get -1, -2, ..."""
    base = slugify(text)
    count = seen.get(base, 0)
    seen[base] = count + 1
    if count == 0:
        return base
    return f"{base}-{count}"


def classify_target(target: str) -> LinkKind:
    if target.startswith("#"):
        return LinkKind.ANCHOR
    if target.lower().startswith("mailto:"):
        return LinkKind.MAILTO
    if target.startswith("//") or len(urlsplit(target).scheme) > 1:
        return LinkKind.EXTERNAL
    return LinkKind.INTERNAL


def extract_links(line: str, line_number: int) -> list[Link]:
    """Inline links, images and autolinks on one line, code spans excluded."""
    text = INLINE_CODE_PATTERN.sub(lambda m: " " * len(m.group(0)), line)
    links = []

    for match in LINK_PATTERN.finditer(text):
        target = match.group(3).strip()
        if target.startswith("<") and target.endswith(">"):
            target = target[1:-1].strip()
        if not target:
            continue
        links.append(Link(
            text=match.group(2),
            target=target,
            line=line_number,
            kind=classify_target(target),
            is_image=bool(match.group(1)),
        ))

    for match in AUTOLINK_PATTERN.finditer(text):
        target = match.group(1)
        links.append(Link(
            text=target,
            target=target,
            line=line_number,
            kind=classify_target(target),
        ))

    return links


def strip_markup(text: str) -> str:
    """'Using **bold** and `code`' -> 'Using bold and code'."""
    for pattern, replacement in _MARKUP_PATTERNS:
        text = pattern.sub(replacement, text)
    return text.strip()


def humanize_stem(path: str) -> str:
    """'html-to-pdf_csharp.md' -> 'Html To Pdf Csharp'."""
    stem = PurePosixPath(path).stem
    return stem.replace("-", " ").replace("_", " ").strip().title()


class ScannerState(Enum):
    """Where the scanner is in the document."""
    PROSE = "PROSE"
    FENCE = "FENCE"
    FOOTER = "FOOTER"


class MarkdownScanner:
    """
    Finite State Machine that turns the lines of one Markdown article into
    a Document with headings, code blocks, links and footer.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset the state machine for a fresh document."""
        self.state = ScannerState.PROSE
        self.path = ""
        self.headings: list[Heading] = []
        self.code_blocks: list[CodeBlock] = []
        self.links: list[Link] = []
        self.footer: Optional[Footer] = None
        self.issues: list[Issue] = []
        self.prose_words = 0

        self._slug_counts: dict[str, int] = {}
        self._fence: Optional[CodeBlock] = None
        self._fence_lines: list[str] = []
        self._fence_return = ScannerState.PROSE
        self._paragraph: list[str] = []
        self._paragraph_line = 0
        self._last_content_line = 0
        self._last_rule_line = 0
        self._footer_section: Optional[str] = None

    def scan(self, text: str, path: str = "") -> Document:
        """Scan Markdown text into a Document."""
        self.reset()
        self.path = path

        lines = text.split("\n")
        for index, line in enumerate(lines, start=1):
            self._process_line(line.rstrip("\r"), index)

        if self.state == ScannerState.FENCE:
            self._finalize_unclosed_fence()

        title = self._resolve_title(text)
        self._check_heading_levels()

        return Document(
            path=path,
            title=title,
            source=text,
            headings=self.headings,
            code_blocks=self.code_blocks,
            links=self.links,
            footer=self.footer,
            issues=self.issues,
            prose_words=self.prose_words,
        )

    def _process_line(self, line: str, number: int):
        """Process a line based on the current state."""

        # ─── 1. Inside a fence: only a matching close gets out ───
        if self.state == ScannerState.FENCE:
            close = FENCE_CLOSE_PATTERN.match(line)
            fence = self._fence
            if (
                close
                and close.group(1)[0] == fence.fence[0]
                and len(close.group(1)) >= len(fence.fence)
            ):
                fence.end_line = number
                fence.content = "\n".join(self._fence_lines)
                self.code_blocks.append(fence)
                self._fence = None
                self._fence_lines = []
                self.state = self._fence_return
                self._last_content_line = number
            else:
                self._fence_lines.append(line)
            return

        stripped = line.strip()

        # ─── 2. Fence opening ───
        opening = FENCE_OPEN_PATTERN.match(line)
        if opening and not (
            opening.group(1)[0] == "`" and "`" in opening.group(2)
        ):
            info = opening.group(2).strip()
            self._fence = CodeBlock(
                language=info.split()[0] if info else "",
                fence=opening.group(1),
                start_line=number,
            )
            self._fence_lines = []
            self._fence_return = self.state
            self.state = ScannerState.FENCE
            self._end_paragraph()
            self._last_content_line = number
            return

        # ─── 3. Headings ───
        heading = HEADING_PATTERN.match(line)
        if heading:
            self._end_paragraph()
            self._add_heading(
                len(heading.group(1)), (heading.group(2) or "").strip(), number
            )
            self.links.extend(extract_links(line, number))
            self._last_content_line = number
            return

        setext = SETEXT_PATTERN.match(line)
        if setext and self._paragraph:
            level = 1 if setext.group(1)[0] == "=" else 2
            text = " ".join(self._paragraph)
            start = self._paragraph_line
            self._end_paragraph()
            self._add_heading(level, text, start)
            self._last_content_line = number
            return

        # ─── 4. Rules and blank lines ───
        if RULE_PATTERN.match(line):
            self._end_paragraph()
            self._last_rule_line = number
            self._last_content_line = number
            return

        if not stripped:
            self._end_paragraph()
            return

        self._last_content_line = number

        # ─── 5. Reference definitions ───
        ref = REFERENCE_DEF_PATTERN.match(line)
        if ref:
            self._end_paragraph()
            target = ref.group(2)
            self.links.append(Link(
                text=ref.group(1),
                target=target,
                line=number,
                kind=classify_target(target),
                is_reference=True,
            ))
            return

        # ─── 6. Prose ───
        line_links = extract_links(line, number)
        self.links.extend(line_links)
        self.prose_words += len(stripped.split())

        item = LIST_ITEM_PATTERN.match(line)
        if item:
            self._end_paragraph()
        else:
            if not self._paragraph:
                self._paragraph_line = number
            self._paragraph.append(stripped)

        if self.state == ScannerState.FOOTER:
            self._footer_line(stripped, bool(item), line_links)

    def _add_heading(self, level: int, text: str, number: int):
        slug = heading_slug(text, self._slug_counts)
        self.headings.append(Heading(
            level=level, text=text, slug=slug, line=number
        ))

        plain = strip_markup(text)
        is_related = bool(RELATED_HEADING_PATTERN.match(plain))
        is_author = bool(AUTHOR_HEADING_PATTERN.match(plain))

        if self.state != ScannerState.FOOTER and (is_related or is_author):
            logger.debug(f"Footer starts at {self.path}:{number}")
            self.state = ScannerState.FOOTER
            self.footer = Footer(
                start_line=number,
                has_rule=(
                    self._last_rule_line > 0
                    and self._last_rule_line == self._last_content_line
                ),
            )

        if self.state != ScannerState.FOOTER:
            return

        if is_related:
            self.footer.related_heading_level = level
            self._footer_section = "related"
        elif is_author:
            self.footer.author_heading_level = level
            self._footer_section = "author"
        else:
            self._footer_section = None

    def _footer_line(self, text: str, is_item: bool, links: list[Link]):
        footer = self.footer
        if self._footer_section == "related":
            if is_item:
                footer.related_items += 1
                if not links:
                    footer.unlinked_items += 1
            footer.related_links.extend(links)
        elif self._footer_section == "author":
            if footer.author_bio:
                footer.author_bio += "\n" + text
            else:
                footer.author_bio = text

    def _end_paragraph(self):
        self._paragraph = []
        self._paragraph_line = 0

    def _finalize_unclosed_fence(self):
        fence = self._fence
        fence.content = "\n".join(self._fence_lines)
        self.code_blocks.append(fence)
        self.issues.append(Issue(
            type=IssueType.UNCLOSED_FENCE,
            severity=80,
            message=(
                f"Code fence {fence.fence!r} opened on line "
                f"{fence.start_line} is never closed"
            ),
            path=self.path,
            line=fence.start_line,
            context={"language": fence.language},
        ))
        self._fence = None
        self.state = self._fence_return

    def _resolve_title(self, text: str) -> str:
        titles = [h for h in self.headings if h.level == 1]

        if not text.strip():
            self.issues.append(Issue(
                type=IssueType.EMPTY_DOCUMENT,
                severity=60,
                message="Document has no content",
                path=self.path,
            ))

        if not titles:
            self.issues.append(Issue(
                type=IssueType.MISSING_TITLE,
                severity=50,
                message="Document has no level-1 heading",
                path=self.path,
            ))
            return humanize_stem(self.path) if self.path else ""

        if len(titles) > 1:
            self.issues.append(Issue(
                type=IssueType.MULTIPLE_TITLES,
                severity=30,
                message=f"Document has {len(titles)} level-1 headings",
                path=self.path,
                line=titles[1].line,
                context={"titles": [h.text for h in titles]},
            ))

        return strip_markup(titles[0].text)

    def _check_heading_levels(self):
        previous = None
        for heading in self.headings:
            if previous and heading.level > previous.level + 1:
                self.issues.append(Issue(
                    type=IssueType.HEADING_LEVEL_SKIP,
                    severity=10,
                    message=(
                        f"Heading jumps from h{previous.level} to "
                        f"h{heading.level}: {heading.text!r}"
                    ),
                    path=self.path,
                    line=heading.line,
                ))
            previous = heading
