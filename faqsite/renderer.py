"""
Static Renderer
===============
Converts scanned Markdown articles into standalone HTML pages.

Rendering is deterministic: the same Markdown always produces the same
bytes (no timestamps, no random ids), so rebuilds only touch pages whose
source changed.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from markdown_it import MarkdownIt
from markupsafe import Markup

from . import __version__
from .models import Document, LinkKind, SampleComparison
from .state_machine import classify_target, heading_slug
from .templating import get_environment

logger = logging.getLogger(__name__)


def rewrite_href(href: str) -> str:
    """Point relative links at .md documents to their .html pages."""
    if classify_target(href) != LinkKind.INTERNAL:
        return href
    parts = urlsplit(href)
    if not parts.path.lower().endswith(".md"):
        return href
    path = parts.path[:-3] + ".html"
    return urlunsplit(("", "", path, parts.query, parts.fragment))


def root_prefix(output_name: str) -> str:
    """Relative prefix from a page back to the site root."""
    depth = len(PurePosixPath(output_name).parts) - 1
    return "../" * depth


def _render_heading_open(self, tokens, idx, options, env):
    inline = tokens[idx + 1]
    slug = heading_slug(inline.content, env.setdefault("slugs", {}))
    tokens[idx].attrSet("id", slug)
    return self.renderToken(tokens, idx, options, env)


def _render_link_open(self, tokens, idx, options, env):
    href = tokens[idx].attrGet("href")
    if href:
        tokens[idx].attrSet("href", rewrite_href(str(href)))
    return self.renderToken(tokens, idx, options, env)


class StaticRenderer:
    """
    Markdown to HTML renderer backed by markdown-it (CommonMark + tables)
    and the package's Jinja2 page templates.
    """

    def __init__(self, site_title: str = "", base_url: str = ""):
        self.site_title = site_title
        self.base_url = base_url.rstrip("/")
        self.md = MarkdownIt("commonmark", {"html": True}).enable("table")
        self.md.add_render_rule("heading_open", _render_heading_open)
        self.md.add_render_rule("link_open", _render_link_open)
        self.templates = get_environment()

    def render_markdown(self, text: str) -> str:
        """Markdown fragment to HTML; heading ids match the scanner's slugs."""
        return self.md.render(text, {})

    def render(
        self,
        document: Document,
        markdown_text: Optional[str] = None,
    ) -> str:
        """
        Render a full HTML page for a document.

        Args:
            document: Scanned document.
            markdown_text: Text to render instead of the document source,
                e.g. the source with the canonical footer applied.
        """
        text = document.source if markdown_text is None else markdown_text
        content = self.render_markdown(text)
        return self.templates.get_template("page.html").render(
            site_title=self.site_title,
            title=document.title,
            content=Markup(content),
            root=root_prefix(document.output_name),
            generator=f"faqsite {__version__}",
        )

    def render_index(
        self,
        documents: list[Document],
        comparisons: Optional[list[SampleComparison]] = None,
    ) -> str:
        entries = sorted(
            documents, key=lambda d: (d.title.lower(), d.path)
        )
        return self.templates.get_template("index.html").render(
            site_title=self.site_title,
            documents=entries,
            has_comparisons=bool(comparisons),
            root="",
            generator=f"faqsite {__version__}",
        )

    def render_comparison(self, comparison: SampleComparison) -> str:
        return self.templates.get_template("comparison.html").render(
            site_title=self.site_title,
            comparison=comparison,
            root=root_prefix(comparison.output_name),
            generator=f"faqsite {__version__}",
        )

    def render_comparison_index(
        self,
        comparisons: list[SampleComparison],
    ) -> str:
        by_library: dict[str, list[SampleComparison]] = {}
        for comparison in comparisons:
            by_library.setdefault(comparison.library, []).append(comparison)
        return self.templates.get_template("compare_index.html").render(
            site_title=self.site_title,
            libraries=sorted(by_library.items()),
            root="../",
            generator=f"faqsite {__version__}",
        )

    def render_sitemap(self, pages: list[str]) -> str:
        urls = [f"{self.base_url}/{page}" for page in sorted(pages)]
        return self.templates.get_template("sitemap.xml").render(urls=urls)
