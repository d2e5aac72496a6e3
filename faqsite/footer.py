"""
Footer Injector
===============
Applies the canonical "Related Resources" / "About the Author" footer to an
article, replacing whatever footer it already carries.

Related resources are taken from the article's own cross-links first, then
from the internal links of its old footer, so applying the footer twice
yields the same text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlsplit

from .models import Document, LinkKind
from .state_machine import RULE_PATTERN, humanize_stem
from .templating import get_environment
from .validator import resolve_internal

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR_BIO = (
    "Written by the Iron Software documentation team, who maintain the "
    "IronPDF guides and FAQ articles."
)

DEFAULT_RESOURCES = [
    ("IronPDF Documentation", "https://ironpdf.com/docs/"),
    ("IronPDF Tutorials", "https://ironpdf.com/tutorials/"),
    ("Iron Software", "https://ironsoftware.com/"),
]


_NEEDS_BRACKETS = re.compile(r"[\s()]")


@dataclass
class RelatedItem:
    title: str
    target: str


def link_destination(target: str) -> str:
    """Markdown link destination for a path: 'a b.md' -> '<a b.md>'."""
    if "<" in target or ">" in target:
        return quote(target, safe="/#?&=%")
    if _NEEDS_BRACKETS.search(target):
        return f"<{target}>"
    return target


class FooterInjector:
    """Renders the footer template and splices it onto article bodies."""

    def __init__(
        self,
        author_bio: str = "",
        related_limit: int = 5,
        resources: Optional[list[tuple[str, str]]] = None,
        template_name: str = "footer.md.j2",
    ):
        self.author_bio = author_bio.strip()
        self.related_limit = related_limit
        self.resources = DEFAULT_RESOURCES if resources is None else resources
        self.template = get_environment().get_template(template_name)

    def apply(
        self,
        document: Document,
        titles: Optional[dict[str, str]] = None,
    ) -> str:
        """
        Return the document's Markdown with the canonical footer.

        Args:
            document: Scanned document.
            titles: Corpus-relative path -> title for every known document.
                Related links to paths not in this map are dropped.
        """
        titles = titles if titles is not None else {}
        body = self.body_of(document)
        footer = self.render_footer(document, titles)
        if not body:
            return footer
        return body + "\n\n" + footer

    def body_of(self, document: Document) -> str:
        """
        Source text before the footer, without trailing rules or blanks.
        A code fence left open at the end of the body is closed.
        """
        lines = document.source.split("\n")
        if document.footer is not None:
            lines = lines[:document.footer.start_line - 1]

        dangling = None
        if document.footer is None:
            dangling = next(
                (b for b in document.code_blocks if not b.closed), None
            )

        # Rules inside an open fence are code, not a footer separator.
        while lines and (
            not lines[-1].strip()
            or (dangling is None and RULE_PATTERN.match(lines[-1]))
        ):
            lines.pop()

        if dangling is not None:
            logger.warning(
                f"Closing unterminated code fence from line "
                f"{dangling.start_line} in {document.path}"
            )
            lines.append(dangling.fence)
        return "\n".join(lines)

    def render_footer(self, document: Document, titles: dict[str, str]) -> str:
        related = self.related_items(document, titles)
        related += [
            RelatedItem(title=title, target=url) for title, url in self.resources
        ]
        bio = self.author_bio
        if not bio and document.footer is not None:
            bio = document.footer.author_bio.strip()
        return self.template.render(
            related=related,
            author_bio=bio or DEFAULT_AUTHOR_BIO,
        )

    def related_items(
        self,
        document: Document,
        titles: dict[str, str],
    ) -> list[RelatedItem]:
        footer_start = (
            document.footer.start_line if document.footer else None
        )
        candidates = [
            link for link in document.links
            if footer_start is None or link.line < footer_start
        ]
        if document.footer is not None:
            candidates += document.footer.related_links

        seen: set[str] = set()
        items: list[RelatedItem] = []
        for link in candidates:
            if link.kind != LinkKind.INTERNAL or link.is_image:
                continue
            resolved = resolve_internal(document.path, link)
            if resolved is None or resolved == document.path:
                continue
            if resolved in seen or resolved not in titles:
                continue
            seen.add(resolved)
            items.append(RelatedItem(
                title=titles.get(resolved) or humanize_stem(resolved),
                target=link_destination(urlsplit(link.target).path),
            ))
            if len(items) >= self.related_limit:
                break

        return items
