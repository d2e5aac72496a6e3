"""
Validation Engine
=================
Corpus integrity checks and reporting.

After loading a corpus, generates a comprehensive report:
    - Broken relative links (missing files, targets outside the corpus)
    - Broken anchors (#fragment matches no heading slug)
    - Unclosed code fences
    - Title problems and heading level skips
    - Missing or inconsistent Related Resources / author footers
    - Duplicate titles and orphan documents
    - Unreachable external links (only when a checker is supplied)

Never silently ignores failures.
"""

from __future__ import annotations

import logging
import posixpath
from collections import defaultdict
from pathlib import Path, PurePosixPath
from typing import Optional

from .link_checker import ExternalLinkChecker
from .models import (
    CorpusReport,
    Document,
    Issue,
    IssueType,
    Link,
    LinkKind,
)

logger = logging.getLogger(__name__)

# Entry pages are linked from outside the corpus.
ENTRY_PAGES = {"index.md", "readme.md"}


def resolve_internal(document_path: str, link: Link) -> Optional[str]:
    """
    Resolve an internal link to a corpus-relative POSIX path.
    Returns None when the target escapes the corpus root.
    """
    target = link.target_path
    if not target:
        return document_path
    if target.startswith("/"):
        resolved = posixpath.normpath(target.lstrip("/"))
    else:
        base = str(PurePosixPath(document_path).parent)
        resolved = posixpath.normpath(posixpath.join(base, target))
    if resolved == ".." or resolved.startswith("../"):
        return None
    return resolved


class ValidationEngine:
    """
    Validates loaded documents and produces a comprehensive report.
    """

    def __init__(self, require_footer: bool = True, check_orphans: bool = True):
        self.require_footer = require_footer
        self.check_orphans = check_orphans

    def validate(
        self,
        documents: list[Document],
        content_dir: str,
        external_checker: Optional[ExternalLinkChecker] = None,
    ) -> CorpusReport:
        """
        Run full validation on a loaded corpus.

        Args:
            documents: Documents of the corpus.
            content_dir: Corpus root, used to resolve non-Markdown targets.
            external_checker: Optional checker for http(s) links.

        Returns:
            CorpusReport with all detected issues.
        """
        report = CorpusReport()

        if not documents:
            logger.warning("No documents to validate")
            return report

        root = Path(content_dir)
        index = {doc.path: doc for doc in documents}
        issues: list[Issue] = []
        inbound: dict[str, set[str]] = defaultdict(set)

        report.total_documents = len(documents)

        for doc in documents:
            issues.extend(doc.issues)
            issues.extend(self._check_links(doc, index, root, inbound))
            if self.require_footer:
                issues.extend(self._check_footer(doc))

            report.total_links += len(doc.links)
            report.total_code_blocks += len(doc.code_blocks)
            for link in doc.links:
                if link.kind == LinkKind.INTERNAL:
                    report.internal_links += 1
                elif link.kind == LinkKind.EXTERNAL:
                    report.external_links += 1

        issues.extend(self._check_duplicate_titles(documents, report))

        if self.check_orphans and len(documents) > 1:
            for doc in documents:
                if doc.path.rsplit("/", 1)[-1].lower() in ENTRY_PAGES:
                    continue
                if not inbound.get(doc.path):
                    report.orphan_documents.append(doc.path)
                    issues.append(Issue(
                        type=IssueType.ORPHAN_DOCUMENT,
                        severity=5,
                        message="No other document links here",
                        path=doc.path,
                    ))

        if external_checker is not None:
            issues.extend(self._check_external(documents, external_checker))

        report.issues = issues
        for issue in issues:
            key = issue.type.value
            report.issue_breakdown[key] = report.issue_breakdown.get(key, 0) + 1
            if issue.type == IssueType.BROKEN_LINK:
                report.broken_links.append(issue)
            elif issue.type == IssueType.BROKEN_ANCHOR:
                report.broken_anchors.append(issue)
            elif issue.type == IssueType.UNCLOSED_FENCE:
                report.unclosed_fences.append(issue)
            elif issue.type in (
                IssueType.MISSING_FOOTER,
                IssueType.MISSING_RELATED_RESOURCES,
                IssueType.MISSING_AUTHOR_BIO,
                IssueType.FOOTER_FORMAT,
            ):
                report.footer_issues.append(issue)

        report.clean_documents = sum(
            1 for doc in documents
            if not any(i.is_error for i in report.issues_for(doc.path))
        )

        self._log_summary(report)
        return report

    def _check_links(
        self,
        doc: Document,
        index: dict[str, Document],
        root: Path,
        inbound: dict[str, set[str]],
    ) -> list[Issue]:
        issues = []

        for link in doc.links:
            if link.kind == LinkKind.ANCHOR:
                if link.fragment and link.fragment not in doc.slugs:
                    issues.append(self._anchor_issue(doc.path, link, doc.path))
                continue

            if link.kind != LinkKind.INTERNAL:
                continue

            resolved = resolve_internal(doc.path, link)
            if resolved is None:
                issues.append(Issue(
                    type=IssueType.BROKEN_LINK,
                    severity=70,
                    message=f"Link target escapes the corpus: {link.target}",
                    path=doc.path,
                    line=link.line,
                    context={"target": link.target},
                ))
                continue

            target_doc = index.get(resolved)
            if target_doc is not None:
                if resolved != doc.path:
                    inbound[resolved].add(doc.path)
                if link.fragment and link.fragment not in target_doc.slugs:
                    issues.append(self._anchor_issue(doc.path, link, resolved))
                continue

            if not (root / resolved).exists():
                issues.append(Issue(
                    type=IssueType.BROKEN_LINK,
                    severity=70,
                    message=f"Link target does not exist: {link.target}",
                    path=doc.path,
                    line=link.line,
                    context={"target": link.target, "resolved": resolved},
                ))

        return issues

    def _anchor_issue(self, path: str, link: Link, resolved: str) -> Issue:
        return Issue(
            type=IssueType.BROKEN_ANCHOR,
            severity=50,
            message=f"No heading '#{link.fragment}' in {resolved}",
            path=path,
            line=link.line,
            context={"target": link.target, "resolved": resolved},
        )

    def _check_footer(self, doc: Document) -> list[Issue]:
        footer = doc.footer
        if footer is None:
            return [Issue(
                type=IssueType.MISSING_FOOTER,
                severity=40,
                message="Document has no Related Resources / author footer",
                path=doc.path,
            )]

        issues = []
        if not footer.has_related_resources:
            issues.append(Issue(
                type=IssueType.MISSING_RELATED_RESOURCES,
                severity=30,
                message="Footer has no Related Resources section",
                path=doc.path,
                line=footer.start_line,
            ))
        elif footer.related_items == 0:
            issues.append(self._format_issue(
                doc, "Related Resources section lists no items"
            ))

        if not footer.has_author_bio:
            issues.append(Issue(
                type=IssueType.MISSING_AUTHOR_BIO,
                severity=30,
                message="Footer has no About the Author bio",
                path=doc.path,
                line=footer.start_line,
            ))

        if not footer.has_rule:
            issues.append(self._format_issue(
                doc, "Footer is not preceded by a horizontal rule"
            ))

        if (
            footer.related_heading_level is not None
            and footer.author_heading_level is not None
            and footer.related_heading_level != footer.author_heading_level
        ):
            issues.append(self._format_issue(
                doc,
                f"Footer headings use different levels "
                f"(h{footer.related_heading_level} and "
                f"h{footer.author_heading_level})",
            ))

        if footer.unlinked_items:
            issues.append(self._format_issue(
                doc,
                f"{footer.unlinked_items} Related Resources item(s) "
                f"without a link",
            ))

        return issues

    def _format_issue(self, doc: Document, message: str) -> Issue:
        return Issue(
            type=IssueType.FOOTER_FORMAT,
            severity=20,
            message=message,
            path=doc.path,
            line=doc.footer.start_line if doc.footer else None,
        )

    def _check_duplicate_titles(
        self,
        documents: list[Document],
        report: CorpusReport,
    ) -> list[Issue]:
        by_title: dict[str, list[str]] = defaultdict(list)
        for doc in documents:
            if doc.title:
                by_title[doc.title.strip().lower()].append(doc.path)

        issues = []
        for paths in by_title.values():
            if len(paths) < 2:
                continue
            title = next(d.title for d in documents if d.path == paths[0])
            report.duplicate_titles[title] = paths
            for path in paths:
                issues.append(Issue(
                    type=IssueType.DUPLICATE_TITLE,
                    severity=40,
                    message=f"Title {title!r} is shared by {len(paths)} documents",
                    path=path,
                    context={"paths": paths},
                ))
        return issues

    def _check_external(
        self,
        documents: list[Document],
        checker: ExternalLinkChecker,
    ) -> list[Issue]:
        urls = sorted({
            link.target
            for doc in documents
            for link in doc.links
            if link.kind == LinkKind.EXTERNAL
        })
        results = checker.check_many(urls)

        issues = []
        for doc in documents:
            for link in doc.links:
                if link.kind != LinkKind.EXTERNAL:
                    continue
                status = results.get(link.target)
                if status is None or status.ok:
                    continue
                issues.append(Issue(
                    type=IssueType.EXTERNAL_LINK_UNREACHABLE,
                    severity=40,
                    message=f"External link unreachable: {link.target} ({status.reason})",
                    path=doc.path,
                    line=link.line,
                    context={"status_code": status.status_code},
                ))
        return issues

    def _log_summary(self, report: CorpusReport):
        logger.info("=" * 60)
        logger.info("CORPUS REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Documents: {report.total_documents}")
        logger.info(
            f"Clean Documents: {report.clean_documents} "
            f"({report.health_rate}%)"
        )
        logger.info(
            f"Links: {report.total_links} "
            f"({report.internal_links} internal, "
            f"{report.external_links} external)"
        )
        logger.info(f"Broken Links: {len(report.broken_links)}")
        logger.info(f"Broken Anchors: {len(report.broken_anchors)}")
        logger.info(f"Unclosed Fences: {len(report.unclosed_fences)}")
        logger.info(f"Footer Issues: {len(report.footer_issues)}")
        logger.info(f"Orphan Documents: {len(report.orphan_documents)}")

        if report.issue_breakdown:
            logger.info("Issue Breakdown:")
            for issue_type, count in sorted(report.issue_breakdown.items()):
                logger.info(f"  • {issue_type}: {count}")

        logger.info("=" * 60)
