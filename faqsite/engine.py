"""
Site Engine
===========
Main orchestrator that combines loading, validation, footer injection,
sample comparison and rendering into a complete publishing pipeline.

Usage:
    engine = SiteEngine(SiteConfig(content_dir="FAQ", output_dir="site"))
    report = engine.check()
    result = engine.build()

Architecture:
    Markdown files → MarkdownLoader → Documents → ValidationEngine →
    CorpusReport; Documents → FooterInjector → StaticRenderer → site/
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from . import __version__
from . import database as db
from . import storage
from .footer import DEFAULT_RESOURCES, FooterInjector
from .link_checker import ExternalLinkChecker
from .loader import MarkdownLoader
from .models import (
    BuildResult,
    BuildVersion,
    CorpusReport,
    Document,
    SampleCatalogReport,
    SampleComparison,
    SiteMetadata,
)
from .renderer import StaticRenderer
from .samples import SampleCatalog
from .templating import template_fingerprint
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

HOME_PAGE = "index.html"
CONTENTS_PAGE = "contents.html"


class BuildError(RuntimeError):
    """A strict build found error-level issues, or two pages share a path."""

    def __init__(self, message: str, report: Optional[CorpusReport] = None):
        super().__init__(message)
        self.report = report


@dataclass
class SiteConfig:
    """Configuration for the site engine."""

    # Inputs
    content_dir: str = "FAQ"
    samples_dir: Optional[str] = None

    # Output settings
    output_dir: str = "site"
    site_title: str = "IronPDF FAQ"
    base_url: str = ""

    # Footer
    inject_footers: bool = True
    require_footer: bool = True
    author_bio: str = ""
    related_limit: int = 5
    resources: list[tuple[str, str]] = field(
        default_factory=lambda: list(DEFAULT_RESOURCES)
    )

    # Validation
    check_external: bool = False
    external_timeout: float = 10.0
    strict: bool = False

    # Build manifest
    db_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class SiteEngine:
    """
    Main publishing engine.

    Orchestrates the full pipeline:
        1. Corpus loading and scanning
        2. Integrity validation
        3. Footer injection
        4. Page rendering (articles, index, comparisons, sitemap)
        5. Incremental write + manifest bookkeeping
    """

    def __init__(self, config: Optional[SiteConfig] = None):
        self.config = config or SiteConfig()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the faqsite package
        site_logger = logging.getLogger("faqsite")
        site_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not site_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            site_logger.addHandler(console)
        else:
            for handler in site_logger.handlers:
                handler.setLevel(log_level)

        # File handler
        if self.config.log_file:
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            site_logger.addHandler(file_handler)

    @property
    def db_path(self) -> str:
        return self.config.db_path or db.get_db_path(self.config.output_dir)

    # ─── Pipeline Steps ───────────────────────────────────────────────────

    def load(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> list[Document]:
        loader = MarkdownLoader(self.config.content_dir)
        return loader.load_corpus(progress_callback=progress_callback)

    def validate(self, documents: list[Document]) -> CorpusReport:
        validator = ValidationEngine(require_footer=self.config.require_footer)
        checker = None
        if self.config.check_external:
            checker = ExternalLinkChecker(timeout=self.config.external_timeout)
        try:
            return validator.validate(
                documents,
                self.config.content_dir,
                external_checker=checker,
            )
        finally:
            if checker is not None:
                checker.close()

    def catalog_samples(
        self,
    ) -> tuple[list[SampleComparison], Optional[SampleCatalogReport]]:
        if not self.config.samples_dir:
            return [], None
        catalog = SampleCatalog(self.config.samples_dir)
        catalog.scan()
        comparisons = catalog.comparisons()
        return comparisons, catalog.report(comparisons)

    def check(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> CorpusReport:
        """Load and validate the corpus without writing anything."""
        documents = self.load(progress_callback)
        return self.validate(documents)

    # ─── Build ────────────────────────────────────────────────────────────

    def build(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> BuildResult:
        """
        Build the static site.

        Raises:
            FileNotFoundError: If the content or samples directory is missing.
            BuildError: In strict mode, when the corpus has error-level issues,
                or when two pages would be written to the same path.
        """
        start_time = time.time()
        logger.info(f"Starting build of: {self.config.content_dir}")

        # ── Step 1: Load + validate ───────────────────────────────────
        logger.info("Phase 1: Loading corpus")
        documents = self.load(progress_callback)

        logger.info("Phase 2: Validation")
        report = self.validate(documents)
        if self.config.strict and report.error_count:
            raise BuildError(
                f"{report.error_count} error-level issue(s) in corpus",
                report=report,
            )

        comparisons, samples_report = self.catalog_samples()

        # ── Step 2: Manifest ──────────────────────────────────────────
        storage.init_site(self.config.output_dir)
        db.init_db(self.db_path)
        build_id = db.start_build(
            self.db_path,
            content_dir=self.config.content_dir,
            output_dir=self.config.output_dir,
            builder_version=__version__,
            template_hash=template_fingerprint(),
        )

        try:
            # ── Step 3: Render ────────────────────────────────────────
            logger.info("Phase 3: Rendering")
            pages = self._render_pages(documents, comparisons)
            pages.append({
                "output_path": "report.json",
                "source_path": "",
                "content": json.dumps(
                    report.model_dump(mode="json"),
                    indent=2,
                    ensure_ascii=False,
                    sort_keys=True,
                ) + "\n",
            })

            # ── Step 4: Write ─────────────────────────────────────────
            written = unchanged = 0
            for page in pages:
                if storage.write_if_changed(
                    self.config.output_dir, page["output_path"], page["content"]
                ):
                    written += 1
                else:
                    unchanged += 1

            # ── Step 5: Stale pages ───────────────────────────────────
            current = {page["output_path"] for page in pages}
            stale = sorted(set(db.get_pages(self.db_path)) - current)
            removed = sum(
                1 for path in stale
                if storage.remove_page(self.config.output_dir, path)
            )
            db.delete_pages(self.db_path, stale)

            db.upsert_pages(self.db_path, build_id, [
                {
                    "output_path": page["output_path"],
                    "source_path": page["source_path"],
                    "source_hash": page.get("source_hash", ""),
                    "output_hash": storage.content_hash(page["content"]),
                }
                for page in pages
            ])
        except Exception as e:
            db.finish_build(
                self.db_path, build_id, status="failed", last_error=str(e)
            )
            raise

        db.finish_build(
            self.db_path,
            build_id,
            documents=len(documents),
            pages_written=written,
            pages_unchanged=unchanged,
            pages_removed=removed,
            error_count=report.error_count,
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Build complete in {elapsed:.2f}s: {written} written, "
            f"{unchanged} unchanged, {removed} removed"
        )

        return BuildResult(
            site=SiteMetadata(
                title=self.config.site_title,
                base_url=self.config.base_url,
                content_dir=self.config.content_dir,
                output_dir=self.config.output_dir,
                samples_dir=self.config.samples_dir or "",
            ),
            build_version=BuildVersion(
                builder_version=__version__,
                pages_written=written,
                pages_unchanged=unchanged,
                pages_removed=removed,
            ),
            pages=sorted(current),
            report=report,
            samples=samples_report,
        )

    def _render_pages(
        self,
        documents: list[Document],
        comparisons: list[SampleComparison],
    ) -> list[dict]:
        renderer = StaticRenderer(
            site_title=self.config.site_title,
            base_url=self.config.base_url,
        )
        injector = self._injector() if self.config.inject_footers else None
        titles = {doc.path: doc.title for doc in documents}

        pages = []
        for doc in documents:
            text = injector.apply(doc, titles) if injector else doc.source
            pages.append({
                "output_path": doc.output_name,
                "source_path": doc.path,
                "source_hash": doc.content_hash,
                "content": renderer.render(doc, text),
            })

        # An index.md article is the home page; the listing moves aside.
        article_paths = {page["output_path"] for page in pages}
        listing = CONTENTS_PAGE if HOME_PAGE in article_paths else HOME_PAGE
        pages.append({
            "output_path": listing,
            "source_path": "",
            "content": renderer.render_index(documents, comparisons),
        })

        if comparisons:
            for comparison in comparisons:
                sources = [
                    s.path for s in (comparison.competitor, comparison.ironpdf)
                    if s is not None
                ]
                pages.append({
                    "output_path": comparison.output_name,
                    "source_path": ",".join(sources),
                    "content": renderer.render_comparison(comparison),
                })
            pages.append({
                "output_path": "compare/index.html",
                "source_path": "",
                "content": renderer.render_comparison_index(comparisons),
            })

        if self.config.base_url:
            html_pages = [p["output_path"] for p in pages]
            pages.append({
                "output_path": "sitemap.xml",
                "source_path": "",
                "content": renderer.render_sitemap(html_pages),
            })

        owners: dict[str, str] = {}
        for page in pages:
            path = page["output_path"]
            owner = page["source_path"] or "a generated page"
            if path in owners:
                raise BuildError(f"{owners[path]} and {owner} both render to {path}")
            owners[path] = owner

        return pages

    # ─── Footers ──────────────────────────────────────────────────────────

    def _injector(self) -> FooterInjector:
        return FooterInjector(
            author_bio=self.config.author_bio,
            related_limit=self.config.related_limit,
            resources=self.config.resources,
        )

    def fix_footers(self, dry_run: bool = False) -> list[str]:
        """
        Rewrite every article with the canonical footer.

        Returns:
            Relative paths of the documents that changed (or would change).
        """
        documents = self.load()
        titles = {doc.path: doc.title for doc in documents}
        injector = self._injector()
        root = Path(self.config.content_dir)

        changed = []
        for doc in documents:
            updated = injector.apply(doc, titles)
            if updated == doc.source:
                continue
            changed.append(doc.path)
            if dry_run:
                logger.info(f"Would update footer: {doc.path}")
                continue
            (root / doc.path).write_text(updated, encoding="utf-8", newline="\n")
            logger.info(f"Updated footer: {doc.path}")

        logger.info(
            f"{len(changed)} of {len(documents)} documents "
            f"{'need' if dry_run else 'received'} the canonical footer"
        )
        return changed

    # ─── Single Documents ─────────────────────────────────────────────────

    def load_document(self, path: str) -> Document:
        """Load one article; links resolve against the configured corpus."""
        file_path = Path(path)
        content_dir = Path(self.config.content_dir)
        try:
            file_path.resolve().relative_to(content_dir.resolve())
        except ValueError:
            content_dir = file_path.parent
        return MarkdownLoader(str(content_dir)).load(file_path)

    def export_pdf(
        self,
        path: str,
        output_path: Optional[str] = None,
    ) -> tuple[str, int]:
        """
        Export one article as a PDF.

        Returns:
            (output_path, page_count)
        """
        from .pdf_export import export_html_to_pdf

        doc = self.load_document(path)
        if output_path is None:
            name = storage.sanitize_name(Path(doc.path).stem) or "document"
            output_path = str(Path(self.config.output_dir) / "pdf" / f"{name}.pdf")

        renderer = StaticRenderer(site_title=self.config.site_title)
        html = renderer.render_markdown(doc.source)
        pages = export_html_to_pdf(
            html,
            output_path,
            title=doc.title,
            resource_dir=str(Path(path).parent),
        )
        return output_path, pages
