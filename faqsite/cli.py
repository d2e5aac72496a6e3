"""
CLI Interface
=============
Command-line interface for the FAQ site builder.

Usage:
    python -m faqsite check <content_dir> [options]
    python -m faqsite build <content_dir> [options]
    python -m faqsite fix-footers <content_dir> [--dry-run]
    python -m faqsite samples <samples_dir>
    python -m faqsite info <markdown_path>
    python -m faqsite export <markdown_path> [-o out.pdf]
    python -m faqsite history [-o site]
    python -m faqsite serve [options]
"""

from __future__ import annotations

import json
import os
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from . import __version__
from . import database as db
from .engine import BuildError, SiteConfig, SiteEngine
from .loader import CorpusError
from .models import CorpusReport, SampleCatalogReport
from .samples import SampleCatalog

console = Console()

LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"])


@click.group()
@click.version_option(version=__version__, prog_name="faqsite")
def cli():
    """FAQ Site Builder: corpus checks and static publishing for Markdown FAQs."""
    pass


@cli.command()
@click.argument("content_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--samples", "samples_dir", default=None,
              type=click.Path(exists=True, file_okay=False),
              help="Directory of <library>/<task>-<library>.cs code samples")
@click.option("--external", is_flag=True, default=False,
              help="Also check that external http(s) links are reachable")
@click.option("--timeout", default=10.0, type=float,
              help="Timeout in seconds for external link checks")
@click.option("--no-footer-check", is_flag=True, default=False,
              help="Skip Related Resources / author footer checks")
@click.option("--strict", is_flag=True, default=False,
              help="Exit with status 1 when error-level issues are found")
@click.option("--log-level", default="WARNING", type=LOG_LEVELS,
              help="Logging level")
@click.option("--log-file", default=None, help="Path to log file")
@click.option("--json-output", is_flag=True, default=False,
              help="Output only JSON report to stdout (for programmatic use)")
def check(
    content_dir: str,
    samples_dir: str,
    external: bool,
    timeout: float,
    no_footer_check: bool,
    strict: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Validate links, anchors, code fences and footers of a corpus."""

    if json_output:
        log_level = "ERROR"

    config = SiteConfig(
        content_dir=content_dir,
        samples_dir=samples_dir,
        require_footer=not no_footer_check,
        check_external=external,
        external_timeout=timeout,
        log_level=log_level,
        log_file=log_file,
    )

    try:
        engine = SiteEngine(config)

        if json_output:
            report = engine.check()
            _, samples_report = engine.catalog_samples()
            data = {"report": report.model_dump(mode="json")}
            if samples_report is not None:
                data["samples"] = samples_report.model_dump(mode="json")
            print(json.dumps(data, indent=2, ensure_ascii=False))
        else:
            console.print()
            console.print(
                Panel.fit(
                    f"[bold cyan]FAQ Site Builder v{__version__}[/]\n"
                    f"[dim]Checking: {content_dir}[/]",
                    border_style="cyan",
                )
            )
            console.print()

            with _progress() as progress:
                task = progress.add_task("Scanning documents...", total=None)
                report = engine.check(
                    progress_callback=lambda cur, total: progress.update(
                        task, completed=cur, total=total
                    )
                )
            _display_report(report)

            _, samples_report = engine.catalog_samples()
            if samples_report is not None:
                _display_samples_report(samples_report)

    except (FileNotFoundError, CorpusError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    if strict and report.error_count:
        if not json_output:
            console.print(
                f"[red]{report.error_count} error-level issue(s) found[/]"
            )
        sys.exit(1)


@cli.command()
@click.argument("content_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--output", "-o", default="site", help="Output directory for the site")
@click.option("--samples", "samples_dir", default=None,
              type=click.Path(exists=True, file_okay=False),
              help="Directory of code samples for comparison pages")
@click.option("--site-title", default="IronPDF FAQ", help="Site title")
@click.option("--base-url", default="", help="Public base URL (enables sitemap.xml)")
@click.option("--author-bio", default="", help="Author bio used in every footer")
@click.option("--related-limit", default=5, type=int,
              help="Maximum related articles per footer")
@click.option("--no-footer", is_flag=True, default=False,
              help="Render articles without injecting the canonical footer")
@click.option("--strict", is_flag=True, default=False,
              help="Refuse to build when error-level issues are found")
@click.option("--log-level", default="INFO", type=LOG_LEVELS, help="Logging level")
@click.option("--log-file", default=None, help="Path to log file")
def build(
    content_dir: str,
    output: str,
    samples_dir: str,
    site_title: str,
    base_url: str,
    author_bio: str,
    related_limit: int,
    no_footer: bool,
    strict: bool,
    log_level: str,
    log_file: str,
):
    """Render the corpus into a static HTML site."""

    config = SiteConfig(
        content_dir=content_dir,
        output_dir=output,
        samples_dir=samples_dir,
        site_title=site_title,
        base_url=base_url,
        author_bio=author_bio,
        related_limit=related_limit,
        inject_footers=not no_footer,
        strict=strict,
        log_level=log_level,
        log_file=log_file,
    )

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]FAQ Site Builder v{__version__}[/]\n"
            f"[dim]Building: {content_dir} → {output}[/]",
            border_style="cyan",
        )
    )
    console.print()

    try:
        engine = SiteEngine(config)
        with _progress() as progress:
            task = progress.add_task("Loading documents...", total=None)
            result = engine.build(
                progress_callback=lambda cur, total: progress.update(
                    task, completed=cur, total=total
                )
            )
    except BuildError as e:
        console.print(f"[red]Build refused:[/] {e}")
        if e.report is not None:
            _display_report(e.report)
        sys.exit(1)
    except (FileNotFoundError, CorpusError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)

    _display_report(result.report)
    if result.samples is not None:
        _display_samples_report(result.samples)

    bv = result.build_version
    console.print(
        f"[dim]Builder v{bv.builder_version} | "
        f"Pages: {len(result.pages)} | "
        f"Written: {bv.pages_written} | "
        f"Unchanged: {bv.pages_unchanged} | "
        f"Removed: {bv.pages_removed}[/]"
    )
    console.print()


@cli.command("fix-footers")
@click.argument("content_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--dry-run", is_flag=True, default=False,
              help="List documents that would change without writing")
@click.option("--author-bio", default="", help="Author bio used in every footer")
@click.option("--related-limit", default=5, type=int,
              help="Maximum related articles per footer")
@click.option("--log-level", default="WARNING", type=LOG_LEVELS, help="Logging level")
def fix_footers(
    content_dir: str,
    dry_run: bool,
    author_bio: str,
    related_limit: int,
    log_level: str,
):
    """Apply the canonical Related Resources / author footer in place."""

    config = SiteConfig(
        content_dir=content_dir,
        author_bio=author_bio,
        related_limit=related_limit,
        log_level=log_level,
    )

    try:
        changed = SiteEngine(config).fix_footers(dry_run=dry_run)
    except (FileNotFoundError, CorpusError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print()
    if not changed:
        console.print("[green]✓[/] All footers already canonical")
        console.print()
        return

    table = Table(
        title="Would Update" if dry_run else "Updated Footers",
        border_style="yellow" if dry_run else "green",
    )
    table.add_column("Document", style="bold")
    for path in changed:
        table.add_row(path)
    console.print(table)
    console.print()


@cli.command()
@click.argument("samples_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--json-output", is_flag=True, default=False,
              help="Output only JSON to stdout")
def samples(samples_dir: str, json_output: bool):
    """Index code samples and pair competitor samples with IronPDF ones."""

    catalog = SampleCatalog(samples_dir)
    catalog.scan()
    comparisons = catalog.comparisons()
    report = catalog.report(comparisons)

    if json_output:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
        return

    console.print()
    table = Table(title="Sample Comparisons", border_style="cyan")
    table.add_column("Library", style="bold")
    table.add_column("Task")
    table.add_column("Competitor Calls")
    table.add_column("IronPDF Calls")
    table.add_column("Paired", justify="center")

    for comparison in comparisons:
        competitor = comparison.competitor
        ironpdf = comparison.ironpdf
        table.add_row(
            comparison.library,
            comparison.task,
            ", ".join(competitor.api_calls[:4]) if competitor else "-",
            ", ".join(ironpdf.api_calls[:4]) if ironpdf else "-",
            "[green]✓[/]" if comparison.is_paired else "[yellow]⚠[/]",
        )

    console.print(table)
    console.print()
    _display_samples_report(report)


@cli.command()
@click.argument("markdown_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--content-dir", default=".", help="Corpus root for link resolution")
def info(markdown_path: str, content_dir: str):
    """Display information about one Markdown article."""

    engine = SiteEngine(SiteConfig(content_dir=content_dir, log_level="WARNING"))
    try:
        doc = engine.load_document(markdown_path)
    except CorpusError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print()
    table = Table(title="Document Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(markdown_path))
    table.add_row("Title", doc.title or "(none)")
    table.add_row("File Size", f"{doc.size_bytes / 1024:.1f} KB")
    table.add_row("Prose Words", str(doc.prose_words))
    table.add_row("Headings", str(len(doc.headings)))
    table.add_row("Links", str(len(doc.links)))
    table.add_row("Internal Links", str(len(doc.internal_links)))

    languages: dict[str, int] = {}
    for block in doc.code_blocks:
        key = block.language or "(plain)"
        languages[key] = languages.get(key, 0) + 1
    table.add_row(
        "Code Blocks",
        ", ".join(f"{lang}: {n}" for lang, n in sorted(languages.items())) or "0",
    )
    table.add_row("Footer", "yes" if doc.has_footer else "no")
    table.add_row("Content Hash", doc.content_hash[:16] + "...")

    console.print(table)
    console.print()

    if doc.issues:
        _display_issue_list(doc.issues, title="Scan Issues")


@cli.command()
@click.argument("markdown_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Output PDF path")
@click.option("--content-dir", default=".", help="Corpus root for link resolution")
def export(markdown_path: str, output: str, content_dir: str):
    """Export one Markdown article as a printable PDF."""

    engine = SiteEngine(SiteConfig(content_dir=content_dir, log_level="WARNING"))
    try:
        path, pages = engine.export_pdf(markdown_path, output)
    except (CorpusError, RuntimeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print(f"[green]✓[/] Exported {pages} page(s) to {path}")


@cli.command()
@click.option("--output", "-o", default="site", help="Site directory holding the manifest")
@click.option("--limit", default=20, type=int, help="Number of builds to show")
def history(output: str, limit: int):
    """Show recent builds recorded in the manifest."""

    builds = db.list_builds(db.get_db_path(output), limit=limit)
    if not builds:
        console.print(f"[yellow]No builds recorded for: {output}[/]")
        return

    table = Table(title="Build History", border_style="cyan")
    table.add_column("#", justify="right")
    table.add_column("Started")
    table.add_column("Status", justify="center")
    table.add_column("Docs", justify="right")
    table.add_column("Written", justify="right")
    table.add_column("Unchanged", justify="right")
    table.add_column("Removed", justify="right")
    table.add_column("Errors", justify="right")

    for row in builds:
        status = row["status"]
        style = {"success": "green", "failed": "red"}.get(status, "yellow")
        table.add_row(
            str(row["id"]),
            row["started_at"][:19],
            f"[{style}]{status}[/]",
            str(row["documents"]),
            str(row["pages_written"]),
            str(row["pages_unchanged"]),
            str(row["pages_removed"]),
            str(row["error_count"]),
        )

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.option("--site-dir", default="site", help="Built site to serve")
@click.option("--content-dir", default="FAQ", help="Corpus to rebuild from")
@click.option("--samples", "samples_dir", default=None, help="Code samples directory")
@click.option("--host", default="127.0.0.1", help="Server host")
@click.option("--port", default=8000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(
    site_dir: str,
    content_dir: str,
    samples_dir: str,
    host: str,
    port: int,
    debug: bool,
):
    """Start the preview server for a built site."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]FAQ Site Preview[/]\n"
            f"[dim]Serving {site_dir} on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(
        host=host,
        port=port,
        debug=debug,
        site_dir=site_dir,
        content_dir=content_dir,
        samples_dir=samples_dir,
    )


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def _display_report(report: CorpusReport):
    """Display the corpus report as rich tables."""
    table = Table(title="Corpus Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    table.add_row(
        "Documents",
        str(report.total_documents),
        "[green]✓[/]" if report.total_documents > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Clean Documents",
        f"{report.clean_documents} ({report.health_rate}%)",
        "[green]✓[/]" if report.health_rate >= 90 else "[yellow]⚠[/]",
    )
    table.add_row(
        "Links (internal / external)",
        f"{report.internal_links} / {report.external_links}",
        "",
    )
    table.add_row("Code Blocks", str(report.total_code_blocks), "")
    table.add_row(
        "Broken Links", str(len(report.broken_links)),
        status_icon(len(report.broken_links)),
    )
    table.add_row(
        "Broken Anchors", str(len(report.broken_anchors)),
        status_icon(len(report.broken_anchors)),
    )
    table.add_row(
        "Unclosed Code Fences", str(len(report.unclosed_fences)),
        status_icon(len(report.unclosed_fences)),
    )
    table.add_row(
        "Footer Issues", str(len(report.footer_issues)),
        status_icon(len(report.footer_issues)),
    )
    table.add_row(
        "Duplicate Titles", str(len(report.duplicate_titles)),
        status_icon(len(report.duplicate_titles)),
    )
    table.add_row(
        "Orphan Documents", str(len(report.orphan_documents)),
        "[green]✓[/]" if not report.orphan_documents else "[yellow]⚠[/]",
    )

    console.print(table)
    console.print()

    if report.issue_breakdown:
        breakdown = Table(title="Issue Breakdown", border_style="yellow")
        breakdown.add_column("Type", style="bold")
        breakdown.add_column("Count", justify="right")
        for issue_type, count in sorted(report.issue_breakdown.items()):
            breakdown.add_row(issue_type, str(count))
        console.print(breakdown)
        console.print()

    errors = [issue for issue in report.issues if issue.is_error]
    if errors:
        _display_issue_list(errors, title="Errors")


def _display_issue_list(issues, title: str = "Issues", limit: int = 50):
    table = Table(title=title, border_style="red")
    table.add_column("Document", style="bold")
    table.add_column("Line", justify="right")
    table.add_column("Type")
    table.add_column("Message")

    for issue in issues[:limit]:
        table.add_row(
            issue.path,
            str(issue.line) if issue.line else "-",
            issue.type.value,
            issue.message,
        )
    console.print(table)
    if len(issues) > limit:
        console.print(f"[dim]... and {len(issues) - limit} more[/]")
    console.print()


def _display_samples_report(report: SampleCatalogReport):
    table = Table(title="Sample Catalog", border_style="cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Samples", str(report.total_samples))
    table.add_row("Libraries", str(len(report.libraries)))
    table.add_row("Tasks", str(len(report.tasks)))
    table.add_row("Paired", f"{report.paired} ({report.pairing_rate}%)")
    table.add_row("Unpaired", str(report.unpaired))
    console.print(table)
    console.print()


# ─── Entry point (for python -m faqsite.cli) ──────────────────────────────────


if __name__ == "__main__":
    cli()
