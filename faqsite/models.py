"""
Data Models
===========
Pydantic models for scanned documents, validation reports and build output.
All models are serializable to JSON for report.json and the preview API.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, Field, computed_field

# Issues at or above this severity count as errors.
ERROR_SEVERITY = 50


# ─── Enums ────────────────────────────────────────────────────────────────────


class LinkKind(str, Enum):
    """Where a link points."""
    INTERNAL = "internal"
    EXTERNAL = "external"
    ANCHOR = "anchor"
    MAILTO = "mailto"


class IssueType(str, Enum):
    """Types of integrity problems detected in the corpus."""
    BROKEN_LINK = "broken_link"
    BROKEN_ANCHOR = "broken_anchor"
    UNCLOSED_FENCE = "unclosed_fence"
    MISSING_TITLE = "missing_title"
    MULTIPLE_TITLES = "multiple_titles"
    HEADING_LEVEL_SKIP = "heading_level_skip"
    EMPTY_DOCUMENT = "empty_document"
    MISSING_FOOTER = "missing_footer"
    MISSING_RELATED_RESOURCES = "missing_related_resources"
    MISSING_AUTHOR_BIO = "missing_author_bio"
    FOOTER_FORMAT = "footer_format"
    DUPLICATE_TITLE = "duplicate_title"
    ORPHAN_DOCUMENT = "orphan_document"
    EXTERNAL_LINK_UNREACHABLE = "external_link_unreachable"
    UNPAIRED_SAMPLE = "unpaired_sample"
    SAMPLE_NAMING = "sample_naming"


# ─── Document Parts ───────────────────────────────────────────────────────────


class Issue(BaseModel):
    """A single integrity problem tied to a document or sample file."""
    type: IssueType
    severity: int = Field(
        ge=0, le=100,
        description="Severity score 0-100"
    )
    message: str
    path: str = ""
    line: Optional[int] = None
    context: Optional[dict] = None

    @computed_field
    @property
    def is_error(self) -> bool:
        return self.severity >= ERROR_SEVERITY


class Heading(BaseModel):
    """An ATX or setext heading."""
    level: int = Field(ge=1, le=6)
    text: str
    slug: str
    line: int = Field(ge=1)


class CodeBlock(BaseModel):
    """
    A fenced code block. Content is kept as an opaque string and never
    compiled or executed.
    """
    language: str = ""
    content: str = ""
    fence: str = "```"
    start_line: int = Field(ge=1)
    end_line: Optional[int] = None

    @computed_field
    @property
    def closed(self) -> bool:
        return self.end_line is not None


class Link(BaseModel):
    """A Markdown link, image or reference definition."""
    text: str = ""
    target: str
    line: int = Field(ge=1)
    kind: LinkKind
    is_image: bool = False
    is_reference: bool = False

    @computed_field
    @property
    def target_path(self) -> str:
        """URL-decoded path part of an internal target, without fragment."""
        if self.kind != LinkKind.INTERNAL:
            return ""
        return unquote(urlsplit(self.target).path)

    @computed_field
    @property
    def fragment(self) -> str:
        return unquote(urlsplit(self.target).fragment)


class Footer(BaseModel):
    """The trailing Related Resources / About the Author block."""
    start_line: int = Field(ge=1)
    has_rule: bool = False
    related_heading_level: Optional[int] = None
    related_links: list[Link] = Field(default_factory=list)
    related_items: int = 0
    unlinked_items: int = 0
    author_heading_level: Optional[int] = None
    author_bio: str = ""

    @computed_field
    @property
    def has_related_resources(self) -> bool:
        return self.related_heading_level is not None

    @computed_field
    @property
    def has_author_bio(self) -> bool:
        return self.author_heading_level is not None and bool(
            self.author_bio.strip()
        )


class Document(BaseModel):
    """A scanned Markdown article from the corpus."""
    path: str = Field(description="POSIX path relative to the corpus root")
    title: str = ""
    source: str = ""
    headings: list[Heading] = Field(default_factory=list)
    code_blocks: list[CodeBlock] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    footer: Optional[Footer] = None
    content_hash: str = ""
    size_bytes: int = 0
    issues: list[Issue] = Field(default_factory=list)
    prose_words: int = 0

    @computed_field
    @property
    def output_name(self) -> str:
        return str(PurePosixPath(self.path).with_suffix(".html"))

    @computed_field
    @property
    def has_footer(self) -> bool:
        return self.footer is not None

    @property
    def internal_links(self) -> list[Link]:
        return [link for link in self.links if link.kind == LinkKind.INTERNAL]

    @property
    def slugs(self) -> set[str]:
        return {h.slug for h in self.headings}


# ─── Reports ──────────────────────────────────────────────────────────────────


class CorpusReport(BaseModel):
    """Post-scan corpus integrity report."""
    total_documents: int = 0
    clean_documents: int = 0
    total_links: int = 0
    internal_links: int = 0
    external_links: int = 0
    total_code_blocks: int = 0
    broken_links: list[Issue] = Field(default_factory=list)
    broken_anchors: list[Issue] = Field(default_factory=list)
    unclosed_fences: list[Issue] = Field(default_factory=list)
    footer_issues: list[Issue] = Field(default_factory=list)
    orphan_documents: list[str] = Field(default_factory=list)
    duplicate_titles: dict[str, list[str]] = Field(default_factory=dict)
    issues: list[Issue] = Field(default_factory=list)
    issue_breakdown: dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.is_error)

    @computed_field
    @property
    def health_rate(self) -> float:
        if self.total_documents == 0:
            return 0.0
        return round(
            self.clean_documents / self.total_documents * 100,
            2
        )

    def issues_for(self, path: str) -> list[Issue]:
        return [issue for issue in self.issues if issue.path == path]


# ─── Code Samples ─────────────────────────────────────────────────────────────


class Sample(BaseModel):
    """A single C# usage sample file."""
    path: str
    library: str
    task: str
    is_ironpdf: bool = False
    package: str = ""
    namespaces: list[str] = Field(default_factory=list)
    api_calls: list[str] = Field(default_factory=list)
    line_count: int = 0
    source: str = ""


class SampleComparison(BaseModel):
    """A competitor sample paired with the IronPDF sample for one task."""
    library: str
    task: str
    competitor: Optional[Sample] = None
    ironpdf: Optional[Sample] = None

    @computed_field
    @property
    def is_paired(self) -> bool:
        return self.competitor is not None and self.ironpdf is not None

    @computed_field
    @property
    def title(self) -> str:
        return self.task.replace("-", " ").capitalize()

    @computed_field
    @property
    def output_name(self) -> str:
        return f"compare/{self.library}/{self.task}.html"


class SampleCatalogReport(BaseModel):
    """Summary of a scanned sample directory."""
    total_samples: int = 0
    libraries: list[str] = Field(default_factory=list)
    tasks: list[str] = Field(default_factory=list)
    paired: int = 0
    unpaired: int = 0
    packages: dict[str, int] = Field(default_factory=dict)
    issues: list[Issue] = Field(default_factory=list)

    @computed_field
    @property
    def pairing_rate(self) -> float:
        total = self.paired + self.unpaired
        if total == 0:
            return 0.0
        return round(self.paired / total * 100, 2)


# ─── Build Output ─────────────────────────────────────────────────────────────


class SiteMetadata(BaseModel):
    """Metadata about the published site."""
    title: str = ""
    base_url: str = ""
    content_dir: str = ""
    output_dir: str = ""
    samples_dir: str = ""


class BuildVersion(BaseModel):
    """Version tracking for a build run."""
    builder_version: str = "1.0.0"
    build_timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    pages_written: int = 0
    pages_unchanged: int = 0
    pages_removed: int = 0


class BuildResult(BaseModel):
    """Complete output of a build run."""
    site: SiteMetadata
    build_version: BuildVersion
    pages: list[str] = Field(default_factory=list)
    report: CorpusReport = Field(default_factory=CorpusReport)
    samples: Optional[SampleCatalogReport] = None
