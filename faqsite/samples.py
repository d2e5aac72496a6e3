"""
Code Sample Catalog
===================
Indexes the C# usage samples that back the migration articles and pairs
each competitor sample with the IronPDF sample for the same task.

Directory Layout:
    samples/
    ├── pdfsharp/
    │   ├── html-to-pdf-pdfsharp.cs     # competitor side
    │   └── html-to-pdf-ironpdf.cs      # IronPDF side
    └── wkhtmltopdf/
        └── ...

Samples are read as text only. Nothing here compiles or runs them.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from pathlib import Path
from typing import Optional

from .models import (
    Issue,
    IssueType,
    Sample,
    SampleCatalogReport,
    SampleComparison,
)

logger = logging.getLogger(__name__)

IRONPDF_SUFFIX = "-ironpdf"

# "// NuGet: Install-Package IronPdf"
NUGET_PATTERN = re.compile(
    r"^\s*//\s*NuGet:\s*Install-Package\s+([\w.\-]+)",
    re.IGNORECASE | re.MULTILINE,
)

# "using IronPdf;", "using static System.Math;" (not "using var x = ...")
USING_PATTERN = re.compile(
    r"^\s*using\s+(?:static\s+)?([A-Za-z_][\w.]*)\s*;", re.MULTILINE
)

# ".RenderHtmlAsPdf(", ".SaveAs ("
CALL_PATTERN = re.compile(r"\.([A-Z]\w*)\s*\(")

_COMMENT_PATTERN = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_STRING_PATTERN = re.compile(r'\$?@?"(?:[^"\\\n]|\\.)*"')

# Console and BCL plumbing that says nothing about the PDF API in use.
NOISE_CALLS = {
    "WriteLine", "Write", "ReadLine", "ToString", "AppendLine", "Append",
    "Add", "WaitForExit", "Dispose", "Close",
}


def parse_sample_name(path: Path) -> tuple[str, str, bool, bool]:
    """
    Split a sample file name into (library, task, is_ironpdf, conventional).
    """
    library = path.parent.name
    stem = path.stem
    if stem.endswith(IRONPDF_SUFFIX):
        return library, stem[:-len(IRONPDF_SUFFIX)], True, True
    suffix = f"-{library}"
    if stem.endswith(suffix) and len(stem) > len(suffix):
        return library, stem[:-len(suffix)], False, True
    return library, stem, False, False


def api_calls(source: str) -> list[str]:
    """Invoked method names in order of first appearance."""
    code = _COMMENT_PATTERN.sub("", source)
    code = _STRING_PATTERN.sub('""', code)
    calls: list[str] = []
    for match in CALL_PATTERN.finditer(code):
        name = match.group(1)
        if name not in NOISE_CALLS and name not in calls:
            calls.append(name)
    return calls


class SampleCatalog:
    """
    Scans a samples directory and builds competitor / IronPDF comparisons.
    """

    def __init__(self, samples_dir: str):
        self.samples_dir = Path(samples_dir)
        self.samples: list[Sample] = []
        self.issues: list[Issue] = []

    def scan(self) -> list[Sample]:
        """Read every <library>/<task>-<library|ironpdf>.cs sample."""
        if not self.samples_dir.is_dir():
            raise FileNotFoundError(
                f"Samples directory not found: {self.samples_dir}"
            )

        self.samples = []
        self.issues = []
        files = sorted(self.samples_dir.glob("*/*.cs"))
        logger.info(f"Scanning {len(files)} code samples in {self.samples_dir}")

        for path in files:
            self.samples.append(self._load(path))

        return self.samples

    def _load(self, path: Path) -> Sample:
        source = path.read_text(encoding="utf-8-sig", errors="replace")
        source = source.replace("\r\n", "\n")
        library, task, is_ironpdf, conventional = parse_sample_name(path)
        relative = path.relative_to(self.samples_dir).as_posix()

        if not conventional:
            self.issues.append(Issue(
                type=IssueType.SAMPLE_NAMING,
                severity=10,
                message=(
                    f"Sample name does not end in '-{library}' "
                    f"or '{IRONPDF_SUFFIX}'"
                ),
                path=relative,
            ))

        package = NUGET_PATTERN.search(source)
        return Sample(
            path=relative,
            library=library,
            task=task,
            is_ironpdf=is_ironpdf,
            package=package.group(1) if package else "",
            namespaces=USING_PATTERN.findall(source),
            api_calls=api_calls(source),
            line_count=len(source.splitlines()),
            source=source,
        )

    def comparisons(self) -> list[SampleComparison]:
        """One comparison per (library, task), sorted."""
        pairs: dict[tuple[str, str], SampleComparison] = {}
        for sample in self.samples:
            key = (sample.library, sample.task)
            comparison = pairs.setdefault(
                key, SampleComparison(library=sample.library, task=sample.task)
            )
            if sample.is_ironpdf:
                comparison.ironpdf = sample
            else:
                comparison.competitor = sample
        return [pairs[key] for key in sorted(pairs)]

    def report(
        self,
        comparisons: Optional[list[SampleComparison]] = None,
    ) -> SampleCatalogReport:
        comparisons = self.comparisons() if comparisons is None else comparisons
        issues = list(self.issues)

        for comparison in comparisons:
            if comparison.is_paired:
                continue
            present = comparison.competitor or comparison.ironpdf
            missing = "IronPDF" if comparison.ironpdf is None else comparison.library
            issues.append(Issue(
                type=IssueType.UNPAIRED_SAMPLE,
                severity=5,
                message=f"No {missing} sample for task '{comparison.task}'",
                path=present.path,
            ))

        packages = Counter(s.package for s in self.samples if s.package)
        paired = sum(1 for c in comparisons if c.is_paired)

        return SampleCatalogReport(
            total_samples=len(self.samples),
            libraries=sorted({s.library for s in self.samples}),
            tasks=sorted({s.task for s in self.samples}),
            paired=paired,
            unpaired=len(comparisons) - paired,
            packages=dict(sorted(packages.items())),
            issues=issues,
        )
