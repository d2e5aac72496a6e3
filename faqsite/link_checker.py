"""
External Link Checker
=====================
Reachability checks for http(s) links found in the corpus (the product and
company sites the articles point at). Results are cached per URL for the
lifetime of the checker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from . import __version__

logger = logging.getLogger(__name__)

# Servers that refuse HEAD get a GET retry.
HEAD_FALLBACK_CODES = {403, 405, 501}


@dataclass
class LinkStatus:
    url: str
    ok: bool
    status_code: Optional[int] = None
    reason: str = ""


class ExternalLinkChecker:
    """HEAD-first reachability checker sharing one requests session."""

    def __init__(
        self,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault(
            "User-Agent", f"faqsite-link-checker/{__version__}"
        )
        self._cache: dict[str, LinkStatus] = {}

    def check(self, url: str) -> LinkStatus:
        if url in self._cache:
            return self._cache[url]

        try:
            response = self.session.head(
                url, timeout=self.timeout, allow_redirects=True
            )
            if response.status_code in HEAD_FALLBACK_CODES:
                response = self.session.get(
                    url, timeout=self.timeout, allow_redirects=True, stream=True
                )
                response.close()
            status = LinkStatus(
                url=url,
                ok=response.status_code < 400,
                status_code=response.status_code,
                reason=response.reason or str(response.status_code),
            )
        except requests.RequestException as e:
            status = LinkStatus(url=url, ok=False, reason=type(e).__name__)

        if not status.ok:
            logger.warning(f"Unreachable: {url} ({status.reason})")
        self._cache[url] = status
        return status

    def check_many(self, urls: list[str]) -> dict[str, LinkStatus]:
        logger.info(f"Checking {len(urls)} external links")
        return {url: self.check(url) for url in urls}

    def close(self):
        self.session.close()
