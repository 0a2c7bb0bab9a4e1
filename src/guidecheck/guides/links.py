"""Link integrity checks across guides."""

import fnmatch
import logging
import posixpath
from pathlib import Path
from urllib.parse import unquote

import httpx

from guidecheck.core.config import LinksConfig
from guidecheck.core.constants import GUIDE_FILE_EXTENSION, LinkKind
from guidecheck.core.exceptions import LinkCheckError
from guidecheck.guides.catalog import GuideCatalog
from guidecheck.models.guide import Guide, Link
from guidecheck.models.result import LinkIssue, LinkReport

logger = logging.getLogger(__name__)

# Sentinel for links that are not checked
_SKIPPED = object()


class LinkChecker:
    """Checks anchors, relative links and (optionally) external URLs."""

    def __init__(
        self,
        catalog: GuideCatalog,
        config: LinksConfig | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._catalog = catalog
        self._config = config or LinksConfig()
        self._client = client
        self._external_cache: dict[str, str | None] = {}
        self._anchor_cache: dict[Path, set[str]] = {}

    def check(self) -> LinkReport:
        """Check every link in every loaded guide."""
        if not self._catalog.root.is_dir():
            raise LinkCheckError(
                "Guides directory not found", details={"root": str(self._catalog.root)}
            )

        report = LinkReport()
        owns_client = False
        if self._config.check_external and self._client is None:
            self._client = httpx.Client(
                timeout=self._config.external_timeout,
                follow_redirects=True,
            )
            owns_client = True

        try:
            for guide in self._catalog.guides:
                for link in guide.links:
                    reason = self._check_link(guide, link)
                    if reason is _SKIPPED:
                        report.skipped += 1
                        continue
                    report.checked += 1
                    if reason is not None:
                        report.issues.append(LinkIssue(guide=guide.path, link=link, reason=reason))
        finally:
            if owns_client and self._client is not None:
                self._client.close()
                self._client = None

        logger.info(
            "Checked %d links (%d skipped, %d broken)",
            report.checked,
            report.skipped,
            len(report.issues),
        )
        return report

    def _check_link(self, guide: Guide, link: Link) -> str | None | object:
        if self._is_ignored(link.target):
            return _SKIPPED

        if link.kind == LinkKind.ANCHOR:
            fragment = unquote(link.fragment or "")
            if fragment and fragment not in guide.anchors:
                return f"Anchor '#{fragment}' not found in {guide.path}"
            return None

        if link.kind == LinkKind.RELATIVE:
            return self._check_relative(guide, link)

        if link.kind == LinkKind.EXTERNAL:
            if not self._config.check_external:
                return _SKIPPED
            return self._check_external(link.target)

        return _SKIPPED

    def _check_relative(self, guide: Guide, link: Link) -> str | None:
        """Resolve a relative link against the linking guide's directory."""
        link_path = unquote(link.path)
        if not link_path:
            return None

        if link_path.startswith("/"):
            relative = link_path.lstrip("/")
        else:
            relative = posixpath.normpath(
                posixpath.join(posixpath.dirname(guide.path), link_path)
            )
        if relative.startswith(".."):
            return f"Link '{link.target}' points outside the guides directory"

        target = self._catalog.root / relative
        if not target.exists():
            alias = self._html_alias(target)
            if alias is None:
                return f"Target '{link.path}' does not exist"
            target = alias

        fragment = link.fragment
        if fragment and target.suffix == GUIDE_FILE_EXTENSION:
            anchors = self._anchors_for(target)
            if unquote(fragment) not in anchors:
                return f"Anchor '#{fragment}' not found in {relative}"
        return None

    def _html_alias(self, target: Path) -> Path | None:
        """Rendered guides link to page.html; accept page.md as its source."""
        if not self._config.html_aliases or target.suffix != ".html":
            return None
        source = target.with_suffix(GUIDE_FILE_EXTENSION)
        return source if source.exists() else None

    def _anchors_for(self, target: Path) -> set[str]:
        """Anchors of a target guide, from the catalog or parsed on demand."""
        try:
            relative = target.resolve().relative_to(self._catalog.root.resolve()).as_posix()
        except ValueError:
            relative = None
        loaded = self._catalog.get(relative) if relative else None
        if loaded is not None:
            return loaded.anchors

        if target not in self._anchor_cache:
            parsed = self._catalog.parser.parse(target, self._catalog.root)
            self._anchor_cache[target] = parsed.guide.anchors if parsed.guide else set()
        return self._anchor_cache[target]

    def _check_external(self, url: str) -> str | None:
        """HEAD the URL, falling back to GET when HEAD is not supported."""
        if url in self._external_cache:
            return self._external_cache[url]

        reason: str | None = None
        try:
            response = self._client.head(url)
            if response.status_code in (405, 501):
                response = self._client.get(url)
            if response.status_code >= 400:
                reason = f"HTTP {response.status_code} for {url}"
        except httpx.HTTPError as e:
            reason = f"Request failed for {url}: {e}"

        self._external_cache[url] = reason
        return reason

    def _is_ignored(self, target: str) -> bool:
        return any(fnmatch.fnmatch(target, pattern) for pattern in self._config.ignore)

