"""guidecheck guides module - parsing, discovery, markers, links, and watching."""

from guidecheck.guides.catalog import GuideCatalog, LoadResult
from guidecheck.guides.links import LinkChecker
from guidecheck.guides.markers import FailureMarker, MarkReport, strip_markers
from guidecheck.guides.parser import (
    GuideParser,
    ParseResult,
    ParseWarning,
    TokenCounter,
    slugify,
)
from guidecheck.guides.watcher import ChangeEvent, ChangeType, GuideWatcher

__all__ = [
    # Parser
    "GuideParser",
    "ParseResult",
    "ParseWarning",
    "TokenCounter",
    "slugify",
    # Catalog
    "GuideCatalog",
    "LoadResult",
    # Markers
    "FailureMarker",
    "MarkReport",
    "strip_markers",
    # Links
    "LinkChecker",
    # Watcher
    "GuideWatcher",
    "ChangeEvent",
    "ChangeType",
]
