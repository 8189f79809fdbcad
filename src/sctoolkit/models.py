"""Value objects for toolkit operations and their JSON result shapes.

Result objects serialize through ``to_dict()`` into the camelCase field names
that external consumers depend on. Field names and ordering are part of the
contract: merge stats list sources in caller order, bulk results list one
entry per input id in input order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .exceptions import ValidationError

MIN_MERGE_SOURCES = 2
MAX_MERGE_SOURCES = 10
MAX_TITLE_LENGTH = 200


def coerce_id(value: Any, label: str = "id") -> int:
    """Convert a positive integer id given as int or numeric string.

    Raises:
        ValidationError: If the value is not a positive integer

    Examples:
        >>> coerce_id("42")
        42
        >>> coerce_id(7)
        7
    """
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a positive integer")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValidationError(f"{label} must be a positive integer (got {value!r})")
        value = int(value)
    if not isinstance(value, int) or value < 1:
        raise ValidationError(f"{label} must be a positive integer (got {value!r})")
    return value


def coerce_ids(
    values: Iterable[Any],
    label: str = "id",
    min_count: int = 1,
    max_count: Optional[int] = None,
) -> List[int]:
    """Validate a list of ids and its length.

    Raises:
        ValidationError: If the count is out of range or any id is invalid
    """
    if values is None or isinstance(values, (str, bytes)):
        raise ValidationError(f"{label}s must be a list")

    ids = [coerce_id(value, label) for value in values]
    if len(ids) < min_count:
        raise ValidationError(f"At least {min_count} {label}(s) required (got {len(ids)})")
    if max_count is not None and len(ids) > max_count:
        raise ValidationError(f"At most {max_count} {label}(s) allowed (got {len(ids)})")
    return ids


def clean_title(title: Optional[str]) -> Optional[str]:
    """Strip a user-supplied title; blank means "use the default".

    Raises:
        ValidationError: If the title is longer than 200 characters
    """
    if title is None:
        return None
    cleaned = title.strip()
    if not cleaned:
        return None
    if len(cleaned) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
    return cleaned


class MergeState(str, Enum):
    """Lifecycle of one merge run."""

    IDLE = "idle"
    FETCHING_SOURCES = "fetching_sources"
    DEDUPLICATING = "deduplicating"
    WRITING_BATCHES = "writing_batches"
    VERIFYING = "verifying"
    COMPLETE = "complete"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass
class MergeRequest:
    """Input for a merge: 2..10 source playlist ids and an optional title.

    Example:
        >>> request = MergeRequest(source_ids=["1", 2], title=" Mix ")
        >>> request.validate()
        >>> request.source_ids, request.title
        ([1, 2], 'Mix')
    """

    source_ids: Sequence[Any]
    title: Optional[str] = None

    def validate(self) -> None:
        """Coerce ids and title in place.

        Raises:
            ValidationError: If fewer than 2 or more than 10 sources are given,
                an id is not a positive integer, or the title is too long
        """
        self.source_ids = coerce_ids(
            self.source_ids,
            label="source playlist id",
            min_count=MIN_MERGE_SOURCES,
            max_count=MAX_MERGE_SOURCES,
        )
        self.title = clean_title(self.title)


@dataclass
class SourceStats:
    """Per-source diagnostics: items fetched and items passing the filter."""

    id: Any
    fetched: int = 0
    accepted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "fetched": self.fetched, "accepted": self.accepted}


@dataclass
class CollectionSummary:
    """One written target playlist.

    Attributes:
        id: Playlist id
        title: Final title (with ``(i/total)`` suffix in split runs)
        track_ids: Ids written, in order
        track_count: Server-reported count after verification, or the local
            count when verification failed
        verified: Whether track_count came from a successful re-fetch
        permalink_url: Public URL if known
    """

    id: int
    title: str
    track_ids: List[int] = field(default_factory=list)
    track_count: int = 0
    verified: bool = False
    permalink_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "trackCount": self.track_count,
            "trackIds": list(self.track_ids),
            "verified": self.verified,
            "permalinkUrl": self.permalink_url,
        }


@dataclass
class MergeStats:
    """Diagnostics for a merge or likes-to-playlist run."""

    sources: List[SourceStats] = field(default_factory=list)
    unique_before_cap: int = 0
    total_written: int = 0
    collections_created: int = 0
    verified: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sources": [source.to_dict() for source in self.sources],
            "uniqueBeforeCap": self.unique_before_cap,
            "totalWritten": self.total_written,
            "collectionsCreated": self.collections_created,
            "verified": self.verified,
        }


@dataclass
class MergeResult:
    """Outcome of a merge: one target, or several when the cap was exceeded."""

    collections: List[CollectionSummary]
    stats: MergeStats

    @property
    def is_split(self) -> bool:
        return len(self.collections) > 1

    def to_dict(self) -> Dict[str, Any]:
        if self.is_split:
            return {
                "collections": [collection.to_dict() for collection in self.collections],
                "stats": self.stats.to_dict(),
            }
        return {
            "collection": self.collections[0].to_dict() if self.collections else None,
            "stats": self.stats.to_dict(),
        }


class BulkStatus(str, Enum):
    OK = "ok"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass
class BulkItemResult:
    """Outcome of one bulk action."""

    id: Any
    status: BulkStatus
    error: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status is BulkStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "status": self.status.value}
        if self.error is not None:
            result["error"] = self.error
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class BulkOperationResult:
    """Ordered per-item outcomes, one entry per input id."""

    results: List[BulkItemResult] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    @property
    def succeeded_ids(self) -> List[Any]:
        return [item.id for item in self.results if item.ok]

    @property
    def failed_ids(self) -> List[Any]:
        return [item.id for item in self.results if not item.ok]

    @property
    def is_mixed(self) -> bool:
        return bool(self.succeeded_ids) and bool(self.failed_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [item.to_dict() for item in self.results],
            "succeeded": len(self.succeeded_ids),
            "failed": len(self.failed_ids),
        }


@dataclass
class DedupeReport:
    """Duplicate analysis (and optional rewrite) of one playlist."""

    playlist_id: int
    original_count: int
    unique_ids: List[int]
    duplicate_ids: List[int]
    applied: bool = False

    @property
    def unique_count(self) -> int:
        return len(self.unique_ids)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicate_ids)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "preview": not self.applied,
            "originalCount": self.original_count,
            "uniqueCount": self.unique_count,
            "duplicateCount": self.duplicate_count,
        }
        if self.applied:
            result["removedDuplicates"] = self.duplicate_count
        else:
            result["duplicates"] = self.duplicate_ids[:10]
        return result


@dataclass
class HealthReport:
    """Playability breakdown of one playlist."""

    playlist_id: int
    playable_ids: List[int] = field(default_factory=list)
    preview_ids: List[int] = field(default_factory=list)
    blocked_ids: List[int] = field(default_factory=list)
    removed: int = 0

    @property
    def total(self) -> int:
        return len(self.playable_ids) + len(self.preview_ids) + len(self.blocked_ids)

    @property
    def issue_count(self) -> int:
        return len(self.preview_ids) + len(self.blocked_ids)

    @property
    def health_percent(self) -> int:
        if self.total == 0:
            return 100
        return round(len(self.playable_ids) * 100 / self.total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playlistId": self.playlist_id,
            "total": self.total,
            "playable": len(self.playable_ids),
            "preview": len(self.preview_ids),
            "blocked": len(self.blocked_ids),
            "issueCount": self.issue_count,
            "healthPercent": self.health_percent,
            "removed": self.removed,
        }
