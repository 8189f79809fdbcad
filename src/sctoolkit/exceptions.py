"""Custom exceptions for the toolkit operations."""

from typing import List, Optional


class ValidationError(ValueError):
    """Raised when operation input violates its preconditions."""

    pass


class MergeError(Exception):
    """Raised when a merge aborts after it started.

    Target playlists created before the failure are listed so a caller can
    clean up or report them; when rollback is enabled the deleted ones are
    listed too.

    Attributes:
        stage: Merge state at the time of failure
        created_collection_ids: Target playlists created before the failure
        rolled_back_collection_ids: Targets deleted again during rollback
        cause: The exception that aborted the merge
    """

    def __init__(
        self,
        message: str,
        stage: str,
        created_collection_ids: Optional[List[int]] = None,
        rolled_back_collection_ids: Optional[List[int]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.stage = stage
        self.created_collection_ids = list(created_collection_ids or [])
        self.rolled_back_collection_ids = list(rolled_back_collection_ids or [])
        self.cause = cause
        super().__init__(message)

    @property
    def orphaned_collection_ids(self) -> List[int]:
        """Created targets that still exist upstream."""
        return [
            playlist_id
            for playlist_id in self.created_collection_ids
            if playlist_id not in self.rolled_back_collection_ids
        ]
