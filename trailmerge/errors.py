"""
Exceptions raised by trailmerge
"""

from typing import Optional


class TrailMergeError(Exception):
    """Base class for all trailmerge errors"""


class MergeAmbiguity(TrailMergeError):
    """A closed ring was about to be extended - it has no single end to extend"""


class NoNearbyLineError(TrailMergeError):
    """The point needs to be attached to a line and no line is close enough"""


class UnsupportedPointType(TrailMergeError, ValueError):
    """The point type has no tag mapping"""


class UploadFailure(TrailMergeError):
    """The OSM API rejected or failed a changeset call"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UploadConflictError(UploadFailure):
    """The OSM API reported a version conflict (HTTP 409)"""


class CacheRefreshFailure(TrailMergeError):
    """Refreshing the local line cache after an edit failed"""


class RemoteReadFailure(UploadFailure):
    """Reading the current server version of an element failed"""
