"""
Error types shared by the radar components
"""

from typing import Optional


class RadarError(Exception):
    """Base class for every radar failure"""
    pass


class FeedError(RadarError):
    """A single poll cycle failed; the poller skips the cycle"""
    pass


class FeedTimeout(FeedError):
    pass


class RequestFailed(FeedError):
    """Feed answered with a non-success status or could not be reached"""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class ParseFailed(FeedError):
    """Feed payload could not be turned into tracked objects"""
    pass


class InvalidCoordinate(RadarError):
    """Projection produced a value that cannot be placed on the grid"""
    pass


class TerminalIOFailure(RadarError):
    """Writing to the terminal failed; the display can no longer be trusted"""
    pass


class LockFailure(RadarError):
    """Shared state was left half-mutated by a failing writer"""
    pass
