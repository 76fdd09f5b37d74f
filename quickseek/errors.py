"""
Error types shared by the search sources.

None of these are fatal: sources catch them and degrade to partial or
empty results, and the orchestrator never lets one abort a merge.
"""


class QuickseekError(Exception):
    """Base class for quickseek errors."""


class LoadTimeout(QuickseekError):
    """A catalog build or live query exceeded its deadline."""

    def __init__(self, message: str, partial: list | None = None):
        super().__init__(message)
        self.partial = partial if partial is not None else []


class QueryFailure(QuickseekError):
    """A live index query failed."""


class SubprocessFailure(QuickseekError):
    """An external command could not be run or exited with an error."""
