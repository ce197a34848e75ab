"""Shared record types for radmarkers."""

from typing import NamedTuple, Optional


class Observation(NamedTuple):
    """Counts and base qualities for one tag in one individual."""
    read_count: int
    fragment_count: int
    quality: str  # One character per sequence base

    def count(self, use_fragments: bool = False) -> int:
        return self.fragment_count if use_fragments else self.read_count


class Individual(NamedTuple):
    """An individual from the pools file; index is its segregation bit."""
    name: str
    index: int
    mids: tuple = ()


class TagRecord(NamedTuple):
    """One parsed line of a tag file."""
    sequence: str
    quality: str
    read_count: int
    fragment_count: int

    def observation(self) -> Observation:
        return Observation(self.read_count, self.fragment_count, self.quality)


class MalformedRecordError(ValueError):
    """A tag or pools record could not be parsed."""

    def __init__(self, message: str, path: Optional[str] = None, line_number: Optional[int] = None):
        self.path = path
        self.line_number = line_number
        if path is not None and line_number is not None:
            message = f"{path}:{line_number}: malformed record: {message}"
        elif path is not None:
            message = f"{path}: malformed record: {message}"
        else:
            message = f"malformed record: {message}"
        super().__init__(message)
