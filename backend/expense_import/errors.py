"""
Exceptions raised by the import pipeline.

Only ParseError and CommitError are meant to reach the end user; the others
describe states the HTTP layer turns into conflict responses.
"""

from typing import List, Optional


class ExpenseImportError(Exception):
    """Base class for every error raised by expense_import."""


class ParseError(ExpenseImportError):
    """The uploaded file is empty, undecodable, or has a malformed quoted field."""


class NoFileLoaded(ExpenseImportError):
    """A step that needs a parsed file ran before any upload succeeded."""


class MappingIncomplete(ExpenseImportError):
    """A required role is unset, so expansion cannot run yet."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Mapping incomplete, missing: {', '.join(self.missing)}")


class CatalogError(ExpenseImportError):
    """The reference catalog is unusable or could not be fetched."""


class CommitError(ExpenseImportError):
    """The persistence collaborator rejected or never received the batch."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SessionBusy(ExpenseImportError):
    """A commit is in flight, staged records are read-only until it settles."""
