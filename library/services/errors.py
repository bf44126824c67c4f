class LibraryError(Exception):
    """Base exception for library domain errors."""


class ConflictError(LibraryError):
    """An OPEN loan already exists for the pair, or a natural key is taken."""


class NotFoundError(LibraryError):
    """Nothing matched: no OPEN loan to close, or a referenced record is missing."""


class InvalidLoanError(LibraryError):
    """Loan dates are not ordered."""


class PersistenceError(Exception):
    """The store failed. Not a domain outcome; the transaction was rolled back."""
