"""Exceptions raised by the intake core."""


class IntakeError(RuntimeError):
    """Base for intake exceptions."""


class AccessDenied(IntakeError):
    """A credential was missing or did not match the configured secret."""


class NotFound(IntakeError):
    """The requested resource does not exist."""


class NoSuchSubmission(NotFound):
    """An operation was performed on/for a submission that does not exist."""


class NoSuchFile(NotFound):
    """A requested attachment is inside the attachment root, but absent."""


class PathForbidden(IntakeError):
    """A requested path resolves outside of the attachment root."""


class InvalidInput(IntakeError, ValueError):
    """A submission identifier or other token is malformed."""


class StorageFault(IntakeError):
    """Failed to read or write the ledger or an attachment."""
