"""
Domain exception hierarchy.

Validation problems are not exceptions: they are collected as
``ValidationIssue`` values by ``services.validation`` and only block export.
Authentication failures are signalled with ``None`` / ``False`` return
values from ``services.auth_service``.
"""

from __future__ import annotations


class CommitmentsError(Exception):
    """Base class for every error raised by the commitments package."""


class XmlParseError(CommitmentsError):
    """The imported XML is malformed or does not follow the commitments layout.

    Raised before any state is touched, so an aborted import leaves the
    stored record set exactly as it was.
    """


class PersistenceError(CommitmentsError):
    """A storage backend failed to read or write.

    Propagated to the caller, which decides whether to retry or drop the
    change; nothing in the package retries automatically.
    """


class IntegrityRepairError(CommitmentsError):
    """Sequence renumbering was requested without explicit confirmation."""
