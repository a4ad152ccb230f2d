"""SQLAlchemy models package for the remote storage backend.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from commitments.models import Commitment, CommitmentItem
"""

from commitments.models.commitment_header import CommitmentHeader  # noqa: F401
from commitments.models.commitment import Commitment  # noqa: F401
from commitments.models.commitment_item import CommitmentItem  # noqa: F401

__all__ = [
    "CommitmentHeader",
    "Commitment",
    "CommitmentItem",
]
