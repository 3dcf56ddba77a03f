"""Typed failures raised by the kanban core.

Routers translate these into HTTP responses; nothing in the core retries.
"""


class KanbanError(Exception):
    """Base class for kanban core failures."""


class NotFoundError(KanbanError):
    """A referenced kanban, chain, status, account or product does not exist."""


class InvalidStateError(KanbanError):
    """Structural inconsistency, e.g. an empty status chain."""


class ChainOrderError(InvalidStateError):
    """An entry batch would leave a status chain without a strict total order."""


class ConflictError(InvalidStateError):
    """Stale concurrent write, or deletion of a row that is still referenced."""


class InactiveKanbanError(InvalidStateError):
    """The kanban has been soft-deleted and can no longer move."""


class StoreFailureError(KanbanError):
    """The underlying persistence operation failed."""
