class FlashQueryError(Exception):
    """Base class for all Flash Query exceptions."""


class ClauseKindMismatch(FlashQueryError, TypeError):
    """Raised when a clause kind is accessed with the accessor of the wrong arity."""


class UnsupportedMergeArgument(FlashQueryError, TypeError):
    """Raised when merge() receives a value that cannot be merged."""


class IncompatibleMergeTargetError(FlashQueryError, ValueError):
    """Raised when two relations over unrelated stores are merged."""


class UnknownAttributeError(FlashQueryError, AttributeError):
    """Raised when a condition names an attribute the target does not have."""


class UnsupportedLookupError(FlashQueryError, ValueError):
    """Raised when a condition uses an unknown lookup operator."""


class UnknownEntityError(FlashQueryError, LookupError):
    """Raised by a metadata provider for an unrecognized entity name."""


class UnboundRelationError(FlashQueryError, RuntimeError):
    """Raised when a relation must be materialized but has no executor."""


class IrreversibleOrderError(FlashQueryError, ValueError):
    """Raised when reverse_order() meets an ordering it cannot flip."""
