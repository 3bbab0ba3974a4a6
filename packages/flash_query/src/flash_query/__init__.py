from .clauses import MULTI_VALUE_KINDS, SINGLE_VALUE_KINDS, ClauseKind, ClauseSet
from .config import QuerySettings, query_settings
from .engine import Executor, SqlEngine, compile_select
from .exceptions import (
    ClauseKindMismatch,
    FlashQueryError,
    IncompatibleMergeTargetError,
    IrreversibleOrderError,
    UnboundRelationError,
    UnknownAttributeError,
    UnknownEntityError,
    UnsupportedLookupError,
    UnsupportedMergeArgument,
)
from .merger import MERGE_RULES, HashMerger, Merger
from .metadata import EntityDescriptor, MetadataProvider, SchemaRegistry
from .relation import MergeArgument, Relation

__all__ = [
    "MERGE_RULES",
    "MULTI_VALUE_KINDS",
    "SINGLE_VALUE_KINDS",
    "ClauseKind",
    "ClauseKindMismatch",
    "ClauseSet",
    "EntityDescriptor",
    "Executor",
    "FlashQueryError",
    "HashMerger",
    "IncompatibleMergeTargetError",
    "IrreversibleOrderError",
    "MergeArgument",
    "Merger",
    "MetadataProvider",
    "QuerySettings",
    "Relation",
    "SchemaRegistry",
    "SqlEngine",
    "UnboundRelationError",
    "UnknownAttributeError",
    "UnknownEntityError",
    "UnsupportedLookupError",
    "UnsupportedMergeArgument",
    "compile_select",
    "query_settings",
]
