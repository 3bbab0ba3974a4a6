from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Iterable

from flash_query.clauses import ClauseSet

if TYPE_CHECKING:
    from flash_query.engine import Executor
    from flash_query.metadata import EntityDescriptor

_UNSET: Any = object()


class RelationBase:
    """
    Fundamental state and identity for a Relation.

    This base class manages the attributes shared across all Relation layers:
    the target descriptor, the clause state, the extension objects, the
    default-scope flag and the executor used for materialization.
    """

    def __init__(
        self,
        target: EntityDescriptor,
        clauses: ClauseSet | None = None,
        *,
        extensions: Iterable[Any] = (),
        default_scoped: bool = False,
        engine: Executor | None = None,
    ):
        self.target = target
        self._clauses: ClauseSet = clauses if clauses is not None else ClauseSet()
        self._extensions: tuple[Any, ...] = tuple(extensions)
        self._default_scoped = default_scoped
        self.engine = engine

    @property
    def clauses(self) -> ClauseSet:
        """A snapshot of the clause state; mutating it never affects the relation."""
        return self._clauses.copy()

    @property
    def extensions(self) -> tuple[Any, ...]:
        return self._extensions

    @property
    def default_scoped(self) -> bool:
        return self._default_scoped

    def _spawn(
        self,
        clauses: ClauseSet,
        *,
        extensions: Iterable[Any] | None = None,
        default_scoped: bool | None = None,
        engine: Any = _UNSET,
    ) -> Any:
        """
        Return a new instance of the current class around ``clauses``.

        Using self.__class__ ensures the top-most class in the inheritance
        chain is instantiated, so the result keeps every capability layer.
        """
        return self.__class__(
            self.target,
            clauses,
            extensions=self._extensions if extensions is None else extensions,
            default_scoped=(
                self._default_scoped if default_scoped is None else default_scoped
            ),
            engine=self.engine if engine is _UNSET else engine,
        )

    def clone_with(self, mutator: Callable[[ClauseSet], Any]) -> Any:
        """
        Return a new relation whose clauses are a copy mutated by ``mutator``.

        The copy is taken before ``mutator`` runs, so the source relation is
        untouched whether the mutator returns or raises.

        Example:
            >>> limited = relation.clone_with(
            ...     lambda c: c.set_single(ClauseKind.LIMIT, 10))
        """
        builder = self._clauses.copy()
        mutator(builder)
        return self._spawn(builder)

    def with_default_scoped(self, flag: bool) -> Any:
        return self._spawn(self._clauses.copy(), default_scoped=flag)

    def capability(self, name: str) -> Callable[..., Any]:
        """
        Return extension behavior ``name`` bound to this relation.

        Extensions are searched last to first, so later extensions win on
        name collisions. The returned callable receives the relation as its
        first argument.
        """
        for extension in reversed(self._extensions):
            candidate = getattr(extension, name, None)
            if callable(candidate):
                return partial(candidate, self)
        msg = f"'{type(self).__name__}' has no capability '{name}'"
        raise AttributeError(msg)

    def __getattr__(self, name: str) -> Any:
        # Only reached for names the relation itself does not define.
        if name.startswith("_"):
            raise AttributeError(name)
        return self.capability(name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RelationBase):
            return NotImplemented
        return (
            self.target == other.target
            and self._default_scoped == other._default_scoped
            and self._extensions == other._extensions
            and self._clauses == other._clauses
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.target.name} {self._clauses!r}>"
