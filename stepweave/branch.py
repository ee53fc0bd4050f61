"""Branch dispatcher: run a root step, then one option selected by its result."""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterator, Mapping
from typing import Any, NamedTuple

from frozendict import frozendict

from stepweave.continuation import Continuation
from stepweave.errors import MisusedContinuationError, UnknownBranchError
from stepweave.step import Composite, StepMode, StepSpec, as_spec

logger = logging.getLogger(__name__)


class Selection(NamedTuple):
    """What a direct branch root returns: which option to run and with what."""

    key: Hashable
    args: tuple[Any, ...] = ()

    @classmethod
    def coerce(cls, value: Any) -> Selection:
        if isinstance(value, Selection):
            return value._replace(args=_as_args(value.args))
        if isinstance(value, Mapping):
            if "key" not in value:
                raise TypeError("Branch root returned a mapping without a 'key' entry")
            return cls(value["key"], _as_args(value.get("args", ())))
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], _as_args(value[1]))
        raise TypeError(
            "Branch root must return a Selection(key, args) or a (key, args) pair "
            f"(got {type(value).__name__})"
        )


def _as_args(args: Any) -> tuple[Any, ...]:
    if isinstance(args, tuple):
        return args
    if isinstance(args, (str, bytes)) or not hasattr(args, "__iter__"):
        raise TypeError(
            f"Selection args must be a sequence of arguments (type={type(args).__name__})"
        )
    return tuple(args)


class BranchOptions(Mapping[Hashable, StepSpec]):
    """Read-only snapshot of a branch's options handed to a continuation-based root.

    ``dispatch`` runs the option for ``key`` and routes its result to the
    completion the branch itself was invoked with.
    """

    def __init__(
        self,
        options: frozendict[Hashable, StepSpec],
        completion: Continuation | None,
    ) -> None:
        self._options = options
        self.completion = completion
        self._dispatched = False

    @property
    def dispatched(self) -> bool:
        return self._dispatched

    def __getitem__(self, key: Hashable) -> StepSpec:
        return self._options[key]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def dispatch(self, key: Hashable, *args: Any) -> Any:
        if self._dispatched:
            raise MisusedContinuationError(
                f"Branch options already dispatched; refusing to run {key!r} a second time"
            )
        self._dispatched = True
        option = self._options.get(key)
        if option is None:
            raise UnknownBranchError(key, tuple(self._options))
        logger.debug("Branch root selected %r -> %s", key, option.label)
        return option.apply(args, self.completion)

    def __repr__(self) -> str:
        return f"BranchOptions({list(self._options)!r})"


class Branch(Composite):
    """Runs a root step and uses its result to select exactly one option.

    With an empty option table the branch is just its root step. A direct
    root returns a :class:`Selection`; a continuation-based root receives a
    :class:`BranchOptions` view as its trailing argument and selects itself.
    """

    def __init__(
        self,
        root: StepSpec | Composite,
        options: Mapping[Hashable, StepSpec | Composite] | None = None,
    ) -> None:
        if root is None:
            raise TypeError("Branch requires a root step")
        self._root = as_spec(root, role="Branch root")
        self._options: dict[Hashable, StepSpec] = {}
        if options:
            self.set_options(options)

    @property
    def root(self) -> StepSpec:
        return self._root

    @property
    def options(self) -> frozendict[Hashable, StepSpec]:
        return frozendict(self._options)

    def __len__(self) -> int:
        return len(self._options)

    @property
    def mode(self) -> StepMode:
        if self._root.is_direct and all(spec.is_direct for spec in self._options.values()):
            return StepMode.DIRECT
        return StepMode.CONTINUATION

    def set_options(self, table: Mapping[Hashable, StepSpec | Composite]) -> Branch:
        if not isinstance(table, Mapping):
            raise TypeError(f"Branch options must be a mapping (type={type(table).__name__})")
        self._options = {
            key: as_spec(spec, role=f"Branch option {key!r}") for key, spec in table.items()
        }
        return self

    def drop_options(self) -> Branch:
        self._options = {}
        return self

    def add_option(self, key: Hashable, spec: StepSpec | Composite) -> Branch:
        self._options[key] = as_spec(spec, role=f"Branch option {key!r}")
        return self

    def remove_option(self, key: Hashable) -> bool:
        if key not in self._options:
            return False
        del self._options[key]
        return True

    def get_option(self, key: Hashable) -> StepSpec | None:
        return self._options.get(key)

    def _run(self, call_args: tuple[Any, ...], completion: Continuation | None) -> Any:
        if not self._options:
            return self._root.apply(call_args, completion)

        if self._root.mode is StepMode.DIRECT:
            selection = Selection.coerce(self._root.apply(call_args))
            option = self._options.get(selection.key)
            if option is None:
                raise UnknownBranchError(selection.key, tuple(self._options))
            logger.debug("Branch selected %r -> %s", selection.key, option.label)
            return option.apply(selection.args, completion)

        if self._root.mode is StepMode.CONTINUATION:
            view = BranchOptions(frozendict(self._options), completion)
            self._root(*call_args, view)
            return None

        raise AssertionError(f"Unhandled step mode: {self._root.mode!r}")

    def __repr__(self) -> str:
        return f"Branch({self._root.label}, options={list(self._options)!r})"


__all__ = ["Branch", "BranchOptions", "Selection"]
