"""
Scopes and call frames for the minilang interpreter.

There is no lexical scoping. The interpreter owns one top-level scope; each
function call works on a full snapshot of the caller's scope with the
arguments bound over it, and the snapshot is dropped when the call returns.
A callee therefore sees the caller's bindings as they stand at call time,
never those of the place where it was defined.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from .values import Value, NOTHING


@dataclass
class Scope:
    """A flat mapping from names to values."""
    variables: Dict[str, Value] = field(default_factory=dict)
    name: str = "toplevel"  # For debugging

    def get(self, name: str) -> Optional[Value]:
        """Look up a binding, or None when the name is unbound."""
        return self.variables.get(name)

    def set(self, name: str, value: Value) -> None:
        """Bind a name, replacing any earlier binding."""
        self.variables[name] = value

    def contains(self, name: str) -> bool:
        return name in self.variables

    def snapshot(self, name: str) -> "Scope":
        """Copy every binding into a new, independent scope."""
        return Scope(dict(self.variables), name)

    def __contains__(self, name: str) -> bool:
        return self.contains(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.variables)

    def __len__(self) -> int:
        return len(self.variables)


@dataclass
class CallFrame:
    """
    State of one active user-function call.

    `return` records its value here; the interpreter checks `should_return`
    after every body statement and every evaluated operand, and stops early
    once it is set.
    """
    function: str
    _should_return: bool = False
    _return_value: Value = NOTHING

    def signal_return(self, value: Value) -> None:
        """Signal an early return from the call."""
        self._should_return = True
        self._return_value = value

    @property
    def should_return(self) -> bool:
        return self._should_return

    @property
    def return_value(self) -> Value:
        """The returned value, or Nothing if no return was executed."""
        return self._return_value
