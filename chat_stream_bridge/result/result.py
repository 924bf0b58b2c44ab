"""Result type for fallible operations that must not raise.

Modelled on Rust's Result: a value is either ``Ok(value)`` or
``Error(reason)``. Callers branch with ``match``:

    match decode_upstream_line(line):
        case Ok(event):
            ...
        case Error(reason):
            logger.warning(reason)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar


_T = TypeVar("_T")
_E = TypeVar("_E")


@dataclass(frozen=True)
class Ok(Generic[_T]):  # noqa: UP046
    value: _T

    def __repr__(self):
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Error(Generic[_E]):  # noqa: UP046
    """Failure variant carrying the reason."""

    value: _E

    def __repr__(self):
        return f"Error({self.value!r})"


# type Result<'Success,'Failure> =
#   | Ok of 'Success
#   | Error of 'Failure
Result = Ok[_T] | Error[_E]
