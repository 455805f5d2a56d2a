"""Guarded single-element accessors for packed storage.

Each proxy wraps one cell of a packed matrix and applies the cell's write
policy on ``set``:

- ReadOnlyRef: structural constant (e.g. the zeros below an upper triangle)
- ConjugateRef: mirrored cell of a Hermitian matrix, stored conjugated
- NegateRef: mirrored cell of a skew matrix, stored negated
- ReadOnlyConjugateRef: either of the above, decided per cell (band
  Hermitian matrices, whose out-of-band cells are fixed zeros)

Packed matrix classes hand these out from ``ref(i, j)`` and route
``__getitem__``/``__setitem__`` through them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from decomp_lab.errors import FixedConstantError


class CellRef(ABC):
    """Reference-like accessor for one matrix cell."""

    __slots__ = ()

    @abstractmethod
    def get(self) -> Any:
        """Return the value of the referenced cell."""

    @abstractmethod
    def set(self, value: Any) -> None:
        """Store ``value`` into the referenced cell, applying the cell policy."""

    @property
    def writable(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.get()!r})"


class SlotRef(CellRef):
    """Plain writable reference into a storage buffer."""

    __slots__ = ("_buffer", "_index")

    def __init__(self, buffer: np.ndarray, index: Any) -> None:
        self._buffer = buffer
        self._index = index

    def get(self) -> Any:
        return self._buffer[self._index]

    def set(self, value: Any) -> None:
        self._buffer[self._index] = value


class ReadOnlyRef(CellRef):
    """Reference to a structural constant.

    Writing any value other than the constant raises FixedConstantError and
    leaves storage untouched.
    """

    __slots__ = ("_constant",)

    def __init__(self, constant: Any) -> None:
        self._constant = constant

    def get(self) -> Any:
        return self._constant

    def set(self, value: Any) -> None:
        if value != self._constant:
            raise FixedConstantError(attempted=value, existing=self._constant)

    @property
    def writable(self) -> bool:
        return False


class ConjugateRef(SlotRef):
    """Reference that conjugates when the cell mirrors the stored slot."""

    __slots__ = ("_mirrored",)

    def __init__(self, buffer: np.ndarray, index: Any, mirrored: bool = False) -> None:
        super().__init__(buffer, index)
        self._mirrored = mirrored

    def get(self) -> Any:
        value = self._buffer[self._index]
        return np.conjugate(value) if self._mirrored else value

    def set(self, value: Any) -> None:
        self._buffer[self._index] = np.conjugate(value) if self._mirrored else value


class NegateRef(SlotRef):
    """Reference that negates when the cell mirrors the stored slot."""

    __slots__ = ("_mirrored",)

    def __init__(self, buffer: np.ndarray, index: Any, mirrored: bool = False) -> None:
        super().__init__(buffer, index)
        self._mirrored = mirrored

    def get(self) -> Any:
        value = self._buffer[self._index]
        return -value if self._mirrored else value

    def set(self, value: Any) -> None:
        self._buffer[self._index] = -value if self._mirrored else value


class ReadOnlyConjugateRef(CellRef):
    """Combined read-only / conjugating reference.

    The cell is either a structural constant (``buffer is None``), a mirrored
    slot written conjugated, or a plain slot.
    """

    __slots__ = ("_buffer", "_index", "_constant", "_mirrored")

    def __init__(
        self,
        buffer: np.ndarray | None,
        index: Any = None,
        *,
        mirrored: bool = False,
        constant: Any = 0,
    ) -> None:
        self._buffer = buffer
        self._index = index
        self._mirrored = mirrored
        self._constant = constant

    @property
    def writable(self) -> bool:
        return self._buffer is not None

    def get(self) -> Any:
        if self._buffer is None:
            return self._constant
        value = self._buffer[self._index]
        return np.conjugate(value) if self._mirrored else value

    def set(self, value: Any) -> None:
        if self._buffer is None:
            if value != self._constant:
                raise FixedConstantError(attempted=value, existing=self._constant)
            return
        self._buffer[self._index] = np.conjugate(value) if self._mirrored else value


__all__ = [
    "CellRef",
    "ConjugateRef",
    "NegateRef",
    "ReadOnlyConjugateRef",
    "ReadOnlyRef",
    "SlotRef",
]
