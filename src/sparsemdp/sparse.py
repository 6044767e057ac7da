"""
This module has a row indexed sparse matrix, used
to store transition and reward tables.
"""

import copy
import types
from typing import Dict, Iterator, Mapping, Tuple

import numpy as np

from sparsemdp import core


class SparseMatrix2D:
    """
    A two dimensional matrix that only stores nonzero entries.

    Entries are kept as a mapping of rows, each a mapping
    from column to value. Absent entries are zero.
    """

    def __init__(self, num_rows: int, num_cols: int):
        self._shape = (num_rows, num_cols)
        self._rows: Dict[int, Dict[int, float]] = {}

    @property
    def shape(self) -> Tuple[int, int]:
        return self._shape

    def coeff(self, row: int, col: int) -> float:
        """
        Returns the value at (row, col), or zero when it isn't stored.
        """
        try:
            return self._rows[row].get(col, 0.0)
        except KeyError:
            return 0.0

    def row(self, row: int) -> Mapping[int, float]:
        """
        Returns a read-only view of the nonzero entries of a row.
        """
        return types.MappingProxyType(self._rows.get(row, {}))

    def row_sum(self, row: int) -> float:
        return sum(self._rows.get(row, {}).values())

    def insert(self, row: int, col: int, value: float) -> None:
        """
        Sets the value at (row, col), replacing any existing entry.
        """
        self._rows.setdefault(row, {})[col] = float(value)

    def add(self, row: int, col: int, value: float) -> None:
        """
        Adds value to the entry at (row, col).
        """
        cols = self._rows.setdefault(row, {})
        cols[col] = cols.get(col, 0.0) + float(value)

    def set_zero(self) -> None:
        """
        Removes all entries.
        """
        self._rows = {}

    def make_compressed(self) -> None:
        """
        Drops entries within `core.EPSILON` of zero, as well as
        empty rows, and sorts every row by column.
        """
        rows = {}
        for row in sorted(self._rows):
            cols = {
                col: value
                for col, value in sorted(self._rows[row].items())
                if core.check_different_small(value, 0.0)
            }
            if cols:
                rows[row] = cols
        self._rows = rows

    def nonzero(self) -> Iterator[Tuple[int, int, float]]:
        """
        Yields (row, col, value) for every stored entry.
        """
        for row, cols in self._rows.items():
            for col, value in cols.items():
                yield row, col, value

    def nnz(self) -> int:
        """
        Returns the number of stored entries.
        """
        return sum(len(cols) for cols in self._rows.values())

    def to_dense(self) -> np.ndarray:
        """
        Returns a dense copy of the matrix.
        """
        matrix = np.zeros(shape=self._shape, dtype=np.float64)
        for row, col, value in self.nonzero():
            matrix[row, col] = value
        return matrix

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SparseMatrix2D):
            return NotImplemented
        return self._shape == other._shape and self._rows == other._rows

    def __deepcopy__(self, memo) -> "SparseMatrix2D":
        matrix = SparseMatrix2D(*self._shape)
        matrix._rows = copy.deepcopy(self._rows, memo)
        return matrix

    def __repr__(self) -> str:
        return f"{type(self).__name__}(shape={self._shape}, nnz={self.nnz()})"
