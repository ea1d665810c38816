"""Numeric domains: exact rational or floating point arithmetic."""

import itertools
from fractions import Fraction
from typing import List, Sequence, Union

import numpy as np


class NumericInstabilityError(ArithmeticError):
    """Raised when floating point tolerances cannot resolve a degenerate tie."""


class NumericDomain:
    """Capability set shared by the enumeration code: conversion, comparison against zero, linear algebra.

    Subclasses fix the number type. Everything downstream is written against this interface only,
    so that the same routines run in exact and in floating point arithmetic.
    """

    name = None
    exact = False
    tol = 0.0
    decimals = None

    @property
    def zero(self):
        return self.convert(0)

    @property
    def one(self):
        return self.convert(1)

    def convert(self, value):
        raise NotImplementedError

    def array(self, values) -> np.ndarray:
        raise NotImplementedError

    def is_zero(self, x) -> bool:
        return abs(x) <= self.tol

    def is_positive(self, x) -> bool:
        return x > self.tol

    def is_negative(self, x) -> bool:
        return x < -self.tol

    def key(self, vector) -> tuple:
        """Hashable identity of a coordinate vector."""
        raise NotImplementedError

    def keys(self, vector) -> List[tuple]:
        """Keys under which a vector equal to this one may have been stored; its own key first."""
        return [self.key(vector)]

    def format(self, value) -> str:
        raise NotImplementedError

    def rank(self, matrix) -> int:
        raise NotImplementedError

    def solve(self, matrix, rhs) -> np.ndarray:
        raise NotImplementedError

    def __repr__(self):
        return f'{self.__class__.__name__}()'


class RationalDomain(NumericDomain):
    """Exact arithmetic on fractions.Fraction. Comparisons are exact (tolerance 0)."""

    name = 'rational'
    exact = True

    def convert(self, value) -> Fraction:
        if isinstance(value, Fraction):
            return value
        if isinstance(value, (float, np.floating)):
            # read floats through their shortest decimal representation: 0.1 -> 1/10
            return Fraction(repr(float(value)))
        if isinstance(value, np.integer):
            return Fraction(int(value))
        return Fraction(value)

    def array(self, values) -> np.ndarray:
        values = np.asarray(values, dtype=object)
        out = np.empty(values.shape, dtype=object)
        for index, value in np.ndenumerate(values):
            out[index] = self.convert(value)
        return out

    def is_zero(self, x) -> bool:
        return x == 0

    def is_positive(self, x) -> bool:
        return x > 0

    def is_negative(self, x) -> bool:
        return x < 0

    def key(self, vector) -> tuple:
        return tuple(self.convert(x) for x in vector)

    def format(self, value) -> str:
        return str(self.convert(value))

    def _row_reduce(self, matrix: np.ndarray):
        """Gauss-Jordan elimination on a copy; returns reduced matrix and pivot columns."""
        m = self.array(matrix).copy()
        rows, cols = m.shape
        pivots = []
        r = 0
        for c in range(cols):
            if r >= rows:
                break
            pivot_row = next((i for i in range(r, rows) if m[i, c] != 0), None)
            if pivot_row is None:
                continue
            if pivot_row != r:
                m[[r, pivot_row]] = m[[pivot_row, r]]
            m[r] = m[r] / m[r, c]
            for i in range(rows):
                if i != r and m[i, c] != 0:
                    m[i] = m[i] - m[i, c] * m[r]
            pivots.append(c)
            r += 1
        return m, pivots

    def rank(self, matrix) -> int:
        matrix = np.asarray(matrix, dtype=object)
        if matrix.size == 0:
            return 0
        return len(self._row_reduce(matrix)[1])

    def solve(self, matrix, rhs) -> np.ndarray:
        """Solve a consistent (possibly overdetermined) system exactly."""
        matrix = np.asarray(matrix, dtype=object)
        num_rows, num_cols = matrix.shape
        augmented = np.empty((num_rows, num_cols + 1), dtype=object)
        augmented[:, :num_cols] = matrix
        augmented[:, num_cols] = np.asarray(rhs, dtype=object)
        reduced, pivots = self._row_reduce(augmented)
        if num_cols in pivots:
            raise ValueError('Linear system is inconsistent.')
        if len(pivots) < num_cols:
            raise ValueError('Linear system does not have a unique solution.')
        solution = np.empty(num_cols, dtype=object)
        for row, col in enumerate(pivots):
            solution[col] = reduced[row, num_cols]
        return solution

    def __eq__(self, other):
        return isinstance(other, RationalDomain)

    def __hash__(self):
        return hash(self.name)


class FloatDomain(NumericDomain):
    """Floating point arithmetic with a comparison tolerance and a display precision."""

    name = 'float'
    exact = False

    def __init__(self, tol: float = 1e-9, decimals: int = 6) -> None:
        if tol <= 0:
            raise ValueError(f'Tolerance must be positive, got {tol}.')
        self.tol = tol
        self.decimals = decimals
        # grid used to identify vertices: one order of magnitude coarser than tol
        self._key_digits = max(int(-np.log10(tol)) - 1, 0)
        self._key_scale = 10.0 ** self._key_digits

    def convert(self, value) -> float:
        return float(value)

    def array(self, values) -> np.ndarray:
        return np.array(values, dtype=np.float64)

    def key(self, vector) -> tuple:
        # + 0.0 turns -0.0 into 0.0
        return tuple(np.rint(np.asarray(vector, dtype=np.float64) * self._key_scale) / self._key_scale + 0.0)

    def keys(self, vector) -> List[tuple]:
        """Snap vector to the key grid; coordinates within tolerance of a cell boundary also try the neighbouring
        cell, so that keys(b) contains key(a) whenever a and b agree within tolerance."""
        scaled = np.asarray(vector, dtype=np.float64) * self._key_scale
        cells = np.rint(scaled)
        margin = 0.5 - self.tol * self._key_scale
        options = []
        for cell, offset in zip(cells, scaled - cells):
            if offset > margin:
                options.append((cell, cell + 1))
            elif offset < -margin:
                options.append((cell, cell - 1))
            else:
                options.append((cell,))
        return [tuple(np.array(combination, dtype=np.float64) / self._key_scale + 0.0)
                for combination in itertools.product(*options)]

    def format(self, value) -> str:
        return f'{float(value):.{self.decimals}f}'

    def rank(self, matrix) -> int:
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.size == 0:
            return 0
        return int(np.linalg.matrix_rank(matrix, tol=self.tol * max(1.0, np.abs(matrix).max())))

    def solve(self, matrix, rhs) -> np.ndarray:
        matrix = np.asarray(matrix, dtype=np.float64)
        solution, _, rank, _ = np.linalg.lstsq(matrix, np.asarray(rhs, dtype=np.float64), rcond=None)
        if rank < matrix.shape[1]:
            raise NumericInstabilityError('Linear system does not have a unique solution within tolerance.')
        return solution

    def __eq__(self, other):
        return isinstance(other, FloatDomain) and other.tol == self.tol and other.decimals == self.decimals

    def __hash__(self):
        return hash((self.name, self.tol, self.decimals))

    def __repr__(self):
        return f'FloatDomain(tol={self.tol}, decimals={self.decimals})'


RATIONAL = RationalDomain()


def get_domain(rational: bool = True, tol: float = 1e-9, decimals: int = 6) -> NumericDomain:
    """Return the exact rational domain, or a float domain with given tolerance and display precision."""
    if rational:
        return RATIONAL
    return FloatDomain(tol=tol, decimals=decimals)


def as_domain(domain: Union[NumericDomain, str, None]) -> NumericDomain:
    """Accepts a domain instance, 'rational'/'float', or None (-> rational)."""
    if domain is None or domain == 'rational':
        return RATIONAL
    if domain == 'float':
        return FloatDomain()
    if isinstance(domain, NumericDomain):
        return domain
    raise ValueError(f'"{domain}" is not a valid numeric domain. Allowed are "rational" or "float".')


def contract(tensor: np.ndarray, strategies: Sequence[np.ndarray], skip: Sequence[int] = ()) -> np.ndarray:
    """Contract the strategy axes of a payoff tensor [s_0, s_1, ...] with the given mixed strategies,
    leaving the axes listed in skip. Works on float and object (Fraction) arrays alike."""
    result = tensor
    # contract from the last axis so that remaining axis numbers stay valid
    for axis in reversed(range(len(strategies))):
        if axis in skip:
            continue
        result = np.tensordot(result, strategies[axis], axes=([axis], [0]))
    return result
