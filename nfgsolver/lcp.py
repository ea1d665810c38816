"""Lemke's complementary pivoting algorithm for linear complementarity problems (LCP)."""

from typing import Optional

import numpy as np


class LCPError(ArithmeticError):
    """Raised when Lemke's algorithm ends on a secondary ray or exceeds its pivot budget."""


def lemke(M: np.ndarray, q: np.ndarray, d: Optional[np.ndarray] = None, max_pivots: Optional[int] = None,
          tol: float = 1e-10) -> np.ndarray:
    """Solve the LCP  w = M z + q >= 0,  z >= 0,  z'w = 0  by Lemke's algorithm.

    The artificial variable z0 enters along the covering vector d (positive; defaults to all ones), so that
    w = M z + q + d z0 is feasible, and the complementary path is followed until z0 leaves the basis.
    Ties in the ratio test are broken lexicographically, which rules out cycling under degeneracy.
    If M is copositive-plus and the problem is feasible, the path ends in a solution.

    Returns z. Raises LCPError on ray termination or when max_pivots (default max(1000, 50 n)) is exceeded.
    """
    M = np.asarray(M, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    n = len(q)
    if (q >= 0).all():
        return np.zeros(n)
    d = np.ones(n) if d is None else np.asarray(d, dtype=np.float64)
    if (d <= 0).any():
        raise ValueError('Covering vector must be positive.')
    if max_pivots is None:
        max_pivots = max(1000, 50 * n)

    # columns: w (0..n-1), z (n..2n-1), z0 (2n), right hand side (2n+1)
    tableau = np.zeros((n, 2 * n + 2))
    tableau[:, :n] = np.eye(n)
    tableau[:, n:2 * n] = -M
    tableau[:, 2 * n] = -d
    tableau[:, 2 * n + 1] = q
    basis = list(range(n))
    artificial = 2 * n

    # z0 enters at the smallest level making w feasible; among tied rows the last keeps rows lexico-positive
    ratios = q / d
    row = np.nonzero(ratios <= ratios.min() + tol * max(1.0, abs(ratios.min())))[0][-1]
    entering = artificial

    for _ in range(max_pivots):
        leaving = basis[row]
        _pivot(tableau, row, entering)
        basis[row] = entering
        if leaving == artificial:
            break
        entering = leaving + n if leaving < n else leaving - n
        row = _leaving_row(tableau, entering, basis.index(artificial), n, tol)
    else:
        raise LCPError(f'No solution after {max_pivots} pivots.')

    z = np.zeros(n)
    for row, var in enumerate(basis):
        if n <= var < 2 * n:
            z[var - n] = tableau[row, -1]
    # basic variables at level zero come out as rounding noise
    z[z <= tol] = 0
    return z


def _pivot(tableau: np.ndarray, row: int, column: int) -> None:
    tableau[row] /= tableau[row, column]
    factors = tableau[:, column].copy()
    factors[row] = 0
    tableau -= np.outer(factors, tableau[row])


def _leaving_row(tableau: np.ndarray, column: int, artificial_row: int, n: int, tol: float) -> int:
    """Lexicographic minimum ratio test: compare rows of [rhs | basis inverse] divided by the column entry.

    The basis inverse sits in the columns of w, which start out as the identity. If z0 is among the rows tied
    in the plain ratio test, it leaves (the path ends).
    """
    entries = tableau[:, column]
    candidates = np.nonzero(entries > tol)[0]
    if len(candidates) == 0:
        raise LCPError(f'Ray termination: column {column} has no positive entry.')
    keys = np.column_stack([tableau[:, -1], tableau[:, :n]])[candidates] / entries[candidates, None]
    for k in range(keys.shape[1]):
        values = keys[:, k]
        keep = values <= values.min() + tol * max(1.0, abs(values.min()))
        candidates, keys = candidates[keep], keys[keep]
        if k == 0 and artificial_row in candidates:
            return artificial_row
        if len(candidates) == 1:
            break
    return candidates[0]
