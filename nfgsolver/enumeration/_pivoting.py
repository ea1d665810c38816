"""Vertex enumeration by pivoting through all feasible bases of the polytope's tableau."""

from collections import deque
from typing import Iterator, List, Tuple

import numpy as np

from nfgsolver.domain import NumericDomain, NumericInstabilityError
from nfgsolver.enumeration._polytope import BestResponsePolytope, Vertex, VertexGraph


class PivotingEnumerator:
    """Enumerates vertices of {z >= 0 : M z <= 1} by a breadth-first search over feasible bases.

    The tableau is [M | I] z_s = 1 with slack variables s; the starting basis consists of all slacks (the origin).
    From each basis, every feasible basis exchange is followed: for each nonbasic column, all rows tied in the ratio
    test, plus degenerate exchanges on rows with zero right hand side. The graph of feasible bases of a bounded
    polytope is connected, so every vertex is reached, including under degeneracy. Vertices are identified by their
    coordinates (domain.key), so each is reported exactly once. Non-degenerate exchanges move along an edge of the
    polytope and are recorded in the vertex graph.

    In the rational domain this is exact. In the float domain, pivots that leave the tableau infeasible beyond
    tolerance, or whose pivot element is within tolerance of zero relative to its column, raise
    NumericInstabilityError.
    """

    name = 'pivoting'

    def __init__(self, domain: NumericDomain, verbose: int = 0) -> None:
        self.domain = domain
        self.verbose = verbose
        self.num_bases = 0

    def vertices(self, polytope: BestResponsePolytope) -> Iterator[Vertex]:
        """Lazily yield all vertices of polytope (origin first). Each call starts a fresh enumeration."""
        yield from self._traverse(polytope, VertexGraph(polytope))

    def vertex_graph(self, polytope: BestResponsePolytope) -> VertexGraph:
        """Enumerate all vertices and return them with the edges found along the way."""
        graph = VertexGraph(polytope)
        for _ in self._traverse(polytope, graph):
            pass
        return graph

    def _traverse(self, polytope: BestResponsePolytope, graph: VertexGraph) -> Iterator[Vertex]:
        domain = self.domain
        if polytope.domain != domain:
            polytope = BestResponsePolytope(polytope.matrix, polytope.var_labels, polytope.slack_labels, domain,
                                            player=polytope.player)
        num_rows, dim = polytope.num_constraints, polytope.dim

        tableau = domain.array(np.zeros((num_rows, dim + num_rows)))
        tableau[:, :dim] = polytope.matrix
        for i in range(num_rows):
            tableau[i, dim + i] = domain.one
        rhs = domain.array(np.ones(num_rows))
        basis = tuple(range(dim, dim + num_rows))

        coordinates = self._coordinates(basis, rhs, dim)
        origin = graph.add(coordinates, polytope.labels_of(coordinates))
        yield origin

        seen = {frozenset(basis)}
        queue = deque([(basis, tableau, rhs, origin.index)])
        self.num_bases = 1

        while queue:
            basis, tableau, rhs, current = queue.popleft()
            nonbasic = [c for c in range(dim + num_rows) if c not in basis]
            for col in nonbasic:
                for row, step in self._exchange_rows(tableau, rhs, col):
                    new_basis = basis[:row] + (col,) + basis[row + 1:]

                    if not domain.is_zero(step):
                        coordinates = self._moved_coordinates(basis, tableau, rhs, dim, col, step)
                        vertex = graph.find(coordinates)
                        if vertex is None:
                            vertex = graph.add(coordinates, polytope.labels_of(coordinates))
                            yield vertex
                        graph.add_edge(current, vertex.index)
                    else:
                        vertex = graph[current]
                        if self.verbose >= 3:
                            print(f'Degenerate pivot at vertex {current}: column {col} enters, row {row} leaves.')

                    key = frozenset(new_basis)
                    if key in seen:
                        continue
                    seen.add(key)
                    self.num_bases += 1
                    new_tableau, new_rhs = self._pivot(tableau, rhs, row, col)
                    queue.append((new_basis, new_tableau, new_rhs, vertex.index))

    def _exchange_rows(self, tableau: np.ndarray, rhs: np.ndarray, col: int) -> List[Tuple[int, object]]:
        """All rows on which pivoting column col into the basis keeps the tableau feasible, with the step length."""
        domain = self.domain
        column = tableau[:, col]
        candidates = [i for i in range(len(rhs)) if domain.is_positive(column[i])]
        if not candidates:
            raise RuntimeError(f'Column {col} has no positive entry: the polytope is unbounded, which cannot happen '
                               f'for a best response polytope.')
        ratios = {i: rhs[i] / column[i] for i in candidates}
        ratio_min = min(ratios.values())
        rows = [(i, ratio_min) for i in candidates if domain.is_zero(ratios[i] - ratio_min)]
        # degenerate exchanges: a zero right hand side allows pivoting on negative entries as well
        rows += [(i, domain.zero) for i in range(len(rhs))
                 if domain.is_negative(column[i]) and domain.is_zero(rhs[i])]
        return rows

    def _pivot(self, tableau: np.ndarray, rhs: np.ndarray, row: int, col: int) -> Tuple[np.ndarray, np.ndarray]:
        pivot_element = tableau[row, col]
        if not self.domain.exact:
            column_max = np.abs(tableau[:, col]).max()
            if abs(pivot_element) <= self.domain.tol * max(1.0, column_max):
                raise NumericInstabilityError(
                    f'Pivot element {pivot_element:.3g} in row {row}, column {col} is too small relative to its '
                    f'column (largest entry {column_max:.3g}). Use exact arithmetic instead.')
        pivot_row = tableau[row] / pivot_element
        pivot_rhs = rhs[row] / pivot_element
        factors = tableau[:, col].copy()
        factors[row] = self.domain.zero
        new_tableau = tableau - np.outer(factors, pivot_row)
        new_rhs = rhs - factors * pivot_rhs
        new_tableau[row] = pivot_row
        new_rhs[row] = pivot_rhs
        new_tableau[:, col] = self.domain.zero
        new_tableau[row, col] = self.domain.one

        if not self.domain.exact:
            if (new_rhs < -self.domain.tol).any():
                raise NumericInstabilityError(
                    f'Pivot on row {row}, column {col} (pivot element {pivot_element:.3g}) left the tableau '
                    f'infeasible (min right hand side {new_rhs.min():.3g}). Tolerance {self.domain.tol} cannot '
                    f'resolve the tie; use exact arithmetic instead.')
            new_rhs[np.abs(new_rhs) <= self.domain.tol] = 0.0
        return new_tableau, new_rhs

    def _coordinates(self, basis: Tuple[int, ...], rhs: np.ndarray, dim: int) -> list:
        coordinates = [self.domain.zero] * dim
        for row, var in enumerate(basis):
            if var < dim:
                coordinates[var] = rhs[row]
        return coordinates

    def _moved_coordinates(self, basis, tableau, rhs, dim, col, step) -> list:
        """Coordinates reached when column col enters with the given step (without performing the pivot)."""
        coordinates = [self.domain.zero] * dim
        for row, var in enumerate(basis):
            if var < dim:
                coordinates[var] = rhs[row] - step * tableau[row, col]
        if col < dim:
            coordinates[col] = step
        if not self.domain.exact:
            coordinates = [0.0 if abs(z) <= self.domain.tol else z for z in coordinates]
        return coordinates
