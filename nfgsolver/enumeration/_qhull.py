"""Vertex enumeration delegated to Qhull (via scipy.spatial.HalfspaceIntersection)."""

from itertools import combinations
from typing import Iterator

import numpy as np
from scipy.spatial import HalfspaceIntersection, QhullError

from nfgsolver.domain import NumericDomain, NumericInstabilityError
from nfgsolver.enumeration._polytope import BestResponsePolytope, Vertex, VertexGraph


class QhullEnumerator:
    """Enumerates vertices of {z >= 0 : M z <= 1} as the intersection of halfspaces, computed by Qhull.

    Qhull works in floating point and reports a degenerate vertex once per adjacent facet of the dual hull; such
    duplicates are merged. Each vertex is then recomputed from its tight constraints: exactly (as fractions) in the
    rational domain, by least squares in the float domain. Adjacency is decided combinatorially: u and v are
    neighbours if the constraints tight at both have rank dim - 1 and no third vertex satisfies all of them.
    """

    name = 'qhull'

    def __init__(self, domain: NumericDomain, verbose: int = 0, tight_tol: float = 1e-8) -> None:
        self.domain = domain
        self.verbose = verbose
        # tolerance for reading tight constraints off Qhull's floating point output
        self.tight_tol = max(tight_tol, domain.tol)

    def vertices(self, polytope: BestResponsePolytope) -> Iterator[Vertex]:
        """Lazily yield all vertices of polytope (origin first). Each call runs Qhull anew."""
        yield from self.vertex_graph(polytope, adjacency=False)

    def vertex_graph(self, polytope: BestResponsePolytope, adjacency: bool = True) -> VertexGraph:
        domain = self.domain
        if polytope.domain != domain:
            polytope = BestResponsePolytope(polytope.matrix, polytope.var_labels, polytope.slack_labels, domain,
                                            player=polytope.player)
        graph = VertexGraph(polytope)

        if polytope.dim == 1:
            # Qhull needs dimension >= 2; the polytope is the segment [0, 1 / max(M)]
            graph.add([domain.zero], polytope.labels_of([domain.zero]))
            end = [domain.one / max(polytope.matrix[:, 0])]
            graph.add(end, polytope.labels_of(end))
            graph.add_edge(0, 1)
            return graph

        points = self._intersections(polytope)
        # sort so that the origin comes first and the order does not depend on Qhull's internals
        order = np.lexsort(np.round(points, 8).T[::-1])
        for point in points[order]:
            coordinates = self._refine(polytope, point)
            if graph.find(coordinates) is None:
                graph.add(coordinates, polytope.labels_of(coordinates))

        if self.verbose >= 2:
            print(f'Qhull: {len(points)} intersection points, {len(graph)} distinct vertices.')

        if adjacency:
            self._add_edges(graph)
        return graph

    def _intersections(self, polytope: BestResponsePolytope) -> np.ndarray:
        try:
            hull = HalfspaceIntersection(polytope.halfspaces(), polytope.interior_point())
        except (QhullError, ValueError) as error:
            raise NumericInstabilityError(f'Qhull failed to enumerate the vertices of {polytope!r}: {error}')
        points = np.array(hull.intersections, dtype=np.float64)
        points[np.abs(points) <= self.tight_tol] = 0.0
        return points

    def _tight_labels(self, polytope: BestResponsePolytope, point: np.ndarray) -> frozenset:
        matrix = polytope.matrix.astype(np.float64)
        labels = [polytope.var_labels[j] for j in range(polytope.dim) if abs(point[j]) <= self.tight_tol]
        slacks = 1.0 - matrix.dot(point)
        labels += [polytope.slack_labels[i] for i in range(polytope.num_constraints)
                   if abs(slacks[i]) <= self.tight_tol]
        return frozenset(labels)

    def _refine(self, polytope: BestResponsePolytope, point: np.ndarray) -> list:
        """Recompute a vertex from the constraints that are tight at Qhull's approximation of it."""
        labels = self._tight_labels(polytope, point)
        rows = polytope.constraint_rows(labels)
        try:
            coordinates = self.domain.solve(rows[:, :-1], rows[:, -1])
        except (ValueError, NumericInstabilityError):
            raise NumericInstabilityError(f'Tight constraints at {point} do not determine a vertex of {polytope!r}.')
        if not self.domain.exact:
            coordinates = np.where(np.abs(coordinates) <= self.domain.tol, 0.0, coordinates)
        if not polytope.contains(coordinates):
            raise NumericInstabilityError(f'Recomputed vertex {list(coordinates)} lies outside {polytope!r}.')
        return list(coordinates)

    def _add_edges(self, graph: VertexGraph) -> None:
        polytope = graph.polytope
        for u, v in combinations(graph.vertices, 2):
            common = u.labels & v.labels
            if len(common) < polytope.dim - 1:
                continue
            normals = polytope.constraint_rows(common)[:, :-1]
            if self.domain.rank(normals) != polytope.dim - 1:
                continue
            if any(common <= w.labels for w in graph.vertices if w.index not in (u.index, v.index)):
                continue
            graph.add_edge(u.index, v.index)
