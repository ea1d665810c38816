"""Best response polytopes of two-player games, their vertices, and the vertex graph."""

from typing import List, Optional, Sequence

import numpy as np

from nfgsolver.domain import NumericDomain, as_domain
from nfgsolver.nfgame import NFGame


class BestResponsePolytope:
    """Polytope {z >= 0 : M z <= 1} with one label per constraint.

    For a bimatrix game (A, B) with m strategies for player 0 and n for player 1, payoffs are first shifted to be
    strictly positive (which leaves equilibria unchanged). Then:
        player 0:  P = {x in R^m : x >= 0, B^T x <= 1}
        player 1:  Q = {y in R^n : A y <= 1, y >= 0}
    Labels 0, ..., m-1 belong to player 0's strategies and m, ..., m+n-1 to player 1's. A point has label k if the
    corresponding constraint is tight: its own strategy is unused (z_j = 0), or the opponent's strategy is a best
    response (row of M z equal to 1). A vertex pair (x, y) is an equilibrium if together they carry all labels.

    No genericity is assumed: vertices may have more tight constraints than the dimension.
    """

    def __init__(self, matrix: np.ndarray, var_labels: Sequence[int], slack_labels: Sequence[int],
                 domain: NumericDomain, player: Optional[int] = None) -> None:
        self.domain = domain
        self.matrix = domain.array(matrix)
        self.matrix.flags.writeable = False
        self.num_constraints, self.dim = self.matrix.shape
        if len(var_labels) != self.dim or len(slack_labels) != self.num_constraints:
            raise ValueError('Number of labels does not match the shape of the constraint matrix.')
        if any(not domain.is_positive(a) for a in self.matrix.ravel()):
            raise ValueError('Constraint matrix must be strictly positive (the polytope must be bounded).')
        self.var_labels = tuple(var_labels)
        self.slack_labels = tuple(slack_labels)
        self.labels = frozenset(self.var_labels) | frozenset(self.slack_labels)
        self.player = player

    @classmethod
    def for_player(cls, game: NFGame, player: int, domain=None) -> 'BestResponsePolytope':
        """Best response polytope whose points are (unnormalized) mixed strategies of player."""
        domain = as_domain(domain)
        if game.num_players != 2:
            raise ValueError(f'Best response polytopes need a two-player game, got {game.num_players} players.')
        payoffs = game.payoffs(domain)
        m, n = game.nums_strategies
        A = payoffs[0] - payoffs[0].min() + domain.one
        B = payoffs[1] - payoffs[1].min() + domain.one
        if player == 0:
            return cls(B.T, range(m), range(m, m + n), domain, player=0)
        elif player == 1:
            return cls(A, range(m, m + n), range(m), domain, player=1)
        raise ValueError(f'"{player}" is not a valid player. Allowed are 0 or 1.')

    def slacks(self, coordinates: Sequence) -> np.ndarray:
        return self.domain.one - self.matrix.dot(self.domain.array(coordinates))

    def labels_of(self, coordinates: Sequence) -> frozenset:
        """Labels of all constraints tight at the given point."""
        labels = [self.var_labels[j] for j, z in enumerate(coordinates) if self.domain.is_zero(z)]
        labels += [self.slack_labels[i] for i, s in enumerate(self.slacks(coordinates)) if self.domain.is_zero(s)]
        return frozenset(labels)

    def contains(self, coordinates: Sequence) -> bool:
        return (not any(self.domain.is_negative(z) for z in coordinates)
                and not any(self.domain.is_negative(s) for s in self.slacks(coordinates)))

    def constraint_rows(self, labels) -> np.ndarray:
        """Rows (a, b) with a z = b for the constraints carrying the given labels."""
        rows = []
        for label in sorted(labels):
            if label in self.var_labels:
                row = self.domain.array([0] * (self.dim + 1))
                row[self.var_labels.index(label)] = self.domain.one
            else:
                i = self.slack_labels.index(label)
                row = self.domain.array(list(self.matrix[i]) + [1])
            rows.append(row)
        return np.array(rows, dtype=self.matrix.dtype).reshape(len(rows), self.dim + 1)

    def halfspaces(self) -> np.ndarray:
        """Constraints in Qhull format [normal, offset] with normal . z + offset <= 0."""
        M = self.matrix.astype(np.float64)
        return np.vstack([np.hstack([M, -np.ones((self.num_constraints, 1))]),
                          np.hstack([-np.eye(self.dim), np.zeros((self.dim, 1))])])

    def interior_point(self) -> np.ndarray:
        """A strictly interior point: z = eps * 1 with M z = 1/2 on the most constrained row."""
        row_sums = self.matrix.astype(np.float64).sum(axis=1)
        return np.ones(self.dim) / (2 * row_sums.max())

    def __repr__(self):
        return f'BestResponsePolytope(player={self.player}, dim={self.dim}, constraints={self.num_constraints})'


class Vertex:
    """A vertex of a best response polytope. index is its position in the enumeration order."""

    def __init__(self, index: int, coordinates: Sequence, labels: frozenset, domain: NumericDomain) -> None:
        self.index = index
        self.coordinates = tuple(coordinates)
        self.labels = frozenset(labels)
        self.domain = domain
        self.is_origin = all(domain.is_zero(z) for z in self.coordinates)

    @property
    def support(self) -> List[int]:
        """Coordinates (own strategies) with positive weight."""
        return [j for j, z in enumerate(self.coordinates) if self.domain.is_positive(z)]

    def strategy(self) -> np.ndarray:
        """Coordinates normalized to a probability distribution."""
        if self.is_origin:
            raise ValueError('The origin does not correspond to a mixed strategy.')
        coordinates = self.domain.array(self.coordinates)
        return coordinates / sum(coordinates)

    def __repr__(self):
        return f'Vertex({self.index}, {[self.domain.format(z) for z in self.coordinates]}, labels={sorted(self.labels)})'


class VertexGraph:
    """Arena of vertices indexed by integer id, with adjacency stored as lists of ids."""

    def __init__(self, polytope: BestResponsePolytope) -> None:
        self.polytope = polytope
        self.vertices = []  # type: List[Vertex]
        self.adjacency = []  # type: List[List[int]]
        self._index = {}

    def add(self, coordinates: Sequence, labels: frozenset) -> Vertex:
        """Add vertex if not present yet; return the stored vertex either way."""
        existing = self.find(coordinates)
        if existing is not None:
            return existing
        vertex = Vertex(len(self.vertices), coordinates, labels, self.polytope.domain)
        self._index[self.polytope.domain.key(coordinates)] = vertex.index
        self.vertices.append(vertex)
        self.adjacency.append([])
        return vertex

    def find(self, coordinates: Sequence) -> Optional[Vertex]:
        for key in self.polytope.domain.keys(coordinates):
            if key in self._index:
                return self.vertices[self._index[key]]
        return None

    def add_edge(self, i: int, j: int) -> None:
        if i == j or j in self.adjacency[i]:
            return
        self.adjacency[i].append(j)
        self.adjacency[j].append(i)

    def neighbours(self, i: int) -> List[int]:
        return self.adjacency[i]

    def are_adjacent(self, i: int, j: int) -> bool:
        return j in self.adjacency[i]

    @property
    def num_edges(self) -> int:
        return sum(len(a) for a in self.adjacency) // 2

    def __len__(self):
        return len(self.vertices)

    def __iter__(self):
        return iter(self.vertices)

    def __getitem__(self, index) -> Vertex:
        return self.vertices[index]

    def __repr__(self):
        return f'VertexGraph({len(self)} vertices, {self.num_edges} edges)'
