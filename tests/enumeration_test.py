"""Test best response polytopes and the vertex enumeration engines."""


from fractions import Fraction

import numpy as np
import pytest

from nfgsolver import NFGame, RATIONAL, FloatDomain, NumericInstabilityError
from nfgsolver.enumeration import (BestResponsePolytope, VertexEnumerator, PivotingEnumerator, QhullEnumerator,
                                   VertexGraph)


# %% test polytopes


class TestBestResponsePolytope:

    game = NFGame.from_bimatrix([[3, 0], [0, 2]], [[2, 0], [0, 3]])
    P = BestResponsePolytope.for_player(game, 0, RATIONAL)
    Q = BestResponsePolytope.for_player(game, 1, RATIONAL)

    def test_shifted_matrices(self):
        # payoffs shifted by -min + 1; player 0's polytope uses B transposed
        assert self.P.matrix.tolist() == [[3, 1], [1, 4]]
        assert self.Q.matrix.tolist() == [[4, 1], [1, 3]]

    def test_labels(self):
        assert self.P.var_labels == (0, 1) and self.P.slack_labels == (2, 3)
        assert self.Q.var_labels == (2, 3) and self.Q.slack_labels == (0, 1)
        assert self.P.labels == self.Q.labels == frozenset(range(4))

    def test_labels_of_points(self):
        assert self.P.labels_of([0, 0]) == {0, 1}
        assert self.P.labels_of([Fraction(1, 3), 0]) == {1, 2}
        assert self.P.labels_of([Fraction(3, 11), Fraction(2, 11)]) == {2, 3}
        assert self.P.contains([Fraction(1, 3), 0])
        assert not self.P.contains([Fraction(1, 2), 0])

    def test_requires_two_players(self):
        game = NFGame.random_game(3, 2, seed=0)
        with pytest.raises(ValueError):
            BestResponsePolytope.for_player(game, 0)
        with pytest.raises(ValueError):
            BestResponsePolytope.for_player(self.game, 2)

    def test_requires_positive_matrix(self):
        with pytest.raises(ValueError):
            BestResponsePolytope(np.array([[1, 0], [1, 1]]), [0, 1], [2, 3], RATIONAL)

    def test_interior_point(self):
        point = self.P.interior_point()
        assert (point > 0).all()
        assert (self.P.matrix.astype(np.float64).dot(point) < 1).all()


# %% test engines


def vertex_keys(graph: VertexGraph) -> set:
    return {vertex.coordinates for vertex in graph}


class TestPivotingEnumerator:

    game = NFGame.from_bimatrix([[3, 0], [0, 2]], [[2, 0], [0, 3]])
    P = BestResponsePolytope.for_player(game, 0, RATIONAL)
    engine = PivotingEnumerator(RATIONAL)

    def test_vertices_of_coordination_polytope(self):
        graph = self.engine.vertex_graph(self.P)
        assert vertex_keys(graph) == {(0, 0), (Fraction(1, 3), 0), (0, Fraction(1, 4)),
                                      (Fraction(3, 11), Fraction(2, 11))}
        assert graph[0].is_origin
        assert graph.num_edges == 4

    def test_vertices_are_lazy_and_restartable(self):
        iterator = self.engine.vertices(self.P)
        first = next(iterator)
        assert first.is_origin
        assert len(list(self.engine.vertices(self.P))) == 4

    def test_each_vertex_once_under_degeneracy(self):
        # vertex (1/3, 0, 0) has four tight constraints in dimension three
        game = NFGame.from_bimatrix([[3, 3], [2, 5], [0, 6]], [[3, 3], [2, 6], [3, 1]])
        polytope = BestResponsePolytope.for_player(game, 0, RATIONAL)
        vertices = list(self.engine.vertices(polytope))
        keys = [vertex.coordinates for vertex in vertices]
        assert len(keys) == len(set(keys))
        degenerate = [vertex for vertex in vertices if vertex.coordinates == (Fraction(1, 3), 0, 0)]
        assert len(degenerate) == 1
        assert degenerate[0].labels == {1, 2, 3, 4}

    def test_vertex_strategy(self):
        graph = self.engine.vertex_graph(self.P)
        mixed = graph.find([Fraction(3, 11), Fraction(2, 11)])
        assert list(mixed.strategy()) == [Fraction(3, 5), Fraction(2, 5)]
        with pytest.raises(ValueError):
            graph[0].strategy()

    def test_float_domain(self):
        domain = FloatDomain()
        graph = PivotingEnumerator(domain).vertex_graph(BestResponsePolytope.for_player(self.game, 0, domain))
        assert len(graph) == 4
        mixed = graph.find([3 / 11, 2 / 11])
        assert mixed is not None
        assert np.allclose(mixed.strategy(), [0.6, 0.4])

    def test_tiny_pivot_element_is_rejected(self):
        engine = PivotingEnumerator(FloatDomain(tol=1e-9))
        tableau = np.array([[5e-7, 1.0, 1.0, 0.0], [1e3, 2.0, 0.0, 1.0]])
        rhs = np.array([1.0, 1.0])
        with pytest.raises(NumericInstabilityError):
            engine._pivot(tableau, rhs, 0, 0)
        new_tableau, new_rhs = engine._pivot(tableau, rhs, 1, 0)
        assert new_tableau[1, 0] == 1.0
        assert np.allclose(new_rhs, [1 - 5e-10, 1e-3])

    def test_float_vertices_straddling_key_boundary(self):
        domain = FloatDomain(tol=1e-9)
        graph = VertexGraph(BestResponsePolytope.for_player(self.game, 0, domain))
        # equal within tolerance, but rounded to different cells of the key grid
        below, above = [0.3000000049, 0.1], [0.3000000051, 0.1]
        assert domain.key(below) != domain.key(above)
        first = graph.add(below, frozenset({1}))
        assert graph.find(above) is first
        assert graph.add(above, frozenset({1})) is first
        assert len(graph) == 1


class TestQhullEnumerator:

    game = NFGame.from_bimatrix([[3, 0], [0, 2]], [[2, 0], [0, 3]])
    P = BestResponsePolytope.for_player(game, 0, RATIONAL)
    engine = QhullEnumerator(RATIONAL)

    def test_vertices_of_coordination_polytope(self):
        graph = self.engine.vertex_graph(self.P)
        assert vertex_keys(graph) == {(0, 0), (Fraction(1, 3), 0), (0, Fraction(1, 4)),
                                      (Fraction(3, 11), Fraction(2, 11))}
        assert graph[0].is_origin
        assert graph.num_edges == 4

    def test_one_dimensional_polytope(self):
        game = NFGame.from_bimatrix([[1], [2]], [[3], [1]])
        polytope = BestResponsePolytope.for_player(game, 1, RATIONAL)
        graph = self.engine.vertex_graph(polytope)
        assert len(graph) == 2
        assert graph.are_adjacent(0, 1)

    def test_float_domain(self):
        domain = FloatDomain()
        polytope = BestResponsePolytope.for_player(self.game, 1, domain)
        graph = QhullEnumerator(domain).vertex_graph(polytope)
        assert len(graph) == 4
        assert graph.find([2 / 11, 3 / 11]) is not None


class TestEnginesAgree:

    games = [NFGame.random_game(num_players=2, num_strategies=[3, 4], integer=True, seed=seed) for seed in range(4)]
    games.append(NFGame.from_bimatrix([[3, 3], [2, 5], [0, 6]], [[3, 3], [2, 6], [3, 1]]))

    def test_same_vertices(self):
        for game in self.games:
            for player in range(2):
                polytope = BestResponsePolytope.for_player(game, player, RATIONAL)
                pivoting = PivotingEnumerator(RATIONAL).vertex_graph(polytope)
                qhull = QhullEnumerator(RATIONAL).vertex_graph(polytope)
                assert vertex_keys(pivoting) == vertex_keys(qhull)

    def test_factory(self):
        assert isinstance(VertexEnumerator(), PivotingEnumerator)
        assert isinstance(VertexEnumerator('qhull', 'float'), QhullEnumerator)
        with pytest.raises(ValueError):
            VertexEnumerator('lrs')


# %% run


if __name__ == '__main__':

    for test_class in [TestBestResponsePolytope(), TestPivotingEnumerator(), TestQhullEnumerator(),
                       TestEnginesAgree()]:
        method_names = [method for method in dir(test_class)
                        if callable(getattr(test_class, method))
                        if method.startswith('test_')]
        for method in method_names:
            getattr(test_class, method)()
