"""Enumeration of all extreme Nash equilibria of two-player games via best response polytopes."""

import time
from collections import defaultdict
from datetime import timedelta
from typing import Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from .cliques import find_cliques, clique_label, ADJACENCIES
from .domain import NumericInstabilityError, get_domain
from .dominance import ReducedGame, eliminate_dominated
from .enumeration import BestResponsePolytope, VertexEnumerator, VertexGraph, ENGINES
from .nfgame import NFGame, StrategyProfile

UNSOLVED = 'unsolved'
REDUCING = 'reducing'
ENUMERATING = 'enumerating'
PAIRING = 'pairing'
GROUPING = 'grouping cliques'
SOLVED = 'solved'
FAILED = 'failed'


class EnumMixedSolution:
    """Result of EnumMixed: all extreme equilibria, the vertex pairs they come from, and their cliques."""

    def __init__(self, game: NFGame, reduced: ReducedGame, graph1: VertexGraph, graph2: VertexGraph,
                 pairs: List[Tuple[int, int]], equilibria: List[StrategyProfile], adjacency: str = 'pivot') -> None:
        self.game = game
        self.reduced = reduced
        self.graph1 = graph1
        self.graph2 = graph2
        self.pairs = pairs
        self.equilibria = equilibria
        self.adjacency = adjacency
        self._cliques = None

    @property
    def clique_indices(self) -> List[List[int]]:
        """Cliques as lists of indices into equilibria."""
        if self._cliques is None:
            self._cliques = find_cliques(self.pairs, self.graph1, self.graph2, adjacency=self.adjacency)
        return self._cliques

    @property
    def cliques(self) -> List[List[StrategyProfile]]:
        """Partition of the equilibria into maximal connected components."""
        return [[self.equilibria[k] for k in clique] for clique in self.clique_indices]

    def labelled_cliques(self) -> List[Tuple[str, StrategyProfile]]:
        """(label, equilibrium) for all cliques in order, with labels convex-1, convex-2, ..."""
        return [(clique_label(c), profile) for c, clique in enumerate(self.cliques) for profile in clique]

    def to_table(self) -> pd.DataFrame:
        """One row per equilibrium: its clique label and one column per player and strategy."""
        clique_of = {}
        for c, clique in enumerate(self.clique_indices):
            for k in clique:
                clique_of[k] = clique_label(c)
        columns = [f'{self.game.player_labels[p]}_{a}' for p in range(self.game.num_players)
                   for a in self.game.strategy_labels[p]]
        rows = []
        for k, profile in enumerate(self.equilibria):
            row = {'equilibrium': k + 1, 'clique': clique_of[k]}
            row.update(zip(columns, profile.flat()))
            rows.append(row)
        return pd.DataFrame(rows, columns=['equilibrium', 'clique'] + columns)

    def __len__(self):
        return len(self.equilibria)

    def __iter__(self):
        return iter(self.equilibria)

    def __getitem__(self, index) -> StrategyProfile:
        return self.equilibria[index]

    def __repr__(self):
        return f'EnumMixedSolution({len(self.equilibria)} equilibria, {len(self.clique_indices)} cliques)'


class EnumMixed:
    """Computes all extreme Nash equilibria of a two-player game.

    Steps:  1) iterated elimination of dominated strategies (optional),
            2) enumeration of the vertices of both best response polytopes,
            3) pairing of vertices whose labels are complementary, i.e. jointly cover all strategies:
               every strategy is either unused or a best response,
            4) translation back to the original game's strategy indices, and validation,
            5) grouping into connected components (cliques), on request or on demand.

    Inputs
    ------
    game : NFGame with two players.
    rational : bool
        Exact rational arithmetic (default). Otherwise floating point with tolerance tol, displayed with decimals.
    eliminate : bool
        Remove strictly dominated strategies first (default True).
    engine : str
        'pivoting' (exact pivoting engine, default) or 'qhull' (scipy's Qhull, opt-in).
    adjacency : str
        Definition used for cliques: 'pivot' (default) or 'vertex'; see nfgsolver.cliques.find_cliques.
    verbose : int
        0: silent (default); 1: summary of each stage; 2: also eliminated strategies and enumeration details;
        3: debugging output (degenerate pivots).
    """

    def __init__(self, game: NFGame, rational: bool = True, tol: float = 1e-9, decimals: int = 6,
                 eliminate: bool = True, engine: str = 'pivoting', adjacency: str = 'pivot',
                 verbose: int = 0) -> None:
        if game.num_players != 2:
            raise ValueError(f'EnumMixed requires a two-player game, but the game has {game.num_players} players. '
                             f'Use IPA for games with more players.')
        if engine not in ENGINES:
            raise ValueError(f'"{engine}" is not a valid enumeration engine. Allowed are {", ".join(ENGINES)}.')
        if adjacency not in ADJACENCIES:
            raise ValueError(f'"{adjacency}" is not a valid adjacency. Allowed are "pivot" or "vertex".')
        self.game = game
        self.domain = get_domain(rational, tol=tol, decimals=decimals)
        self.eliminate = eliminate
        self.engine = engine
        self.adjacency = adjacency
        self.verbose = verbose

        self.state = UNSOLVED
        self.reduced = None  # type: Optional[ReducedGame]
        self.solution = None  # type: Optional[EnumMixedSolution]
        self.start_time = None

    @property
    def equilibria(self) -> List[StrategyProfile]:
        return self.solution.equilibria if self.solution else []

    def solve(self, renderer=None, cliques: bool = False) -> EnumMixedSolution:
        """Run all steps and return the solution.

        renderer : optional object with method render(profile, label); each equilibrium is passed to it with
            label 'NE' as soon as it is confirmed.
        cliques : if True, the cliques are computed right away (state 'grouping cliques'); otherwise they are
            computed when first accessed on the solution.
        """
        self.start_time = time.perf_counter()
        if self.verbose >= 1:
            print('=' * 50)
            print(f'Start enumeration of extreme equilibria ({self.domain.name}, engine: {self.engine})')

        self.state = REDUCING
        self.reduced = eliminate_dominated(self.game, self.domain, eliminate=self.eliminate, verbose=self.verbose)

        self.state = ENUMERATING
        enumerator = VertexEnumerator(self.engine, self.domain, verbose=self.verbose)
        try:
            graph1, graph2 = [enumerator.vertex_graph(BestResponsePolytope.for_player(self.reduced.game, p,
                                                                                      self.domain))
                              for p in range(2)]
        except NumericInstabilityError as error:
            self.state = FAILED
            if self.verbose >= 1:
                print(f'Enumeration failed: {error}')
            raise
        if self.verbose >= 2:
            for p, graph in enumerate((graph1, graph2)):
                print(f'{self.game.player_labels[p]}: {graph!r}')

        self.state = PAIRING
        pairs = []
        equilibria = []
        for i, j in self.pair(graph1, graph2):
            profile = self._profile(graph1[i], graph2[j])
            pairs.append((i, j))
            equilibria.append(profile)
            if renderer is not None:
                renderer.render(profile, 'NE')

        self.solution = EnumMixedSolution(self.game, self.reduced, graph1, graph2, pairs, equilibria,
                                          adjacency=self.adjacency)
        if cliques:
            self.state = GROUPING
            _ = self.solution.clique_indices
        self.state = SOLVED

        if self.verbose >= 1:
            time_sec = time.perf_counter() - self.start_time
            print(f'Found {len(equilibria)} extreme equilibria in {len(self.solution.clique_indices)} clique(s). '
                  f'Total time elapsed: {timedelta(seconds=int(time_sec))}')
            print('=' * 50)
        return self.solution

    @staticmethod
    def pair(graph1: VertexGraph, graph2: VertexGraph) -> Iterator[Tuple[int, int]]:
        """Yield all pairs (i, j) of non-origin vertices whose labels jointly cover all labels.

        Candidates in graph2 are pruned with an inverted index: a partner of x must carry every label x lacks.
        """
        all_labels = graph1.polytope.labels
        carriers = defaultdict(set)
        partners = set()
        for y in graph2:
            if y.is_origin:
                continue
            partners.add(y.index)
            for label in y.labels:
                carriers[label].add(y.index)

        for x in graph1:
            if x.is_origin:
                continue
            candidates = set(partners)
            for label in sorted(all_labels - x.labels, key=lambda l: len(carriers[l])):
                candidates &= carriers[label]
                if not candidates:
                    break
            for j in sorted(candidates):
                yield x.index, j

    def _profile(self, x, y) -> StrategyProfile:
        """Translate a complementary vertex pair to a validated profile of the original game."""
        strategies = self.reduced.to_original([x.strategy(), y.strategy()], self.domain)
        profile = StrategyProfile(self.game, strategies, self.domain)

        regret = profile.regret
        if not self.domain.exact:
            regret = regret / max(1.0, np.abs(self.game.u).max())
        if any(self.domain.is_positive(loss) for loss in regret):
            raise RuntimeError(f'Complementary vertex pair {x!r}, {y!r} does not yield an equilibrium '
                               f'(regret {list(profile.regret)}).')
        return profile


def enummixed_solve(game: NFGame, rational: bool = True, **kwargs) -> EnumMixedSolution:
    """Convenience function: all extreme equilibria of a two-player game."""
    return EnumMixed(game, rational=rational, **kwargs).solve()
