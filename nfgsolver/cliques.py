"""Grouping of extreme equilibria into connected components ("cliques")."""

from collections import defaultdict, deque
from typing import List, Sequence, Tuple

from .enumeration import VertexGraph

ADJACENCIES = ('pivot', 'vertex')


def find_cliques(pairs: Sequence[Tuple[int, int]], graph1: VertexGraph, graph2: VertexGraph,
                 adjacency: str = 'pivot') -> List[List[int]]:
    """Partition equilibria, given as vertex pairs (i, j) of the two polytopes, into connected components.

    adjacency='pivot': (i, j) and (k, l) are adjacent if i == k and j, l are neighbours in graph2, or j == l and
        i, k are neighbours in graph1, i.e. they differ by a single pivot step in one polytope.
    adjacency='vertex': adjacent if they share a vertex in either polytope (i == k or j == l).

    Returns a list of cliques, each a list of indices into pairs. Cliques are ordered by their first member,
    members by breadth-first discovery. Every index appears in exactly one clique.
    """
    if adjacency not in ADJACENCIES:
        raise ValueError(f'"{adjacency}" is not a valid adjacency. Allowed are "pivot" or "vertex".')

    by_first = defaultdict(list)
    by_second = defaultdict(list)
    for k, (i, j) in enumerate(pairs):
        by_first[i].append(k)
        by_second[j].append(k)

    def neighbours(k: int):
        i, j = pairs[k]
        for other in by_first[i]:
            if other != k and (adjacency == 'vertex' or graph2.are_adjacent(j, pairs[other][1])):
                yield other
        for other in by_second[j]:
            if other != k and (adjacency == 'vertex' or graph1.are_adjacent(i, pairs[other][0])):
                yield other

    clique_of = [None] * len(pairs)
    cliques = []
    for start in range(len(pairs)):
        if clique_of[start] is not None:
            continue
        clique = [start]
        clique_of[start] = len(cliques)
        queue = deque([start])
        while queue:
            k = queue.popleft()
            for other in neighbours(k):
                if clique_of[other] is None:
                    clique_of[other] = len(cliques)
                    clique.append(other)
                    queue.append(other)
        cliques.append(clique)
    return cliques


def clique_label(index: int) -> str:
    """Label of the index-th clique (0-based), as used in output: convex-1, convex-2, ..."""
    return f'convex-{index + 1}'
