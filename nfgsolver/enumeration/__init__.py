from ._polytope import BestResponsePolytope, Vertex, VertexGraph
from ._pivoting import PivotingEnumerator
from ._qhull import QhullEnumerator

from nfgsolver.domain import as_domain

ENGINES = {
    'pivoting': PivotingEnumerator,
    'qhull': QhullEnumerator,
}


def VertexEnumerator(engine: str = 'pivoting', domain=None, **kwargs):
    """Vertex enumeration for best response polytopes.
    engine='pivoting': exact pivoting through all feasible bases (default).
    engine='qhull': Qhull via scipy, for numerically or combinatorially hard polytopes."""
    try:
        engine_class = ENGINES[engine]
    except KeyError:
        raise ValueError(f'"{engine}" is not a valid enumeration engine. Allowed are {", ".join(ENGINES)}.')
    return engine_class(as_domain(domain), **kwargs)


__all__ = ['BestResponsePolytope', 'Vertex', 'VertexGraph', 'PivotingEnumerator', 'QhullEnumerator',
           'VertexEnumerator']
