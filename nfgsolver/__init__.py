__version__ = '1.0'

from .domain import RationalDomain, FloatDomain, NumericInstabilityError, RATIONAL, get_domain
from .nfgame import NFGame, StrategyProfile, MalformedGameError
from .dominance import eliminate_dominated, ReducedGame
from .cliques import find_cliques
from .enummixed import EnumMixed, EnumMixedSolution
from .ipa import IPA, IPAResult, NonConvergenceError
from nfgsolver import enumeration

__all__ = ['NFGame',
           'StrategyProfile',
           'MalformedGameError',
           'RationalDomain',
           'FloatDomain',
           'RATIONAL',
           'NumericInstabilityError',
           'get_domain',
           'eliminate_dominated',
           'ReducedGame',
           'find_cliques',
           'EnumMixed',
           'EnumMixedSolution',
           'IPA',
           'IPAResult',
           'NonConvergenceError',
           'enumeration',
           ]
