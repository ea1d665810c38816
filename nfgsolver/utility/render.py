import sys
from typing import TextIO

from nfgsolver.nfgame import StrategyProfile


class MixedStrategyCSVRenderer:
    """Writes one line per profile: label, then all weights (per player, then per strategy), comma separated.

    Exact weights are written as fractions ('1/3'); float weights with the given number of decimals.
    """

    def __init__(self, stream: TextIO = None, decimals: int = 6) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.decimals = decimals

    def format(self, profile: StrategyProfile, label: str = 'NE') -> str:
        if profile.domain.exact:
            weights = [str(w) for w in profile.flat()]
        else:
            weights = [f'{float(w):.{self.decimals}f}' for w in profile.flat()]
        return ','.join([label] + weights)

    def render(self, profile: StrategyProfile, label: str = 'NE') -> None:
        self.stream.write(self.format(profile, label) + '\n')
        self.stream.flush()
