"""Iterated elimination of dominated pure strategies."""

from typing import List, Sequence, Union

import numpy as np

from .domain import NumericDomain, as_domain
from .nfgame import NFGame


class ReducedGame:
    """A game obtained by removing strategies, together with the map back to the original strategy indices.

    strategy_maps[p][k] is the original index of player p's k-th remaining strategy.
    """

    def __init__(self, original: NFGame, strategy_maps: Sequence[Sequence[int]]) -> None:
        self.original = original
        self.strategy_maps = [tuple(int(a) for a in kept) for kept in strategy_maps]
        if all(len(kept) == n for kept, n in zip(self.strategy_maps, original.nums_strategies)):
            self.game = original
        else:
            self.game = original.restrict(self.strategy_maps)

    @classmethod
    def identity(cls, game: NFGame) -> 'ReducedGame':
        return cls(game, [range(n) for n in game.nums_strategies])

    @property
    def is_identity(self) -> bool:
        return self.game is self.original

    def eliminated(self, player: int) -> List[int]:
        """Original indices of the strategies removed for player."""
        kept = set(self.strategy_maps[player])
        return [a for a in range(self.original.nums_strategies[player]) if a not in kept]

    def to_original(self, strategies: Sequence[Sequence], domain: Union[NumericDomain, str, None] = None) -> list:
        """Expand per-player weights over remaining strategies to weights over all original strategies.
        Removed strategies get weight zero."""
        domain = as_domain(domain)
        expanded = []
        for p, sigma in enumerate(strategies):
            if len(sigma) != len(self.strategy_maps[p]):
                raise ValueError(f'Strategy of player {p} has {len(sigma)} entries, '
                                 f'expected {len(self.strategy_maps[p])}.')
            full = domain.array([0] * self.original.nums_strategies[p])
            for k, a in enumerate(self.strategy_maps[p]):
                full[a] = domain.convert(sigma[k])
            expanded.append(full)
        return expanded

    def from_original(self, strategies: Sequence[Sequence], domain: Union[NumericDomain, str, None] = None) -> list:
        """Restrict per-player weights over the original strategies to the remaining ones."""
        domain = as_domain(domain)
        return [domain.array([sigma[a] for a in self.strategy_maps[p]]) for p, sigma in enumerate(strategies)]

    def __repr__(self):
        return f'ReducedGame({self.original!r} -> {self.game!r})'


def _dominated(payoffs: np.ndarray, player: int, domain: NumericDomain, strict: bool) -> List[int]:
    """Indices of player's strategies dominated by another of player's pure strategies in a payoff array."""
    u = np.moveaxis(payoffs[player], player, 0)
    u = u.reshape(u.shape[0], -1)
    dominated = []
    for a in range(u.shape[0]):
        for b in range(u.shape[0]):
            if a == b:
                continue
            diff = u[b] - u[a]
            if strict:
                if all(domain.is_positive(d) for d in diff):
                    dominated.append(a)
                    break
            else:
                if not any(domain.is_negative(d) for d in diff) and any(domain.is_positive(d) for d in diff):
                    dominated.append(a)
                    break
    return dominated


def eliminate_dominated(game: NFGame, domain: Union[NumericDomain, str, None] = None, eliminate: bool = True,
                        strict: bool = True, verbose: int = 0) -> ReducedGame:
    """Iteratively remove pure strategies dominated by another pure strategy.

    strict=True removes strategies that do worse than some other strategy against every opponent profile
    (beyond tolerance in the float domain); strict=False also removes weakly dominated strategies, which may lose
    equilibria. Each round removes at least one strategy or terminates. A player's last strategy is never removed.
    With eliminate=False, the game is returned unchanged with the identity mapping.
    """
    domain = as_domain(domain)
    if not eliminate:
        return ReducedGame.identity(game)

    kept = [list(range(n)) for n in game.nums_strategies]
    payoffs = game.payoffs(domain)
    round_no = 0
    while True:
        round_no += 1
        removed_any = False
        for p in range(game.num_players):
            if len(kept[p]) == 1:
                continue
            index = np.ix_(list(range(game.num_players)), *kept)
            dominated = _dominated(payoffs[index], p, domain, strict)
            if len(dominated) == len(kept[p]):
                # only possible for weak dominance under a float tolerance
                dominated = dominated[1:]
            if not dominated:
                continue
            removed_any = True
            if verbose >= 2:
                labels = [game.strategy_labels[p][kept[p][a]] for a in dominated]
                print(f'Round {round_no:3d}: {game.player_labels[p]}: removing dominated strategies {labels}')
            kept[p] = [a for k, a in enumerate(kept[p]) if k not in dominated]
        if not removed_any:
            break

    reduced = ReducedGame(game, kept)
    if verbose >= 1 and not reduced.is_identity:
        print(f'Eliminated dominated strategies in {round_no - 1} round(s): '
              f'{game!r} reduced to {reduced.game!r}.')
    return reduced
