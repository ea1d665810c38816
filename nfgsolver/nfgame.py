"""Classes for finite normal form games and mixed strategy profiles."""
from typing import Union, List, Optional, Sequence

import numpy as np
import pandas as pd

from .domain import NumericDomain, RATIONAL, as_domain, contract


class MalformedGameError(ValueError):
    """Raised when a game cannot be read or its payoffs do not describe a finite normal form game."""


class NFGame:
    """A finite game in strategic (normal) form."""

    def __init__(self, payoff_matrix: Union[np.ndarray, list],
                 player_labels: Optional[List[str]] = None,
                 strategy_labels: Optional[list] = None) -> None:
        """Inputs:

        payoff_matrix:    array-like with indices [p, s_0, s_1, ..., s_(n-1)]: payoff of player p
                          if players choose strategies s_0, ..., s_(n-1).

        Entries may be integers, fractions, decimal strings or floats. They are stored exactly:
        floats are read through their decimal representation (0.1 -> 1/10).
        The game is immutable once constructed.
        """
        payoff_array = np.array(payoff_matrix, dtype=object)
        if payoff_array.ndim < 2:
            raise MalformedGameError('Payoff matrix needs indices [player, strategy_0, ...].')
        if payoff_array.shape[0] != payoff_array.ndim - 1:
            raise MalformedGameError(f'Payoff matrix has shape {payoff_array.shape}: expected one payoff entry for '
                                     f'each of the {payoff_array.ndim - 1} players, found {payoff_array.shape[0]}.')
        if 0 in payoff_array.shape:
            raise MalformedGameError('Each player needs at least one strategy.')
        try:
            self._payoffs = RATIONAL.array(payoff_array)
        except (TypeError, ValueError, ZeroDivisionError):
            raise MalformedGameError('Payoff matrix contains entries that are not numbers.')
        self._payoffs.flags.writeable = False
        self._payoffs_float = self._payoffs.astype(np.float64)
        self._payoffs_float.flags.writeable = False

        # read out game shape
        self.num_players = self._payoffs.shape[0]
        self.nums_strategies = np.array(self._payoffs.shape[1:], dtype=np.int32)
        self.nums_strategies.flags.writeable = False
        self.num_strategies_max = int(self.nums_strategies.max())
        self.num_strategies_total = int(self.nums_strategies.sum())

        # strategy_mask allows to convert between a jagged and a flat array containing a strategy profile
        self.strategy_mask = np.zeros((self.num_players, self.num_strategies_max), dtype=bool)
        for p in range(self.num_players):
            self.strategy_mask[p, :self.nums_strategies[p]] = 1
        self.strategy_mask.flags.writeable = False

        digits = len(str(self.num_players))
        self.player_labels = player_labels or [f'player{p:0{digits}}' for p in range(self.num_players)]
        digits = len(str(self.num_strategies_max))
        self.strategy_labels = strategy_labels or [f's{a:0{digits}}' for a in range(self.num_strategies_max)]

    @classmethod
    def from_bimatrix(cls, A, B, **kwargs) -> 'NFGame':
        """Create a two-player game from the row player's payoffs A and the column player's payoffs B."""
        A = np.array(A, dtype=object)
        B = np.array(B, dtype=object)
        if A.shape != B.shape or A.ndim != 2:
            raise ValueError(f'A and B must be matrices of equal shape, got {A.shape} and {B.shape}.')
        return cls(np.stack([A, B]), **kwargs)

    @classmethod
    def random_game(cls, num_players: int, num_strategies, integer: bool = False,
                    seed: Optional[int] = None) -> 'NFGame':
        """Creates an NFGame of given size, with random payoffs.
        num_strategies can be specified in the following ways:
        - integer: all players have this same fixed number of strategies
        - tuple of 2 integers: number of strategies is randomized, the input determining [min, max]
        - list or array of length num_players: number of strategies for each player
        With integer=True, payoffs are drawn from {0, ..., 9} (handy for exact computations),
        otherwise uniformly from [0, 1).

        Passing a seed to the random number generator ensures that the game can be recreated at a
        later occasion or by other users.
        """
        rng = np.random.default_rng(seed=seed)

        if isinstance(num_strategies, (int, np.integer)):
            num_strategies = np.ones(num_players, dtype=int) * num_strategies
        elif isinstance(num_strategies, tuple) and len(num_strategies) == 2:
            num_strategies = rng.integers(low=num_strategies[0], high=num_strategies[1],
                                          size=num_players, endpoint=True)
        num_strategies = np.array(num_strategies, dtype=np.int32)

        shape = (num_players, *num_strategies)
        if integer:
            u = rng.integers(0, 10, size=shape)
        else:
            u = rng.random(shape)
        return cls(u)

    @classmethod
    def from_table(cls, table: Union[pd.DataFrame, str]) -> 'NFGame':
        """Create a game from the tabular format (pandas.DataFrame, or path to .xlsx/.xls/.csv/.txt).
        Columns: a_[player] for each player's strategy and u_[player] for each player's payoff."""
        from .utility.nfg_conversion import game_from_table
        return game_from_table(table)

    @classmethod
    def from_nfg(cls, source) -> 'NFGame':
        """Create a game from a Gambit .nfg file (payoff format). Accepts a path, a file object or the content."""
        from .utility.nfg_conversion import game_from_nfg
        return game_from_nfg(source)

    def to_table(self) -> pd.DataFrame:
        """Convert the game to the tabular format."""
        from .utility.nfg_conversion import game_to_table
        return game_to_table(self)

    @property
    def strategy_labels(self):
        return self._strategy_labels

    @strategy_labels.setter
    def strategy_labels(self, value):
        if isinstance(value[0], (str, int, float)):
            # just a single list which applies to all players
            self._strategy_labels = [list(value[:self.nums_strategies[p]]) for p in range(self.num_players)]
        else:
            self._strategy_labels = [list(labels) for labels in value]

    def payoffs(self, domain: Union[NumericDomain, str, None] = None) -> np.ndarray:
        """Payoff array [p, s_0, ..., s_(n-1)] in the given numeric domain (read-only)."""
        domain = as_domain(domain)
        if domain.exact:
            return self._payoffs
        return self._payoffs_float

    @property
    def u(self) -> np.ndarray:
        """Payoffs as float array."""
        return self._payoffs_float

    def restrict(self, kept: Sequence[Sequence[int]]) -> 'NFGame':
        """Sub-game in which player p only has the strategies listed in kept[p] (in this order)."""
        index = np.ix_(list(range(self.num_players)), *[list(k) for k in kept])
        labels = [[self.strategy_labels[p][a] for a in kept[p]] for p in range(self.num_players)]
        return NFGame(self._payoffs[index], player_labels=list(self.player_labels), strategy_labels=labels)

    def centroid_strategy(self, zeros=False) -> np.ndarray:
        """Generate the centroid strategy profile. Padded with NaNs, or zeros under the respective option."""
        strategy_profile = np.full((self.num_players, self.num_strategies_max), 0.0 if zeros else np.nan)
        for p in range(self.num_players):
            strategy_profile[p, :self.nums_strategies[p]] = 1 / self.nums_strategies[p]
        return strategy_profile

    def random_strategy(self, zeros=False, seed=None) -> np.ndarray:
        """Generate a random strategy profile. Padded with NaNs, or zeros under the respective option."""
        rng = np.random.default_rng(seed=seed)

        strategy_profile = np.full((self.num_players, self.num_strategies_max), 0.0 if zeros else np.nan)
        for p in range(self.num_players):
            sigma = rng.exponential(scale=1, size=self.nums_strategies[p])
            strategy_profile[p, :self.nums_strategies[p]] = sigma / sigma.sum()
        return strategy_profile

    def flatten_strategies(self, strategies: np.ndarray) -> np.ndarray:
        """Convert a jagged array of shape (num_players, num_strategies_max) to a flat array, removing padding."""
        return np.extract(self.strategy_mask, strategies)

    def unflatten_strategies(self, strategies_flat: np.ndarray, zeros: bool = False) -> np.ndarray:
        """Convert a flat array containing a strategy profile to an array with shape
        (num_players, num_strategies_max), padded with NaNs (or zeros under the respective option.)
        """
        strategies = np.full((self.num_players, self.num_strategies_max), 0.0 if zeros else np.nan)
        np.place(strategies, self.strategy_mask, strategies_flat)
        return strategies

    def split_strategies(self, strategies: np.ndarray) -> List[np.ndarray]:
        """Convert a padded array to a list with one weight vector per player."""
        return [np.asarray(strategies[p][:self.nums_strategies[p]]) for p in range(self.num_players)]

    def strategy_values(self, strategies: Sequence[np.ndarray], player: int,
                        domain: Union[NumericDomain, str, None] = None) -> np.ndarray:
        """Expected payoff of each pure strategy of player against the others' mixed strategies."""
        return contract(self.payoffs(domain)[player], strategies, skip=(player,))

    def get_payoffs(self, strategies: Sequence[np.ndarray],
                    domain: Union[NumericDomain, str, None] = None) -> np.ndarray:
        """Expected payoff of each player for a mixed strategy profile (list of per-player weights)."""
        domain = as_domain(domain)
        values = [contract(self.payoffs(domain)[p], strategies)[()] for p in range(self.num_players)]
        return np.array(values, dtype=object if domain.exact else np.float64)

    def check_equilibrium(self, strategies: Sequence[np.ndarray],
                          domain: Union[NumericDomain, str, None] = None) -> np.ndarray:
        """Calculate "epsilon-equilibriumness" (maximum payoff each player could gain by a pure deviation)
        of a given strategy profile.
        """
        domain = as_domain(domain)
        strategies = [domain.array(sigma) for sigma in strategies]
        losses = []
        for p in range(self.num_players):
            values = self.strategy_values(strategies, p, domain)
            losses.append(max(values) - np.dot(values, strategies[p]))
        return np.array(losses, dtype=object if domain.exact else np.float64)

    def __repr__(self):
        return f'NFGame({" x ".join(str(n) for n in self.nums_strategies)})'


class StrategyProfile:
    """Container for equilibria and other mixed strategy profiles.

    Holds one weight vector per player, in the strategy indices of game, with entries of the given numeric domain.
    """

    def __init__(self, game: NFGame, strategies: Sequence, domain: Union[NumericDomain, str, None] = None) -> None:
        self.game = game
        self.domain = as_domain(domain)
        if len(strategies) != game.num_players:
            raise ValueError(f'Profile has {len(strategies)} strategies, but the game has {game.num_players} players.')
        self.strategies = []
        for p, sigma in enumerate(strategies):
            sigma = self.domain.array(list(sigma)[:game.nums_strategies[p]])
            if len(sigma) != game.nums_strategies[p]:
                raise ValueError(f'Strategy of {game.player_labels[p]} has {len(sigma)} entries, '
                                 f'but the player has {game.nums_strategies[p]} strategies.')
            sigma.flags.writeable = False
            self.strategies.append(sigma)
        self._payoffs = None

    @property
    def payoffs(self) -> np.ndarray:
        if self._payoffs is None:
            self._payoffs = self.game.get_payoffs(self.strategies, self.domain)
        return self._payoffs

    @property
    def regret(self) -> np.ndarray:
        """Per player: gain of the best pure deviation. Zero (or within tolerance) for an equilibrium."""
        return self.game.check_equilibrium(self.strategies, self.domain)

    def is_equilibrium(self) -> bool:
        return all(not self.domain.is_positive(loss) for loss in self.regret)

    def support(self, player: int) -> List[int]:
        return [a for a, w in enumerate(self.strategies[player]) if self.domain.is_positive(w)]

    @property
    def is_pure(self) -> bool:
        return all(len(self.support(p)) == 1 for p in range(self.game.num_players))

    def flat(self) -> list:
        """Weights in output order: per player, then per strategy."""
        return [w for sigma in self.strategies for w in sigma]

    def key(self) -> tuple:
        return self.domain.key(self.flat())

    def __eq__(self, other):
        if not isinstance(other, StrategyProfile):
            return NotImplemented
        return self.game is other.game and self.key() == other.key()

    def __hash__(self):
        return hash(self.key())

    def to_list(self, decimals: int = None) -> list:
        if decimals is None:
            return [list(sigma) for sigma in self.strategies]
        return [np.round(sigma.astype(np.float64), decimals).tolist() for sigma in self.strategies]

    def to_string(self, decimals=None, v_decimals=2, strategy_labels=True) -> str:
        """Renders the strategy profile and associated payoffs as human-readable string."""
        decimals = decimals if decimals is not None else (self.domain.decimals or 3)
        string = ""
        player_len = len(max(self.game.player_labels, key=len))
        v = [f'{float(self.payoffs[p]):.{v_decimals}f}' for p in range(self.game.num_players)]
        v_width = len(max(v, key=len))
        for player in range(self.game.num_players):
            if self.domain.exact:
                weights = [str(w) for w in self.strategies[player]]
            else:
                weights = [f'{w:.{decimals}f}' for w in self.strategies[player]]
            width = max(len(w) for w in weights)
            if strategy_labels:
                labels = self.game.strategy_labels[player]
                width = max(width, max(len(str(a)) for a in labels))
                leading_space = " " * (player_len + v_width + 10)
                string += leading_space + " ".join(f'{str(a)[:width]:<{width}}' for a in labels) + "\n"
            row = f'{self.game.player_labels[player]: <{player_len + 1}}: v={v[player]:>{v_width}}, ' \
                  f'σ=[{" ".join(f"{w:<{width}}" for w in weights)}]\n'
            string += row
        return string

    def __str__(self):
        return self.to_string()

    def __repr__(self):
        return f'StrategyProfile({self.to_list()})'
