"""Test NFGame and StrategyProfile classes."""


from fractions import Fraction

import numpy as np
import pytest

import nfgsolver
from nfgsolver import NFGame, StrategyProfile, MalformedGameError


# %% test NFGame class


class TestNFGame:

    num_players = 3
    num_strategies = 3

    game = NFGame.random_game(num_players=num_players, num_strategies=num_strategies, seed=123)
    coordination = NFGame.from_bimatrix([[3, 0], [0, 2]], [[2, 0], [0, 3]])

    def test_shape_of_game(self):
        assert self.game.num_players == self.num_players
        assert self.game.num_strategies_max == self.num_strategies
        assert self.game.num_strategies_total == self.num_players * self.num_strategies
        assert (self.game.nums_strategies == self.num_strategies).all()

    def test_payoffs(self):
        assert isinstance(self.game.u, np.ndarray)
        assert self.game.u.shape == (self.num_players,) + (self.num_strategies,) * self.num_players
        exact = self.game.payoffs('rational')
        assert exact.dtype == object
        assert np.allclose(exact.astype(np.float64), self.game.u)

    def test_payoffs_are_read_only(self):
        with pytest.raises(ValueError):
            self.game.u[0, 0, 0, 0] = 1.0
        with pytest.raises(ValueError):
            self.game.payoffs()[0, 0, 0, 0] = 1

    def test_floats_are_stored_exactly(self):
        game = NFGame([[[0.1, 1]], [[2, 3]]])
        assert game.payoffs()[0, 0, 0] == Fraction(1, 10)

    def test_malformed_payoffs(self):
        with pytest.raises(MalformedGameError):
            NFGame([[1, 2], [3, 4]])
        with pytest.raises(MalformedGameError):
            NFGame([[['a', 1]], [[2, 3]]])
        with pytest.raises(ValueError):
            NFGame.from_bimatrix([[1, 2]], [[1], [2]])

    def test_random_game_numbers_of_strategies(self):
        game = NFGame.random_game(num_players=2, num_strategies=[2, 4], seed=1)
        assert list(game.nums_strategies) == [2, 4]
        game = NFGame.random_game(num_players=3, num_strategies=(2, 4), seed=1)
        assert all(2 <= n <= 4 for n in game.nums_strategies)
        game = NFGame.random_game(num_players=2, num_strategies=3, integer=True, seed=1)
        assert all(x.denominator == 1 for x in game.payoffs().ravel())

    def test_random_game_is_reproducible(self):
        game_1 = NFGame.random_game(2, 3, seed=42)
        game_2 = NFGame.random_game(2, 3, seed=42)
        assert np.array_equal(game_1.u, game_2.u)

    def test_labels(self):
        assert self.coordination.player_labels == ['player0', 'player1']
        assert self.coordination.strategy_labels == [['s0', 's1'], ['s0', 's1']]
        game = NFGame.from_bimatrix([[1, 2, 3]], [[1, 2, 3]], player_labels=['row', 'column'],
                                    strategy_labels=[['up'], ['left', 'center', 'right']])
        assert game.strategy_labels[1] == ['left', 'center', 'right']

    def test_strategies(self):
        centroid_strategy = self.game.centroid_strategy()
        random_strategy = self.game.random_strategy(seed=0)
        strategies_flattened = self.game.flatten_strategies(random_strategy)
        strategies_unflattened = self.game.unflatten_strategies(strategies_flattened)
        assert centroid_strategy.shape == (self.num_players, self.num_strategies)
        assert np.allclose(np.nansum(centroid_strategy), self.num_players)
        assert np.allclose(np.nansum(random_strategy), self.num_players)
        assert strategies_flattened.shape == (self.game.num_strategies_total,)
        assert np.allclose(strategies_unflattened, random_strategy, equal_nan=True)

    def test_padding(self):
        game = NFGame.random_game(num_players=2, num_strategies=[2, 3], seed=0)
        centroid = game.centroid_strategy()
        assert np.isnan(centroid[0, 2])
        assert game.centroid_strategy(zeros=True)[0, 2] == 0
        assert [len(sigma) for sigma in game.split_strategies(centroid)] == [2, 3]

    def test_check_equilibrium(self):
        pure = [np.array([1, 0]), np.array([1, 0])]
        assert list(self.coordination.check_equilibrium(pure)) == [0, 0]
        not_equilibrium = [np.array([1, 0]), np.array([0, 1])]
        assert list(self.coordination.check_equilibrium(not_equilibrium)) == [2, 2]
        mixed = [np.array([Fraction(3, 5), Fraction(2, 5)]), np.array([Fraction(2, 5), Fraction(3, 5)])]
        assert list(self.coordination.check_equilibrium(mixed)) == [0, 0]

    def test_get_payoffs(self):
        mixed = [np.array([Fraction(3, 5), Fraction(2, 5)]), np.array([Fraction(2, 5), Fraction(3, 5)])]
        assert list(self.coordination.get_payoffs(mixed)) == [Fraction(6, 5), Fraction(6, 5)]
        values = self.coordination.get_payoffs([np.array([0.5, 0.5]), np.array([0.5, 0.5])], 'float')
        assert np.allclose(values, [1.25, 1.25])

    def test_restrict(self):
        game = self.game.restrict([[0, 2], [1], [0, 1, 2]])
        assert list(game.nums_strategies) == [2, 1, 3]
        assert game.payoffs()[1, 1, 0, 2] == self.game.payoffs()[1, 2, 1, 2]
        assert game.strategy_labels[0] == ['s0', 's2']


# %% test StrategyProfile class


class TestStrategyProfile:

    game = NFGame.from_bimatrix([[3, 0], [0, 2]], [[2, 0], [0, 3]], player_labels=['row', 'column'])
    mixed = StrategyProfile(game, [[Fraction(3, 5), Fraction(2, 5)], [Fraction(2, 5), Fraction(3, 5)]])
    pure = StrategyProfile(game, [[1, 0], [1, 0]])

    def test_payoffs_and_regret(self):
        assert list(self.mixed.payoffs) == [Fraction(6, 5), Fraction(6, 5)]
        assert self.mixed.is_equilibrium()
        assert self.pure.is_equilibrium()
        assert not StrategyProfile(self.game, [[1, 0], [0, 1]]).is_equilibrium()

    def test_support(self):
        assert self.pure.is_pure
        assert not self.mixed.is_pure
        assert self.mixed.support(0) == [0, 1]
        assert self.pure.support(1) == [0]

    def test_flat_order(self):
        assert self.mixed.flat() == [Fraction(3, 5), Fraction(2, 5), Fraction(2, 5), Fraction(3, 5)]

    def test_equality_and_hash(self):
        same = StrategyProfile(self.game, [[0.6, 0.4], [0.4, 0.6]])
        assert same == self.mixed
        assert hash(same) == hash(self.mixed)
        assert len({self.mixed, same, self.pure}) == 2

    def test_wrong_shape(self):
        with pytest.raises(ValueError):
            StrategyProfile(self.game, [[1, 0]])
        with pytest.raises(ValueError):
            StrategyProfile(self.game, [[1], [1, 0]])

    def test_to_list_and_string(self):
        assert self.mixed.to_list(decimals=2) == [[0.6, 0.4], [0.4, 0.6]]
        string = self.mixed.to_string()
        assert 'row' in string and 'column' in string
        assert '3/5' in string
        float_profile = StrategyProfile(self.game, [[0.6, 0.4], [0.4, 0.6]], nfgsolver.FloatDomain(decimals=3))
        assert '0.600' in str(float_profile)


# %% run


if __name__ == '__main__':

    for test_class in [TestNFGame(), TestStrategyProfile()]:
        method_names = [method for method in dir(test_class)
                        if callable(getattr(test_class, method))
                        if method.startswith('test_')]
        for method in method_names:
            getattr(test_class, method)()
