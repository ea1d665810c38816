"""Test reading and writing games (Gambit .nfg, tables) and rendering of profiles."""


import io
from fractions import Fraction

import pandas as pd
import pytest

from nfgsolver import NFGame, StrategyProfile, MalformedGameError, FloatDomain
from nfgsolver.utility import game_from_nfg, game_to_nfg, game_from_table, game_to_table, MixedStrategyCSVRenderer


COORDINATION_NFG = 'NFG 1 R "Coordination" { "Row" "Column" } { 2 2 }\n\n3 2 0 0 0 0 2 3\n'

PRISONERS_DILEMMA_NFG = '''NFG 1 R "Prisoner's dilemma" { "Row" "Column" }

{ { "C" "D" }
{ "C" "D" }
}
""

{
{ "CC" 3, 3 }
{ "DC" 5, 0 }
{ "CD" 0, 5 }
{ "DD" 1, 1 }
}
1 2 3 4
'''


# %% test .nfg format


class TestNFGFormat:

    def test_payoff_format(self):
        game = game_from_nfg(COORDINATION_NFG)
        assert game.player_labels == ['Row', 'Column']
        assert game.payoffs()[0].tolist() == [[3, 0], [0, 2]]
        assert game.payoffs()[1].tolist() == [[2, 0], [0, 3]]

    def test_outcome_format(self):
        game = game_from_nfg(PRISONERS_DILEMMA_NFG)
        assert game.strategy_labels == [['C', 'D'], ['C', 'D']]
        assert game.payoffs()[0].tolist() == [[3, 0], [5, 1]]
        assert game.payoffs()[1].tolist() == [[3, 5], [0, 1]]

    def test_sources(self, tmp_path):
        path = tmp_path / 'coordination.nfg'
        path.write_text(COORDINATION_NFG, encoding='utf-8')
        from_path = game_from_nfg(str(path))
        from_file = game_from_nfg(io.StringIO(COORDINATION_NFG))
        from_classmethod = NFGame.from_nfg(COORDINATION_NFG)
        for game in [from_path, from_file, from_classmethod]:
            assert game.payoffs()[0].tolist() == [[3, 0], [0, 2]]

    def test_three_players(self):
        content = 'NFG 1 R "" { "1" "2" "3" } { 2 1 2 }\n' + ' '.join(str(k) for k in range(12))
        game = game_from_nfg(content)
        assert list(game.nums_strategies) == [2, 1, 2]
        # first player's strategy changes fastest: profile (1, 0, 0) is listed second
        assert game.payoffs()[:, 1, 0, 0].tolist() == [3, 4, 5]
        assert game.payoffs()[:, 0, 0, 1].tolist() == [6, 7, 8]

    def test_rational_and_decimal_payoffs(self):
        game = game_from_nfg('NFG 1 R "" { "1" "2" } { 1 1 }\n1/3 -0.25')
        assert game.payoffs()[:, 0, 0].tolist() == [Fraction(1, 3), Fraction(-1, 4)]

    def test_malformed(self):
        with pytest.raises(MalformedGameError):
            game_from_nfg('EFG 2 R "" { "1" "2" }')
        with pytest.raises(MalformedGameError):
            game_from_nfg('NFG 1 R "" { "1" "2" } { 2 2 }\n1 2 3 4 5 6 7')
        with pytest.raises(MalformedGameError):
            game_from_nfg('NFG 1 R "" { "1" "2" } { 1 1 }\n1 x')

    def test_write_and_read(self):
        game = NFGame.from_bimatrix([[1, Fraction(1, 3)], [2, 0], [4, 5]], [[0, 1], [1, 0], [-2, 7]],
                                    player_labels=['Row', 'Column'])
        content = game_to_nfg(game, title='test')
        assert content.startswith('NFG 1 R "test"')
        again = game_from_nfg(content)
        assert (again.payoffs() == game.payoffs()).all()
        assert again.player_labels == game.player_labels
        assert again.strategy_labels == game.strategy_labels

    def test_exact_payoffs_survive_writing(self):
        game = NFGame.from_bimatrix([[Fraction(2, 7), 0], [Fraction(-5, 3), 1]], [[1, Fraction(1, 9)], [0, 0]])
        again = game_from_nfg(io.StringIO(game_to_nfg(game)))
        assert again.payoffs()[0, 0, 0] == Fraction(2, 7)
        assert again.payoffs()[1, 0, 1] == Fraction(1, 9)
        assert (again.payoffs() == game.payoffs()).all()


# %% test table format


class TestTableFormat:

    game = NFGame.from_bimatrix([[3, 0], [5, 1]], [[3, 5], [0, 1]], player_labels=['row', 'column'],
                                strategy_labels=[['C', 'D'], ['C', 'D']])

    def test_to_table(self):
        table = game_to_table(self.game)
        assert list(table.columns) == ['a_row', 'a_column', 'u_row', 'u_column']
        assert len(table) == 4
        assert table.iloc[2].tolist() == ['D', 'C', 5, 0]

    def test_dataframe_round_trip(self):
        game = game_from_table(game_to_table(self.game))
        assert (game.payoffs() == self.game.payoffs()).all()
        assert game.strategy_labels == self.game.strategy_labels

    def test_csv_file(self, tmp_path):
        path = tmp_path / 'game.csv'
        self.game.to_table().to_csv(path, index=False)
        game = NFGame.from_table(str(path))
        assert (game.payoffs() == self.game.payoffs()).all()

    def test_fraction_payoffs(self):
        table = pd.DataFrame({'a_1': ['x', 'y'], 'a_2': ['z', 'z'], 'u_1': ['1/3', 0.5], 'u_2': [1, 2]})
        game = game_from_table(table)
        assert game.payoffs()[0, :, 0].tolist() == [Fraction(1, 3), Fraction(1, 2)]

    def test_errors_are_collected(self):
        table = pd.DataFrame({'a_1': ['x', 'x', 'y'], 'a_2': ['z', 'z', 'w'], 'u_1': [1, 2, 3], 'u_2': [1, 2, 3]})
        with pytest.raises(MalformedGameError) as error:
            game_from_table(table)
        message = str(error.value)
        assert 'Duplicate strategy profile' in message
        assert 'Missing strategy profile' in message

    def test_missing_columns(self):
        with pytest.raises(MalformedGameError):
            game_from_table(pd.DataFrame({'u_1': [1]}))
        with pytest.raises(MalformedGameError):
            game_from_table(pd.DataFrame({'a_1': ['x'], 'u_2': [1]}))
        with pytest.raises(MalformedGameError):
            game_from_table('game.json')


# %% test rendering


class TestRenderer:

    game = NFGame.from_bimatrix([[3, 0], [0, 2]], [[2, 0], [0, 3]])

    def test_exact_weights(self):
        renderer = MixedStrategyCSVRenderer(io.StringIO())
        assert renderer.format(StrategyProfile(self.game, [[1, 0], [1, 0]])) == 'NE,1,0,1,0'
        mixed = StrategyProfile(self.game, [[Fraction(3, 5), Fraction(2, 5)], [Fraction(2, 5), Fraction(3, 5)]])
        assert renderer.format(mixed, 'convex-2') == 'convex-2,3/5,2/5,2/5,3/5'

    def test_float_weights(self):
        stream = io.StringIO()
        renderer = MixedStrategyCSVRenderer(stream, decimals=4)
        renderer.render(StrategyProfile(self.game, [[0.6, 0.4], [0.4, 0.6]], FloatDomain()))
        assert stream.getvalue() == 'NE,0.6000,0.4000,0.4000,0.6000\n'


# %% run


if __name__ == '__main__':

    for test_class in [TestNFGFormat(), TestTableFormat(), TestRenderer()]:
        method_names = [method for method in dir(test_class)
                        if callable(getattr(test_class, method))
                        if method.startswith('test_')]
        for method in method_names:
            getattr(test_class, method)()
