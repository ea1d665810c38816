import io
import itertools
import os
from fractions import Fraction
from typing import Union

import numpy as np
import pandas as pd
import pygambit as gbt

from nfgsolver.nfgame import NFGame, MalformedGameError


def game_from_table(table: Union[str, pd.DataFrame]) -> NFGame:
    """Convert files to DataFrame if needed, then parse the DataFrame to create an NFGame."""
    if isinstance(table, pd.DataFrame):
        df = table.copy()
        row_offset = 0
    elif isinstance(table, str):
        if table[-5:] == '.xlsx' or table[-4:] == '.xls':
            # read header and body separately; this will preserve duplicate column names
            # otherwise, pandas renames those, leading to cryptic error messages
            cols = pd.read_excel(table, header=None, nrows=1).values[0]
            df = pd.read_excel(table, header=None, skiprows=1, keep_default_na=False)
            df.columns = cols
            row_offset = 2
        elif table[-4:] in ['.csv', '.txt']:
            cols = pd.read_csv(table, header=None, nrows=1).values[0]
            df = pd.read_csv(table, header=None, skiprows=1, keep_default_na=False)
            df.columns = cols
            row_offset = 2
        else:
            raise MalformedGameError(f'"{table}": Unknown file extension. (Use any of .xlsx/.xls, .csv/.txt).')
    else:
        raise MalformedGameError('Table needs to be either a pandas DataFrame or a string containing a file path.')

    u, player_labels, strategy_labels = _dataframe_to_game(df, row_offset)
    return NFGame(u, player_labels=player_labels, strategy_labels=strategy_labels)


def _dataframe_to_game(df: pd.DataFrame, row_offset=0):
    """Function to actually parse the dataframe and convert the information to a payoff array."""
    # row_offset is to account for (i) header and (ii) 0-indexing; e.g. line 2 in .xlsx corresponds to index 0 of df

    # copy index to a column, so it is preserved over all merges
    df['idx_column'] = df.index

    # read players from a_-columns
    strategy_col_list = [col for col in df.columns if str(col)[:2] == 'a_']
    player_list = [str(col)[2:] for col in df.columns if str(col)[:2] == 'a_']
    if not player_list:
        raise MalformedGameError('Table has no "a_"-columns.')
    if len(player_list) != len(set(player_list)):
        raise MalformedGameError('"a_-"-columns contain duplicate player suffixes.')
    # assert that u_-column exists for each player extracted from a_-columns
    u_player_list = [str(col)[2:] for col in df.columns if str(col)[:2] == 'u_']
    if not set(player_list) == set(u_player_list):
        raise MalformedGameError('Player suffixes from "a_"-columns do not match player suffixes from "u_"-columns')
    u_col_list = ['u_' + player for player in player_list]

    strategy_lists = [df['a_' + player].unique().tolist() for player in player_list]
    nums_strategies = [len(strategy_list) for strategy_list in strategy_lists]
    u = np.empty([len(player_list)] + nums_strategies, dtype=object)

    error_list = []
    for index, strategy_profile in zip(np.ndindex(*nums_strategies), itertools.product(*strategy_lists)):
        # find all rows with matching strategy profile:
        rows = df.merge(pd.DataFrame((strategy_profile,), columns=strategy_col_list))
        # check for any errors, but finish parsing the table (so that all errors can be reported at once)
        if len(rows) == 0:
            error_list.append(f'Missing strategy profile > strategies: {", ".join(map(str, strategy_profile))}')
            continue
        elif len(rows) > 1:
            row_no = ", ".join(map(str, list(rows['idx_column'] + row_offset)))
            error_list.append(f'Duplicate strategy profile > strategies: {", ".join(map(str, strategy_profile))} '
                              f'> rows: {row_no}')
            continue
        try:
            u[(slice(None),) + index] = [_parse_number(value) for value in rows[u_col_list].iloc[0]]
        except ValueError:
            row_no = ", ".join(map(str, list(rows['idx_column'] + row_offset)))
            error_list.append(f'Format (u) > strategies: {", ".join(map(str, strategy_profile))} > row: {row_no}')

    if error_list:  # now, raise an error if any strategy profiles had issues:
        message = 'The table has missing or duplicate strategy profiles; or missing/illegal payoffs:'
        for error in error_list:
            message += '\n' + error
        raise MalformedGameError(message)

    return u, player_list, strategy_lists


def _parse_number(value) -> Fraction:
    """Payoff entry as exact fraction; accepts ints, floats, and strings like '3', '-1.5' or '2/3'."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError('empty payoff')
        return Fraction(value)
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            raise ValueError('missing payoff')
        return Fraction(repr(float(value)))
    return Fraction(int(value)) if isinstance(value, (int, np.integer)) else Fraction(value)


def game_to_table(game: NFGame) -> pd.DataFrame:
    """Convert NFGame to a DataFrame in the tabular format."""
    a_cols = [f'a_{p}' for p in game.player_labels]
    u_cols = [f'u_{p}' for p in game.player_labels]
    rows = []
    for index, strategy_profile in zip(np.ndindex(*game.nums_strategies), itertools.product(*game.strategy_labels)):
        u = [_format_number(x) for x in game.payoffs()[(slice(None),) + index]]
        rows.append(list(strategy_profile) + u)
    return pd.DataFrame(rows, columns=a_cols + u_cols)


def _format_number(value: Fraction):
    """Integers as int, other fractions as float if exactly representable, else as string 'p/q'."""
    if value.denominator == 1:
        return int(value)
    if Fraction(repr(float(value))) == value:
        return float(value)
    return str(value)


# %% Gambit .nfg format


def game_from_nfg(source) -> NFGame:
    """Read a game in Gambit's .nfg format (payoff or outcome variant) via pygambit.

    source can be a path, a file object, or the file content itself.
    """
    if hasattr(source, 'read'):
        content = source.read()
    elif isinstance(source, str) and not source.lstrip().startswith('NFG') and os.path.isfile(source):
        with open(source, encoding='utf-8') as file:
            content = file.read()
    else:
        content = source

    try:
        gambit_game = gbt.read_nfg(io.StringIO(content))
    except (ValueError, RuntimeError, OSError, IndexError) as error:
        raise MalformedGameError(f'Could not read .nfg content: {error}') from error

    players = list(gambit_game.players)
    player_labels = [player.label or str(p + 1) for p, player in enumerate(players)]
    strategy_labels = [[strategy.label or str(a + 1) for a, strategy in enumerate(player.strategies)]
                       for player in players]
    nums_strategies = [len(labels) for labels in strategy_labels]

    u = np.empty([len(players)] + nums_strategies, dtype=object)
    for index in np.ndindex(*nums_strategies):
        outcome = gambit_game[[players[p].strategies[a] for p, a in enumerate(index)]]
        if outcome is None:
            u[(slice(None),) + index] = [Fraction(0)] * len(players)
        else:
            u[(slice(None),) + index] = [Fraction(outcome[player]) for player in players]

    return NFGame(u, player_labels=player_labels, strategy_labels=strategy_labels)


def game_to_gambit(game: NFGame, title: str = '') -> gbt.Game:
    """Strategic form pygambit game with the labels and exact payoffs of game."""
    gambit_game = gbt.Game.new_table([int(n) for n in game.nums_strategies])
    gambit_game.title = title
    for p, player in enumerate(gambit_game.players):
        player.label = str(game.player_labels[p])
        for a, label in enumerate(game.strategy_labels[p]):
            player.strategies[a].label = str(label)

    payoffs = game.payoffs()
    for index in np.ndindex(*game.nums_strategies):
        outcome = gambit_game[tuple(int(a) for a in index)]
        for p, player in enumerate(gambit_game.players):
            outcome[player] = gbt.Rational(payoffs[(p,) + index])
    return gambit_game


def game_to_nfg(game: NFGame, title: str = '') -> str:
    """Content of an .nfg file for game, written by pygambit with exact payoffs."""
    return game_to_gambit(game, title).to_nfg()
