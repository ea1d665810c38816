"""Console scripts nfgsolver-enummixed and nfgsolver-ipa.

Usage:
nfgsolver-enummixed [-d DECIMALS] [-D] [-L] [-c] [-q] [-v] [file]
nfgsolver-ipa [-d DECIMALS] [-q] [-V] [-s SEED] [-v] [file]

The game is read from file, or from standard input if no file is given: Gambit's .nfg format, or the tabular format
for files ending in .csv/.txt/.xlsx/.xls. Profiles are written to standard output as comma separated lines
"NE,w_1,w_2,...", with weights per player and strategy. Banner and errors go to standard error.
"""
import argparse
import sys

from nfgsolver import __version__
from nfgsolver.domain import NumericInstabilityError
from nfgsolver.enummixed import EnumMixed
from nfgsolver.ipa import IPA
from nfgsolver.nfgame import NFGame, MalformedGameError
from nfgsolver.utility.render import MixedStrategyCSVRenderer

ENUMMIXED_BANNER = ('Compute Nash equilibria by enumerating extreme points\n'
                    f'nfgsolver version {__version__}\n\n')

IPA_BANNER = ('Compute Nash equilibria using iterated polymatrix approximation\n'
              f'nfgsolver version {__version__}\n\n')

TABLE_EXTENSIONS = ('.csv', '.txt', '.xlsx', '.xls')


def read_game(filename: str = None, stdin=None) -> NFGame:
    """Read a game from filename (table or .nfg by extension), or from stdin in .nfg format."""
    if filename is None:
        return NFGame.from_nfg((stdin or sys.stdin).read())
    if filename.lower().endswith(TABLE_EXTENSIONS):
        return NFGame.from_table(filename)
    with open(filename, encoding='utf-8') as file:
        return NFGame.from_nfg(file)


def _base_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description,
                                     epilog='If file is not specified, attempts to read game from standard input.')
    parser.add_argument('file', nargs='?', default=None, help='game file (.nfg, or table as .csv/.txt/.xlsx/.xls)')
    parser.add_argument('-q', action='store_true', help='quiet mode (suppresses banner)')
    parser.add_argument('-v', '--version', action='store_true', help='print version information')
    return parser


def enummixed_main(argv=None) -> int:
    parser = _base_parser('nfgsolver-enummixed', 'Compute all extreme Nash equilibria of a two-player game. '
                                                 'With no options, reports all Nash equilibria found.')
    parser.add_argument('-d', type=int, default=None, metavar='DECIMALS',
                        help='compute using floating-point arithmetic; display results with DECIMALS digits')
    parser.add_argument('-D', action='store_true', help="don't eliminate dominated strategies first")
    parser.add_argument('-L', action='store_true', help='use Qhull (via scipy) for vertex enumeration')
    parser.add_argument('-c', action='store_true', help='output connectedness information')
    args = parser.parse_args(argv)

    if args.version:
        sys.stderr.write(ENUMMIXED_BANNER)
        return 1
    if not args.q:
        sys.stderr.write(ENUMMIXED_BANNER)

    try:
        game = read_game(args.file)
    except OSError as error:
        sys.stderr.write(f'{parser.prog}: {args.file}: {error.strerror}\n')
        return 1
    except MalformedGameError as error:
        sys.stderr.write(f'Error: {error}\n')
        return 1

    decimals = args.d if args.d is not None else 6
    renderer = MixedStrategyCSVRenderer(sys.stdout, decimals=decimals)
    try:
        solver = EnumMixed(game, rational=args.d is None, decimals=decimals, eliminate=not args.D,
                           engine='qhull' if args.L else 'pivoting', verbose=0)
        solution = solver.solve(renderer=renderer)
        if args.c:
            for label, profile in solution.labelled_cliques():
                renderer.render(profile, label)
    except (ValueError, NumericInstabilityError) as error:
        sys.stderr.write(f'Error: {error}\n')
        return 1
    return 0


def ipa_main(argv=None) -> int:
    parser = _base_parser('nfgsolver-ipa', 'Compute a Nash equilibrium using iterated polymatrix approximation.')
    parser.add_argument('-d', type=int, default=6, metavar='DECIMALS',
                        help='show equilibria as floating point with DECIMALS digits')
    parser.add_argument('-V', '--verbose', action='store_true', help='verbose mode (shows intermediate output)')
    parser.add_argument('-s', type=int, default=None, metavar='SEED',
                        help='start from a random profile drawn with SEED (default: centroid)')
    args = parser.parse_args(argv)

    if args.version:
        sys.stderr.write(IPA_BANNER)
        return 1
    if not args.q:
        sys.stderr.write(IPA_BANNER)

    try:
        game = read_game(args.file)
    except OSError as error:
        sys.stderr.write(f'{parser.prog}: {args.file}: {error.strerror}\n')
        return 1
    except MalformedGameError as error:
        sys.stderr.write(f'Error: {error}\n')
        return 1

    renderer = MixedStrategyCSVRenderer(sys.stdout, decimals=args.d)
    try:
        solver = IPA(game, initial_strategies='centroid' if args.s is None else 'random', seed=args.s, verbose=0)
    except ValueError as error:
        sys.stderr.write(f'Error: {error}\n')
        return 1
    result = solver.solve(renderer=renderer, intermediate=args.verbose)
    if not result.converged:
        sys.stderr.write(f'Error: Iterated polymatrix approximation did not converge after {result.iterations} '
                         f'iterations (last update {result.update:.3g}).\n')
        return 1
    renderer.render(result.profile, 'NE')
    return 0


def enummixed():
    sys.exit(enummixed_main())


def ipa():
    sys.exit(ipa_main())


if __name__ == '__main__':
    enummixed()
