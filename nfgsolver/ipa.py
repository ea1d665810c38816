"""Iterated polymatrix approximation (IPA) for n-player normal form games."""

import time
import warnings
from datetime import timedelta
from typing import List, Optional, Union

import numpy as np

from .domain import FloatDomain, contract
from .dominance import eliminate_dominated
from .lcp import lemke, LCPError
from .nfgame import NFGame, StrategyProfile

UNSOLVED = 'unsolved'
ITERATING = 'iterating'
SOLVED = 'solved'
NOT_CONVERGED = 'not converged'


class IPA:
    """Approximates a single Nash equilibrium by iterating polymatrix approximations of the game.

    Given:  A game with n players and a starting profile sigma.

    Idea:   Around sigma, player i's payoff is approximated by a polymatrix game, i.e. a sum of two-player
            interactions: P_ij[s_i, s_j] = u_i(s_i, s_j, sigma_-ij). The approximate payoff of i's pure strategies
            against a profile z is
                v_i(z) = sum_(j != i) P_ij z_j - (n-2) u_i(., sigma_-i),
            which coincides with the true payoffs at z = sigma. Each iteration
            1) solves the polymatrix game at sigma for an equilibrium z: first on the supports of the previous
               solution and of sigma (a linear system; near a regular equilibrium this is a Newton step), else
               by Lemke's algorithm on the polymatrix LCP, started from prior sigma,
            2) moves toward it, sigma' = sigma + step * (z - sigma),
            3) accepts sigma' if its own polymatrix equilibrium z' is closer, max|z' - sigma'| < max|z - sigma|;
               otherwise the step is damped and retried. Once the step falls below min_step, the iteration
               restarts from a random profile.
            sigma is a Nash equilibrium exactly if it is an equilibrium of its own polymatrix approximation, so
            the solver stops once max|z - sigma| < convergence_tol. Payoffs are scaled to unit range beforehand.

    Main inputs
    -----------
    game : NFGame
    initial_strategies : str or np.ndarray, optional
        'centroid' (default), 'random' (seeded by seed), or a profile: either a padded array of shape
        (num_players, num_strategies_max) or a list of per-player weight vectors.
    seed : int, optional
        Seeds the random initial profile and the profiles of restarts.
    eliminate : bool, optional
        If True, strictly dominated strategies are removed first; they receive weight zero in the result.
    parameters : dict
        Parameters overriding the defaults, may alternatively be passed as kwargs.
        Method .set_parameters() allows to adjust parameters after construction.
        Presets: IPA.default_parameters, IPA.robust_parameters (shorter steps, more restarts and iterations).

        The parameters are:
        ----------
        step_size : float
            Initial and maximal step toward the polymatrix equilibrium, in (0, 1]. Defaults to 1 (full step).
        damping : float
            Factor by which the step shrinks after a rejected trial (and grows back after an accepted one),
            in (0, 1). Defaults to 0.5.
        min_step : float
            Step length below which the solver restarts from a random profile, defaults to 1e-3.
        max_restarts : int
            Maximum number of restarts, defaults to 20. Exceeding it is reported as non-convergence.
        convergence_tol : float
            The solver stops once max(|z - sigma|) < convergence_tol. Defaults to 1e-10.
        max_iterations : int
            Maximum number of iterations (trial steps), defaults to 1000. Exceeding it is reported as
            non-convergence.
        verbose : int
            0: silent; 1: progress and result report (default).
    """

    default_parameters = {
        'step_size': 1.0,
        'damping': 0.5,
        'min_step': 1e-3,
        'max_restarts': 20,
        'convergence_tol': 1e-10,
        'max_iterations': 1000,
        'verbose': 1,
    }

    robust_parameters = {
        'step_size': 0.5,
        'damping': 0.7,
        'min_step': 1e-5,
        'max_restarts': 200,
        'convergence_tol': 1e-10,
        'max_iterations': 50000,
        'verbose': 1,
    }

    # tolerance for accepting a solution of the indifference conditions as polymatrix equilibrium
    equilibrium_tol = 1e-9

    def __init__(self, game: NFGame, initial_strategies: Union[str, np.ndarray, list] = 'centroid',
                 seed: Optional[int] = None, eliminate: bool = False, store_path: bool = False,
                 parameters: dict = None, **kwargs) -> None:
        self.original_game = game
        self.domain = FloatDomain()
        self.reduced = eliminate_dominated(game, self.domain, eliminate=eliminate, verbose=0)
        self.game = self.reduced.game

        for key, value in self.default_parameters.items():
            setattr(self, key, value)
        self.set_parameters(parameters, **kwargs)

        u = self.game.u
        u_range = u.max(axis=tuple(range(1, u.ndim)), keepdims=True) - u.min(axis=tuple(range(1, u.ndim)),
                                                                            keepdims=True)
        u_range[u_range == 0] = 1
        self.u_scaled = u / u_range

        self._rng = np.random.default_rng(seed)
        self.sigma = self._initial_profile(initial_strategies, seed)
        self.target = None
        self.iteration = 0
        self.update = np.inf
        self.step_length = self.step_size
        self.restarts = 0
        self.state = UNSOLVED
        self.start_time = None

        self.store_path = store_path
        self.path = IPAPath(self) if store_path else None

    def set_parameters(self, params: dict = None, **kwargs):
        """Set multiple parameters at once, given as dictionary and/or as kwargs."""
        params = params or {}
        inputs = {**params, **kwargs}
        for key, value in inputs.items():
            if key not in self.default_parameters:
                raise ValueError(f'"{key}" is not a valid parameter.')
            setattr(self, key, value)
        if not 0 < self.damping < 1:
            raise ValueError(f'damping must be in (0, 1), got {self.damping}.')
        if not 0 < self.step_size <= 1:
            raise ValueError(f'step_size must be in (0, 1], got {self.step_size}.')
        if self.min_step <= 0:
            raise ValueError(f'min_step must be positive, got {self.min_step}.')

    def _initial_profile(self, initial_strategies, seed) -> List[np.ndarray]:
        if isinstance(initial_strategies, str):
            if initial_strategies == 'centroid':
                padded = self.game.centroid_strategy()
            elif initial_strategies == 'random':
                padded = self.game.random_strategy(seed=seed)
            else:
                raise ValueError(f'"{initial_strategies}" is not a valid initial strategy. '
                                 f'Allowed are "centroid", "random" or a strategy profile.')
            return [sigma.astype(np.float64) for sigma in self.game.split_strategies(padded)]

        if isinstance(initial_strategies, StrategyProfile):
            initial_strategies = initial_strategies.strategies
        if isinstance(initial_strategies, np.ndarray) and initial_strategies.ndim == 2:
            strategies = self.reduced.original.split_strategies(initial_strategies)
        else:
            strategies = list(initial_strategies)
        if len(strategies) != self.original_game.num_players:
            raise ValueError(f'Initial profile has {len(strategies)} strategies, '
                             f'but the game has {self.original_game.num_players} players.')
        strategies = [np.asarray(sigma, dtype=np.float64)[:n]
                      for sigma, n in zip(strategies, self.original_game.nums_strategies)]
        dropped = [p for p, sigma in enumerate(strategies) if (sigma[self.reduced.eliminated(p)] > 0).any()]
        if dropped:
            warnings.warn(f'Initial profile puts weight on dominated strategies of players {dropped}; '
                          'these weights are dropped.')
        strategies = self.reduced.from_original(strategies, self.domain)
        profile = []
        for p, sigma in enumerate(strategies):
            if (sigma < 0).any() or sigma.sum() <= 0:
                raise ValueError(f'Initial strategy of {self.game.player_labels[p]} is not a probability vector.')
            profile.append(sigma / sigma.sum())
        return profile

    def solve(self, renderer=None, intermediate: bool = False) -> 'IPAResult':
        """Main loop. Returns an IPAResult; non-convergence is reported in the result, not raised.

        renderer : optional object with method render(profile, label). With intermediate=True, every iterate is
            passed to it with label 'IPA'.
        """
        if self.verbose >= 1:
            print('=' * 50)
            print('Start iterated polymatrix approximation')
        self.start_time = time.perf_counter()
        self.state = ITERATING
        self.step_length = self.step_size
        self.target = self.polymatrix_equilibrium(self.sigma, self._supports(self.sigma))
        self.update = self._distance(self.sigma, self.target)

        # try-except block: exiting the loop without convergence raises NonConvergenceError
        try:
            while True:
                self.iteration += 1
                converged = self.update < self.convergence_tol
                if converged:
                    self.sigma = self.target
                else:
                    self.step()

                if self.store_path:
                    self.path.update()
                if self.verbose >= 1:
                    self._report_step()
                if intermediate and renderer is not None:
                    renderer.render(self.profile(), 'IPA')

                if converged:
                    self.state = SOLVED
                    return self._report_result()
                if not all(np.isfinite(sigma).all() for sigma in self.sigma):
                    raise NonConvergenceError('numerical')
                if self.iteration >= self.max_iterations:
                    raise NonConvergenceError('max_iterations')

        except NonConvergenceError as exception:
            self.state = NOT_CONVERGED
            return self._report_result(exception=exception)

    def step(self):
        """One trial step toward the polymatrix equilibrium; accepted if the trial profile is closer to the
        equilibrium of its own approximation, damped otherwise."""
        if self.target is None:
            self.restart()
            return
        trial = [sigma + self.step_length * (z - sigma) for sigma, z in zip(self.sigma, self.target)]
        target = self.polymatrix_equilibrium(trial, self._supports(self.target, trial))
        distance = self._distance(trial, target)
        if distance < self.update:
            self.sigma, self.target, self.update = trial, target, distance
            self.step_length = min(self.step_size, self.step_length / self.damping)
        else:
            self.step_length *= self.damping
            if self.step_length < self.min_step:
                self.restart()

    def restart(self):
        """Continue from a random profile."""
        if self.restarts >= self.max_restarts:
            raise NonConvergenceError('restarts')
        self.restarts += 1
        padded = self.game.random_strategy(seed=self._rng.integers(2 ** 32))
        self.sigma = [sigma.astype(np.float64) for sigma in self.game.split_strategies(padded)]
        self.target = self.polymatrix_equilibrium(self.sigma, self._supports(self.sigma))
        self.update = self._distance(self.sigma, self.target)
        self.step_length = self.step_size

    def polymatrix_equilibrium(self, sigma: List[np.ndarray], supports=()) -> Optional[List[np.ndarray]]:
        """Nash equilibrium of the polymatrix approximation at sigma, or None if none was found.

        The given supports are tried first; then Lemke's algorithm runs with prior sigma.
        """
        polymatrix, offsets = self.polymatrix(sigma)
        for support in supports:
            z = self._support_equilibrium(polymatrix, offsets, support)
            if z is not None:
                return z
        try:
            return self._lemke_equilibrium(polymatrix, offsets, sigma)
        except LCPError:
            return None

    def polymatrix(self, sigma: List[np.ndarray]):
        """Polymatrix approximation of the (scaled) game around sigma.

        Returns polymatrix[i][j] (matrix P_ij with rows s_i, columns s_j; None for j == i) and offsets[i],
        the term (n-2) u_i(., sigma_-i).
        """
        num_players = self.game.num_players
        polymatrix = [[None] * num_players for _ in range(num_players)]
        offsets = []
        for i in range(num_players):
            for j in range(num_players):
                if j == i:
                    continue
                matrix = contract(self.u_scaled[i], sigma, skip=(i, j))
                polymatrix[i][j] = matrix if i < j else matrix.T
            offsets.append((num_players - 2) * contract(self.u_scaled[i], sigma, skip=(i,)))
        return polymatrix, offsets

    @staticmethod
    def _approximate_payoffs(polymatrix, offsets, z, i) -> np.ndarray:
        values = -offsets[i]
        for j, matrix in enumerate(polymatrix[i]):
            if matrix is not None:
                values = values + matrix.dot(z[j])
        return values

    def _support_equilibrium(self, polymatrix, offsets, support) -> Optional[List[np.ndarray]]:
        """Solve the indifference conditions of the polymatrix game on the given supports.

        Unknowns are the weights on the supports and one value mu_i per player:
            v_i(z)[s] = mu_i for s in support_i,  sum(z_i) = 1.
        The solution is returned only if it is an equilibrium: weights nonnegative and no strategy outside the
        support earning more than mu_i.
        """
        num_players = self.game.num_players
        starts = np.cumsum([0] + [len(s) for s in support])
        dim = starts[-1] + num_players
        matrix = np.zeros((dim, dim))
        rhs = np.zeros(dim)
        row = 0
        for i in range(num_players):
            for s in support[i]:
                for j in range(num_players):
                    if j != i:
                        matrix[row, starts[j]:starts[j + 1]] = polymatrix[i][j][s, support[j]]
                matrix[row, starts[-1] + i] = -1
                rhs[row] = offsets[i][s]
                row += 1
        for i in range(num_players):
            matrix[row, starts[i]:starts[i + 1]] = 1
            rhs[row] = 1
            row += 1

        try:
            solution = np.linalg.solve(matrix, rhs)
        except np.linalg.LinAlgError:
            return None
        if not np.isfinite(solution).all():
            return None

        z = []
        for i, n in enumerate(self.game.nums_strategies):
            weights = solution[starts[i]:starts[i + 1]]
            if (weights < -self.equilibrium_tol).any():
                return None
            z_i = np.zeros(n)
            z_i[support[i]] = np.maximum(weights, 0)
            if z_i.sum() <= 0:
                return None
            z.append(z_i / z_i.sum())
        for i in range(num_players):
            values = self._approximate_payoffs(polymatrix, offsets, z, i)
            if values.max() > values[support[i]].min() + self.equilibrium_tol:
                return None
        return z

    def _lemke_equilibrium(self, polymatrix, offsets, prior) -> List[np.ndarray]:
        """Equilibrium of the polymatrix game by Lemke's algorithm.

        With costs C = level - payoffs (level large enough to make C positive; the own block carries the
        offsets), an equilibrium solves the LCP in (x, lambda)
            C x - E lambda >= 0,  E'x - 1 >= 0,  complementary to x >= 0 and lambda >= 0,
        where E assigns strategies to players. M = [[C, -E], [E', 0]] is copositive-plus, so Lemke's algorithm
        finds a solution. The covering vector (C prior, 1) makes the path a linear tracing procedure: for
        artificial level t, every player best responds to t * prior + (1 - t) * x.
        """
        num_players = self.game.num_players
        starts = np.cumsum([0] + [int(n) for n in self.game.nums_strategies])
        total = starts[-1]
        blocks = [matrix for row in polymatrix for matrix in row if matrix is not None]
        level = 1 + max([0.0] + [matrix.max() for matrix in blocks] + [(-offset).max() for offset in offsets])

        costs = np.full((total, total), level)
        incidence = np.zeros((total, num_players))
        for i in range(num_players):
            rows = slice(starts[i], starts[i + 1])
            costs[rows, rows] += offsets[i][:, np.newaxis]
            incidence[rows, i] = 1
            for j in range(num_players):
                if j != i:
                    costs[rows, starts[j]:starts[j + 1]] -= polymatrix[i][j]

        M = np.block([[costs, -incidence], [incidence.T, np.zeros((num_players, num_players))]])
        q = np.concatenate([np.zeros(total), -np.ones(num_players)])
        d = np.concatenate([costs.dot(np.concatenate(prior)), np.ones(num_players)])
        weights = lemke(M, q, d)[:total]

        z = []
        for i in range(num_players):
            z_i = weights[starts[i]:starts[i + 1]]
            if z_i.sum() <= 0:
                raise LCPError(f'Lemke solution has no weight for player {i}.')
            z.append(z_i / z_i.sum())
        return z

    @staticmethod
    def _supports(*profiles) -> list:
        """Distinct supports of the given profiles, in order."""
        supports = []
        for profile in profiles:
            support = [np.nonzero(sigma > 0)[0] for sigma in profile]
            if not any(all(np.array_equal(a, b) for a, b in zip(support, known)) for known in supports):
                supports.append(support)
        return supports

    @staticmethod
    def _distance(sigma, target) -> float:
        if target is None:
            return np.inf
        return max(np.abs(z - s).max() for z, s in zip(target, sigma))

    def profile(self) -> StrategyProfile:
        """Current iterate as profile of the original game (eliminated strategies with weight zero)."""
        return StrategyProfile(self.original_game, self.reduced.to_original(self.sigma, self.domain), self.domain)

    def plot_path(self, **kwargs):
        if not self.path:
            print('No path stored. Set store_path=True before solving.')
            return
        return self.path.plot(**kwargs)

    def _report_step(self):
        print(f'\rIteration {self.iteration:6d}: distance to polymatrix equilibrium = {self.update:#8.4g}, '
              f'step = {self.step_length:#6.3g}, restarts = {self.restarts}', end='', flush=True)

    def _report_result(self, exception=None) -> 'IPAResult':
        """Return the result; print message if verbose."""
        time_sec = time.perf_counter() - self.start_time
        profile = self.profile()

        if self.verbose >= 1:
            if exception is None:
                print(f'\nIteration {self.iteration:6d}: Approximation converged. ', end='')
            else:
                print(f'\nIteration {self.iteration:6d}: Failure reason: {exception.message}')
                print(f'Iteration {self.iteration:6d}: Approximation did not converge. ', end='')
            print(f'Total time elapsed: {timedelta(seconds=int(time_sec))}')
            print('End iterated polymatrix approximation')
            print('=' * 50)

        return IPAResult(profile=profile,
                         converged=exception is None,
                         iterations=self.iteration,
                         update=self.update,
                         time=time_sec,
                         failure_reason=None if exception is None else exception.reason,
                         restarts=self.restarts)


class IPAResult:
    """Outcome of IPA.solve(): the last iterate and whether it converged."""

    def __init__(self, profile: StrategyProfile, converged: bool, iterations: int, update: float,
                 time: float, failure_reason: Optional[str] = None, restarts: int = 0) -> None:
        self.profile = profile
        self.converged = converged
        self.iterations = iterations
        self.update = update
        self.time = time
        self.failure_reason = failure_reason
        self.restarts = restarts

    @property
    def regret(self) -> np.ndarray:
        return self.profile.regret

    def __repr__(self):
        status = 'converged' if self.converged else f'not converged: {self.failure_reason}'
        return f'IPAResult({status}, iterations={self.iterations}, profile={self.profile.to_list(6)})'


class NonConvergenceError(Exception):
    """Exception raised inside the main loop of IPA to exit it without convergence."""
    def __init__(self, reason):
        self.reason = reason
        if reason == 'max_iterations':
            self.message = 'Maximum number of iterations reached without convergence. ' \
                           '(Try IPA.robust_parameters, or increase max_iterations.)'
        elif reason == 'restarts':
            self.message = 'Maximum number of restarts reached without convergence. ' \
                           '(Try IPA.robust_parameters, or increase max_restarts.)'
        elif reason == 'numerical':
            self.message = 'Iterates are no longer finite numbers.'
        else:
            self.message = 'Something unexpected happened.'

        super().__init__(self, self.message)

    def __str__(self):
        return self.message


class IPAPath:
    """Container to store the iterates of the specified solver instance."""

    def __init__(self, solver: IPA, max_steps: int = 1000):
        self.solver = solver
        self.max_steps = max_steps
        self.num_weights = solver.game.num_strategies_total

        self.sigma = np.nan * np.empty(shape=(max_steps, self.num_weights))
        self.update_size = np.nan * np.empty(shape=max_steps)
        self.iteration = np.nan * np.empty(shape=max_steps)

        self.index = 0
        self.downsample_frequency = 10

    def update(self):
        """Store current state of solver."""
        self.sigma[self.index] = np.concatenate(self.solver.sigma)
        self.update_size[self.index] = self.solver.update
        self.iteration[self.index] = self.solver.iteration

        self.index += 1
        if self.index >= self.max_steps:
            self.downsample(self.downsample_frequency)

    def downsample(self, frequency):
        """Free up space by keeping only a subset of existing data with specified sampling frequency."""
        cutoff = len(self.iteration[::frequency])
        for variable in [self.sigma, self.update_size, self.iteration]:
            variable[:cutoff] = variable[::frequency]
            variable[cutoff:] = np.nan
        self.index = cutoff

    def plot(self, max_plotted: int = 1000):
        """Plot strategy weights and update size against iterations."""
        try:
            import matplotlib.pyplot as plt
        except ModuleNotFoundError:
            print('Missing the python package matplotlib. Please install to plot.')
            return

        sample_freq = int(np.ceil(self.index / max_plotted)) if self.index > max_plotted else 1
        rows = slice(0, self.index, sample_freq)
        iterations = self.iteration[rows]

        fig = plt.figure(figsize=(10, 4))
        ax1 = fig.add_subplot(121)
        ax1.set_title('Strategy weights')
        ax1.set_xlabel('iteration')
        ax1.set_ylabel(r'$\sigma_{i,s}$')
        ax1.set_ylim(0, 1)
        game = self.solver.game
        labels = [f'{game.player_labels[p]} {a}' for p in range(game.num_players) for a in game.strategy_labels[p]]
        ax1.plot(iterations, self.sigma[rows])
        if len(labels) <= 10:
            ax1.legend(labels)
        ax1.grid()
        ax2 = fig.add_subplot(122)
        ax2.set_title('Convergence')
        ax2.set_xlabel('iteration')
        ax2.set_ylabel(r'max $|\sigma^\prime - \sigma|$')
        ax2.set_yscale('log')
        ax2.plot(iterations, self.update_size[rows])
        ax2.grid()
        plt.tight_layout()
        plt.show()
        return fig
