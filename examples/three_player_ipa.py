"""Random three-player game: one equilibrium by iterated polymatrix approximation"""


import nfgsolver

game = nfgsolver.NFGame.random_game(num_players=3, num_strategies=[2, 3, 2], seed=17)

solver = nfgsolver.IPA(game, initial_strategies='centroid', store_path=True)
result = solver.solve()

print(result)
print(result.profile)

if not result.converged:
    # shorter steps, more restarts and iterations
    solver = nfgsolver.IPA(game, parameters=nfgsolver.IPA.robust_parameters)
    result = solver.solve()
    print(result)

# max regret should be close to zero
print(f'regret: {max(result.regret):.2e}')
