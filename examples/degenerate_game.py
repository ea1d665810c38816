"""A degenerate game: a segment of equilibria, grouped into cliques"""


import nfgsolver
from nfgsolver.utility import MixedStrategyCSVRenderer

# against the row player's first strategy, the column player is indifferent
A = [[3, 3],
     [2, 5],
     [0, 6]]
B = [[3, 3],
     [2, 6],
     [3, 1]]

game = nfgsolver.NFGame.from_bimatrix(A, B)

renderer = MixedStrategyCSVRenderer()
solver = nfgsolver.EnumMixed(game, verbose=1)
solution = solver.solve(renderer=renderer)
# NE,1,0,0,1,0  NE,1,0,0,2/3,1/3  NE,0,1/3,2/3,1/3,2/3

# every convex combination of two extreme equilibria in the same clique is an equilibrium as well
for label, equilibrium in solution.labelled_cliques():
    renderer.render(equilibrium, label)

for k, clique in enumerate(solution.cliques):
    print(f'clique {k + 1}: {len(clique)} extreme equilibria')
