"""Battle of the sexes: all extreme equilibria, exact and in floating point"""


import nfgsolver

# indices: [row, column]
A = [[3, 0],
     [0, 2]]
B = [[2, 0],
     [0, 3]]

game = nfgsolver.NFGame.from_bimatrix(A, B, player_labels=['Row', 'Column'],
                                      strategy_labels=[['Opera', 'Football'], ['Opera', 'Football']])

solution = nfgsolver.EnumMixed(game).solve()

for equilibrium in solution:
    print(equilibrium)
# two pure equilibria, and the mixed one: Row plays (3/5, 2/5), Column (2/5, 3/5)

# same game in floating point, with 4 decimals
solution = nfgsolver.EnumMixed(game, rational=False, decimals=4).solve()
print(solution.to_table())
