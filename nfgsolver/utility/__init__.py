from .nfg_conversion import game_from_table, game_to_table, game_from_nfg, game_to_nfg
from .render import MixedStrategyCSVRenderer
