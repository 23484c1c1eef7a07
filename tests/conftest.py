import random

import pytest

from minesweeper_game import MINE, MinesweeperGame


def build_game(mines, difficulty="easy", board_size="small"):
    """A game whose mines are already placed where the test wants them."""
    game = MinesweeperGame(difficulty, board_size, rng=random.Random(0))
    game.mines = set(mines)
    for r, c in game.mines:
        game.board[r][c] = MINE
    game.calculate_numbers()
    game.first_move_made = True
    return game


@pytest.fixture
def make_game():
    return build_game
