import logging
import math
import random
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

MINE = -1

# (rows, cols); "large" is tall and narrow to fit a portrait screen
BOARD_SIZES = {
    "small": (7, 7),
    "medium": (9, 9),
    "large": (16, 9),
}

MINE_DENSITY = {
    "easy": 0.10,
    "medium": 0.15,
    "hard": 0.20,
}


@dataclass(frozen=True)
class RevealResult:
    already_done: bool = False
    hit_mine: bool = False
    game_over: bool = False
    won: bool = False
    value: Optional[int] = None


@dataclass(frozen=True)
class FlagResult:
    denied: bool = False
    flagged: bool = False
    won: bool = False


def mine_count_for(rows: int, cols: int, difficulty: str) -> int:
    return math.floor(rows * cols * MINE_DENSITY[difficulty])


class MinesweeperGame:
    def __init__(self, difficulty="medium", board_size="small", rng=None):
        if difficulty not in MINE_DENSITY:
            raise ValueError(f"unknown difficulty: {difficulty!r}")
        if board_size not in BOARD_SIZES:
            raise ValueError(f"unknown board size: {board_size!r}")

        self.difficulty = difficulty
        self.board_size = board_size
        self.rows, self.cols = BOARD_SIZES[board_size]
        self.mine_count = mine_count_for(self.rows, self.cols, difficulty)
        self.rng = rng or random.Random()
        self.reset()

    def reset(self):
        # Mines are placed on the first reveal so the first move is always safe.
        self.board = [[0] * self.cols for _ in range(self.rows)]
        self.revealed = [[False] * self.cols for _ in range(self.rows)]
        self.flagged = [[False] * self.cols for _ in range(self.rows)]
        self.mines = set()
        self.game_over = False
        self.won = False
        self.first_move_made = False

    # helpers
    def in_bounds(self, row, col) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def _check(self, row, col):
        if not self.in_bounds(row, col):
            raise IndexError(f"cell ({row}, {col}) outside {self.rows}x{self.cols} board")

    def neighbors(self, row, col):
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if dr == 0 and dc == 0:
                    continue
                nr, nc = row + dr, col + dc
                if self.in_bounds(nr, nc):
                    yield nr, nc

    def is_revealed(self, row, col) -> bool:
        self._check(row, col)
        return self.revealed[row][col]

    def row_has_unrevealed(self, row, cols=None) -> bool:
        cols = range(self.cols) if cols is None else cols
        return any(not self.revealed[row][c] for c in cols)

    # mine placement
    def place_mines(self, safe_row, safe_col):
        """
        Scatters mines uniformly, keeping the first cell and its neighbours clear.
        """
        candidates = [
            (r, c)
            for r in range(self.rows)
            for c in range(self.cols)
            if abs(r - safe_row) > 1 or abs(c - safe_col) > 1
        ]
        count = min(self.mine_count, len(candidates))
        self.mines = set(self.rng.sample(candidates, count))
        for r, c in self.mines:
            self.board[r][c] = MINE
        self.calculate_numbers()
        self.first_move_made = True

    def calculate_numbers(self):
        for r in range(self.rows):
            for c in range(self.cols):
                if self.board[r][c] == MINE:
                    continue
                self.board[r][c] = sum(1 for nr, nc in self.neighbors(r, c) if self.board[nr][nc] == MINE)

    # moves
    def reveal(self, row, col) -> RevealResult:
        self._check(row, col)
        if self.game_over or self.revealed[row][col] or self.flagged[row][col]:
            return RevealResult(already_done=True)

        if not self.first_move_made:
            self.place_mines(row, col)

        if self.board[row][col] == MINE:
            self.game_over = True
            self.won = False
            self.revealed[row][col] = True
            self.reveal_all_mines()
            logger.info("mine hit at (%d, %d)", row, col)
            return RevealResult(hit_mine=True, game_over=True, won=False)

        self._flood_reveal(row, col)

        if self.check_win():
            self.game_over = True
            self.won = True
            logger.info("board cleared")
            return RevealResult(game_over=True, won=True, value=self.board[row][col])

        return RevealResult(value=self.board[row][col])

    def _flood_reveal(self, row, col):
        # Explicit work-list instead of recursion; flagged cells are never auto-revealed.
        stack = [(row, col)]
        while stack:
            r, c = stack.pop()
            if self.revealed[r][c]:
                continue
            self.revealed[r][c] = True
            if self.board[r][c] != 0:
                continue
            for nr, nc in self.neighbors(r, c):
                if not self.revealed[nr][nc] and not self.flagged[nr][nc]:
                    stack.append((nr, nc))

    def toggle_flag(self, row, col) -> FlagResult:
        self._check(row, col)
        if self.revealed[row][col] or self.game_over:
            return FlagResult(denied=True)

        self.flagged[row][col] = not self.flagged[row][col]

        if self.check_win():
            self.game_over = True
            self.won = True
            logger.info("board cleared by flag at (%d, %d)", row, col)

        return FlagResult(flagged=self.flagged[row][col], won=self.won)

    def check_win(self) -> bool:
        """
        Every mine flagged, no stray flags, every safe cell revealed, no mine revealed.
        """
        if not self.first_move_made:
            return False
        for r in range(self.rows):
            for c in range(self.cols):
                is_mine = (r, c) in self.mines
                if is_mine != self.flagged[r][c]:
                    return False
                if is_mine == self.revealed[r][c]:
                    return False
        return True

    def reveal_all_mines(self):
        for r, c in self.mines:
            self.revealed[r][c] = True

    # persistence
    def snapshot(self) -> dict:
        return {
            "difficulty": self.difficulty,
            "boardSize": self.board_size,
            "rows": self.rows,
            "cols": self.cols,
            "mineCount": self.mine_count,
            "board": [list(row) for row in self.board],
            "revealed": [list(row) for row in self.revealed],
            "flagged": [list(row) for row in self.flagged],
            "mines": sorted([r, c] for r, c in self.mines),
            "gameOver": self.game_over,
            "won": self.won,
            "firstMoveMade": self.first_move_made,
        }

    @classmethod
    def restore(cls, state: dict, rng=None) -> "MinesweeperGame":
        """
        Rebuilds a game from snapshot(); raises ValueError/KeyError/TypeError on bad data.
        """
        game = cls(state["difficulty"], state["boardSize"], rng=rng)

        def grid(key, kind):
            rows = state[key]
            if len(rows) != game.rows or any(len(row) != game.cols for row in rows):
                raise ValueError(f"{key} does not match a {game.rows}x{game.cols} board")
            return [[kind(v) for v in row] for row in rows]

        game.board = grid("board", int)
        game.revealed = grid("revealed", bool)
        game.flagged = grid("flagged", bool)
        game.mines = {(int(r), int(c)) for r, c in state["mines"]}
        game.game_over = bool(state["gameOver"])
        game.won = bool(state["won"])
        game.first_move_made = bool(state["firstMoveMade"])

        if game.first_move_made and len(game.mines) != game.mine_count:
            raise ValueError("saved mine list does not match mine count")
        for r, c in game.mines:
            if not game.in_bounds(r, c) or game.board[r][c] != MINE:
                raise ValueError(f"saved mine ({r}, {c}) is inconsistent with the board")
        return game
