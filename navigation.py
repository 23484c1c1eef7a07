import json
import logging
from collections import namedtuple
from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Optional, Tuple, Union

import config as cfg
from minesweeper_game import BOARD_SIZES, MinesweeperGame
from session_store import Settings

logger = logging.getLogger(__name__)

MenuItem = namedtuple("MenuItem", ["id", "title", "subtitle"])

BACK = MenuItem("back", "Back", "Return to previous menu")

MENUS = {
    "main": ("Main Menu", [
        MenuItem("games", "Games", "Play a game"),
        MenuItem("settings", "Settings", "Customize the app to your preferences"),
        MenuItem("lock", "Lock", "Lock the app to rest"),
    ]),
    "games": ("Games", [
        MenuItem("minesweeper", "Minesweeper", "Clear the board without hitting a mine"),
        BACK,
    ]),
    "minesweeper": ("Minesweeper", [
        MenuItem("resume", "Resume", "Continue the saved game"),
        MenuItem("new-game", "New game", "Pick a difficulty and board size"),
        BACK,
    ]),
    "difficulty": ("Select Difficulty", [
        MenuItem("easy", "Easy", "Fewer mines, larger safe areas"),
        MenuItem("medium", "Medium", "Standard mine density"),
        MenuItem("hard", "Hard", "More mines, tighter spacing"),
        BACK,
    ]),
    "board-size": ("Select Board Size", [
        MenuItem(name, name.capitalize(), f"{rows}x{cols} board")
        for name, (rows, cols) in BOARD_SIZES.items()
    ] + [BACK]),
    "settings": ("Settings", [
        MenuItem("scroll-speed", "Scroll speed", "How long each option stays highlighted"),
        MenuItem("blink-threshold", "Blink threshold", "How long to close your eyes to select"),
        MenuItem("focus-area", "Focus area", "Size of the board area you pick from"),
        BACK,
    ]),
}

# Detail menus: menu id -> (title, Settings field)
SETTING_MENUS = {
    "scroll-speed": ("Scroll speed", "scroll_speed_sec"),
    "blink-threshold": ("Blink threshold", "blink_threshold_sec"),
    "focus-area": ("Focus area", "focus_area_size"),
}
SETTING_ITEMS = [
    MenuItem("decrease", "- Decrease -", ""),
    MenuItem("increase", "+ Increase +", ""),
    BACK,
]

# Where "exit game" lands, with "main" underneath it
GAME_EXIT_MENU = "games"


@dataclass(frozen=True)
class Viewport:
    """Inclusive row/column bounds of the play area."""

    start_row: int
    end_row: int
    start_col: int
    end_col: int

    @classmethod
    def centered(cls, row: int, col: int, size: int, rows: int, cols: int) -> Optional["Viewport"]:
        """
        A size x size window around (row, col), slid (never shrunk) to stay on the board.
        Returns None when the window would cover the whole board.
        """
        def span(center, n):
            if size >= n:
                return 0, n - 1
            start = max(0, min(center - size // 2, n - size))
            return start, start + size - 1

        r0, r1 = span(row, rows)
        c0, c1 = span(col, cols)
        if (r0, r1, c0, c1) == (0, rows - 1, 0, cols - 1):
            return None
        return cls(r0, r1, c0, c1)

    def contains(self, row: int, col: int) -> bool:
        return self.start_row <= row <= self.end_row and self.start_col <= col <= self.end_col


def play_area(viewport: Optional[Viewport], game: MinesweeperGame):
    if viewport is None:
        return range(game.rows), range(game.cols)
    return range(viewport.start_row, viewport.end_row + 1), range(viewport.start_col, viewport.end_col + 1)


@dataclass(frozen=True)
class MenuMode:
    name: ClassVar[str] = "menu"
    menu_id: str


@dataclass(frozen=True)
class Locked:
    name: ClassVar[str] = "locked"
    return_menu: str


@dataclass(frozen=True)
class RowSelect:
    name: ClassVar[str] = "rowSelect"
    viewport: Optional[Viewport]


@dataclass(frozen=True)
class ColSelect:
    name: ClassVar[str] = "colSelect"
    viewport: Optional[Viewport]
    row: int
    start_index: int = 0


@dataclass(frozen=True)
class SquareSelect:
    name: ClassVar[str] = "squareSelect"
    viewport: Viewport


@dataclass(frozen=True)
class GameOver:
    name: ClassVar[str] = "gameOver"
    won: bool


Mode = Union[MenuMode, Locked, RowSelect, ColSelect, SquareSelect, GameOver]
BOARD_MODES = (RowSelect, ColSelect, SquareSelect)

MENU = "menu"
ROW = "row"
CELL = "cell"
ACTION = "action"

ZOOM_OUT = "zoom-out"
EXIT_GAME = "exit-game"
PLAY_AGAIN = "play-again"

ACTION_LABELS = {
    ZOOM_OUT: "Zoom out",
    EXIT_GAME: "Exit game",
    PLAY_AGAIN: "Play again",
}


@dataclass(frozen=True)
class Target:
    kind: str
    value: Any
    label: str = field(default="", compare=False)


@dataclass(frozen=True)
class Persist:
    key: str
    value: str


@dataclass(frozen=True)
class Forget:
    key: str


@dataclass
class Session:
    settings: Settings = field(default_factory=Settings)
    mode: Mode = field(default_factory=lambda: MenuMode("main"))
    menu_stack: List[str] = field(default_factory=list)
    highlight: int = 0
    next_advance_ms: Optional[int] = None

    game: Optional[MinesweeperGame] = None
    # Last snapshot written to the store, None when nothing is saved
    saved_game: Optional[dict] = None
    pending_difficulty: str = "medium"
    # Cell flagged by the current hold's mid-hold toggle
    mid_hold_cell: Optional[Tuple[int, int]] = None


class NavigationStateMachine:
    def __init__(self, session: Optional[Session] = None, rng=None):
        self.session = session or Session()
        self.rng = rng

    # queries
    @property
    def mode(self) -> Mode:
        return self.session.mode

    @property
    def locked(self) -> bool:
        return isinstance(self.session.mode, Locked)

    def menu_items(self, menu_id: str) -> List[MenuItem]:
        if menu_id in SETTING_MENUS:
            return list(SETTING_ITEMS)
        items = MENUS[menu_id][1]
        if menu_id == "minesweeper" and self.session.saved_game is None:
            items = [item for item in items if item.id != "resume"]
        return list(items)

    def title(self) -> str:
        s = self.session
        mode = s.mode
        if isinstance(mode, MenuMode):
            if mode.menu_id in SETTING_MENUS:
                label, attr = SETTING_MENUS[mode.menu_id]
                value = getattr(s.settings, attr)
                return f"{label}: {value}" if attr == "focus_area_size" else f"{label}: {value:.1f} s"
            return MENUS[mode.menu_id][0]
        if isinstance(mode, Locked):
            return "Lock screen"
        if isinstance(mode, GameOver):
            return "You win!" if mode.won else "Game over"
        if isinstance(mode, ColSelect):
            return f"Row {mode.row + 1}: pick a column"
        return "Minesweeper"

    def board_actions(self, viewport: Optional[Viewport]) -> List[Target]:
        action = ZOOM_OUT if viewport is not None else EXIT_GAME
        return [Target(ACTION, action, ACTION_LABELS[action])]

    def targets(self) -> List[Target]:
        s = self.session
        mode = s.mode

        if isinstance(mode, MenuMode):
            return [Target(MENU, item.id, item.title) for item in self.menu_items(mode.menu_id)]

        if isinstance(mode, Locked):
            return []

        if isinstance(mode, GameOver):
            return [Target(ACTION, a, ACTION_LABELS[a]) for a in (PLAY_AGAIN, EXIT_GAME)]

        game = s.game
        rows, cols = play_area(mode.viewport, game)

        if isinstance(mode, RowSelect):
            found = [Target(ROW, r, f"Row {r + 1}") for r in rows if game.row_has_unrevealed(r, cols)]
            return found + self.board_actions(mode.viewport)

        if isinstance(mode, ColSelect):
            return [
                Target(CELL, (mode.row, c), f"Column {c + 1}")
                for c in cols
                if not game.revealed[mode.row][c]
            ]

        cells = [
            Target(CELL, (r, c), f"Row {r + 1}, column {c + 1}")
            for r in rows
            for c in cols
            if not game.revealed[r][c]
        ]
        return cells + self.board_actions(mode.viewport)

    def highlighted_target(self) -> Optional[Target]:
        targets = self.targets()
        if not targets:
            return None
        if self.session.highlight >= len(targets):
            self.session.highlight = 0
        return targets[self.session.highlight]

    def hold_duration_ms(self, target: Target) -> int:
        if target.kind == ACTION and target.value == EXIT_GAME:
            return int(cfg.EXIT_HOLD_SECONDS * 1000)
        if target.kind == ACTION and target.value == PLAY_AGAIN:
            return int(cfg.PLAY_AGAIN_HOLD_SECONDS * 1000)
        return self.session.settings.blink_threshold_ms

    # scanning
    def tick(self, now_ms: int, dwell_active: bool):
        """
        Auto-advance the highlight every scroll period; paused while a dwell is running.
        """
        s = self.session
        if self.locked:
            s.next_advance_ms = None
            return
        if dwell_active or s.next_advance_ms is None:
            s.next_advance_ms = now_ms + s.settings.scroll_speed_ms
            return
        if now_ms < s.next_advance_ms:
            return
        s.next_advance_ms = now_ms + s.settings.scroll_speed_ms
        self.advance()

    def advance(self):
        s = self.session
        targets = self.targets()
        if not targets:
            return
        s.highlight = (s.highlight + 1) % len(targets) if s.highlight < len(targets) else 0

        mode = s.mode
        if isinstance(mode, ColSelect) and s.highlight == mode.start_index:
            # Went all the way round without a pick: back to rows.
            logger.debug("column scan on row %d wrapped, back to row select", mode.row)
            s.mode = RowSelect(mode.viewport)
            s.highlight = 0

    # dwell hooks
    def mid_hold_allowed(self, target: Target) -> bool:
        game = self.session.game
        if target.kind != CELL or game is None or game.game_over:
            return False
        r, c = target.value
        return not game.revealed[r][c]

    def mid_hold(self, target: Target) -> list:
        """
        A hold on a cell toggles its flag a third of the way in.
        """
        s = self.session
        r, c = target.value
        result = s.game.toggle_flag(r, c)
        if result.denied:
            return []
        s.mid_hold_cell = (r, c)
        if s.game.game_over:
            return self._game_over(s.game.won)
        return [self._persist_game()]

    def cancelled(self, target: Target, mid_hold_fired: bool) -> list:
        s = self.session
        s.next_advance_ms = None
        s.mid_hold_cell = None
        if not mid_hold_fired or target.kind != CELL or not isinstance(s.mode, BOARD_MODES):
            return []

        # The flag stays; the play area follows the flagged cell.
        r, c = target.value
        self._enter_board(self._recentered(r, c))
        return [self._persist_game()]

    def activate(self, target: Target) -> list:
        """
        Runs the action for a completed dwell. Stale targets are ignored.
        """
        s = self.session
        s.next_advance_ms = None
        if target not in self.targets():
            logger.debug("ignoring stale target %r in %s", target, s.mode.name)
            s.mid_hold_cell = None
            return []

        logger.debug("activate %s %r in %s", target.kind, target.value, s.mode.name)
        if target.kind == MENU:
            return self._select_menu_item(target.value)
        if target.kind == ROW:
            s.mode = ColSelect(s.mode.viewport, row=target.value, start_index=0)
            s.highlight = 0
            return []
        if target.kind == CELL:
            return self._mine(*target.value)
        if target.value == ZOOM_OUT:
            s.mode = RowSelect(None)
            s.highlight = 0
            return []
        if target.value == EXIT_GAME:
            return self._exit_game()
        if target.value == PLAY_AGAIN:
            return self._play_again()
        raise ValueError(f"unknown target {target!r}")

    def unlock(self):
        mode = self.session.mode
        if isinstance(mode, Locked):
            logger.info("unlocked")
            self.session.mode = MenuMode(mode.return_menu)
            self.session.highlight = 0
            self.session.next_advance_ms = None

    # menu transitions
    def navigate_to(self, menu_id: str):
        s = self.session
        if isinstance(s.mode, MenuMode):
            s.menu_stack.append(s.mode.menu_id)
        s.mode = MenuMode(menu_id)
        s.highlight = 0
        logger.info("menu -> %s", menu_id)

    def navigate_back(self):
        s = self.session
        if s.menu_stack:
            s.mode = MenuMode(s.menu_stack.pop())
            s.highlight = 0
            logger.info("menu <- %s", s.mode.menu_id)

    def _select_menu_item(self, item_id: str) -> list:
        s = self.session
        menu_id = s.mode.menu_id

        if item_id == "back":
            self.navigate_back()
            return []

        if menu_id in SETTING_MENUS:
            attr = SETTING_MENUS[menu_id][1]
            s.settings = s.settings.adjusted(attr, 1 if item_id == "increase" else -1)
            logger.info("%s set to %s", attr, getattr(s.settings, attr))
            return [Persist(cfg.SETTINGS_KEY, s.settings.to_json())]

        if item_id == "lock":
            s.mode = Locked(return_menu=menu_id)
            s.highlight = 0
            logger.info("locked")
            return []

        if menu_id == "difficulty":
            s.pending_difficulty = item_id
            self.navigate_to("board-size")
            return []

        if menu_id == "board-size":
            game = MinesweeperGame(s.pending_difficulty, item_id, rng=self.rng)
            s.saved_game = None
            self.start_game(game)
            return [Forget(cfg.GAME_STATE_KEY)]

        if item_id == "resume":
            try:
                game = MinesweeperGame.restore(s.saved_game, rng=self.rng)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("saved game could not be resumed: %s", e)
                s.saved_game = None
                s.highlight = 0
                return [Forget(cfg.GAME_STATE_KEY)]
            self.start_game(game)
            return []

        if item_id == "new-game":
            self.navigate_to("difficulty")
            return []

        if item_id in MENUS or item_id in SETTING_MENUS:
            self.navigate_to(item_id)
            return []

        raise ValueError(f"unknown menu item {item_id!r} in {menu_id!r}")

    # game transitions
    def start_game(self, game: MinesweeperGame):
        s = self.session
        s.game = game
        s.menu_stack.clear()
        s.mid_hold_cell = None
        s.highlight = 0
        logger.info("minesweeper %s/%s (%dx%d, %d mines)",
                    game.difficulty, game.board_size, game.rows, game.cols, game.mine_count)
        if game.game_over:
            s.mode = GameOver(game.won)
            return
        size = s.settings.focus_area_size
        s.mode = RowSelect(Viewport.centered(game.rows // 2, game.cols // 2, size, game.rows, game.cols))

    def _recentered(self, row: int, col: int) -> Optional[Viewport]:
        game = self.session.game
        return Viewport.centered(row, col, self.session.settings.focus_area_size, game.rows, game.cols)

    def _enter_board(self, viewport: Optional[Viewport]):
        s = self.session
        if s.settings.focus_area_size == 3 and viewport is not None:
            s.mode = SquareSelect(viewport)
        else:
            s.mode = RowSelect(viewport)
        s.highlight = 0

    def _mine(self, row: int, col: int) -> list:
        s = self.session
        game = s.game

        # Undo the flag this same hold placed on its way to a full hold.
        if s.mid_hold_cell == (row, col) and game.flagged[row][col]:
            game.toggle_flag(row, col)
        s.mid_hold_cell = None

        game.reveal(row, col)
        if game.game_over:
            return self._game_over(game.won)

        self._enter_board(self._recentered(row, col))
        return [self._persist_game()]

    def _game_over(self, won: bool) -> list:
        s = self.session
        s.mode = GameOver(won)
        s.highlight = 0
        s.saved_game = None
        logger.info("game over (%s)", "won" if won else "lost")
        return [Forget(cfg.GAME_STATE_KEY)]

    def _exit_game(self) -> list:
        s = self.session
        finished = isinstance(s.mode, GameOver)
        s.game = None
        s.mid_hold_cell = None
        s.menu_stack = ["main"]
        s.mode = MenuMode(GAME_EXIT_MENU)
        s.highlight = 0
        logger.info("left minesweeper")
        if finished:
            s.saved_game = None
            return [Forget(cfg.GAME_STATE_KEY)]
        return []

    def _play_again(self) -> list:
        s = self.session
        old = s.game
        s.saved_game = None
        self.start_game(MinesweeperGame(old.difficulty, old.board_size, rng=self.rng))
        return [Forget(cfg.GAME_STATE_KEY)]

    def _persist_game(self) -> Persist:
        snapshot = self.session.game.snapshot()
        self.session.saved_game = snapshot
        return Persist(cfg.GAME_STATE_KEY, json.dumps(snapshot))
