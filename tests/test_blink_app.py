import json
import random

import config as cfg
from blink_app import BlinkApp
from eye_state import EyeSample
from navigation import CELL, ColSelect, GameOver, Locked, MenuMode, RowSelect, Target, Viewport
from session_store import MemoryStore, SessionStore, Settings

OPEN = 0.33
SHUT = 0.08
STEP = 10


def run(app, closed, start, end):
    """Feeds one sample and one tick every STEP ms in [start, end)."""
    ratio = SHUT if closed else OPEN
    for t in range(start, end, STEP):
        app.on_eye_sample(EyeSample(ratio, ratio, t))
        app.on_tick(t)
    return end


def hold(app, start, duration):
    """Closes the eyes long enough for a dwell of `duration` ms, then opens them."""
    t = run(app, True, start, start + cfg.DEBOUNCE_MS + duration + STEP)
    return run(app, False, t, t + 50)


def new_app(settings=None, **data):
    store = MemoryStore(data)
    if settings is not None:
        store.set(cfg.SETTINGS_KEY, settings.to_json())
    return BlinkApp(store, rng=random.Random(5))


def test_hold_selects_highlighted_menu_option():
    app = new_app()
    t = run(app, False, 0, 100)
    assert app.render_state().targets[0] == "Games"

    hold(app, t, 300)

    assert app.session.mode == MenuMode("games")
    assert app.session.menu_stack == ["main"]


def test_selection_waits_for_debounce_then_hold():
    app = new_app()
    t = run(app, False, 0, 100)
    t = run(app, True, t, t + 100)
    assert not app.dwell.active

    t = run(app, True, t, t + 290)
    assert app.dwell.active
    assert 0.0 < app.render_state().progress < 1.0


def test_early_release_cancels_and_clears_progress():
    app = new_app()
    t = run(app, False, 0, 100)
    t = run(app, True, t, t + 250)
    assert app.dwell.active

    run(app, False, t, t + 20)

    assert not app.dwell.active
    assert app.render_state().progress == 0.0
    assert app.session.mode == MenuMode("main")


def test_eyes_must_reopen_between_selections():
    app = new_app()
    t = run(app, False, 0, 100)
    # Keep the eyes shut well past one full selection.
    run(app, True, t, t + 1500)

    assert app.session.mode == MenuMode("games")
    assert not app.eyes_were_open
    assert not app.dwell.active


def test_face_lost_cancels_and_blocks_until_eyes_open():
    app = new_app()
    t = run(app, False, 0, 100)
    t = run(app, True, t, t + 250)
    assert app.dwell.active

    app.on_face_lost()
    assert not app.dwell.active
    assert not app.tracker.either_closed

    # Eyes still shut when the face comes back: no new selection.
    t = run(app, True, t, t + 600)
    assert not app.dwell.active
    assert app.session.mode == MenuMode("main")


def test_scanning_advances_while_idle():
    app = new_app(Settings(scroll_speed_sec=0.5))
    run(app, False, 0, 1010)
    assert app.session.highlight == 2


def test_settings_change_is_persisted():
    app = new_app()
    app.nav.navigate_to("settings")
    app.nav.navigate_to("blink-threshold")
    app.session.highlight = 1

    hold(app, 0, 300)

    saved = Settings.from_json(app.store.get(cfg.SETTINGS_KEY))
    assert saved.blink_threshold_sec == 0.4
    assert app.session.settings.blink_threshold_sec == 0.4


def test_saved_settings_and_game_are_loaded(make_game):
    game = make_game([(0, 0), (0, 6), (6, 0), (3, 3)])
    app = new_app(
        Settings(focus_area_size=3),
        **{cfg.GAME_STATE_KEY: json.dumps(game.snapshot())}
    )
    assert app.session.settings.focus_area_size == 3
    assert app.session.saved_game == game.snapshot()


def test_corrupt_store_is_ignored():
    app = BlinkApp(MemoryStore({cfg.SETTINGS_KEY: "{", cfg.GAME_STATE_KEY: "[]"}))
    assert app.session.settings == Settings()
    assert app.session.saved_game is None


def test_short_hold_on_cell_flags_and_recenters(make_game):
    app = new_app()
    app.nav.start_game(make_game([(0, 0), (0, 6), (6, 0), (3, 3)]))
    app.session.mode = ColSelect(None, row=6)
    app.session.highlight = 6

    t = run(app, False, 0, 50)
    # Debounce (100) + a bit over a third of the 300 ms hold, then open.
    t = run(app, True, t, t + 100 + 130)
    assert app.session.game.flagged[6][6]
    run(app, False, t, t + 20)

    game = app.session.game
    assert game.flagged[6][6]
    assert not game.revealed[6][6]
    assert app.session.mode == RowSelect(Viewport(2, 6, 2, 6))
    assert json.loads(app.store.get(cfg.GAME_STATE_KEY))["flagged"][6][6]


def test_full_hold_on_cell_mines_it(make_game):
    app = new_app()
    app.nav.start_game(make_game([(0, 0), (0, 6), (6, 0), (3, 3)]))
    app.session.mode = ColSelect(None, row=6)
    app.session.highlight = 6

    t = run(app, False, 0, 50)
    hold(app, t, 300)

    game = app.session.game
    assert game.revealed[6][6]
    assert not game.flagged[6][6]
    assert app.session.mode == RowSelect(Viewport(2, 6, 2, 6))


def test_hitting_a_mine_clears_saved_game(make_game):
    app = new_app()
    app.nav.start_game(make_game([(0, 0), (0, 6), (6, 0), (3, 3)]))
    app.store.set(cfg.GAME_STATE_KEY, json.dumps(app.session.game.snapshot()))
    app.session.mode = ColSelect(None, row=3)
    app.session.highlight = 3
    assert app.nav.highlighted_target() == Target(CELL, (3, 3))

    hold(app, 0, 300)

    assert app.session.mode == GameOver(won=False)
    assert app.store.get(cfg.GAME_STATE_KEY) is None
    state = app.render_state()
    assert state.actions == ["Play again", "Exit game"]
    assert state.mode == "gameOver"


def sos(app, start):
    t = start
    for d in [250, 250, 250, 1100, 1100, 1100, 250, 250, 250]:
        t = run(app, True, t, t + d)
        t = run(app, False, t, t + 200)
    return t


def test_lock_then_sos_unlocks():
    app = new_app()
    app.session.highlight = 2
    t = run(app, False, 0, 50)
    t = hold(app, t, 300)
    assert app.session.mode == Locked(return_menu="main")
    assert app.render_state().lock_steps == 9

    t = sos(app, t)

    assert app.session.mode == MenuMode("main")


def test_short_dot_resets_the_lock_pattern():
    app = new_app()
    app.session.highlight = 2
    t = run(app, False, 0, 50)
    t = hold(app, t, 300)

    t = run(app, True, t, t + 250)
    t = run(app, False, t, t + 200)
    assert app.lock.step_index == 1

    # Long enough to pass the debounce, short of a 200 ms dot.
    t = run(app, True, t, t + 150)
    run(app, False, t, t + 200)
    assert app.lock.step_index == 0
    assert app.nav.locked


def test_locked_ignores_menu_selection():
    app = new_app()
    app.session.highlight = 2
    t = run(app, False, 0, 50)
    t = hold(app, t, 300)

    t = run(app, True, t, t + 400)
    assert not app.dwell.active
    assert app.lock.blinking
    assert app.render_state().lock_progress > 0
    run(app, False, t, t + 20)
    assert app.nav.locked
    assert app.lock.step_index == 1


class BrokenStore(SessionStore):
    def get(self, key):
        return None

    def set(self, key, value):
        raise OSError("read-only file system")

    def remove(self, key):
        raise OSError("read-only file system")


def test_failed_writes_are_logged_and_app_keeps_going(caplog):
    app = BlinkApp(BrokenStore(), rng=random.Random(5))
    app.nav.navigate_to("settings")
    app.nav.navigate_to("blink-threshold")
    app.session.highlight = 1

    t = hold(app, 0, 300)

    assert app.session.settings.blink_threshold_sec == 0.4
    assert app.session.mode == MenuMode("blink-threshold")
    assert "could not write" in caplog.text

    run(app, False, t, t + 600)
    assert app.session.highlight == 2


def test_failed_game_save_does_not_block_mining(make_game, caplog):
    app = BlinkApp(BrokenStore(), rng=random.Random(5))
    app.nav.start_game(make_game([(0, 0), (0, 6), (6, 0), (3, 3)]))
    app.session.mode = ColSelect(None, row=6)
    app.session.highlight = 6

    t = run(app, False, 0, 50)
    hold(app, t, 300)

    assert app.session.game.revealed[6][6]
    assert app.session.mode == RowSelect(Viewport(2, 6, 2, 6))
    assert "could not write" in caplog.text
