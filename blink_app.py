"""
Wires eye samples and ticks into the dwell controller, navigation and lock.

Entry points: on_eye_sample(sample), on_tick(now_ms), on_face_lost().
After each one the current RenderState is handed to `on_render` if set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from dwell import DwellController
from eye_state import BlinkEdge, EyeSample, EyeStateTracker
from lock_pattern import LockPatternMatcher
from navigation import (
    ACTION,
    CELL,
    ROW,
    ColSelect,
    Forget,
    NavigationStateMachine,
    Persist,
    Session,
    Target,
    Viewport,
)
from session_store import SessionStore, load_game, load_settings

logger = logging.getLogger(__name__)


@dataclass
class RenderState:
    mode: str
    title: str
    targets: List[str]
    highlight: int
    progress: float
    board: Optional[dict] = None
    viewport: Optional[Viewport] = None
    highlight_row: Optional[int] = None
    highlight_cell: Optional[Tuple[int, int]] = None
    selected_row: Optional[int] = None
    actions: List[str] = field(default_factory=list)
    highlight_action: Optional[str] = None
    lock_step: int = 0
    lock_steps: int = 0
    lock_progress: float = 0.0
    settings: dict = field(default_factory=dict)
    status: str = ""


class BlinkApp:
    def __init__(self, store: SessionStore, rng=None, on_render: Optional[Callable[[RenderState], None]] = None):
        self.store = store
        self.on_render = on_render

        session = Session(settings=load_settings(store))
        saved = load_game(store, rng=rng)
        session.saved_game = saved.snapshot() if saved is not None else None

        self.tracker = EyeStateTracker()
        self.dwell = DwellController()
        self.lock = LockPatternMatcher()
        self.nav = NavigationStateMachine(session, rng=rng)

        # A selection may only start after both eyes have been seen open.
        self.eyes_were_open = True
        self.progress = 0.0
        self.status = ""
        self.now_ms = 0

    @property
    def session(self) -> Session:
        return self.nav.session

    # entry points
    def on_eye_sample(self, sample: EyeSample):
        self.now_ms = max(self.now_ms, sample.timestamp_ms)
        edge = self.tracker.observe(sample)
        if self.tracker.both_open:
            self.eyes_were_open = True

        if edge is not None:
            if self.nav.locked:
                self._lock_edge(edge, sample.timestamp_ms)
            elif edge.closed:
                self._begin_selection(sample.timestamp_ms)
            else:
                self.dwell.cancel()
        self._render()

    def on_tick(self, now_ms: int):
        self.now_ms = max(self.now_ms, now_ms)
        self.dwell.tick(now_ms)
        if self.nav.locked:
            self.lock.tick(now_ms)
        self.nav.tick(now_ms, self.dwell.active)
        self._render()

    def on_face_lost(self):
        self.tracker.force_open()
        self.dwell.cancel()
        self.eyes_were_open = False
        if self.nav.locked:
            self.lock.reset()
        self._render()

    # selection
    def _begin_selection(self, now_ms: int):
        if not self.eyes_were_open or self.dwell.active:
            return
        target = self.nav.highlighted_target()
        if target is None:
            return

        on_mid_hold = None
        if target.kind == CELL:
            on_mid_hold = self._on_mid_hold

        self.dwell.start(
            target,
            self.nav.hold_duration_ms(target),
            now_ms,
            on_progress=self._on_progress,
            on_complete=self._on_complete,
            on_cancel=self._on_cancel,
            on_mid_hold=on_mid_hold,
            mid_hold_guard=self.nav.mid_hold_allowed,
        )

    def _on_progress(self, progress: float):
        self.progress = progress

    def _on_mid_hold(self, target: Target):
        self._apply(self.nav.mid_hold(target))

    def _on_complete(self, target: Target):
        # Eyes must reopen before the next selection can begin.
        self.eyes_were_open = False
        self.progress = 0.0
        was_locked = self.nav.locked
        self._apply(self.nav.activate(target))
        if self.nav.locked and not was_locked:
            self.lock.lock()

    def _on_cancel(self, target: Target, mid_hold_fired: bool):
        self._apply(self.nav.cancelled(target, mid_hold_fired))

    # lock
    def _lock_edge(self, edge: BlinkEdge, now_ms: int):
        if edge.closed:
            # Pattern timing starts when the eyes shut, not when the debounce confirmed it.
            self.lock.on_blink_start(edge.closed_since_ms)
            return
        if self.lock.on_eyes_open(now_ms):
            self.nav.unlock()

    # persistence
    def _apply(self, effects):
        for effect in effects:
            try:
                if isinstance(effect, Persist):
                    self.store.set(effect.key, effect.value)
                elif isinstance(effect, Forget):
                    self.store.remove(effect.key)
            except OSError as e:
                logger.warning("could not write %s: %s", effect.key, e)

    # view
    def render_state(self) -> RenderState:
        s = self.session
        mode = s.mode
        target = self.nav.highlighted_target()
        targets = self.nav.targets()

        state = RenderState(
            mode=mode.name,
            title=self.nav.title(),
            targets=[t.label for t in targets],
            highlight=s.highlight,
            progress=self.progress,
            settings={
                "scroll_speed_sec": s.settings.scroll_speed_sec,
                "blink_threshold_sec": s.settings.blink_threshold_sec,
                "focus_area_size": s.settings.focus_area_size,
            },
            status=self.status,
        )

        if s.game is not None:
            state.board = s.game.snapshot()
            state.viewport = getattr(mode, "viewport", None)
        if isinstance(mode, ColSelect):
            state.selected_row = mode.row
        if target is not None and target.kind == ROW:
            state.highlight_row = target.value
        if target is not None and target.kind == CELL:
            state.highlight_cell = target.value
        state.actions = [t.label for t in targets if t.kind == ACTION]
        if target is not None and target.kind == ACTION:
            state.highlight_action = target.label

        if self.nav.locked:
            state.lock_step = self.lock.step_index
            state.lock_steps = self.lock.steps
            state.lock_progress = self.lock.progress(self.now_ms)
        return state

    def _render(self):
        if self.on_render is not None:
            self.on_render(self.render_state())
