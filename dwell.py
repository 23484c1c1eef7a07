import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Optional

import config as cfg

logger = logging.getLogger(__name__)


@dataclass
class DwellSession:
    target_id: Hashable
    start_time_ms: int
    hold_duration_ms: int
    progress: float = 0.0
    mid_hold_fired: bool = False
    mid_hold_checked: bool = False

    on_progress: Callable[[float], Any] = field(default=None, repr=False)
    on_complete: Callable[[Hashable], Any] = field(default=None, repr=False)
    on_cancel: Callable[[Hashable, bool], Any] = field(default=None, repr=False)
    on_mid_hold: Optional[Callable[[Hashable], Any]] = field(default=None, repr=False)
    mid_hold_guard: Optional[Callable[[Hashable], bool]] = field(default=None, repr=False)


class DwellController:
    """
    "Hold on a target for D ms to fire", driven by explicit tick timestamps.

    At most one session exists at a time. The session is plain data (start
    time + duration), so nothing keeps running once it is cancelled.
    """

    def __init__(self, mid_hold_fraction: float = cfg.MID_HOLD_FRACTION):
        self.mid_hold_fraction = mid_hold_fraction
        self.session: Optional[DwellSession] = None

    @property
    def active(self) -> bool:
        return self.session is not None

    @property
    def progress(self) -> float:
        return self.session.progress if self.session is not None else 0.0

    def start(self, target_id, hold_duration_ms: int, now_ms: int,
              on_progress, on_complete, on_cancel,
              on_mid_hold=None, mid_hold_guard=None) -> bool:
        """
        Returns False (and changes nothing) if a session is already running.
        """
        if hold_duration_ms <= 0:
            raise ValueError(f"hold duration must be positive, got {hold_duration_ms}")
        if self.session is not None:
            return False

        self.session = DwellSession(
            target_id=target_id,
            start_time_ms=now_ms,
            hold_duration_ms=int(hold_duration_ms),
            on_progress=on_progress,
            on_complete=on_complete,
            on_cancel=on_cancel,
            on_mid_hold=on_mid_hold,
            mid_hold_guard=mid_hold_guard,
        )
        logger.debug("dwell start on %r for %d ms", target_id, hold_duration_ms)
        on_progress(0.0)
        return True

    def tick(self, now_ms: int):
        s = self.session
        if s is None:
            return

        elapsed = max(0, now_ms - s.start_time_ms)
        s.progress = min(1.0, elapsed / s.hold_duration_ms)

        if s.progress >= self.mid_hold_fraction and not s.mid_hold_checked:
            s.mid_hold_checked = True
            if s.on_mid_hold is not None and (s.mid_hold_guard is None or s.mid_hold_guard(s.target_id)):
                s.mid_hold_fired = True
                s.on_mid_hold(s.target_id)

        s.on_progress(s.progress)

        if s.progress >= 1.0:
            # Drop the session before firing so the callback may start a new one.
            self.session = None
            logger.debug("dwell complete on %r", s.target_id)
            s.on_complete(s.target_id)

    def cancel(self):
        s = self.session
        if s is None:
            return

        self.session = None
        logger.debug("dwell cancel on %r at %.2f (mid-hold fired=%s)", s.target_id, s.progress, s.mid_hold_fired)
        s.on_progress(0.0)
        s.on_cancel(s.target_id, s.mid_hold_fired)
