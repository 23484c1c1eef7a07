import logging
from typing import Optional

import config as cfg

logger = logging.getLogger(__name__)


class LockPatternMatcher:
    """
    Checks a timed dot/dash blink sequence (SOS by default) to unlock the app.

    Each blink must last at least the step's duration. Releasing early resets
    the pattern. Holding more than `overfill_seconds` past the step's duration
    resets it too, and then the eyes must open before another step can start.
    No success within `timeout_seconds` of the previous one also resets.
    """

    def __init__(self, pattern_seconds=cfg.SOS_PATTERN_SECONDS,
                 overfill_seconds: float = cfg.SOS_OVERFILL_SECONDS,
                 timeout_seconds: float = cfg.SOS_TIMEOUT_SECONDS):
        self.pattern_ms = [int(round(s * 1000)) for s in pattern_seconds]
        self.overfill_ms = int(round(overfill_seconds * 1000))
        self.timeout_ms = int(round(timeout_seconds * 1000))
        self.unlocked = False
        self.reset()

    def reset(self, require_eyes_open: bool = False):
        self.step_index = 0
        self.blink_start_ms: Optional[int] = None
        self.full_fill_ms: Optional[int] = None
        self.timeout_at_ms: Optional[int] = None
        self.require_eyes_open = require_eyes_open

    def lock(self):
        self.unlocked = False
        self.reset()

    @property
    def steps(self) -> int:
        return len(self.pattern_ms)

    @property
    def blinking(self) -> bool:
        return self.blink_start_ms is not None

    def expected_ms(self) -> int:
        return self.pattern_ms[self.step_index]

    def progress(self, now_ms: int) -> float:
        if self.blink_start_ms is None:
            return 0.0
        return min(1.0, max(0, now_ms - self.blink_start_ms) / self.expected_ms())

    def on_blink_start(self, now_ms: int):
        if self.unlocked or self.require_eyes_open or self.blink_start_ms is not None:
            return
        self.blink_start_ms = now_ms
        self.full_fill_ms = None

    def on_eyes_open(self, now_ms: int) -> bool:
        """
        Ends the current blink. Returns True when this blink completed the pattern.
        """
        self.require_eyes_open = False
        if self.unlocked or self.blink_start_ms is None:
            return False

        elapsed = now_ms - self.blink_start_ms
        expected = self.expected_ms()
        self.blink_start_ms = None
        self.full_fill_ms = None

        if elapsed < expected:
            logger.debug("lock step %d released early (%d < %d ms)", self.step_index, elapsed, expected)
            self.reset()
            return False
        if elapsed - expected > self.overfill_ms:
            # Released after the overfill window but before a tick noticed it.
            logger.debug("lock step %d overfilled (%d ms)", self.step_index, elapsed)
            self.reset()
            return False

        self.step_index += 1
        self.timeout_at_ms = now_ms + self.timeout_ms
        if self.step_index >= self.steps:
            self.unlocked = True
            self.reset()
            logger.info("unlock pattern accepted")
            return True
        return False

    def tick(self, now_ms: int):
        if self.unlocked:
            return

        if self.timeout_at_ms is not None and now_ms >= self.timeout_at_ms:
            logger.debug("lock pattern timed out at step %d", self.step_index)
            self.reset()
            return

        if self.blink_start_ms is None:
            return

        expected = self.expected_ms()
        if self.full_fill_ms is None and now_ms - self.blink_start_ms >= expected:
            self.full_fill_ms = self.blink_start_ms + expected

        if self.full_fill_ms is not None and now_ms - self.full_fill_ms > self.overfill_ms:
            logger.debug("lock step %d held too long, waiting for eyes open", self.step_index)
            self.reset(require_eyes_open=True)
