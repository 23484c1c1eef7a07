import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import config as cfg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EyeSample:
    left_ratio: float
    right_ratio: float
    timestamp_ms: int


class EdgeKind(str, Enum):
    CLOSED_BOTH_START = "closedBothStart"
    CLOSED_ONE_START = "closedOneStart"
    OPEN = "open"


@dataclass(frozen=True)
class BlinkEdge:
    kind: EdgeKind
    left_closed: bool
    right_closed: bool
    # When the eye first tested closed, before debounce; None on open edges.
    closed_since_ms: Optional[int] = None

    @property
    def closed(self) -> bool:
        return self.kind is not EdgeKind.OPEN


class EyeStateTracker:
    """
    Turns per-frame eye-openness ratios into a debounced "eyes closed" signal.

    A closed eye is provisional until it has stayed closed for DEBOUNCE_MS.
    Opening is reported right away. observe() returns an edge only when the
    confirmed "either eye closed" state flips, otherwise None.
    """

    def __init__(self, ear_threshold: float = cfg.EAR_THRESHOLD, debounce_ms: int = cfg.DEBOUNCE_MS):
        self.ear_threshold = ear_threshold
        self.debounce_ms = debounce_ms
        self.reset()

    def reset(self):
        # Provisional closure start per eye; None while the eye tests open.
        self._left_since: Optional[int] = None
        self._right_since: Optional[int] = None

        self.left_closed = False
        self.right_closed = False
        self.both_open = True
        self._closed = False

    @property
    def either_closed(self) -> bool:
        return self._closed

    def is_closed(self, ratio: float) -> bool:
        return ratio < self.ear_threshold

    def _confirm(self, since: Optional[int], ratio: float, now: int):
        """
        Returns (new provisional start, confirmed closed) for one eye.
        """
        if not self.is_closed(ratio):
            return None, False
        if since is None:
            since = now
        return since, (now - since) >= self.debounce_ms

    def observe(self, sample: EyeSample) -> Optional[BlinkEdge]:
        now = sample.timestamp_ms

        self._left_since, self.left_closed = self._confirm(self._left_since, sample.left_ratio, now)
        self._right_since, self.right_closed = self._confirm(self._right_since, sample.right_ratio, now)

        # "Both open" is the raw reading, it also gates the next selection.
        self.both_open = self._left_since is None and self._right_since is None

        if self._closed:
            # Stays closed until both eyes test open, even if one eye reopened.
            if not self.both_open:
                return None
            self._closed = False
            kind = EdgeKind.OPEN
        elif self.left_closed and self.right_closed:
            self._closed = True
            kind = EdgeKind.CLOSED_BOTH_START
        elif self.left_closed or self.right_closed:
            self._closed = True
            kind = EdgeKind.CLOSED_ONE_START
        else:
            return None

        since = None
        if kind is not EdgeKind.OPEN:
            since = min(t for t in (self._left_since, self._right_since) if t is not None)

        logger.debug("eye edge %s at %d ms (L=%s R=%s)", kind.value, now, self.left_closed, self.right_closed)
        return BlinkEdge(kind, self.left_closed, self.right_closed, since)

    def force_open(self) -> Optional[BlinkEdge]:
        """
        Used when the face is lost: drops any closure and reports open if it was closed.
        """
        was_closed = self.either_closed
        self.reset()
        if was_closed:
            return BlinkEdge(EdgeKind.OPEN, False, False)
        return None
