import pytest

from dwell import DwellController


class Recorder:
    def __init__(self):
        self.progress = []
        self.completed = []
        self.cancelled = []
        self.mid = []

    def kwargs(self, with_mid=True, guard=None):
        kw = dict(
            on_progress=self.progress.append,
            on_complete=self.completed.append,
            on_cancel=lambda target, fired: self.cancelled.append((target, fired)),
        )
        if with_mid:
            kw["on_mid_hold"] = self.mid.append
            kw["mid_hold_guard"] = guard
        return kw


def test_completes_exactly_at_hold_duration():
    dwell = DwellController()
    rec = Recorder()
    assert dwell.start("a", 300, 1000, **rec.kwargs())

    dwell.tick(1299)
    assert rec.progress[-1] < 1.0
    assert rec.completed == []
    assert dwell.active

    dwell.tick(1300)
    assert rec.completed == ["a"]
    assert not dwell.active

    dwell.tick(1400)
    assert rec.completed == ["a"]


def test_progress_is_wall_clock_fraction():
    dwell = DwellController()
    rec = Recorder()
    dwell.start("a", 400, 0, **rec.kwargs())
    dwell.tick(100)
    dwell.tick(200)
    assert rec.progress == [0.0, 0.25, 0.5]
    assert dwell.progress == 0.5


def test_second_start_is_ignored():
    dwell = DwellController()
    rec = Recorder()
    assert dwell.start("a", 300, 0, **rec.kwargs())
    assert not dwell.start("b", 300, 10, **rec.kwargs())
    assert dwell.session.target_id == "a"
    assert dwell.session.start_time_ms == 0


def test_cancel_reports_and_stops_ticks():
    dwell = DwellController()
    rec = Recorder()
    dwell.start("a", 300, 0, **rec.kwargs())
    dwell.tick(50)
    dwell.cancel()

    assert rec.cancelled == [("a", False)]
    assert rec.progress[-1] == 0.0
    assert not dwell.active

    count = len(rec.progress)
    dwell.tick(400)
    dwell.cancel()
    assert len(rec.progress) == count
    assert rec.completed == []
    assert rec.cancelled == [("a", False)]


def test_mid_hold_fires_once_at_a_third():
    dwell = DwellController()
    rec = Recorder()
    dwell.start("cell", 300, 0, **rec.kwargs())

    dwell.tick(90)
    assert rec.mid == []
    dwell.tick(150)
    dwell.tick(200)
    assert rec.mid == ["cell"]

    dwell.cancel()
    assert rec.cancelled == [("cell", True)]


def test_mid_hold_guard_checked_once():
    allowed = []
    dwell = DwellController()
    rec = Recorder()
    dwell.start("cell", 300, 0, **rec.kwargs(guard=lambda target: bool(allowed)))

    dwell.tick(120)
    allowed.append(True)
    dwell.tick(200)
    dwell.tick(300)

    assert rec.mid == []
    assert rec.completed == ["cell"]


def test_sparse_tick_fires_mid_hold_before_complete():
    order = []
    dwell = DwellController()
    dwell.start(
        "cell", 300, 0,
        on_progress=lambda p: None,
        on_complete=lambda t: order.append("complete"),
        on_cancel=lambda t, fired: order.append("cancel"),
        on_mid_hold=lambda t: order.append("mid"),
    )
    dwell.tick(1000)
    assert order == ["mid", "complete"]


def test_complete_callback_may_start_next_dwell():
    dwell = DwellController()
    rec = Recorder()

    def chain(target):
        rec.completed.append(target)
        dwell.start("b", 100, 300, **rec.kwargs())

    dwell.start("a", 300, 0, on_progress=rec.progress.append, on_complete=chain,
                on_cancel=lambda t, f: None)
    dwell.tick(300)
    assert rec.completed == ["a"]
    assert dwell.session.target_id == "b"


@pytest.mark.parametrize("hold", [0, -5])
def test_non_positive_hold_is_rejected(hold):
    with pytest.raises(ValueError):
        DwellController().start("a", hold, 0, **Recorder().kwargs())
