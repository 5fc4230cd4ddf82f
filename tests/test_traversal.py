import builtins

import pytest
from tensorboard.compat.proto import event_pb2, summary_pb2

from conftest import frame, scalar_event, summary_event, version_event, write_events
from tbevents import ReaderConfig, for_each_event, for_each_value, iter_events, iter_values
from tbevents.dto import ComplexScalar, Scalar
from tbevents.errors import CorruptHeaderError


@pytest.fixture
def run(logdir):
    write_events(
        logdir / "events.out.tfevents.1.host",
        [
            version_event(),
            scalar_event(1, loss=1.0, acc=0.5),
            scalar_event(2, loss=0.5, acc=0.75),
            scalar_event(3, loss=0.25),
        ],
    )
    write_events(
        logdir / "events.out.tfevents.2.host",
        [
            version_event(step=3),
            event_pb2.Event(step=3, wall_time=5.0, session_log=event_pb2.SessionLog(status=event_pb2.SessionLog.START)),
            scalar_event(3, loss=0.2),
            scalar_event(4, loss=0.1),
        ],
    )
    (logdir / "README").write_text("not a log")
    return logdir


def _collect_values(path, **kwargs):
    seen = []
    for_each_value(lambda tag, step, value: seen.append((tag, step, value)), path, **kwargs)
    return seen


def test_tag_filter_visits_only_that_tag(run):
    seen = _collect_values(run, tags={"loss"})
    assert [(t, s) for t, s, _ in seen] == [("loss", 1), ("loss", 2), ("loss", 3), ("loss", 4)]
    assert seen[-1][2].value == pytest.approx(0.1)


def test_single_string_tag_is_a_one_element_filter(run):
    assert {t for t, _, _ in _collect_values(run, tags="acc")} == {"acc"}


def test_step_filter(run):
    seen = _collect_values(run, steps=range(2, 4))
    assert [(t, s) for t, s, _ in seen] == [("loss", 2), ("acc", 2), ("loss", 3)]


def test_purge_off_keeps_superseded_steps(run):
    loss_steps = [s for t, s, _ in _collect_values(run, tags="loss", purge=False)]
    assert loss_steps == [1, 2, 3, 3, 4]


def test_events_include_bookkeeping_but_values_do_not(run):
    events = []
    for_each_event(events.append, run)
    assert [ev.step for ev in events] == [0, 1, 2, 3, 3, 3, 4]
    assert sum(1 for ev in events if not ev.HasField("summary")) == 3
    assert len(_collect_values(run)) == 6


def test_event_step_filter(run):
    events = []
    for_each_event(events.append, run, steps={3})
    assert [ev.step for ev in events] == [3, 3, 3]


def test_smart_flag_controls_recombination(logdir):
    entries = [
        summary_pb2.Summary.Value(tag="z/re", simple_value=1.0),
        summary_pb2.Summary.Value(tag="z/im", simple_value=2.0),
    ]
    write_events(logdir / "events.1", [version_event(), summary_event(1, entries)])

    assert _collect_values(logdir) == [("z", 1, ComplexScalar(1 + 2j))]
    assert [t for t, _, _ in _collect_values(logdir, smart=False)] == ["z/re", "z/im"]
    assert _collect_values(logdir, tags={"z/re"}, smart=False) == [("z/re", 1, Scalar(1.0))]


def test_config_object_overrides_keywords(run):
    cfg = ReaderConfig(tags=frozenset({"acc"}))
    assert [t for t, _, _ in iter_values(run, cfg)] == ["acc", "acc"]


def test_corruption_propagates_to_caller(logdir):
    good = frame(version_event().SerializeToString())
    bad = bytearray(frame(scalar_event(1, loss=1.0).SerializeToString()))
    bad[0] ^= 0x01
    (logdir / "events.1").write_bytes(good + bytes(bad))
    with pytest.raises(CorruptHeaderError):
        for_each_event(lambda ev: None, logdir)


@pytest.fixture
def opened(monkeypatch):
    """Record every file handle opened during the test."""
    handles = []
    real_open = builtins.open

    def tracking_open(*args, **kwargs):
        f = real_open(*args, **kwargs)
        handles.append(f)
        return f

    monkeypatch.setattr(builtins, "open", tracking_open)
    return handles


def test_early_stop_closes_the_file(run, opened):
    events = iter_events(run)
    next(events)
    next(events)
    events.close()
    assert opened
    assert all(f.closed for f in opened)


def test_callback_exception_still_closes_files(run, opened):
    def boom(tag, step, value):
        raise RuntimeError("stop")

    with pytest.raises(RuntimeError):
        for_each_value(boom, run)
    assert all(f.closed for f in opened)
