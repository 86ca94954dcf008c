import threading

import pytest

from adsb_data import Position, Snapshot
from errors import LockFailure
from radar_state import Lifecycle, RadarState


def snapshot(marker):
    return Snapshot(captured_at=float(marker))


def test_history_keeps_most_recent_snapshots(make_config):
    state = RadarState(make_config(history_capacity=3))
    for marker in range(1, 6):
        state.enqueue(snapshot(marker))

    assert [entry.captured_at for entry in state.history] == [3.0, 4.0, 5.0]


def test_publish_replaces_current_and_records_history(make_config):
    state = RadarState(make_config(history_capacity=2))
    assert state.publish(snapshot(1))
    assert state.publish(snapshot(2))
    assert state.publish(snapshot(3))

    assert state.snapshot.captured_at == 3.0
    assert len(state.history) == 2


def test_shutdown_is_one_way(make_config):
    state = RadarState(make_config())
    assert state.lifecycle is Lifecycle.RUNNING
    assert state.shutdown()
    assert not state.shutdown()
    assert state.lifecycle is Lifecycle.SHUTTING_DOWN
    assert not state.is_running()


def test_no_mutation_after_shutdown(make_config):
    state = RadarState(make_config())
    state.publish(snapshot(1))
    state.shutdown()

    assert not state.publish(snapshot(2))
    assert not state.update_config(lambda config: setattr(config, 'radius', 5.0))
    assert state.snapshot.captured_at == 1.0
    assert len(state.history) == 1
    assert state.config_copy().radius == 50.0


def test_view_is_a_copy(make_config):
    state = RadarState(make_config())
    view = state.view()
    view.config.radius = 1.0

    assert state.config_copy().radius == 50.0
    assert view.start_origin == state.start_origin
    assert view.lifecycle is Lifecycle.RUNNING


def test_failed_update_poisons_state(make_config):
    state = RadarState(make_config())

    with pytest.raises(LockFailure):
        state.update_config(lambda config: 1 / 0)
    with pytest.raises(LockFailure):
        state.view()
    with pytest.raises(LockFailure):
        state.is_running()
    assert state.shutdown()


def test_zero_capacity_is_rejected(make_config):
    with pytest.raises(ValueError):
        RadarState(make_config(history_capacity=0))


def test_config_reads_never_see_half_an_update(make_config):
    state = RadarState(make_config(origin=Position(0.0, 0.0), radius=1.0))
    torn = []

    def writer():
        for step in range(2000):
            def mutate(config, step=step):
                config.origin = Position(float(step), 0.0)
                config.radius = float(step) + 1.0
            state.update_config(mutate)

    def reader():
        for _ in range(2000):
            config = state.view().config
            if config.radius != config.origin.lat + 1.0:
                torn.append(config)

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert torn == []
