import asyncio

import pytest

from proctored_cbt.services.integrity_monitor import IntegrityMonitor


@pytest.fixture
def monitor(clock):
    m = IntegrityMonitor(probe=None, clock=clock)
    yield m
    m.teardown()


@pytest.fixture
def fired(monitor):
    events = []
    monitor.on_violation(lambda record: events.append(record.type.value))
    return events


def test_signals_before_start_are_ignored(monitor, fired):
    monitor.visibility_changed(True)
    monitor.context_menu()
    assert monitor.devtools_detected() is False
    assert fired == []


def test_visibility_hidden_fires_tab_switch(monitor, fired):
    monitor.start()
    monitor.visibility_changed(False)
    monitor.visibility_changed(True)
    monitor.visibility_changed(True)
    assert fired == ["tab_switch", "tab_switch"]


def test_context_menu_fires(monitor, fired):
    monitor.start()
    monitor.context_menu()
    assert fired == ["context_menu"]


def test_devtools_throttled_to_once_per_window(monitor, fired, clock):
    monitor.start()
    assert monitor.devtools_detected() is True
    clock.advance(1)
    assert monitor.devtools_detected() is False
    clock.advance(3.9)
    assert monitor.devtools_detected() is False
    clock.advance(0.1)
    assert monitor.devtools_detected() is True
    assert fired == ["console", "console"]


def test_resize_gap_threshold(monitor, fired, clock):
    monitor.start()
    assert monitor.window_resized(1200, 900, 1100, 900) is False   # 정확히 100px
    assert monitor.window_resized(1200, 900, 1200, 799) is True
    # 스로틀 구간
    assert monitor.window_resized(1500, 900, 1200, 900) is False
    clock.advance(5)
    assert monitor.window_resized(1500, 900, 1200, 900) is True
    assert fired == ["console", "console"]


def test_resize_and_probe_share_throttle(monitor, fired):
    monitor.start()
    monitor.devtools_detected()
    assert monitor.window_resized(1200, 900, 900, 900) is False
    assert fired == ["console"]


def test_fullscreen_toggles_blocking_state(monitor, fired):
    assert monitor.fullscreen_required is True
    monitor.start()
    monitor.fullscreen_changed(True)
    assert monitor.fullscreen_required is False
    monitor.fullscreen_changed(False)
    assert monitor.fullscreen_required is True
    assert fired == []


def test_teardown_is_idempotent_and_silences_signals(monitor, fired):
    monitor.start()
    monitor.teardown()
    monitor.teardown()
    assert monitor.active is False
    monitor.visibility_changed(True)
    monitor.context_menu()
    monitor.devtools_detected()
    monitor.fullscreen_changed(True)
    assert fired == []
    assert monitor.fullscreen_required is True


async def test_probe_loop_fires_once_within_throttle_window():
    monitor = IntegrityMonitor(probe=lambda: True, probe_interval=0.01)
    events = []
    monitor.on_violation(lambda record: events.append(record.type))
    monitor.start()
    await asyncio.sleep(0.1)
    monitor.teardown()
    assert [e.value for e in events] == ["console"]


async def test_probe_failure_does_not_stop_loop():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return True

    monitor = IntegrityMonitor(probe=flaky, probe_interval=0.01)
    events = []
    monitor.on_violation(lambda record: events.append(record.type))
    monitor.start()
    await asyncio.sleep(0.1)
    monitor.teardown()
    assert len(calls) >= 2
    assert len(events) == 1
