"""Tests for the debounce filter and the image extension allow-list."""

import pytest

from hdrstack import locks
from hdrstack.errors import LockError
from hdrstack.io.debounce import DEBOUNCE_WINDOW, DebounceFilter, is_image_path


def test_debounce_suppresses_within_window():
    f = DebounceFilter()
    t0 = 1000.0

    assert f.accept("/shots/a.png", t0)
    assert not f.accept("/shots/a.png", t0 + 0.1)
    assert f.accept("/shots/a.png", t0 + 0.6)


def test_debounce_window_boundary_is_inclusive():
    f = DebounceFilter()
    assert f.accept("a.png", 10.0)
    assert f.accept("a.png", 10.0 + DEBOUNCE_WINDOW)


def test_suppressed_events_do_not_extend_the_window():
    f = DebounceFilter()
    assert f.accept("a.png", 0.0)
    assert not f.accept("a.png", 0.3)
    # Measured from the last *accepted* event, not the suppressed one
    assert f.accept("a.png", 0.55)


def test_debounce_is_per_path():
    f = DebounceFilter()
    assert f.accept("a.png", 5.0)
    assert f.accept("b.png", 5.0)
    assert not f.accept("a.png", 5.1)


def test_debounce_normalizes_paths():
    f = DebounceFilter()
    assert f.accept("/shots/./a.png", 5.0)
    assert not f.accept("/shots/a.png", 5.1)


def test_debounce_table_keeps_entries():
    f = DebounceFilter()
    for i in range(3):
        f.accept(f"{i}.png", 0.0)
    f.accept("0.png", 100.0)
    assert len(f) == 3


@pytest.mark.parametrize("path", ["a.PNG", "b.jpg", "c.JPEG", "/deep/dir/d.Jpg", "e.png"])
def test_image_extensions_accepted(path):
    assert is_image_path(path)


@pytest.mark.parametrize("path", ["a.gif", "notes.txt", "README", "archive.png.tmp", "/dir.png/file"])
def test_other_extensions_rejected(path):
    assert not is_image_path(path)


def test_wedged_lock_raises_lock_error(monkeypatch):
    monkeypatch.setattr(locks, "LOCK_TIMEOUT", 0.01)
    f = DebounceFilter()
    f._lock.acquire()
    try:
        with pytest.raises(LockError):
            f.accept("a.png", 0.0)
    finally:
        f._lock.release()
    assert f.accept("a.png", 0.0)
