"""Tests for the EditorActionController state machine."""

import numpy as np
import pytest

from models import FirDesignSettings, is_identity_taps
from phasefir_editor import EditorActionController

A = np.array([0.0, 1.0, 0.5])
B = np.array([0.25, 1.0, 0.25])


class Recorder:
    def __init__(self):
        self.updates = []
        self.applies = []
        self.persisted = []

    def on_update(self, taps):
        self.updates.append(np.asarray(taps).tolist())

    def on_debounced_apply(self, params):
        self.applies.append(params)

    def on_persist_settings(self, name, data):
        self.persisted.append((name, data))


@pytest.fixture
def rec():
    return Recorder()


@pytest.fixture
def ctl(rec, fs):
    return EditorActionController(
        fs,
        settings=FirDesignSettings(tap_mode="taps", taps=255),
        on_update=rec.on_update,
        on_debounced_apply=rec.on_debounced_apply,
        on_persist_settings=rec.on_persist_settings,
        filter_name="fir",
    )


def test_starts_as_identity(ctl):
    assert ctl.is_identity
    assert not ctl.can_undo
    assert not ctl.can_reset
    assert not ctl.can_enable_from_identity


def test_undo_sequence(ctl):
    assert ctl.apply(A)
    assert ctl.apply(B)
    assert ctl.undo()
    np.testing.assert_array_equal(ctl.current, A)
    assert ctl.undo()
    assert ctl.is_identity
    assert not ctl.undo()
    assert ctl.is_identity


def test_apply_same_taps_does_not_push(ctl):
    ctl.apply(A)
    ctl.apply(A.copy())
    assert len(ctl.state.undo_stack) == 1


def test_apply_notifies_and_persists(ctl, rec):
    ctl.apply(A)
    assert rec.updates[-1] == A.tolist()
    assert rec.applies[-1] == {"type": "Values", "values": A.tolist()}
    name, data = rec.persisted[-1]
    assert name == "fir"
    assert data["version"] == 1
    assert data["taps"] == 255


def test_apply_without_preview_is_noop(ctl, rec):
    assert not ctl.apply()
    assert rec.updates == []


def test_settings_buffered_until_name_known(fs, rec):
    ctl = EditorActionController(fs, on_persist_settings=rec.on_persist_settings)
    ctl.apply(A)
    assert rec.persisted == []
    assert ctl.state.pending_settings is not None
    ctl.set_filter_name("conv_left")
    assert [n for n, _ in rec.persisted] == ["conv_left"]
    assert ctl.state.pending_settings is None
    ctl.set_filter_name("conv_left")
    assert len(rec.persisted) == 1


def test_preview_does_not_touch_state(ctl, peaking_1k):
    ctl.apply(A)
    stack = [s.copy() for s in ctl.state.undo_stack]
    result = ctl.preview(selected_filters=(peaking_1k,))
    assert result.ok
    assert result.taps.size == 255
    np.testing.assert_array_equal(ctl.current, A)
    assert len(ctl.state.undo_stack) == len(stack)


def test_apply_preview(ctl, peaking_1k):
    ctl.preview(selected_filters=(peaking_1k,))
    assert ctl.apply()
    np.testing.assert_array_equal(ctl.current, ctl.preview_taps)


def test_preview_error_is_not_applied(ctl, peaking_1k):
    bad = FirDesignSettings(band_low_hz=9000.0, band_high_hz=100.0)
    result = ctl.preview(bad, (peaking_1k,))
    assert result.error
    assert ctl.preview_taps is None
    assert not ctl.apply()


def test_observe_captures_baseline_once(ctl):
    ctl.observe(A)
    ctl.observe(B)
    np.testing.assert_array_equal(ctl.state.baseline, A)
    np.testing.assert_array_equal(ctl.current, B)
    np.testing.assert_array_equal(ctl.state.last_applied, B)


def test_observe_none_keeps_baseline_empty(ctl):
    ctl.observe(None)
    assert ctl.state.baseline is None
    assert ctl.is_identity


def test_reset_to_baseline(fs, rec):
    ctl = EditorActionController(fs, initial_taps=A, on_update=rec.on_update)
    ctl.apply(B)
    ctl.apply([1.0])
    assert ctl.reset_to_baseline()
    np.testing.assert_array_equal(ctl.current, A)
    assert not ctl.can_undo
    assert rec.updates[-1] == A.tolist()


def test_reset_without_baseline_is_noop(ctl):
    assert not ctl.reset_to_baseline()


def test_toggle_disable_and_restore(ctl, rec):
    ctl.apply(A)
    assert ctl.toggle_enabled(False)
    assert ctl.is_identity
    np.testing.assert_array_equal(ctl.state.last_applied, A)
    assert rec.applies[-1] == {"type": "Values", "values": [1.0]}
    assert ctl.can_enable_from_identity

    assert ctl.toggle_enabled(True)
    np.testing.assert_array_equal(ctl.current, A)
    # disable and enable each pushed the previous taps
    assert ctl.undo()
    assert ctl.is_identity


def test_toggle_disable_when_identity_is_noop(ctl, rec):
    assert not ctl.toggle_enabled(False)
    assert rec.updates == []


def test_toggle_enable_when_enabled_is_noop(ctl):
    ctl.apply(A)
    assert not ctl.toggle_enabled(True)


def test_toggle_enable_from_preview_persists(ctl, rec, peaking_1k):
    ctl.preview(selected_filters=(peaking_1k,))
    assert ctl.can_enable_from_identity
    n_persisted = len(rec.persisted)
    assert ctl.toggle_enabled(True)
    assert not ctl.is_identity
    np.testing.assert_array_equal(ctl.current, ctl.preview_taps)
    assert len(rec.persisted) == n_persisted + 1


def test_toggle_enable_identity_candidate_is_noop(ctl):
    ctl.preview(selected_filters=())
    assert is_identity_taps(ctl.preview_taps)
    assert not ctl.can_enable_from_identity
    assert not ctl.toggle_enabled(True)
    assert ctl.is_identity


def test_sessions_are_independent(fs):
    a = EditorActionController(fs)
    b = EditorActionController(fs)
    a.apply(A)
    assert b.is_identity
    assert not b.can_undo
