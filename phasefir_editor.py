# phasefir_editor.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import numpy as np

from models import (
    IDENTITY_TAPS,
    DesignResult,
    EditorActionState,
    FirDesignSettings,
    is_identity_taps,
    taps_equal,
)
from phasefir_config import settings_to_dict
from phasefir_dsp import design_preview
from phasefir_operations import conv_values_parameters

logger = logging.getLogger("PhaseFIR.editor")


def _copy_taps(values) -> np.ndarray:
    return np.array(values, dtype=float).ravel()


class EditorActionController:
    """
    Apply / undo / reset / enable state for one FIR editing session.

    The controller owns only tap arrays and the undo history. Writing the
    Conv filter slot, debounced persistence and settings storage are done by
    the injected callables:

        on_update(taps)                       every change of `current`
        on_debounced_apply(parameters)        {"type": "Values", "values": [...]}
        on_persist_settings(name, settings)   version-tagged settings dict
    """

    def __init__(
        self,
        sample_rate: float,
        settings: Optional[FirDesignSettings] = None,
        selected_filters=(),
        initial_taps=None,
        filter_name: Optional[str] = None,
        on_update: Optional[Callable[[np.ndarray], None]] = None,
        on_debounced_apply: Optional[Callable[[Dict[str, Any]], None]] = None,
        on_persist_settings: Optional[Callable[[str, Dict[str, Any]], None]] = None,
    ):
        self.sample_rate = sample_rate
        self.settings = settings if settings is not None else FirDesignSettings()
        self.selected_filters = tuple(selected_filters or ())
        self.filter_name = filter_name
        self.on_update = on_update
        self.on_debounced_apply = on_debounced_apply
        self.on_persist_settings = on_persist_settings

        self.state = EditorActionState()
        self.preview_result: Optional[DesignResult] = None

        if initial_taps is not None:
            self.observe(initial_taps)

    # --- tila ---

    @property
    def current(self) -> np.ndarray:
        return self.state.current

    @property
    def preview_taps(self) -> Optional[np.ndarray]:
        r = self.preview_result
        if r is None or not r.ok:
            return None
        return r.taps

    @property
    def is_identity(self) -> bool:
        return is_identity_taps(self.state.current)

    @property
    def can_undo(self) -> bool:
        return len(self.state.undo_stack) > 0

    @property
    def can_reset(self) -> bool:
        return self.state.baseline is not None

    @property
    def can_enable_from_identity(self) -> bool:
        if self.state.last_applied is not None:
            return not is_identity_taps(self.state.last_applied)
        return not is_identity_taps(self.preview_taps)

    def _set_current(self, values) -> None:
        self.state.current = _copy_taps(values)
        if not is_identity_taps(self.state.current):
            self.state.last_applied = self.state.current.copy()
        if self.on_update is not None:
            self.on_update(self.state.current.copy())

    def _push_current(self) -> None:
        self.state.undo_stack.append(self.state.current.copy())

    def _notify_apply(self) -> None:
        if self.on_debounced_apply is not None:
            self.on_debounced_apply(conv_values_parameters(self.state.current))

    def _persist_settings(self) -> None:
        if self.on_persist_settings is None:
            return
        data = settings_to_dict(self.settings)
        if self.filter_name:
            self.on_persist_settings(self.filter_name, data)
        else:
            # Nimi ei vielä tiedossa: puskuroi
            self.state.pending_settings = data

    # --- synkronointi omistajan kanssa ---

    def observe(self, taps) -> None:
        """
        Sync `current` from the owning configuration (no callbacks fired).
        The first non-empty observation becomes the reset baseline.
        """
        values = _copy_taps(IDENTITY_TAPS if taps is None else taps)
        if values.size == 0:
            values = np.array(IDENTITY_TAPS)
        if self.state.baseline is None and taps is not None and np.size(taps) > 0:
            self.state.baseline = values.copy()
        self.state.current = values
        if not is_identity_taps(values):
            self.state.last_applied = values.copy()

    def set_filter_name(self, name: Optional[str]) -> None:
        """Assign the stable filter name; flushes settings buffered before it was known."""
        self.filter_name = name
        pending = self.state.pending_settings
        if not name or pending is None or self.on_persist_settings is None:
            return
        logger.debug(f"Flushing buffered settings for {name}")
        self.on_persist_settings(name, pending)
        self.state.pending_settings = None

    # --- toiminnot ---

    def preview(self, settings: Optional[FirDesignSettings] = None, selected_filters=None) -> DesignResult:
        """Recompute the preview design. Never touches current / undo history."""
        if settings is not None:
            self.settings = settings
        if selected_filters is not None:
            self.selected_filters = tuple(selected_filters)
        self.preview_result = design_preview(self.sample_rate, self.settings, self.selected_filters)
        if self.preview_result.error:
            logger.debug(f"Preview error: {self.preview_result.error}")
        return self.preview_result

    def apply(self, taps=None) -> bool:
        """Make `taps` (default: the current preview) the applied FIR."""
        if taps is None:
            taps = self.preview_taps
        if taps is None:
            return False
        values = _copy_taps(taps)
        if not taps_equal(self.state.current, values):
            self._push_current()
        self._set_current(values)
        self._notify_apply()
        self._persist_settings()
        logger.debug(f"Applied FIR: {values.size} taps (undo depth {len(self.state.undo_stack)})")
        return True

    def undo(self) -> bool:
        if not self.state.undo_stack:
            return False
        self._set_current(self.state.undo_stack.pop())
        return True

    def reset_to_baseline(self) -> bool:
        if self.state.baseline is None:
            return False
        self._set_current(self.state.baseline)
        self.state.undo_stack.clear()
        return True

    def toggle_enabled(self, enabled: bool) -> bool:
        """
        Disable: remember the applied FIR and switch to identity.
        Enable: restore the remembered FIR, else adopt a non-identity preview.
        Returns False when nothing changed.
        """
        if not enabled:
            if self.is_identity:
                return False
            self.state.last_applied = self.state.current.copy()
            self._push_current()
            self._set_current(IDENTITY_TAPS)
            self._notify_apply()
            return True

        if not self.is_identity:
            return False

        from_preview = self.state.last_applied is None and self.preview_taps is not None
        candidate = self.state.last_applied if self.state.last_applied is not None else self.preview_taps
        if candidate is None or is_identity_taps(candidate):
            return False

        self._push_current()
        self._set_current(candidate)
        self._notify_apply()
        if from_preview:
            self._persist_settings()
        return True
