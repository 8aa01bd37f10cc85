# phasefir_selection.py
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from models import FilterChainConfig, NamedFilter, filter_from_dict

CORRECTABLE_TYPES = ("Biquad", "DiffEq")


def candidate_filters(channel_filters: Optional[Sequence[NamedFilter]], filter_name: Optional[str] = None) -> List[NamedFilter]:
    """Filters upstream of the FIR named `filter_name` (all of them if it is not in the chain)."""
    items = list(channel_filters or ())
    if not filter_name:
        return items
    for i, f in enumerate(items):
        if f.name == filter_name:
            return items[:i]
    return items


def correctable_filters(candidates: Iterable[NamedFilter]) -> List[NamedFilter]:
    out = []
    for f in candidates:
        cfg = filter_from_dict(f.config)
        if cfg.type in CORRECTABLE_TYPES:
            out.append(NamedFilter(f.name, cfg))
    return out


def initial_selection(correctable: Sequence[NamedFilter], saved_names: Optional[Iterable[str]] = None) -> Set[str]:
    """Saved names still present, or every correctable filter when nothing was saved."""
    available = {f.name for f in correctable}
    if saved_names is None:
        return available
    return {n for n in saved_names if n in available}


def refresh_selection(selected: Set[str], previously_available: Set[str], correctable: Sequence[NamedFilter]) -> Tuple[Set[str], Set[str]]:
    """
    Re-sync the selection after the chain changed: vanished names drop out,
    newly appeared correctable filters are selected automatically.
    Returns (selection, available) so the caller can keep `available` for next time.
    """
    available = {f.name for f in correctable}
    nxt = {n for n in selected if n in available}
    nxt |= available - set(previously_available)
    return nxt, available


def selected_configs(correctable: Sequence[NamedFilter], selected: Set[str]) -> FilterChainConfig:
    """Configs of the selected filters, in chain order."""
    return tuple(f.config for f in correctable if f.name in selected)


def selection_to_names(correctable: Sequence[NamedFilter], selected: Set[str]) -> List[str]:
    """Chain-ordered name list for persisting in the settings record."""
    return [f.name for f in correctable if f.name in selected]
