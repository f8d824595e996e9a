"""
Page geometry for one minute of ECG.

A page is ``panel_count`` stacked strips of ``panel_seconds`` each. All strips
share one amplitude scale computed over the whole page and capped at
``amp_cap``, so a flat segment next to a large one still looks flat and a
single artefact spike cannot squash the rest of the page.

Coordinates are normalized per panel: x runs 0..1 left to right over the
nominal panel span, y runs 0..1 top to bottom.
"""
from __future__ import annotations

import logging
import math
from typing import List, Sequence, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, EcgConfig
from .models import AmplitudeScale, Beat, GridLines, Page, Panel

logger = logging.getLogger(__name__)

GRID_ROWS = 5
MIDLINE = 0.5


def amplitude_scale(samples: np.ndarray, amp_cap: float) -> AmplitudeScale:
    """Page-wide [lo, hi], clamped to +/-amp_cap; a collapsed range becomes the full capped range."""
    if samples.size:
        lo = float(np.clip(samples.min(), -amp_cap, amp_cap))
        hi = float(np.clip(samples.max(), -amp_cap, amp_cap))
        if hi > lo:
            return AmplitudeScale(lo=lo, hi=hi)
    logger.warning(
        "Degenerate amplitude range over %d samples; using [-%g, %g]", samples.size, amp_cap, amp_cap
    )
    return AmplitudeScale(lo=-amp_cap, hi=amp_cap, degenerate=True)


def grid_lines(segment_start: int, segment_length: int, fs: int) -> GridLines:
    """A vertical line on every whole second inside the span, plus the row dividers."""
    first = math.ceil(segment_start / fs)
    last = (segment_start + segment_length) // fs
    vertical = [(s * fs - segment_start) / segment_length for s in range(first, last + 1)]
    horizontal = [i / GRID_ROWS for i in range(1, GRID_ROWS)]
    return GridLines(vertical=vertical, horizontal=horizontal)


def to_y(values: np.ndarray, scale: AmplitudeScale, amp_cap: float, padding: float) -> np.ndarray:
    frac = (np.clip(values, -amp_cap, amp_cap) - scale.lo) / (scale.hi - scale.lo)
    # Larger amplitude is drawn higher, i.e. smaller y.
    return padding + (1.0 - frac) * (1.0 - 2.0 * padding)


def polyline(
    segment: np.ndarray, segment_length: int, scale: AmplitudeScale, amp_cap: float, padding: float
) -> List[Tuple[float, float]]:
    xs = np.arange(segment.size, dtype=np.float64) / segment_length
    ys = to_y(segment.astype(np.float64), scale, amp_cap, padding)
    return list(zip(xs.tolist(), ys.tolist()))


def layout_panel(
    index: int,
    samples: np.ndarray,
    beats: Sequence[Beat],
    fs: int,
    scale: AmplitudeScale,
    config: EcgConfig,
) -> Panel:
    length = config.panel_samples(fs)
    start = index * length
    segment = samples[start:start + length]

    local = [b for b in beats if start <= b.sample_index < start + length]
    panel = Panel(
        index=index,
        segment_start=start,
        segment_length=length,
        sample_count=int(segment.size),
        t_start_s=start // fs,
        t_end_s=(start + length) // fs,
        local_beats=local,
        grid=grid_lines(start, length, fs),
        markers=[(b.sample_index - start) / length for b in local],
    )
    if segment.size < 2:
        panel.midline = MIDLINE
    else:
        panel.polyline = polyline(segment, length, scale, config.amp_cap, config.vertical_padding)
    return panel


def layout_page(samples, beats: Sequence[Beat], fs: int, config: EcgConfig = DEFAULT_CONFIG) -> Page:
    """
    Lay out one page of samples (raw or filtered) with their beats.

    ``beats`` carry page-local sample indices. Missing data at the end of a
    short final minute only shortens or empties the trailing panels.
    """
    if fs <= 0:
        raise ValueError(f"fs must be positive, got {fs}")
    page = np.asarray(samples)[:config.page_samples(fs)]
    scale = amplitude_scale(page, config.amp_cap)
    panels = [layout_panel(i, page, beats, fs, scale, config) for i in range(config.panel_count)]
    return Page(fs=fs, panel_seconds=config.panel_seconds, scale=scale, panels=panels)
