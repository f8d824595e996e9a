"""RR intervals and heart-rate-variability summary."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from .models import Beat, RhythmSummary


def rr_series(beats: Sequence[Beat], fs: int) -> np.ndarray:
    """Inter-beat intervals in ms; one shorter than ``beats`` (never negative length)."""
    if len(beats) < 2:
        return np.zeros(0, dtype=np.float64)
    idx = np.fromiter((b.sample_index for b in beats), dtype=np.float64, count=len(beats))
    return 1000.0 * np.diff(idx) / fs


def sdnn(rr_ms: np.ndarray) -> float:
    if len(rr_ms) < 2:
        return 0.0
    return float(np.std(rr_ms, ddof=1))


def rmssd(rr_ms: np.ndarray) -> float:
    # n-1 successive differences, averaged over n-1
    if len(rr_ms) < 2:
        return 0.0
    return float(np.sqrt(np.mean(np.diff(rr_ms) ** 2)))


def summarize(beats: Sequence[Beat], duration_s: float, fs: int) -> RhythmSummary:
    rr = rr_series(beats, fs)
    hr = len(beats) / duration_s * 60.0 if duration_s > 0 else 0.0
    return RhythmSummary(
        beat_count=len(beats),
        hr_bpm=hr,
        sdnn_ms=sdnn(rr),
        rmssd_ms=rmssd(rr),
    )
