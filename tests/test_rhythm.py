import math

import numpy as np
import pytest

from ecg_service.models import Beat
from ecg_service.rhythm import rmssd, rr_series, sdnn, summarize

FS = 125


def beats_at(*indices):
    return [Beat(sample_index=i, amplitude=1.0) for i in indices]


@pytest.mark.parametrize("n", [0, 1, 2, 7])
def test_rr_length(n):
    beats = beats_at(*range(0, n * 100, 100))
    assert len(rr_series(beats, FS)) == max(0, n - 1)


def test_rr_values_in_ms():
    rr = rr_series(beats_at(0, 125, 250, 400), FS)
    assert rr.tolist() == [1000.0, 1000.0, 1200.0]


def test_sdnn_uses_sample_std():
    rr = np.array([800.0, 1000.0, 1200.0])
    assert sdnn(rr) == pytest.approx(200.0)


def test_rmssd():
    rr = np.array([800.0, 1000.0, 700.0])
    # diffs 200, -300 -> sqrt((40000 + 90000) / 2)
    assert rmssd(rr) == pytest.approx(math.sqrt(65000.0))


def test_short_series_gives_zero():
    assert sdnn(np.array([900.0])) == 0.0
    assert rmssd(np.array([900.0])) == 0.0


def test_summary():
    summary = summarize(beats_at(0, 125, 250, 400), 4.0, FS)
    assert summary.beat_count == 4
    assert summary.hr_bpm == pytest.approx(60.0)
    assert summary.sdnn_ms == pytest.approx(np.std([1000, 1000, 1200], ddof=1))
    assert summary.rmssd_ms == pytest.approx(math.sqrt((0 + 200 ** 2) / 2))


def test_empty_and_zero_duration():
    summary = summarize([], 60.0, FS)
    assert (summary.beat_count, summary.hr_bpm, summary.sdnn_ms, summary.rmssd_ms) == (0, 0.0, 0.0, 0.0)
    assert summarize(beats_at(0, 125), 0.0, FS).hr_bpm == 0.0
