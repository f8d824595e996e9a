import numpy as np
import pytest

from ecg_service.store import SAMPLE_DTYPE, open_stream

FS = 125


def triangle(n: int, center: int, amplitude: float, half_width: int = 5) -> np.ndarray:
    """A zero wave with one triangular pulse peaking at ``center``."""
    x = np.zeros(n, dtype=np.float64)
    for k in range(-half_width, half_width + 1):
        i = center + k
        if 0 <= i < n:
            x[i] = amplitude * (1 - abs(k) / half_width)
    return x


def pulse_train(seconds: float, fs: int = FS, period_s: float = 1.0, amplitude: float = 1000.0,
                offset_s: float = 0.5) -> np.ndarray:
    """Evenly spaced triangular 'R-waves', returned as int16 samples."""
    n = int(seconds * fs)
    x = np.zeros(n, dtype=np.float64)
    centers = np.arange(int(offset_s * fs), n, int(period_s * fs))
    for c in centers:
        x += triangle(n, int(c), amplitude)
    return x.astype(np.int16)


@pytest.fixture
def write_raw(tmp_path):
    """Write int16 samples (plus optional header/trailing bytes) and return the path."""

    def _write(samples, name="rec.bin", header=b"", tail=b""):
        path = tmp_path / name
        data = np.asarray(samples).astype(SAMPLE_DTYPE).tobytes()
        path.write_bytes(header + data + tail)
        return str(path)

    return _write


@pytest.fixture
def make_stream(write_raw):
    def _make(samples, fs=FS, **kwargs):
        return open_stream(write_raw(samples, **kwargs), fs=fs)

    return _make
