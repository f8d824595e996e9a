"""
Windowed access to raw single-lead recordings.

A recording is a flat run of little-endian signed 16-bit samples, optionally
preceded by an opaque header. Windows are read by seeking straight to the
first sample, so a minute in the middle of an overnight file costs the same
as the first one.
"""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_DTYPE = np.dtype("<i2")
SAMPLE_BYTES = SAMPLE_DTYPE.itemsize
SECONDS_PER_MINUTE = 60


class EcgError(Exception):
    """Base class for errors raised by the ECG service."""


class StorageUnreadable(EcgError):
    """The raw recording could not be opened or read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass(frozen=True)
class SampleStream:
    path: str
    fs: int
    byte_length: int
    header_bytes: int = 0

    @property
    def total_samples(self) -> int:
        # A trailing odd byte is not a sample.
        return max(0, self.byte_length - self.header_bytes) // SAMPLE_BYTES

    @property
    def samples_per_minute(self) -> int:
        return SECONDS_PER_MINUTE * self.fs

    @property
    def duration_s(self) -> float:
        return self.total_samples / self.fs


@dataclass(frozen=True)
class SampleWindow:
    start_sample: int
    samples: np.ndarray

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def end_sample(self) -> int:
        return self.start_sample + len(self.samples)


def open_stream(path: str, fs: int, header_bytes: int = 0) -> SampleStream:
    """Snapshot the size of ``path`` and describe it as a sample stream."""
    if fs <= 0:
        raise ValueError(f"fs must be positive, got {fs}")
    try:
        byte_length = os.stat(path).st_size
    except OSError as e:
        logger.warning("Raw recording %s is unreadable: %s", path, e)
        raise StorageUnreadable(path, e.strerror or str(e)) from e
    if os.path.isdir(path):
        raise StorageUnreadable(path, "is a directory")
    return SampleStream(path=path, fs=fs, byte_length=byte_length, header_bytes=header_bytes)


def decode_samples(raw: bytes) -> np.ndarray:
    """Decode little-endian int16 pairs; an odd trailing byte is dropped."""
    usable = len(raw) - len(raw) % SAMPLE_BYTES
    return np.frombuffer(raw[:usable], dtype=SAMPLE_DTYPE).astype(np.int16)


def read_window(stream: SampleStream, start_sample: int, length: int, chunk_bytes: int = 8192) -> SampleWindow:
    """
    Read up to ``length`` samples starting at ``start_sample``.

    The window is shorter than requested when the stream ends inside it and
    empty when it starts at or past the end. Only a failure to open or read
    the file is an error.
    """
    if start_sample < 0:
        raise ValueError(f"start_sample must be >= 0, got {start_sample}")
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")

    available = max(0, stream.total_samples - start_sample)
    remaining = min(length, available) * SAMPLE_BYTES
    if remaining == 0:
        return SampleWindow(start_sample=start_sample, samples=np.zeros(0, dtype=np.int16))

    # Keep chunks sample-aligned.
    chunk_bytes = max(SAMPLE_BYTES, chunk_bytes - chunk_bytes % SAMPLE_BYTES)
    parts = []
    try:
        with open(stream.path, "rb") as fh:
            fh.seek(stream.header_bytes + start_sample * SAMPLE_BYTES)
            while remaining > 0:
                chunk = fh.read(min(chunk_bytes, remaining))
                if not chunk:
                    break
                parts.append(chunk)
                remaining -= len(chunk)
    except OSError as e:
        logger.warning("Read of %s failed at sample %d: %s", stream.path, start_sample, e)
        raise StorageUnreadable(stream.path, e.strerror or str(e)) from e

    samples = decode_samples(b"".join(parts))
    logger.debug("Read %d/%d samples from %s at %d", len(samples), length, stream.path, start_sample)
    return SampleWindow(start_sample=start_sample, samples=samples)


def total_minutes(stream: SampleStream) -> int:
    return int(math.ceil(stream.total_samples / stream.samples_per_minute))


def clamp_minute(minute: int, total: int) -> int:
    """Clamp a 1-based minute index into ``[1, max(1, total)]``."""
    return min(max(1, minute), max(1, total))


def minute_start(stream: SampleStream, minute: int) -> int:
    return (minute - 1) * stream.samples_per_minute


def read_minute(stream: SampleStream, minute: int, chunk_bytes: int = 8192) -> SampleWindow:
    """Read 1-based minute ``minute``; the last minute may be short."""
    if minute < 1:
        raise ValueError(f"minute is 1-based, got {minute}")
    return read_window(stream, minute_start(stream, minute), stream.samples_per_minute, chunk_bytes)
