"""
Compose store, filter, detector, metrics and layout into the results the
HTTP layer serves. Every call builds its own filter and detector state, so
minutes of the same recording can be processed in parallel.
"""
from __future__ import annotations

import csv
import logging
import os
from typing import Iterable, Iterator, Sequence, TextIO

import numpy as np

from .config import DEFAULT_CONFIG, EcgConfig
from .detector import detect
from .filters import bandpass
from .layout import layout_page
from .models import (
    ExportRow,
    MinutePage,
    Page,
    RecordAnalysis,
    RecordInfo,
    SegmentAnalysis,
)
from .rhythm import rr_series, summarize
from .store import (
    SECONDS_PER_MINUTE,
    SampleStream,
    SampleWindow,
    StorageUnreadable,
    clamp_minute,
    read_minute,
    read_window,
    total_minutes,
)

logger = logging.getLogger(__name__)

WAVE_HEAD_SECONDS = 10
EXPORT_COLUMNS = ["global_sample_index", "sample_index_in_minute", "amplitude"]


def recording_start_ts(stream: SampleStream) -> int:
    """Recording start: file modification time floored to the minute."""
    try:
        mtime = int(os.stat(stream.path).st_mtime)
    except OSError as e:
        raise StorageUnreadable(stream.path, e.strerror or str(e)) from e
    return mtime // SECONDS_PER_MINUTE * SECONDS_PER_MINUTE


def record_info(stream: SampleStream, name: str) -> RecordInfo:
    duration_s = stream.total_samples // stream.fs
    return RecordInfo(
        name=name,
        size_bytes=stream.byte_length,
        fs=stream.fs,
        total_samples=stream.total_samples,
        duration_s=duration_s,
        duration_hm=f"{duration_s // 3600:02d}:{duration_s % 3600 // 60:02d}",
        total_minutes=max(1, total_minutes(stream)),
        start_ts_rounded=recording_start_ts(stream),
    )


def filter_and_detect(window: SampleWindow, fs: int, config: EcgConfig = DEFAULT_CONFIG):
    filtered = bandpass(window.samples, fs, config)
    return filtered, detect(filtered, fs, config)


def minute_page(stream: SampleStream, minute: int, config: EcgConfig = DEFAULT_CONFIG) -> MinutePage:
    total = max(1, total_minutes(stream))
    current = clamp_minute(minute, total)
    window = read_minute(stream, current, config.chunk_bytes)
    _, beats = filter_and_detect(window, stream.fs, config)
    return MinutePage(
        fs=stream.fs,
        samples=window.samples.tolist(),
        beats=beats,
        total_minutes=total,
        current_minute=current,
        start_sample=window.start_sample,
        current_ts_rounded=recording_start_ts(stream) + SECONDS_PER_MINUTE * (current - 1),
        summary=summarize(beats, len(window) / stream.fs, stream.fs),
    )


def page_for_minute(
    stream: SampleStream, minute: int, config: EcgConfig = DEFAULT_CONFIG, source: str = "raw"
) -> Page:
    """Page geometry for a minute, drawn from the raw or the filtered samples."""
    if source not in ("raw", "filtered"):
        raise ValueError(f"source must be 'raw' or 'filtered', got {source!r}")
    current = clamp_minute(minute, total_minutes(stream))
    window = read_minute(stream, current, config.chunk_bytes)
    filtered, beats = filter_and_detect(window, stream.fs, config)
    samples = filtered if source == "filtered" else window.samples
    return layout_page(samples, beats, stream.fs, config)


def export_rows(
    stream: SampleStream, minute: int, config: EcgConfig = DEFAULT_CONFIG, beats_only: bool = False
) -> Iterator[ExportRow]:
    """Rows of one minute in ascending index order; ``beats_only`` keeps just the detected beats."""
    current = clamp_minute(minute, total_minutes(stream))
    window = read_minute(stream, current, config.chunk_bytes)
    if beats_only:
        _, beats = filter_and_detect(window, stream.fs, config)
        for b in beats:
            yield ExportRow(
                global_sample_index=window.start_sample + b.sample_index,
                sample_index_in_minute=b.sample_index,
                amplitude=int(round(b.amplitude)),
            )
        return
    for i, v in enumerate(window.samples.tolist()):
        yield ExportRow(global_sample_index=window.start_sample + i, sample_index_in_minute=i, amplitude=v)


def write_rows_csv(rows: Iterable[ExportRow], fh: TextIO) -> int:
    writer = csv.writer(fh)
    writer.writerow(EXPORT_COLUMNS)
    count = 0
    for row in rows:
        writer.writerow([row.global_sample_index, row.sample_index_in_minute, row.amplitude])
        count += 1
    return count


def analyze_samples(samples: np.ndarray, fs: int, config: EcgConfig = DEFAULT_CONFIG):
    filtered = bandpass(samples, fs, config)
    beats = detect(filtered, fs, config)
    return filtered, beats, rr_series(beats, fs), summarize(beats, len(samples) / fs, fs)


def analyze_recording(stream: SampleStream, config: EcgConfig = DEFAULT_CONFIG, seconds: int = 0) -> RecordAnalysis:
    """One continuous pass over the first ``seconds`` of the recording (0 = all of it)."""
    length = seconds * stream.fs if seconds > 0 else stream.total_samples
    window = read_window(stream, 0, length, config.chunk_bytes)
    filtered, beats, rr, summary = analyze_samples(window.samples, stream.fs, config)
    head = filtered[:WAVE_HEAD_SECONDS * stream.fs]
    logger.info("Analyzed %s: %d samples, %d beats", stream.path, len(window), summary.beat_count)
    return RecordAnalysis(
        duration_s=len(window) / stream.fs,
        beats=beats,
        rr_ms=rr.tolist(),
        summary=summary,
        wave_head=np.rint(head).astype(int).tolist(),
    )


def analyze_segment(segment_id: str, samples: Sequence[int], fs: int, config: EcgConfig = DEFAULT_CONFIG) -> SegmentAnalysis:
    _, beats, rr, summary = analyze_samples(np.asarray(samples, dtype=np.int16), fs, config)
    return SegmentAnalysis(segment_id=segment_id, beats=beats, rr_intervals_ms=rr.tolist(), summary=summary)
