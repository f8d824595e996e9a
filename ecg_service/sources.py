"""Convert WFDB records (e.g. MIT-BIH from PhysioNet) into raw int16 recordings."""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import wfdb

from .store import SAMPLE_DTYPE, SampleStream, open_stream

logger = logging.getLogger(__name__)

INT16_MIN, INT16_MAX = -32768, 32767


def import_wfdb_record(
    record_name: str,
    out_path: str,
    channel: int = 0,
    pn_dir: Optional[str] = None,
    sampto: Optional[int] = None,
) -> SampleStream:
    """
    Write one channel of a WFDB record to ``out_path`` as little-endian int16.

    ``record_name`` is a local path without extension, or a record name under
    ``pn_dir`` (e.g. ``'100'`` with ``pn_dir='mitdb'``). The ADC values are
    written as-is, clipped into the int16 range.
    """
    kwargs = {"channels": [channel], "physical": False}
    if pn_dir is not None:
        kwargs["pn_dir"] = pn_dir
    if sampto is not None:
        kwargs["sampto"] = sampto
    record = wfdb.rdrecord(record_name, **kwargs)

    digital = np.asarray(record.d_signal[:, 0], dtype=np.int64)
    clipped = np.clip(digital, INT16_MIN, INT16_MAX)
    if np.any(clipped != digital):
        logger.warning("Clipped %d samples of %s into int16", int(np.sum(clipped != digital)), record_name)
    clipped.astype(SAMPLE_DTYPE).tofile(out_path)

    fs = int(round(record.fs))
    logger.info("Imported %s channel %d: %d samples at %d Hz -> %s", record_name, channel, len(clipped), fs, out_path)
    return open_stream(out_path, fs=fs)
