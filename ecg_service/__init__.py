"""Minute-paged single-lead ECG decoding, filtering, beat detection and page layout."""

__version__ = "1.0.0"
