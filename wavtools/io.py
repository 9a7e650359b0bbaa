# wavtools/io.py
"""
WAV file loading: chunk scan followed by decode.

Typical usage:
    result = load_wav_file("recording.wav")
    left = get_channel(result, 0)
    seconds = result.get_time_axis()
"""

from __future__ import annotations

from pathlib import Path

import numpy as np

from wavtools.chunks import load_chunks
from wavtools.decoder import DecodeResult, decode_chunks


def load_wav_file(
    wav_file_path: str | Path,
    include_time_axis: bool = True,
    skip_pad_bytes: bool = False,
) -> DecodeResult:
    """
    Load and decode a WAV file.

    Errors from either stage (IoOpenError, TruncatedChunk, MissingChunk,
    MalformedChunk, UnsupportedFormat) propagate unchanged.
    """
    loaded_chunks = load_chunks(wav_file_path, skip_pad_bytes=skip_pad_bytes)
    return decode_chunks(loaded_chunks.chunks, include_time_axis=include_time_axis)


def get_channel(
    decode_result: DecodeResult,
    channel_index: int,
) -> np.ndarray:
    """
    Return a single channel as a 1D float64 array of length num_samples.
    """
    channel_count = len(decode_result.channels)
    if not (0 <= channel_index < channel_count):
        raise ValueError(f"channel_index out of range: {channel_index} for {channel_count} channels")

    return decode_result.channels[channel_index]
