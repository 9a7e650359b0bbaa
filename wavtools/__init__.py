# wavtools/__init__.py
"""
wavtools package

Reading uncompressed RIFF/WAVE files into per-channel waveforms.

This package contains:
- RIFF chunk framing (wavtools.chunks)
- fmt/fact/data interpretation and de-interleaving (wavtools.decoder)
- one-call file loading (wavtools.io)
- gnuplot / matplotlib plotting of decoded channels (wavtools.plotting)
- command line interface entrypoint (wavtools.cli)

Typical usage:
    from wavtools.io import load_wav_file
"""

from .chunks import (
    ChunkRecord,
    LoadedChunks,
    find_chunk,
    load_chunks,
    summarise_chunks_text,
)
from .decoder import (
    AUDIO_FORMAT_IEEE_FLOAT,
    AUDIO_FORMAT_PCM,
    DecodeResult,
    FactInfo,
    FmtInfo,
    RiffInfo,
    decode_chunks,
    decode_samples,
    derive_num_samples,
    format_waveform_head,
    summarise_decode_result_text,
    time_axis_from_sample_count,
)
from .errors import (
    IoOpenError,
    MalformedChunk,
    MissingChunk,
    PlotterUnavailable,
    TruncatedChunk,
    UnsupportedFormat,
    WavError,
)
from .io import get_channel, load_wav_file

__all__ = [
    "AUDIO_FORMAT_IEEE_FLOAT",
    "AUDIO_FORMAT_PCM",
    "ChunkRecord",
    "DecodeResult",
    "FactInfo",
    "FmtInfo",
    "IoOpenError",
    "LoadedChunks",
    "MalformedChunk",
    "MissingChunk",
    "PlotterUnavailable",
    "RiffInfo",
    "TruncatedChunk",
    "UnsupportedFormat",
    "WavError",
    "decode_chunks",
    "decode_samples",
    "derive_num_samples",
    "find_chunk",
    "format_waveform_head",
    "get_channel",
    "load_chunks",
    "load_wav_file",
    "summarise_chunks_text",
    "summarise_decode_result_text",
    "time_axis_from_sample_count",
]
