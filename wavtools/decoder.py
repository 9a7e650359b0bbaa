# wavtools/decoder.py
"""
WAVE decoding: chunk records -> typed metadata + per-channel waveforms.

Pipeline (single pass, nothing retained between calls):
1) locate the first RIFF, "fmt ", "data" and (optional) "fact" chunks
2) parse the fixed little-endian layouts into RiffInfo / FmtInfo / FactInfo
3) derive the sample count (fact chunk, else data size / block_align)
4) de-interleave the data body into one float64 array per channel

Supported encodings:
- audio_format 1: integer PCM, 8-bit unsigned or 16/24/32-bit signed
- audio_format 3: IEEE float, 32 or 64 bit

Samples are promoted to float64 without scaling, so a 16-bit PCM value of
-2 decodes to -2.0.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from wavtools.chunks import RIFF_TAG, ChunkRecord, find_chunk
from wavtools.errors import MalformedChunk, MissingChunk, UnsupportedFormat


FMT_TAG = b"fmt "
FACT_TAG = b"fact"
DATA_TAG = b"data"

WAVE_FORM_TYPE = b"WAVE"

AUDIO_FORMAT_PCM = 1
AUDIO_FORMAT_IEEE_FLOAT = 3

_RIFF_LAYOUT = struct.Struct("<4s")
_FMT_LAYOUT = struct.Struct("<HHIIHH")
_FACT_LAYOUT = struct.Struct("<I")

# Sample container width in bytes -> little-endian numpy dtype.
# 24-bit PCM has no native dtype and is assembled by hand.
_PCM_DTYPES: Dict[int, str] = {
    1: "u1",
    2: "<i2",
    4: "<i4",
}
_FLOAT_DTYPES: Dict[int, str] = {
    4: "<f4",
    8: "<f8",
}

_PCM_8BIT_OFFSET = 128.0


# -------------------------------------------------------------------
# Data containers
# -------------------------------------------------------------------

@dataclass(frozen=True)
class RiffInfo:
    format_tag: bytes    # expected b"WAVE"


@dataclass(frozen=True)
class FmtInfo:
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int

    @property
    def bytes_per_sample(self) -> int:
        return (self.bits_per_sample + 7) // 8


@dataclass(frozen=True)
class FactInfo:
    num_samples: int


@dataclass(frozen=True)
class DecodeResult:
    """
    Decoded WAVE contents.

    channels[c] is a 1D float64 array of length num_samples, in channel order.
    time_axis is only filled when requested from decode_chunks; use
    get_time_axis() to obtain it either way.
    """
    riff: RiffInfo
    fmt: FmtInfo
    fact: Optional[FactInfo]
    num_samples: int
    channels: List[np.ndarray]
    time_axis: Optional[np.ndarray] = None

    @property
    def sample_rate(self) -> int:
        return self.fmt.sample_rate

    @property
    def num_channels(self) -> int:
        return self.fmt.num_channels

    @property
    def duration_seconds(self) -> float:
        if self.fmt.sample_rate <= 0:
            return 0.0
        return self.num_samples / self.fmt.sample_rate

    def get_time_axis(self) -> np.ndarray:
        if self.time_axis is not None:
            return self.time_axis
        return time_axis_from_sample_count(self.num_samples, self.fmt.sample_rate)


# -------------------------------------------------------------------
# Fixed-layout parsing
# -------------------------------------------------------------------

def _require_body_size(chunk: ChunkRecord, minimum_size: int) -> None:
    if len(chunk.body) < minimum_size:
        raise MalformedChunk(
            chunk.id,
            f"body is {len(chunk.body)} bytes, layout needs at least {minimum_size}",
        )


def parse_riff_info(chunk: ChunkRecord) -> RiffInfo:
    _require_body_size(chunk, _RIFF_LAYOUT.size)
    (format_tag,) = _RIFF_LAYOUT.unpack_from(chunk.body)
    return RiffInfo(format_tag=format_tag)


def parse_fmt_info(chunk: ChunkRecord) -> FmtInfo:
    """
    Parse the 16-byte PCM/float descriptor. Extension bytes (cbSize and
    anything after it) are ignored.
    """
    _require_body_size(chunk, _FMT_LAYOUT.size)
    (
        audio_format,
        num_channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
    ) = _FMT_LAYOUT.unpack_from(chunk.body)

    return FmtInfo(
        audio_format=audio_format,
        num_channels=num_channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
    )


def parse_fact_info(chunk: ChunkRecord) -> FactInfo:
    _require_body_size(chunk, _FACT_LAYOUT.size)
    (num_samples,) = _FACT_LAYOUT.unpack_from(chunk.body)
    return FactInfo(num_samples=num_samples)


# -------------------------------------------------------------------
# Format validation
# -------------------------------------------------------------------

def validate_sample_encoding(fmt: FmtInfo) -> None:
    """
    Raise UnsupportedFormat unless (audio_format, sample width) is decodable.
    """
    if fmt.audio_format == AUDIO_FORMAT_PCM:
        supported_widths = (1, 2, 3, 4)
    elif fmt.audio_format == AUDIO_FORMAT_IEEE_FLOAT:
        supported_widths = tuple(_FLOAT_DTYPES)
    else:
        raise UnsupportedFormat(fmt.audio_format)

    if fmt.bytes_per_sample not in supported_widths:
        raise UnsupportedFormat(fmt.audio_format, fmt.bits_per_sample)


def validate_frame_layout(fmt: FmtInfo) -> None:
    """
    block_align is trusted as the frame stride, but it must at least hold
    one sample per channel.
    """
    if fmt.num_channels == 0:
        raise MalformedChunk(FMT_TAG, "num_channels is 0")

    if fmt.block_align == 0:
        raise MalformedChunk(FMT_TAG, "block_align is 0")

    minimum_block_align = fmt.num_channels * fmt.bytes_per_sample
    if fmt.block_align < minimum_block_align:
        raise MalformedChunk(
            FMT_TAG,
            f"block_align {fmt.block_align} is smaller than "
            f"{fmt.num_channels} channels x {fmt.bytes_per_sample} bytes",
        )


# -------------------------------------------------------------------
# Sample decoding
# -------------------------------------------------------------------

def derive_num_samples(fmt: FmtInfo, fact: Optional[FactInfo], data_size: int) -> int:
    """
    Samples per channel: the fact chunk wins; otherwise whole frames in data.
    Trailing bytes of a partial frame are discarded.
    """
    if fact is not None:
        return fact.num_samples
    return data_size // fmt.block_align


def _assemble_pcm24(sample_bytes: np.ndarray) -> np.ndarray:
    """
    Combine (..., 3) little-endian byte triples into sign-extended int32.
    """
    widened = sample_bytes.astype(np.int32)
    values = widened[..., 0] | (widened[..., 1] << 8) | (widened[..., 2] << 16)
    return np.where(values >= (1 << 23), values - (1 << 24), values)


def decode_samples(data_body: bytes, fmt: FmtInfo, num_samples: int) -> List[np.ndarray]:
    """
    De-interleave num_samples frames from data_body into one float64 array
    per channel.

    Frame j starts at j * block_align; channel c within the frame starts at
    c * bytes_per_sample. Values keep their integer magnitude, except 8-bit
    PCM, which is stored unsigned and is re-centred by subtracting 128
    (byte 0x80 decodes to 0.0).
    """
    validate_sample_encoding(fmt)
    validate_frame_layout(fmt)
    return _deinterleave(data_body, fmt, num_samples)


def _deinterleave(data_body: bytes, fmt: FmtInfo, num_samples: int) -> List[np.ndarray]:
    # fmt has already passed validate_sample_encoding / validate_frame_layout.
    num_channels = fmt.num_channels
    width = fmt.bytes_per_sample

    if num_samples == 0:
        return [np.zeros((0,), dtype=np.float64) for _ in range(num_channels)]

    required_bytes = num_samples * fmt.block_align
    if len(data_body) < required_bytes:
        raise MalformedChunk(
            DATA_TAG,
            f"{num_samples} samples x {fmt.block_align} bytes per frame needs "
            f"{required_bytes} bytes, body has {len(data_body)}",
        )

    frame_bytes = np.frombuffer(data_body, dtype=np.uint8, count=required_bytes)
    frame_bytes = frame_bytes.reshape((num_samples, fmt.block_align))

    # Drop any per-frame padding beyond the channel samples.
    sample_bytes = frame_bytes[:, : num_channels * width].reshape((num_samples, num_channels, width))

    if fmt.audio_format == AUDIO_FORMAT_PCM and width == 3:
        frame_values = _assemble_pcm24(sample_bytes).astype(np.float64)
    else:
        if fmt.audio_format == AUDIO_FORMAT_PCM:
            sample_dtype = np.dtype(_PCM_DTYPES[width])
        else:
            sample_dtype = np.dtype(_FLOAT_DTYPES[width])

        frame_values = np.ascontiguousarray(sample_bytes).view(sample_dtype)
        frame_values = frame_values.reshape((num_samples, num_channels)).astype(np.float64)

        if fmt.audio_format == AUDIO_FORMAT_PCM and width == 1:
            frame_values = frame_values - _PCM_8BIT_OFFSET

    return [
        np.ascontiguousarray(frame_values[:, channel_index])
        for channel_index in range(num_channels)
    ]


# -------------------------------------------------------------------
# Top-level decode
# -------------------------------------------------------------------

def _require_chunk(chunks: Sequence[ChunkRecord], chunk_id: bytes) -> ChunkRecord:
    chunk = find_chunk(chunks, chunk_id)
    if chunk is None:
        raise MissingChunk(chunk_id)
    return chunk


def decode_chunks(
    chunks: Sequence[ChunkRecord],
    include_time_axis: bool = False,
) -> DecodeResult:
    """
    Decode a chunk list (as produced by wavtools.chunks.load_chunks).

    Unknown chunks are ignored. Only the first occurrence of each tag is used.

    Raises:
        MissingChunk: RIFF, "fmt " or "data" is absent.
        MalformedChunk: a required body is shorter than its layout, or the
            frame layout / sample count cannot be satisfied.
        UnsupportedFormat: audio_format is not 1 or 3, or the width is not
            decodable for that format.
    """
    riff_chunk = _require_chunk(chunks, RIFF_TAG)
    fmt_chunk = _require_chunk(chunks, FMT_TAG)
    data_chunk = _require_chunk(chunks, DATA_TAG)
    fact_chunk = find_chunk(chunks, FACT_TAG)

    riff = parse_riff_info(riff_chunk)
    fmt = parse_fmt_info(fmt_chunk)
    fact = None if fact_chunk is None else parse_fact_info(fact_chunk)

    validate_sample_encoding(fmt)
    validate_frame_layout(fmt)

    num_samples = derive_num_samples(fmt, fact, len(data_chunk.body))
    channels = _deinterleave(data_chunk.body, fmt, num_samples)

    time_axis = None
    if include_time_axis:
        if fmt.sample_rate == 0:
            raise MalformedChunk(FMT_TAG, "sample_rate is 0, no time axis can be built")
        time_axis = time_axis_from_sample_count(num_samples, fmt.sample_rate)

    return DecodeResult(
        riff=riff,
        fmt=fmt,
        fact=fact,
        num_samples=num_samples,
        channels=channels,
        time_axis=time_axis,
    )


def time_axis_from_sample_count(
    number_of_samples: int,
    sample_rate_hz: int,
) -> np.ndarray:
    """
    Time in seconds for each sample index: i / sample_rate_hz, float64.
    """
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be positive, got {sample_rate_hz}")

    return np.arange(number_of_samples, dtype=np.float64) / float(sample_rate_hz)


# -------------------------------------------------------------------
# Text summaries
# -------------------------------------------------------------------

def _format_name(audio_format: int) -> str:
    if audio_format == AUDIO_FORMAT_PCM:
        return "PCM"
    if audio_format == AUDIO_FORMAT_IEEE_FLOAT:
        return "IEEE float"
    return "unknown"


def summarise_decode_result_text(result: DecodeResult) -> str:
    """
    Plain-text listing of the RIFF, fmt, fact and data information.
    """
    fmt = result.fmt
    lines: List[str] = []

    format_tag = result.riff.format_tag.decode("ascii", errors="replace")
    if result.riff.format_tag == WAVE_FORM_TYPE:
        lines.append(f"RIFF format: {format_tag}")
    else:
        lines.append(f"RIFF format: {format_tag} (expected WAVE)")

    lines.append(f"audio_format={fmt.audio_format} ({_format_name(fmt.audio_format)})")
    lines.append(f"num_channels={fmt.num_channels}")
    lines.append(f"sample_rate={fmt.sample_rate} Hz")
    lines.append(f"byte_rate={fmt.byte_rate}")
    lines.append(f"block_align={fmt.block_align}")
    lines.append(f"bits_per_sample={fmt.bits_per_sample}")

    expected_block_align = fmt.bytes_per_sample * fmt.num_channels
    if fmt.block_align != expected_block_align:
        lines.append(f"  note: block_align differs from channels x width ({expected_block_align})")

    if result.fact is None:
        lines.append(f"num_samples={result.num_samples} (derived from data size)")
    else:
        lines.append(f"num_samples={result.num_samples} (from fact chunk)")

    lines.append(f"duration={result.duration_seconds:.4f}s")
    return "\n".join(lines) + "\n"


def format_waveform_head(waveform: np.ndarray, segment_length: int) -> str:
    """
    Space-separated first segment_length values of a waveform.
    """
    if segment_length <= 0 or segment_length >= waveform.shape[0]:
        return f"Segment length {segment_length} is not valid."

    return " ".join(f"{value:g}" for value in waveform[:segment_length])
