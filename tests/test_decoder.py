import struct

import numpy as np
import pytest

from wavtools.chunks import ChunkRecord
from wavtools.decoder import (
    FactInfo,
    FmtInfo,
    decode_chunks,
    decode_samples,
    derive_num_samples,
    format_waveform_head,
    parse_fmt_info,
    summarise_decode_result_text,
    time_axis_from_sample_count,
)
from wavtools.errors import MalformedChunk, MissingChunk, UnsupportedFormat

from wav_builders import build_fmt_body, interleave_int16


def _chunks(fmt_body=None, data_body=None, fact_samples=None, extra=(), riff_body=b"WAVE"):
    chunks = [ChunkRecord(id=b"RIFF", declared_size=0, body=riff_body)]
    if fmt_body is not None:
        chunks.append(ChunkRecord(id=b"fmt ", declared_size=len(fmt_body), body=fmt_body))
    if fact_samples is not None:
        fact_body = struct.pack("<I", fact_samples)
        chunks.append(ChunkRecord(id=b"fact", declared_size=4, body=fact_body))
    chunks.extend(extra)
    if data_body is not None:
        chunks.append(ChunkRecord(id=b"data", declared_size=len(data_body), body=data_body))
    return chunks


def _fmt(audio_format=1, num_channels=1, sample_rate=8000, bits_per_sample=16, block_align=None) -> FmtInfo:
    if block_align is None:
        block_align = num_channels * ((bits_per_sample + 7) // 8)
    return FmtInfo(
        audio_format=audio_format,
        num_channels=num_channels,
        sample_rate=sample_rate,
        byte_rate=sample_rate * block_align,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
    )


# -------------------------------------------------------------------
# Example files
# -------------------------------------------------------------------

def test_mono_pcm16_without_fact_derives_sample_count() -> None:
    chunks = _chunks(
        fmt_body=build_fmt_body(1, 1, 8000, 16, block_align=2),
        data_body=bytes.fromhex("0100FFFF0200FEFF"),
    )

    result = decode_chunks(chunks, include_time_axis=True)

    assert result.fmt.num_channels == 1
    assert result.fmt.sample_rate == 8000
    assert result.fmt.bits_per_sample == 16
    assert result.fact is None
    assert result.num_samples == 4
    assert result.channels[0].dtype == np.float64
    assert result.channels[0].tolist() == [1.0, -1.0, 2.0, -2.0]
    assert result.time_axis.tolist() == [0.0, 1 / 8000, 2 / 8000, 3 / 8000]


def test_stereo_pcm16_ignores_junk_chunk() -> None:
    junk = ChunkRecord(id=b"JUNK", declared_size=4, body=bytes.fromhex("DEADBEEF"))
    chunks = _chunks(
        fmt_body=build_fmt_body(1, 2, 44100, 16, block_align=4),
        data_body=bytes.fromhex("0100020003000400"),
        extra=[junk],
    )

    result = decode_chunks(chunks)

    assert len(result.channels) == 2
    assert result.channels[0].tolist() == [1.0, 3.0]
    assert result.channels[1].tolist() == [2.0, 4.0]


def test_mono_float32_uses_fact_sample_count() -> None:
    chunks = _chunks(
        fmt_body=build_fmt_body(3, 1, 8000, 32, block_align=4),
        data_body=bytes.fromhex("0000803F000000C0"),
        fact_samples=2,
    )

    result = decode_chunks(chunks)

    assert result.fact == FactInfo(num_samples=2)
    assert result.num_samples == 2
    assert result.channels[0].tolist() == [1.0, -2.0]


def test_unsupported_format_code() -> None:
    chunks = _chunks(
        fmt_body=build_fmt_body(2, 1, 8000, 16),
        data_body=b"\x00\x00",
    )

    with pytest.raises(UnsupportedFormat) as error_info:
        decode_chunks(chunks)

    assert error_info.value.audio_format == 2
    assert error_info.value.bits_per_sample is None


def test_missing_fmt_chunk() -> None:
    chunks = _chunks(data_body=b"\x01\x00")

    with pytest.raises(MissingChunk) as error_info:
        decode_chunks(chunks)

    assert error_info.value.tag == b"fmt "


# -------------------------------------------------------------------
# Chunk location and layout
# -------------------------------------------------------------------

def test_missing_riff_chunk() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 1, 8000, 16), data_body=b"")[1:]

    with pytest.raises(MissingChunk) as error_info:
        decode_chunks(chunks)

    assert error_info.value.tag == b"RIFF"


def test_missing_data_chunk() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 1, 8000, 16))

    with pytest.raises(MissingChunk) as error_info:
        decode_chunks(chunks)

    assert error_info.value.tag == b"data"


def test_short_fmt_body_is_malformed() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 1, 8000, 16)[:14], data_body=b"")

    with pytest.raises(MalformedChunk) as error_info:
        decode_chunks(chunks)

    assert error_info.value.tag == b"fmt "


def test_short_fact_body_is_malformed() -> None:
    fact = ChunkRecord(id=b"fact", declared_size=2, body=b"\x02\x00")
    chunks = _chunks(fmt_body=build_fmt_body(3, 1, 8000, 32), data_body=b"", extra=[fact])

    with pytest.raises(MalformedChunk) as error_info:
        decode_chunks(chunks)

    assert error_info.value.tag == b"fact"


def test_fmt_extension_bytes_are_ignored() -> None:
    fmt_body = build_fmt_body(1, 1, 8000, 16, extension=b"\x02\x00\xaa\xbb")
    chunks = _chunks(fmt_body=fmt_body, data_body=b"\x05\x00")

    result = decode_chunks(chunks)

    assert result.fmt == parse_fmt_info(ChunkRecord(id=b"fmt ", declared_size=16, body=fmt_body[:16]))
    assert result.channels[0].tolist() == [5.0]


def test_first_occurrence_of_each_chunk_wins() -> None:
    second_data = ChunkRecord(id=b"data", declared_size=2, body=b"\x09\x00")
    chunks = _chunks(fmt_body=build_fmt_body(1, 1, 8000, 16), data_body=b"\x01\x00") + [second_data]

    result = decode_chunks(chunks)

    assert result.channels[0].tolist() == [1.0]


def test_unknown_chunk_does_not_change_waveforms() -> None:
    fmt_body = build_fmt_body(1, 2, 44100, 16)
    data_body = interleave_int16([10, -20, 30], [-1, 2, -3])
    unknown = ChunkRecord(id=b"xxxx", declared_size=5, body=b"\xff" * 5)

    plain = decode_chunks(_chunks(fmt_body=fmt_body, data_body=data_body))
    with_unknown = decode_chunks(_chunks(fmt_body=fmt_body, data_body=data_body) + [unknown])
    unknown_in_middle = decode_chunks(_chunks(fmt_body=fmt_body, data_body=data_body, extra=[unknown]))

    for other in (with_unknown, unknown_in_middle):
        for plain_channel, other_channel in zip(plain.channels, other.channels):
            np.testing.assert_array_equal(plain_channel, other_channel)


def test_non_wave_form_type_is_reported_not_rejected() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 1, 8000, 16), data_body=b"\x01\x00", riff_body=b"AVI ")

    result = decode_chunks(chunks)

    assert result.riff.format_tag == b"AVI "
    assert "expected WAVE" in summarise_decode_result_text(result)


# -------------------------------------------------------------------
# Sample count and framing
# -------------------------------------------------------------------

def test_derive_num_samples_prefers_fact() -> None:
    fmt = _fmt(num_channels=2)

    assert derive_num_samples(fmt, FactInfo(num_samples=3), data_size=400) == 3
    assert derive_num_samples(fmt, None, data_size=400) == 100


def test_trailing_partial_frame_is_discarded() -> None:
    data_body = interleave_int16([1, 2], [3, 4]) + b"\x07\x00\x08"
    chunks = _chunks(fmt_body=build_fmt_body(1, 2, 8000, 16), data_body=data_body)

    result = decode_chunks(chunks)

    assert result.num_samples == 2
    assert result.channels[0].tolist() == [1.0, 2.0]
    assert result.channels[1].tolist() == [3.0, 4.0]


def test_empty_data_gives_empty_channels() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 3, 8000, 16), data_body=b"")

    result = decode_chunks(chunks, include_time_axis=True)

    assert result.num_samples == 0
    assert len(result.channels) == 3
    assert all(channel.shape == (0,) for channel in result.channels)
    assert result.time_axis.shape == (0,)


def test_fact_count_larger_than_data_is_malformed() -> None:
    chunks = _chunks(
        fmt_body=build_fmt_body(3, 1, 8000, 32),
        data_body=struct.pack("<f", 1.0),
        fact_samples=5,
    )

    with pytest.raises(MalformedChunk) as error_info:
        decode_chunks(chunks)

    assert error_info.value.tag == b"data"


def test_fact_count_smaller_than_data_truncates() -> None:
    chunks = _chunks(
        fmt_body=build_fmt_body(1, 1, 8000, 16),
        data_body=interleave_int16([4, 5, 6]),
        fact_samples=2,
    )

    assert decode_chunks(chunks).channels[0].tolist() == [4.0, 5.0]


def test_block_align_is_trusted_as_frame_stride() -> None:
    # Two 16-bit channels in a 6-byte frame: 2 bytes of padding per frame.
    data_body = bytes.fromhex("0100 0200 EEEE 0300 0400 EEEE".replace(" ", ""))
    chunks = _chunks(fmt_body=build_fmt_body(1, 2, 8000, 16, block_align=6), data_body=data_body)

    result = decode_chunks(chunks)

    assert result.num_samples == 2
    assert result.channels[0].tolist() == [1.0, 3.0]
    assert result.channels[1].tolist() == [2.0, 4.0]


@pytest.mark.parametrize("block_align", [0, 3])
def test_block_align_too_small_is_malformed(block_align: int) -> None:
    chunks = _chunks(
        fmt_body=build_fmt_body(1, 2, 8000, 16, block_align=block_align),
        data_body=b"\x00" * 8,
    )

    with pytest.raises(MalformedChunk) as error_info:
        decode_chunks(chunks)

    assert error_info.value.tag == b"fmt "


def test_zero_channels_is_malformed() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 0, 8000, 16, block_align=2), data_body=b"")

    with pytest.raises(MalformedChunk):
        decode_chunks(chunks)


# -------------------------------------------------------------------
# Width-driven sample decoding
# -------------------------------------------------------------------

def test_pcm8_is_unsigned_and_recentred() -> None:
    samples = decode_samples(bytes([0, 128, 255]), _fmt(bits_per_sample=8), num_samples=3)

    assert samples[0].tolist() == [-128.0, 0.0, 127.0]


def test_decode_chunks_validates_format_once(monkeypatch: pytest.MonkeyPatch) -> None:
    from wavtools import decoder

    calls = []
    original_encoding = decoder.validate_sample_encoding
    original_layout = decoder.validate_frame_layout

    def counting_encoding(fmt):
        calls.append("encoding")
        original_encoding(fmt)

    def counting_layout(fmt):
        calls.append("layout")
        original_layout(fmt)

    monkeypatch.setattr(decoder, "validate_sample_encoding", counting_encoding)
    monkeypatch.setattr(decoder, "validate_frame_layout", counting_layout)

    result = decode_chunks(_chunks(build_fmt_body(1, 1, 8000, 16), interleave_int16([1, -1])))

    assert result.channels[0].tolist() == [1.0, -1.0]
    assert calls == ["encoding", "layout"]


def test_pcm24_is_sign_extended() -> None:
    data_body = bytes.fromhex("FFFF7F 000080 010000 FFFFFF".replace(" ", ""))

    samples = decode_samples(data_body, _fmt(bits_per_sample=24), num_samples=4)

    assert samples[0].tolist() == [8388607.0, -8388608.0, 1.0, -1.0]


def test_pcm32_stereo() -> None:
    data_body = struct.pack("<4i", 2**31 - 1, -(2**31), -5, 6)

    samples = decode_samples(data_body, _fmt(num_channels=2, bits_per_sample=32), num_samples=2)

    assert samples[0].tolist() == [2147483647.0, -5.0]
    assert samples[1].tolist() == [-2147483648.0, 6.0]


def test_float64_samples() -> None:
    data_body = struct.pack("<3d", 0.1, -0.25, 1e-300)

    samples = decode_samples(data_body, _fmt(audio_format=3, bits_per_sample=64), num_samples=3)

    assert samples[0].tolist() == [0.1, -0.25, 1e-300]


def test_float32_values_are_exactly_promoted() -> None:
    values = np.array([0.1, -3.5, 1e-20], dtype=np.float32)

    samples = decode_samples(values.astype("<f4").tobytes(), _fmt(audio_format=3, bits_per_sample=32), 3)

    np.testing.assert_array_equal(samples[0], values.astype(np.float64))


@pytest.mark.parametrize(
    "audio_format, bits_per_sample",
    [(1, 40), (1, 64), (3, 16), (3, 24)],
)
def test_unsupported_width_reports_bits(audio_format: int, bits_per_sample: int) -> None:
    with pytest.raises(UnsupportedFormat) as error_info:
        decode_samples(b"", _fmt(audio_format=audio_format, bits_per_sample=bits_per_sample), 0)

    assert error_info.value.audio_format == audio_format
    assert error_info.value.bits_per_sample == bits_per_sample


def test_channels_do_not_alias_input_buffer() -> None:
    data_body = bytearray(interleave_int16([1, 2], [3, 4]))

    samples = decode_samples(bytes(data_body), _fmt(num_channels=2), 2)
    samples[0][0] = 99.0

    assert samples[1].tolist() == [3.0, 4.0]
    assert samples[0].flags.writeable
    assert samples[0].flags.c_contiguous


def test_interleave_roundtrip_is_bit_identical() -> None:
    rng = np.random.default_rng(1234)
    left = rng.integers(-32768, 32768, size=257)
    right = rng.integers(-32768, 32768, size=257)
    centre = rng.integers(-32768, 32768, size=257)

    chunks = _chunks(
        fmt_body=build_fmt_body(1, 3, 48000, 16),
        data_body=interleave_int16(left, right, centre),
    )
    result = decode_chunks(chunks)

    for expected, decoded in zip((left, right, centre), result.channels):
        np.testing.assert_array_equal(decoded, expected.astype(np.float64))

    reencoded = np.stack(result.channels, axis=1).astype("<i2").tobytes()
    assert reencoded == chunks[-1].body


# -------------------------------------------------------------------
# Time axis and text output
# -------------------------------------------------------------------

def test_time_axis_matches_index_over_rate() -> None:
    time_axis = time_axis_from_sample_count(1000, 44100)

    assert time_axis[0] == 0.0
    assert np.all(np.diff(time_axis) > 0.0)
    assert all(time_axis[i] == i / 44100 for i in range(1000))


def test_time_axis_rejects_zero_rate() -> None:
    with pytest.raises(ValueError):
        time_axis_from_sample_count(4, 0)


def test_time_axis_request_with_zero_rate_is_malformed() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 1, 0, 16), data_body=b"\x01\x00")

    assert decode_chunks(chunks).channels[0].tolist() == [1.0]
    with pytest.raises(MalformedChunk):
        decode_chunks(chunks, include_time_axis=True)


def test_get_time_axis_computes_on_demand() -> None:
    chunks = _chunks(fmt_body=build_fmt_body(1, 1, 4, 16), data_body=interleave_int16([0, 0, 0]))

    result = decode_chunks(chunks)

    assert result.time_axis is None
    assert result.get_time_axis().tolist() == [0.0, 0.25, 0.5]
    assert result.duration_seconds == 0.75


def test_summarise_decode_result_text() -> None:
    chunks = _chunks(
        fmt_body=build_fmt_body(3, 1, 8000, 32),
        data_body=bytes.fromhex("0000803F000000C0"),
        fact_samples=2,
    )

    text = summarise_decode_result_text(decode_chunks(chunks))

    assert "RIFF format: WAVE\n" in text
    assert "audio_format=3 (IEEE float)" in text
    assert "sample_rate=8000 Hz" in text
    assert "num_samples=2 (from fact chunk)" in text


def test_format_waveform_head() -> None:
    waveform = np.array([1.0, -1.0, 2.0, -2.0])

    assert format_waveform_head(waveform, 2) == "1 -1"
    assert format_waveform_head(waveform, 0) == "Segment length 0 is not valid."
    assert format_waveform_head(waveform, 4) == "Segment length 4 is not valid."
