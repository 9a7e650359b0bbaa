# wavtools/errors.py
"""
Exceptions raised while loading and decoding RIFF/WAVE files.

Every error carries the tag, format code or path at fault so the CLI can
print a diagnostic without re-deriving it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


def _tag_text(tag: bytes | str) -> str:
    if isinstance(tag, bytes):
        return tag.decode("ascii", errors="replace")
    return tag


class WavError(Exception):
    """
    Base class for every loader/decoder failure.
    """


class IoOpenError(WavError):
    def __init__(self, file_path: str | Path, reason: str) -> None:
        self.file_path = Path(file_path)
        self.reason = reason
        super().__init__(f"Could not open {self.file_path}: {reason}")


class TruncatedChunk(WavError):
    """
    A chunk header or body extends past end-of-file.

    tag is None when the header itself could not be read.
    """

    def __init__(
        self,
        tag: Optional[bytes],
        offset: int,
        bytes_needed: int,
        bytes_available: int,
    ) -> None:
        self.tag = tag
        self.offset = offset
        self.bytes_needed = bytes_needed
        self.bytes_available = bytes_available

        if tag is None:
            what = "chunk header"
        else:
            what = f"'{_tag_text(tag)}' chunk body"

        super().__init__(
            f"Truncated {what} at offset {offset}: "
            f"needed {bytes_needed} bytes, only {bytes_available} available"
        )


class MissingChunk(WavError):
    def __init__(self, tag: bytes) -> None:
        self.tag = tag
        super().__init__(f"Required chunk '{_tag_text(tag)}' not found")


class MalformedChunk(WavError):
    def __init__(self, tag: bytes, detail: str) -> None:
        self.tag = tag
        self.detail = detail
        super().__init__(f"Malformed '{_tag_text(tag)}' chunk: {detail}")


class UnsupportedFormat(WavError):
    """
    audio_format is not 1 (integer PCM) or 3 (IEEE float), or the sample
    width is not one this decoder handles for that format.
    """

    def __init__(self, audio_format: int, bits_per_sample: Optional[int] = None) -> None:
        self.audio_format = audio_format
        self.bits_per_sample = bits_per_sample

        if bits_per_sample is None:
            message = f"Unsupported audio format code: {audio_format}"
        else:
            message = (
                f"Unsupported sample width for audio format {audio_format}: "
                f"{bits_per_sample} bits per sample"
            )
        super().__init__(message)


class PlotterUnavailable(WavError):
    def __init__(self, executable: str) -> None:
        self.executable = executable
        super().__init__(f"Plotting executable not found on PATH: {executable}")
