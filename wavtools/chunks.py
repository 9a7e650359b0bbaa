# wavtools/chunks.py
"""
RIFF chunk framing.

A RIFF/WAVE file is read as a flat stream of chunks, each framed by an
8-byte header (4-byte id, little-endian u32 size) followed by the body.

The outer RIFF chunk is special: only its 4-byte form type ("WAVE") is taken
as its body. The sub-chunks that follow are read as siblings in the same
stream, so one linear scan enumerates fmt/fact/data/... without recursion.

No interpretation happens here beyond framing; see wavtools.decoder.
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from wavtools.errors import IoOpenError, TruncatedChunk


CHUNK_HEADER_SIZE = 8
RIFF_TAG = b"RIFF"
RIFF_FORM_TYPE_SIZE = 4

_CHUNK_HEADER = struct.Struct("<4sI")


@dataclass(frozen=True)
class ChunkRecord:
    """
    One raw chunk as it appears on disk.
    """
    id: bytes              # 4 raw bytes, trailing spaces kept (b"fmt ")
    declared_size: int     # u32 from the header
    body: bytes            # len == 4 for RIFF, declared_size otherwise
    offset: int = 0        # byte offset of the header within the file

    @property
    def tag(self) -> str:
        return self.id.decode("ascii", errors="replace")


@dataclass(frozen=True)
class LoadedChunks:
    """
    Result of a chunk scan: every chunk in on-disk order plus the file length.
    """
    file_path: Path
    file_size: int
    chunks: List[ChunkRecord]


def _read_exactly(
    file_handle: BinaryIO,
    byte_count: int,
    tag: Optional[bytes],
    offset: int,
    file_size: int,
) -> bytes:
    available = max(0, file_size - file_handle.tell())
    if byte_count > available:
        raise TruncatedChunk(
            tag=tag,
            offset=offset,
            bytes_needed=byte_count,
            bytes_available=available,
        )

    data = file_handle.read(byte_count)
    if len(data) < byte_count:
        raise TruncatedChunk(
            tag=tag,
            offset=offset,
            bytes_needed=byte_count,
            bytes_available=len(data),
        )
    return data


def effective_body_size(chunk_id: bytes, declared_size: int) -> int:
    """
    Number of body bytes the scan consumes for a chunk header.
    """
    if chunk_id == RIFF_TAG:
        return RIFF_FORM_TYPE_SIZE
    return declared_size


def read_chunks(
    file_handle: BinaryIO,
    file_size: int,
    skip_pad_bytes: bool = False,
) -> List[ChunkRecord]:
    """
    Scan an open binary stream from its current position to file_size.

    If skip_pad_bytes is True, the RIFF word-alignment byte after an
    odd-sized body is skipped when it is present before end-of-file.
    """
    chunks: List[ChunkRecord] = []

    while file_handle.tell() < file_size:
        header_offset = file_handle.tell()

        header_bytes = _read_exactly(
            file_handle,
            CHUNK_HEADER_SIZE,
            tag=None,
            offset=header_offset,
            file_size=file_size,
        )
        chunk_id, declared_size = _CHUNK_HEADER.unpack(header_bytes)

        body_size = effective_body_size(chunk_id, declared_size)
        body = _read_exactly(
            file_handle,
            body_size,
            tag=chunk_id,
            offset=header_offset,
            file_size=file_size,
        )

        chunks.append(
            ChunkRecord(
                id=chunk_id,
                declared_size=declared_size,
                body=body,
                offset=header_offset,
            )
        )

        if skip_pad_bytes and body_size % 2 == 1 and file_handle.tell() < file_size:
            file_handle.seek(1, os.SEEK_CUR)

    return chunks


def load_chunks(file_path: str | Path, skip_pad_bytes: bool = False) -> LoadedChunks:
    """
    Open a file and return every chunk in on-disk order.

    Raises:
        IoOpenError: the file could not be opened.
        TruncatedChunk: a header or body runs past end-of-file.
    """
    file_path = Path(file_path)

    try:
        file_handle = open(file_path, "rb")
    except OSError as open_error:
        raise IoOpenError(file_path, open_error.strerror or str(open_error)) from open_error

    with file_handle:
        file_handle.seek(0, os.SEEK_END)
        file_size = file_handle.tell()
        file_handle.seek(0, os.SEEK_SET)

        chunks = read_chunks(file_handle, file_size, skip_pad_bytes=skip_pad_bytes)

    return LoadedChunks(file_path=file_path, file_size=file_size, chunks=chunks)


def find_chunk(chunks: Sequence[ChunkRecord], chunk_id: bytes) -> Optional[ChunkRecord]:
    """
    Return the first chunk whose 4-byte id matches exactly, or None.
    """
    for chunk in chunks:
        if chunk.id == chunk_id:
            return chunk
    return None


def summarise_chunks_text(loaded: LoadedChunks) -> str:
    lines: List[str] = []
    lines.append(f"File: {loaded.file_path} ({loaded.file_size} bytes)")
    lines.append(f"Chunks found: {len(loaded.chunks)}")

    for chunk in loaded.chunks:
        lines.append(
            f"  '{chunk.tag}' @ {chunk.offset:>8d}  "
            f"declared_size={chunk.declared_size}  body={len(chunk.body)} bytes"
        )

    return "\n".join(lines)
