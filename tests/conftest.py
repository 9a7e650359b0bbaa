import matplotlib

matplotlib.use("Agg")

from pathlib import Path

import pytest

from wav_builders import MONO_PCM16_BYTES, write_bytes


@pytest.fixture
def mono_pcm16_path(tmp_path: Path) -> Path:
    return write_bytes(tmp_path / "mono_pcm16.wav", MONO_PCM16_BYTES)
