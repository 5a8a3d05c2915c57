import wave
from pathlib import Path

import pytest

from ytrans.config import Config


@pytest.fixture()
def config(tmp_path) -> Config:
    config = Config(
        model_names=["ggml-tiny.en"],
        model_dir=tmp_path / "models",
        data_dir=tmp_path / "data",
        database_url=f"sqlite:///{tmp_path / 'transcriptions.db'}",
        report_interval=5.0,
    )
    config.model_dir.mkdir()
    config.data_dir.mkdir()
    return config


def write_wav(path: Path, samples=(), channels: int = 1, rate: int = 16000) -> Path:
    """Write 16-bit PCM samples (ints) into a WAV file."""
    frames = b"".join(int(s).to_bytes(2, "little", signed=True) for s in samples)
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(frames)
    return path
