"""WAV decoding into float sample buffers."""

import wave
from pathlib import Path

import numpy as np

from ytrans.exceptions import DecodeError

# Scale and offset that map each PCM sample width onto [-1.0, 1.0)
_PCM_FORMATS = {
    1: (np.uint8, 128.0, 128.0),
    2: (np.dtype("<i2"), 0.0, 32768.0),
    4: (np.dtype("<i4"), 0.0, 2147483648.0),
}


def decode_pcm(path: Path, sample_rate: int) -> np.ndarray:
    """
    Read the full PCM buffer of a mono WAV file as float32 samples.

    Raises DecodeError for unreadable files and for files whose sample rate
    or channel count the engine cannot take.
    """
    try:
        with wave.open(str(path), "rb") as wav:
            channels = wav.getnchannels()
            rate = wav.getframerate()
            width = wav.getsampwidth()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError, OSError) as e:
        raise DecodeError(f"failed to decode audio file {path}: {e}") from e

    if rate != sample_rate:
        raise DecodeError(f"unsupported sample rate: {rate}")
    if channels != 1:
        raise DecodeError(f"unsupported number of channels: {channels}")
    if width not in _PCM_FORMATS:
        raise DecodeError(f"unsupported sample width: {width} bytes")

    dtype, offset, scale = _PCM_FORMATS[width]
    usable = len(frames) - len(frames) % width
    samples = np.frombuffer(frames[:usable], dtype=dtype).astype(np.float32)
    return (samples - offset) / scale
