"""Speech engine boundary and the whisper.cpp implementation."""

from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterator, Optional, Protocol

import numpy as np

from ytrans.exceptions import InferenceError
from ytrans.ffmpeg import WHISPER_SAMPLE_RATE


@dataclass(frozen=True)
class EngineSegment:
    start: timedelta
    end: timedelta
    text: str


class SegmentStream:
    """
    One-shot iterator over segments pulled from an engine.

    ``pull`` returns the next segment or None when the engine has no more.
    The first None ends the stream for good.
    """

    def __init__(self, pull: Callable[[], Optional[EngineSegment]]):
        self._pull = pull

    def __iter__(self) -> Iterator[EngineSegment]:
        return self

    def __next__(self) -> EngineSegment:
        if self._pull is None:
            raise StopIteration
        segment = self._pull()
        if segment is None:
            self._pull = None
            raise StopIteration
        return segment


class SpeechEngine(Protocol):
    sample_rate: int

    def process(self, samples: np.ndarray) -> None:
        ...

    def segments(self) -> SegmentStream:
        ...

    def close(self) -> None:
        ...


class WhisperCppEngine:
    """Runs a ggml whisper.cpp model through pywhispercpp."""

    sample_rate = WHISPER_SAMPLE_RATE

    def __init__(self, model_path: Path):
        from pywhispercpp.model import Model

        try:
            self._model = Model(str(model_path))
        except Exception as e:
            raise InferenceError(f"failed to load model {model_path}: {e}") from e
        self._pending = deque()

    def process(self, samples: np.ndarray) -> None:
        try:
            produced = self._model.transcribe(np.ascontiguousarray(samples, dtype=np.float32))
        except Exception as e:
            raise InferenceError(f"failed to process audio: {e}") from e
        self._pending = deque(produced)

    def _next_segment(self) -> Optional[EngineSegment]:
        if not self._pending:
            return None
        segment = self._pending.popleft()
        # whisper.cpp timestamps are in units of 10 ms
        return EngineSegment(
            start=timedelta(milliseconds=segment.t0 * 10),
            end=timedelta(milliseconds=segment.t1 * 10),
            text=segment.text,
        )

    def segments(self) -> SegmentStream:
        return SegmentStream(self._next_segment)

    def close(self) -> None:
        self._model = None
        self._pending.clear()
