"""Download, transcribe and store a YouTube video's transcript."""

import sys
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TextIO

import numpy as np

from ytrans.audio import decode_pcm
from ytrans.cancellation import CancellationToken, NeverCancelled
from ytrans.config import Config
from ytrans.downloader import CORRUPTED_MARKER, YouTubeAudioSource, acquire_audio
from ytrans.engine import EngineSegment, SpeechEngine, WhisperCppEngine
from ytrans.exceptions import AudioDownloadError, InferenceError, PersistenceError, TranscriberError
from ytrans.ffmpeg import Transcoder
from ytrans.model_fetcher import fetch_models
from ytrans.models import RawSegment, TranscriptRecord, srt_timestamp, to_records
from ytrans.repository import TranscriptionsRepository


def collect_segments(stream: Iterable[EngineSegment], out: TextIO = sys.stdout) -> List[RawSegment]:
    """Drain the engine output into raw segments numbered from 1."""
    segments = []
    for index, segment in enumerate(stream, start=1):
        print(f"{srt_timestamp(segment.start)} --> {srt_timestamp(segment.end)}", file=out)
        print(segment.text, file=out)
        segments.append(RawSegment(index=index, start=segment.start, stop=segment.end, text=segment.text))
    return segments


class TranscriptionPipeline:
    """
    Runs one video link through every step, strictly in order:

    audio download -> model download -> WAV decode (with a single resample
    retry when the buffer comes back empty) -> inference -> storage.

    Storage failures are reported but do not fail the run.
    """

    def __init__(
        self,
        config: Config,
        repository: TranscriptionsRepository,
        cancel: Optional[CancellationToken] = None,
        audio_source: Optional[YouTubeAudioSource] = None,
        transcoder: Optional[Transcoder] = None,
        engine_factory: Callable[[Path], SpeechEngine] = WhisperCppEngine,
        model_fetcher: Callable[..., Optional[Path]] = fetch_models,
        progress: TextIO = sys.stdout,
    ):
        self.config = config
        self.repository = repository
        self.cancel = cancel or NeverCancelled()
        self.audio_source = audio_source
        self.transcoder = transcoder or Transcoder(config.ffmpeg_bin)
        self.engine_factory = engine_factory
        self.model_fetcher = model_fetcher
        self.progress = progress

    def run(self, link: str) -> List[TranscriptRecord]:
        try:
            audio_path = acquire_audio(link, self.config, self.audio_source, self.transcoder)
        except TranscriberError as e:
            raise AudioDownloadError(f"failed to download the video: {e}") from e

        print("Downloading the model...")
        model_path = self.model_fetcher(self.config, self.cancel, self.progress)
        if model_path is None:
            raise InferenceError("failed to load model: no model could be downloaded")

        engine = self.engine_factory(model_path)
        try:
            print("✓ Successfully loaded the model")
            samples = decode_pcm(audio_path, engine.sample_rate)
            print(f"Audio data length: {len(samples)}")
            if len(samples) == 0:
                samples = self._reconvert(audio_path, engine.sample_rate)

            print("Starting the transcription...")
            engine.process(samples)
            segments = collect_segments(engine.segments())
        finally:
            engine.close()

        records = to_records(segments, yt_link=link)
        try:
            saved = self.repository.save_transcriptions(link, records)
            print(f"✓ Saved {saved} transcriptions")
        except PersistenceError as e:
            print(f"⚠ Error: {e}", file=sys.stderr)
        return records

    def _reconvert(self, audio_path: Path, sample_rate: int) -> np.ndarray:
        """Resample once into the unmarked filename and decode that file."""
        # abc_corrupted.wav -> abc.wav
        fixed_path = audio_path.with_name(audio_path.name.replace(CORRUPTED_MARKER, "", 1))
        self.transcoder.resample(audio_path, fixed_path)
        samples = decode_pcm(fixed_path, sample_rate)
        print(f"✓ Successfully converted the audio file ({len(samples)} samples)")
        return samples
