"""FFmpeg invocations used to produce whisper-ready WAV files."""

import subprocess
from pathlib import Path
from typing import Iterable, Optional

from ytrans.exceptions import TranscoderError
from ytrans.progress import ProgressCallback, ProgressWriter

WHISPER_SAMPLE_RATE = 16000

# mono, 16 kHz, signed 16-bit PCM in a WAV container, stdin -> stdout
NORMALIZE_ARGS = [
    "-i", "pipe:0",
    "-vn", "-ac", "1", "-ar", str(WHISPER_SAMPLE_RATE),
    "-codec:a", "pcm_s16le", "-f", "wav", "pipe:1",
]


class Transcoder:
    def __init__(self, ffmpeg_bin: str = "ffmpeg"):
        self.ffmpeg_bin = ffmpeg_bin

    def _not_found(self) -> TranscoderError:
        return TranscoderError(
            f"ffmpeg binary not found: {self.ffmpeg_bin}. "
            "Install ffmpeg and ensure it is in PATH (or set FFMPEG_BIN)."
        )

    def normalize_to_wav(
        self,
        chunks: Iterable[bytes],
        output_path: Path,
        content_length: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path:
        """
        Pipe raw audio ``chunks`` through ffmpeg into ``output_path``.

        Bytes fed to ffmpeg are counted against ``content_length`` and
        reported through ``on_progress``.
        """
        args = [self.ffmpeg_bin, *NORMALIZE_ARGS]
        with open(output_path, "wb") as output_file:
            try:
                process = subprocess.Popen(args, stdin=subprocess.PIPE, stdout=output_file)
            except FileNotFoundError as exc:
                raise self._not_found() from exc

            try:
                writer = ProgressWriter(process.stdin, content_length, on_progress)
                try:
                    for chunk in chunks:
                        writer.write(chunk)
                except BrokenPipeError:
                    # ffmpeg exited early; its exit code explains why
                    pass
                finally:
                    try:
                        process.stdin.close()
                    except BrokenPipeError:
                        pass
                returncode = process.wait()
            except BaseException:
                process.kill()
                process.wait()
                raise

        if returncode != 0:
            raise TranscoderError(f"ffmpeg conversion failed (code={returncode}): {' '.join(args)}")
        return output_path

    def resample(self, source: Path, destination: Path) -> Path:
        """Resample ``source`` to 16 kHz into ``destination``, overwriting it."""
        args = [
            self.ffmpeg_bin, "-i", str(source),
            "-ar", str(WHISPER_SAMPLE_RATE), str(destination), "-y",
        ]
        try:
            result = subprocess.run(args)
        except FileNotFoundError as exc:
            raise self._not_found() from exc
        if result.returncode != 0:
            raise TranscoderError(f"ffmpeg conversion failed (code={result.returncode}): {' '.join(args)}")
        return destination
