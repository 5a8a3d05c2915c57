"""YouTube audio acquisition using yt-dlp and ffmpeg."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional

import requests
import yt_dlp
from tqdm import tqdm

from ytrans.config import Config
from ytrans.exceptions import AudioDownloadError
from ytrans.ffmpeg import Transcoder
from ytrans.progress import ProgressCallback

# Files carrying this marker still need validation before they count as cached
CORRUPTED_MARKER = "_corrupted"

# itag 251 is high quality opus audio
PREFERRED_AUDIO_FORMAT = "251"


@dataclass
class AudioStream:
    """A resolved, directly downloadable audio format of a video."""
    url: str
    format_id: str
    content_length: Optional[int] = None
    http_headers: Dict[str, str] = field(default_factory=dict)


def youtube_id(link: str) -> str:
    """Derive the cache identifier from the last path/query segment of a link."""
    watch = link.split("/")[-1]
    return watch.split("=")[-1]


def _is_audio_only(fmt: dict) -> bool:
    return fmt.get("vcodec") == "none" and fmt.get("acodec") not in (None, "none") and bool(fmt.get("url"))


def select_audio_format(formats: list) -> dict:
    """Pick itag 251 when offered, otherwise the audio-only format with the best bitrate."""
    for fmt in formats:
        if str(fmt.get("format_id")) == PREFERRED_AUDIO_FORMAT and fmt.get("url"):
            return fmt
    candidates = [fmt for fmt in formats if _is_audio_only(fmt)]
    if not candidates:
        raise AudioDownloadError("No audio-only stream available for this video")
    return max(candidates, key=lambda fmt: fmt.get("abr") or fmt.get("tbr") or 0)


class YouTubeAudioSource:
    """Resolve and stream a video's audio track."""

    def __init__(self, session=None):
        self.session = session or requests.Session()
        self.ydl_opts = {
            'quiet': True,
            'no_warnings': True,
            'noplaylist': True,
            'skip_download': True,
        }

    def resolve(self, link: str) -> AudioStream:
        try:
            with yt_dlp.YoutubeDL(self.ydl_opts) as ydl:
                info = ydl.extract_info(link, download=False)
        except yt_dlp.utils.DownloadError as e:
            raise AudioDownloadError(f"failed to get video details: {e}") from e

        fmt = select_audio_format(info.get('formats') or [])
        return AudioStream(
            url=fmt['url'],
            format_id=str(fmt.get('format_id')),
            content_length=fmt.get('filesize') or fmt.get('filesize_approx'),
            http_headers=dict(fmt.get('http_headers') or {}),
        )

    def open(self, stream: AudioStream, chunk_size: int = 1024 * 64) -> Iterator[bytes]:
        try:
            response = self.session.get(stream.url, headers=stream.http_headers, stream=True)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AudioDownloadError(f"failed to get audio stream: {e}") from e
        return self._iter_body(response, chunk_size)

    @staticmethod
    def _iter_body(response, chunk_size: int) -> Iterator[bytes]:
        with response:
            try:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if chunk:
                        yield chunk
            except requests.RequestException as e:
                raise AudioDownloadError(f"audio stream interrupted: {e}") from e


def acquire_audio(
    link: str,
    config: Config,
    source: Optional[YouTubeAudioSource] = None,
    transcoder: Optional[Transcoder] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> Path:
    """
    Return a local mono 16 kHz WAV file for ``link``.

    ``<id>.wav`` in the data directory is reused as is. Otherwise the audio is
    streamed through ffmpeg into ``<id>_corrupted.wav``.
    """
    print(f"Downloading and converting YouTube link: {link}")
    video_id = youtube_id(link)
    audio_path = config.data_dir / f"{video_id}.wav"

    if audio_path.exists():
        print(f"✓ Using cached audio for video {video_id}")
        return audio_path

    try:
        config.data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise AudioDownloadError(f"failed to create data directory {config.data_dir}: {e}") from e
    source = source or YouTubeAudioSource()
    transcoder = transcoder or Transcoder(config.ffmpeg_bin)

    stream = source.resolve(link)
    print(f"✓ Found audio stream (format {stream.format_id})")
    output_path = config.data_dir / f"{video_id}{CORRUPTED_MARKER}.wav"

    chunks = source.open(stream, config.chunk_size)
    try:
        _transcode(transcoder, chunks, output_path, stream.content_length, on_progress)
    except OSError as e:
        raise AudioDownloadError(f"failed to create output file {output_path}: {e}") from e

    print(f"✓ Audio saved as: {output_path.name}")
    return output_path


def _transcode(
    transcoder: Transcoder,
    chunks: Iterator[bytes],
    output_path: Path,
    content_length: Optional[int],
    on_progress: Optional[ProgressCallback],
) -> None:
    if on_progress is not None:
        transcoder.normalize_to_wav(chunks, output_path, content_length, on_progress)
        return

    with tqdm(
        total=100,
        desc="Downloading audio",
        unit="%",
        bar_format="{desc}: {percentage:3.0f}%|{bar}| {postfix}",
        ncols=80,
        leave=False
    ) as pbar:
        def update_progress(written: int, percentage: float) -> None:
            pbar.n = min(int(percentage), 100)
            pbar.set_postfix_str(f"{written} bytes", refresh=False)
            pbar.refresh()

        transcoder.normalize_to_wav(chunks, output_path, content_length, update_progress)
