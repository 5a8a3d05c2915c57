"""Writer for SRT subtitle format."""

from typing import Iterable, TextIO

from ytrans.models import TranscriptRecord, parse_duration, srt_timestamp


def write_srt(records: Iterable[TranscriptRecord], output: TextIO) -> None:
    """Write transcript records as SRT subtitles."""
    for record in records:
        start_time = srt_timestamp(parse_duration(record.start_time))
        end_time = srt_timestamp(parse_duration(record.end_time))

        # SRT format: index, timestamps, text
        output.write(f"{record.index}\n")
        output.write(f"{start_time} --> {end_time}\n")
        output.write(f"{record.text.strip()}\n")
        output.write("\n")  # Blank line between entries
