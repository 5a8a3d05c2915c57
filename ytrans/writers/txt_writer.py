"""Writer for TXT format with timestamps."""

from typing import Iterable, TextIO

from ytrans.models import TranscriptRecord


def write_txt(records: Iterable[TranscriptRecord], output: TextIO) -> None:
    """
    Write transcript records as text lines.

    Format: [start - end] text
    """
    for record in records:
        output.write(f"[{record.start_time} - {record.end_time}] {record.text.strip()}\n")
