"""Writer for JSON format."""

import json
from typing import List, TextIO

from ytrans.models import TranscriptRecord, records_to_maps


def write_json(yt_link: str, records: List[TranscriptRecord], output: TextIO) -> None:
    data = {
        'yt_link': yt_link,
        'transcriptions': records_to_maps(records),
    }
    json.dump(data, output, indent=2, ensure_ascii=False)
    output.write("\n")
