"""Byte-counting writer that reports download progress."""

from typing import BinaryIO, Callable, Optional

ProgressCallback = Callable[[int, float], None]


class ProgressWriter:
    """
    Wrap a binary sink and report cumulative bytes written.

    After every successful write the callback receives the running total and
    the percentage of ``content_length`` it represents. Without a callback or
    a positive ``content_length`` the writer only counts.
    """

    def __init__(
        self,
        writer: BinaryIO,
        content_length: Optional[int],
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.writer = writer
        self.content_length = content_length
        self.on_progress = on_progress
        self.total_bytes = 0

    def write(self, data: bytes) -> int:
        # Errors from the underlying sink propagate before anything is counted
        written = self.writer.write(data)
        if written is None:
            written = len(data)
        self.total_bytes += written

        if self.on_progress is not None and self.content_length and self.content_length > 0:
            percentage = self.total_bytes / self.content_length * 100
            self.on_progress(self.total_bytes, percentage)
        return written

    def flush(self) -> None:
        self.writer.flush()
