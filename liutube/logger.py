"""Console logging helpers and the yt-dlp logger adapter."""

import re
import sys
from datetime import datetime
from typing import Optional


def log_with_timestamp(message: str, file=None) -> None:
    """Print a log message with timestamp."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] {message}", file=file or sys.stdout)
    (file or sys.stdout).flush()


def warn(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


class YtDlpLogger:
    """Logger handed to one yt-dlp call; prefixes context and counts problems."""

    IGNORED_FRAGMENTS = (
        "does not have a shorts tab",
        "falling back to generic n function search",
    )

    YOUTUBE_ID_PATTERN = re.compile(r"\[youtube[^\]]*\]\s+([0-9A-Za-z_-]{11})")

    def __init__(self, verbose: bool = False, video_id: Optional[str] = None) -> None:
        self.verbose = verbose
        self.warning_count = 0
        self.error_count = 0
        self.current_video_id = video_id

    def _format_with_context(self, message: str) -> str:
        video_id = self.current_video_id
        if not video_id:
            match = self.YOUTUBE_ID_PATTERN.search(message)
            if match:
                video_id = match.group(1)
        if video_id:
            return f"[video_id={video_id}] {message}"
        return message

    def _is_ignored(self, text: str) -> bool:
        lowered = text.lower()
        return any(fragment in lowered for fragment in self.IGNORED_FRAGMENTS)

    @staticmethod
    def _ensure_text(message) -> str:
        if isinstance(message, bytes):
            return message.decode("utf-8", "ignore")
        return str(message)

    def debug(self, message) -> None:  # yt-dlp calls this
        if self.verbose:
            print(self._format_with_context(self._ensure_text(message)))

    def info(self, message) -> None:
        if self.verbose:
            print(self._format_with_context(self._ensure_text(message)))

    def warning(self, message) -> None:
        text = self._ensure_text(message)
        if self._is_ignored(text):
            return
        self.warning_count += 1
        if self.verbose:
            print(self._format_with_context(text), file=sys.stderr)

    def error(self, message) -> None:
        text = self._ensure_text(message)
        self.error_count += 1
        print(self._format_with_context(text), file=sys.stderr)
