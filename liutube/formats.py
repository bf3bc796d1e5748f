"""Format classification and selection."""

from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import NoFormatError
from .models import Format

FORMAT_TYPES = ("video+audio", "video", "audio", "any")

# Height bands (exclusive lower, inclusive upper) for named qualities
QUALITY_BANDS = {
    "low": (0, 240),
    "medium": (240, 480),
    "high": (480, 1080),
}

DOWNLOAD_QUALITIES = ("medium", "low", "high", "highest")

DIRECT_PROTOCOLS = {"http", "https"}


def _codec_present(codec: Optional[str]) -> bool:
    return bool(codec) and codec != "none"


def parse_format(entry: dict) -> Format:
    """Convert a yt-dlp format dict into a Format."""
    height = entry.get("height")
    bitrate = entry.get("tbr") or entry.get("abr") or entry.get("vbr")
    content_length = entry.get("filesize") or entry.get("filesize_approx")
    headers = entry.get("http_headers")
    return Format(
        format_id=str(entry.get("format_id") or ""),
        url=entry.get("url"),
        ext=entry.get("ext"),
        protocol=entry.get("protocol"),
        has_audio=_codec_present(entry.get("acodec")),
        has_video=_codec_present(entry.get("vcodec")),
        height=int(height) if height else None,
        quality_label=entry.get("format_note") or None,
        bitrate=float(bitrate) if bitrate else None,
        content_length=int(content_length) if content_length else None,
        http_headers=dict(headers) if isinstance(headers, dict) else {},
    )


def parse_formats(entries: Optional[Iterable[dict]]) -> List[Format]:
    return [parse_format(entry) for entry in entries or [] if isinstance(entry, dict)]


def is_direct(fmt: Format) -> bool:
    """True when the format can be fetched with a single plain HTTP request."""
    if not fmt.url:
        return False
    return (fmt.protocol or "https") in DIRECT_PROTOCOLS


def matches_type(fmt: Format, format_type: str) -> bool:
    if format_type == "video+audio":
        return fmt.has_video and fmt.has_audio
    if format_type == "video":
        return fmt.has_video
    if format_type == "audio":
        return fmt.has_audio and not fmt.has_video
    if format_type == "any":
        return fmt.has_video or fmt.has_audio
    raise ValueError(f"unknown format type: {format_type}")


def _rank(fmt: Format) -> Tuple[int, float]:
    return (fmt.height or 0, fmt.bitrate or 0.0)


def choose_format(
    formats: Sequence[Format],
    quality: str = "best",
    format_type: str = "video+audio",
) -> Format:
    """Pick one format by quality and type; raises NoFormatError when nothing fits."""

    candidates = [fmt for fmt in formats if fmt.url and matches_type(fmt, format_type)]
    if not candidates:
        raise NoFormatError(f"No formats found matching type '{format_type}'")

    if quality in {"best", "highest"}:
        return max(candidates, key=_rank)
    if quality == "lowest":
        return min(candidates, key=_rank)

    band = QUALITY_BANDS.get(quality)
    if band is None:
        raise ValueError(f"unknown quality: {quality}")

    lower, upper = band
    in_band = [fmt for fmt in candidates if fmt.height and lower < fmt.height <= upper]
    if not in_band:
        raise NoFormatError(f"No '{quality}' quality formats found matching type '{format_type}'")
    return max(in_band, key=lambda fmt: fmt.bitrate or 0.0)


def muxed_first(formats: Sequence[Format]) -> List[Format]:
    """Formats carrying audio and video first, input order otherwise kept."""
    muxed = [fmt for fmt in formats if fmt.has_video and fmt.has_audio]
    rest = [fmt for fmt in formats if not (fmt.has_video and fmt.has_audio)]
    return muxed + rest


def ordered_direct_formats(formats: Sequence[Format]) -> List[Format]:
    """Directly fetchable media formats, muxed ones first."""
    return muxed_first([fmt for fmt in formats if is_direct(fmt) and (fmt.has_video or fmt.has_audio)])


def select_download_format(formats: Sequence[Format]) -> Format:
    """Choose the format offered for download.

    Tries each named quality with audio and video, then each quality without
    the audio requirement, then any directly fetchable format preferring
    audio+video, then video, then anything.
    """
    direct = [fmt for fmt in formats if is_direct(fmt)]

    for format_type in ("video+audio", "video"):
        for quality in DOWNLOAD_QUALITIES:
            try:
                return choose_format(direct, quality, format_type)
            except NoFormatError:
                print(f"[download] No {quality} quality {format_type} format")

    usable = ordered_direct_formats(direct)
    print(f"[download] Formats with URLs: {len(usable)} out of {len(formats)}")
    for predicate in (
        lambda fmt: fmt.has_video and fmt.has_audio,
        lambda fmt: fmt.has_video,
        lambda fmt: True,
    ):
        for fmt in usable:
            if predicate(fmt):
                return fmt

    raise NoFormatError("No downloadable format available for this video")


def extension_for(fmt: Format) -> str:
    return "webm" if fmt.container == "webm" else "mp4"
