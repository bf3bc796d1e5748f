"""Turn pasted YouTube links or ids into references."""

import re
import urllib.parse

from .models import Reference, ReferenceKind, YOUTUBE_ORIGIN

VIDEO_ID_PATTERN = re.compile(r"^[0-9A-Za-z_-]{11}$")


def normalize_url(url: str) -> str:
    """Normalize and validate a URL."""
    cleaned = url.strip()
    if not cleaned:
        raise ValueError("missing URL")

    if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", cleaned):
        cleaned = "https://" + cleaned.lstrip("/")

    return cleaned.rstrip("/")


def parse_reference(text: str) -> Reference:
    """Best-effort detection of what a pasted link or id refers to."""

    stripped = (text or "").strip()
    if not stripped:
        raise ValueError("missing URL")

    if VIDEO_ID_PATTERN.match(stripped):
        return Reference(ReferenceKind.VIDEO, stripped)
    if stripped.startswith("@"):
        return Reference(ReferenceKind.CHANNEL, stripped)

    parsed = urllib.parse.urlparse(normalize_url(stripped))
    host = parsed.netloc.lower()
    path = parsed.path or ""
    query = urllib.parse.parse_qs(parsed.query)

    if "youtube.com" not in host and not host.endswith("youtu.be"):
        raise ValueError(f"not a YouTube link: {stripped}")

    if host.endswith("youtu.be"):
        video_id = path.strip("/").split("/")[0]
        if VIDEO_ID_PATTERN.match(video_id):
            return Reference(ReferenceKind.VIDEO, video_id)
        raise ValueError(f"no video id in {stripped}")

    if path.startswith("/watch") and query.get("v"):
        return Reference(ReferenceKind.VIDEO, query["v"][0])

    video_prefixes = ("/shorts/", "/live/", "/embed/", "/v/")
    for prefix in video_prefixes:
        if path.startswith(prefix):
            video_id = path[len(prefix):].split("/")[0]
            if VIDEO_ID_PATTERN.match(video_id):
                return Reference(ReferenceKind.VIDEO, video_id)

    if query.get("list"):
        return Reference(ReferenceKind.PLAYLIST, query["list"][0])

    segments = [segment for segment in path.split("/") if segment]
    if segments and segments[0].startswith("@"):
        return Reference(ReferenceKind.CHANNEL, segments[0])
    if len(segments) >= 2 and segments[0] == "channel":
        return Reference(ReferenceKind.CHANNEL, segments[1])
    if len(segments) >= 2 and segments[0] in {"c", "user"}:
        return Reference(ReferenceKind.CHANNEL, f"{YOUTUBE_ORIGIN}/{segments[0]}/{segments[1]}")

    raise ValueError(f"unrecognized YouTube link: {stripped}")


def channel_url(channel_id: str) -> str:
    """Build the videos tab URL for a channel id, handle or URL."""
    cleaned = channel_id.strip()
    if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", cleaned):
        base = cleaned.rstrip("/")
        if re.search(r"/(videos|shorts|streams|live)$", base):
            return base
        return base + "/videos"
    if cleaned.startswith("@"):
        return f"{YOUTUBE_ORIGIN}/{cleaned}/videos"
    return f"{YOUTUBE_ORIGIN}/channel/{cleaned}/videos"


def playlist_url(playlist_id: str) -> str:
    cleaned = playlist_id.strip()
    if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", cleaned):
        return cleaned
    return f"{YOUTUBE_ORIGIN}/playlist?list={urllib.parse.quote(cleaned)}"
