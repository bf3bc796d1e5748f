import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from liutube import formats
from liutube.errors import NoFormatError
from liutube.models import Format


def fmt(format_id, height=None, audio=True, video=True, bitrate=None, ext="mp4", protocol="https", url="auto"):
    return Format(
        format_id=format_id,
        url=f"https://media.example/{format_id}" if url == "auto" else url,
        ext=ext,
        protocol=protocol,
        has_audio=audio,
        has_video=video,
        height=height,
        bitrate=bitrate,
    )


def test_parse_format_reads_codecs_and_sizes():
    parsed = formats.parse_format({
        "format_id": "137",
        "url": "https://media.example/137",
        "ext": "mp4",
        "protocol": "https",
        "acodec": "none",
        "vcodec": "avc1.640028",
        "height": 1080,
        "tbr": 4400.5,
        "filesize_approx": 1234,
        "format_note": "1080p",
        "http_headers": {"User-Agent": "ua"},
    })

    assert parsed.has_video is True
    assert parsed.has_audio is False
    assert parsed.height == 1080
    assert parsed.bitrate == 4400.5
    assert parsed.content_length == 1234
    assert parsed.quality_label == "1080p"
    assert parsed.http_headers == {"User-Agent": "ua"}


def test_parse_formats_skips_non_dicts():
    assert formats.parse_formats(None) == []
    assert len(formats.parse_formats([{"format_id": "1"}, "junk"])) == 1


def test_choose_best_prefers_height_then_bitrate():
    candidates = [fmt("18", 360), fmt("22a", 720, bitrate=1000), fmt("22b", 720, bitrate=2000)]
    assert formats.choose_format(candidates).format_id == "22b"
    assert formats.choose_format(candidates, "highest").format_id == "22b"
    assert formats.choose_format(candidates, "lowest").format_id == "18"


def test_choose_quality_bands():
    candidates = [fmt("160", 144), fmt("18", 360), fmt("22", 720), fmt("137", 1080), fmt("313", 2160)]
    assert formats.choose_format(candidates, "low").format_id == "160"
    assert formats.choose_format(candidates, "medium").format_id == "18"
    assert formats.choose_format(candidates, "high").format_id in {"22", "137"}


def test_choose_format_filters_by_type():
    candidates = [fmt("18", 360), fmt("137", 1080, audio=False), fmt("140", audio=True, video=False, bitrate=128)]
    assert formats.choose_format(candidates, "best", "video").format_id == "137"
    assert formats.choose_format(candidates, "best", "video+audio").format_id == "18"
    assert formats.choose_format(candidates, "best", "audio").format_id == "140"


def test_choose_format_without_candidates_raises():
    with pytest.raises(NoFormatError):
        formats.choose_format([fmt("137", 1080, audio=False)], "best", "video+audio")
    with pytest.raises(NoFormatError):
        formats.choose_format([fmt("22", 720)], "low")
    with pytest.raises(NoFormatError):
        formats.choose_format([fmt("18", 360, url=None)])


def test_choose_format_rejects_unknown_names():
    with pytest.raises(ValueError):
        formats.choose_format([fmt("18", 360)], "ultra")
    with pytest.raises(ValueError):
        formats.choose_format([fmt("18", 360)], "best", "subtitles")


def test_download_format_prefers_medium_muxed():
    candidates = [fmt("22", 720), fmt("18", 360), fmt("137", 1080, audio=False)]
    assert formats.select_download_format(candidates).format_id == "18"


def test_download_format_falls_back_to_video_only_qualities():
    candidates = [fmt("137", 1080, audio=False), fmt("135", 480, audio=False)]
    assert formats.select_download_format(candidates).format_id == "135"


def test_download_format_uses_any_direct_format_last():
    candidates = [fmt("140", audio=True, video=False)]
    assert formats.select_download_format(candidates).format_id == "140"


def test_download_format_ignores_manifest_protocols():
    candidates = [fmt("96", 1080, protocol="m3u8_native")]
    with pytest.raises(NoFormatError, match="No downloadable format available"):
        formats.select_download_format(candidates)


def test_ordered_direct_formats_puts_muxed_first():
    candidates = [fmt("137", 1080, audio=False), fmt("18", 360), fmt("sb0", audio=False, video=False)]
    assert [f.format_id for f in formats.ordered_direct_formats(candidates)] == ["18", "137"]


def test_extension_for_container():
    assert formats.extension_for(fmt("43", 360, ext="webm")) == "webm"
    assert formats.extension_for(fmt("18", 360, ext="mp4")) == "mp4"
    assert formats.extension_for(fmt("x", 360, ext=None)) == "mp4"
