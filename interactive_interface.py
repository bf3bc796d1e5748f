#!/usr/bin/env python3
"""Interactive command-line interface for searching, playing and downloading videos."""

from __future__ import annotations

import argparse
import os
import sys
import webbrowser
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from liutube.bridge import Api, create_api
from liutube.config import parse_args, summarize_settings
from liutube.errors import describe_playback_error
from liutube.models import embed_url


@dataclass
class ShellSession:
    """Runtime state shared by the menu handlers."""

    args: argparse.Namespace
    api: Optional[Api] = None
    open_url: Callable[[str], bool] = webbrowser.open
    last_progress: dict = field(default_factory=dict)


def build_session(args: argparse.Namespace) -> ShellSession:
    """Create the Api and route its download events to the terminal."""

    os.makedirs(args.data_dir, exist_ok=True)
    session = ShellSession(args=args)
    session.api = create_api(args, on_event=lambda event, payload: print_download_event(session, event, payload))
    return session


def print_download_event(session: ShellSession, event: str, payload: dict) -> None:
    if event == "download-progress":
        download_id = payload.get("download_id")
        percent = int(payload.get("progress") or 0)
        # Only print when the whole percentage moves
        if session.last_progress.get(download_id) == percent:
            return
        session.last_progress[download_id] = percent
        total_mb = (payload.get("total_bytes") or 0) / (1024 * 1024)
        print(f"  {percent:3d}% of {total_mb:.1f} MB", flush=True)
    elif event == "download-status":
        status = payload.get("status")
        if status == "failed":
            print(f"Download failed: {payload.get('error')}", file=sys.stderr)
        elif status == "completed":
            print(f"Saved to {payload.get('filepath')}")


def _report_error(result, action: str) -> bool:
    if isinstance(result, dict) and "error" in result:
        print(f"{action} failed: {result['error']}", file=sys.stderr)
        return True
    return False


def _prompt_choice(limit: int, noun: str = "result") -> Optional[int]:
    while True:
        raw = input(f"Select a {noun} number (or 'b' to go back): ").strip().lower()
        if raw in {"b", "back", "q", "quit"}:
            return None
        if raw.isdigit():
            value = int(raw)
            if 1 <= value <= limit:
                return value
        print(f"Please enter a number between 1 and {limit}, or 'b' to go back.")


def print_videos(videos: Sequence[dict]) -> None:
    for idx, video in enumerate(videos, start=1):
        duration = f" [{video['duration']}]" if video.get("duration") else ""
        print(f"  {idx}. {video.get('title')} - {video.get('author')}{duration}")


def play_video(session: ShellSession, video: dict) -> None:
    info = session.api.get_video_info(video["id"])
    if "error" in info:
        print(describe_playback_error(info["error"]))
        session.open_url(embed_url(video["id"]))
    else:
        print(f"Playing: {info['title']} ({info['author']})")
        session.open_url(info["url"])
        video = dict(video, title=info["title"], author=info["author"])
    session.api.add_to_history(video)


def download_video(session: ShellSession, video: dict) -> None:
    print(f"\nStarting download for {video.get('title') or video['id']}")
    result = session.api.start_download(video["id"], video.get("title"))
    if _report_error(result, "Download"):
        return
    print(f"Downloading to {result['filepath']}")
    session.api.wait_for_download(result["download_id"])


def choose_video(session: ShellSession, videos: List[dict]) -> None:
    if not videos:
        print("No videos found.")
        return

    print_videos(videos)
    choice = _prompt_choice(len(videos), "video")
    if choice is None:
        return

    selected = videos[choice - 1]
    action = input("Play (p) or download (d)? ").strip().lower()
    if action in {"p", "play"}:
        play_video(session, selected)
    elif action in {"d", "download"}:
        download_video(session, selected)
    else:
        print("Unrecognized option.")


def handle_search(session: ShellSession, search_type: str) -> None:
    query = input("Search: ").strip()
    if not query:
        return

    result = session.api.search_youtube(query, search_type)
    if _report_error(result, "Search"):
        return

    if search_type == "video":
        choose_video(session, result.get("videos") or [])
        return

    items = result.get("channels" if search_type == "channel" else "playlists") or []
    if not items:
        print("Nothing found.")
        return

    for idx, item in enumerate(items, start=1):
        detail = item.get("subscriber_count") or item.get("video_count") or ""
        print(f"  {idx}. {item.get('title')} {detail}".rstrip())
    choice = _prompt_choice(len(items), search_type)
    if choice is None:
        return

    selected = items[choice - 1]
    if search_type == "channel":
        listing = session.api.get_channel_videos(selected["id"])
    else:
        listing = session.api.get_playlist_videos(selected["id"])
    if not _report_error(listing, "Listing"):
        choose_video(session, listing.get("videos") or [])


def handle_open_link(session: ShellSession) -> None:
    text = input("Paste a link or video id: ").strip()
    if not text:
        return

    reference = session.api.resolve_reference(text)
    if _report_error(reference, "Link"):
        return

    if reference["kind"] == "video":
        choose_video(session, [{"id": reference["id"], "title": reference["id"], "author": ""}])
    elif reference["kind"] == "channel":
        listing = session.api.get_channel_videos(reference["id"])
        if not _report_error(listing, "Listing"):
            choose_video(session, listing.get("videos") or [])
    else:
        listing = session.api.get_playlist_videos(reference["id"])
        if not _report_error(listing, "Listing"):
            choose_video(session, listing.get("videos") or [])


def handle_history(session: ShellSession) -> None:
    query = input("Filter history (leave empty for all, 'clear' to erase): ").strip()
    if query.lower() == "clear":
        session.api.clear_history()
        print("History cleared.")
        return

    stats = session.api.get_history_stats()
    if not _report_error(stats, "History"):
        hours, remainder = divmod(stats["total_watch_time"], 3600)
        print(f"\n{stats['total_videos']} videos watched, {hours}h {remainder // 60}m in total")
        for channel in stats["most_watched_channels"]:
            print(f"  {channel['name']}: {channel['count']} views")

    entries = session.api.get_history(query or None).get("history") or []
    choose_video(session, entries)


def handle_downloads(session: ShellSession) -> None:
    downloads = session.api.list_downloads().get("downloads") or []
    if not downloads:
        print("No downloads yet.")
        return

    for idx, item in enumerate(downloads, start=1):
        percent = int(item["progress"]["progress"]) if item.get("progress") else 0
        error = f" ({item['error']})" if item.get("error") else ""
        print(f"  {idx}. {item['title']} -> {item['status']} {percent}%{error}")


def run_menu(session: ShellSession) -> None:
    while True:
        print(
            "\nPlease choose an option:\n"
            "  1. Search videos\n"
            "  2. Search channels\n"
            "  3. Search playlists\n"
            "  4. Open a link\n"
            "  5. History\n"
            "  6. Downloads\n"
            "  q. Quit\n"
        )
        choice = input("Enter your choice: ").strip().lower()

        if choice in {"1", "one"}:
            handle_search(session, "video")
        elif choice in {"2", "two"}:
            handle_search(session, "channel")
        elif choice in {"3", "three"}:
            handle_search(session, "playlist")
        elif choice in {"4", "four"}:
            handle_open_link(session)
        elif choice in {"5", "five"}:
            handle_history(session)
        elif choice in {"6", "six"}:
            handle_downloads(session)
        elif choice in {"q", "quit", "exit"}:
            print("Goodbye!")
            return
        else:
            print("Unrecognized option. Please try again.")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv, description="Interactive LiuTube terminal client.")
    for line in summarize_settings(args):
        print(line)
    session = build_session(args)
    run_menu(session)
    return 0


if __name__ == "__main__":
    sys.exit(main())
