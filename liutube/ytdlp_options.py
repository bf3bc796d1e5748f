"""yt-dlp options builder."""

import random
import sys
from typing import Callable, Dict, List, Optional

from .logger import YtDlpLogger, warn
from .models import USER_AGENTS


def select_random_user_agent() -> str:
    """Select a random User-Agent from the pool to rotate through different browsers."""
    return random.choice(USER_AGENTS)


def load_proxies_from_file(proxy_file: str) -> List[str]:
    """Load proxy URLs from a file, one per line."""
    proxies: List[str] = []
    try:
        with open(proxy_file, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                # Skip empty lines and comments
                if stripped and not stripped.startswith("#"):
                    proxies.append(stripped)
        if proxies:
            print(f"Loaded {len(proxies)} proxies from {proxy_file}")
        else:
            warn(f"No proxies found in {proxy_file}")
        return proxies
    except FileNotFoundError:
        print(f"Error: Proxy file not found: {proxy_file}", file=sys.stderr)
        return []
    except OSError as exc:
        print(f"Error reading proxy file {proxy_file}: {exc}", file=sys.stderr)
        return []


def select_proxy(args) -> Optional[str]:
    """
    Select a proxy based on args.
    Returns a single proxy URL, or None if no proxy is configured.
    """
    if getattr(args, "proxy", None):
        return args.proxy

    proxy_file = getattr(args, "proxy_file", None)
    if proxy_file:
        # Load proxies and store in args to avoid re-reading the file
        if not hasattr(args, "_proxy_pool"):
            args._proxy_pool = load_proxies_from_file(proxy_file)

        if args._proxy_pool:
            return random.choice(args._proxy_pool)

    return None


def build_ydl_options(
    args,
    logger: YtDlpLogger,
    *,
    extract_flat: bool = False,
    max_entries: Optional[int] = None,
    progress_hook: Optional[Callable[[dict], None]] = None,
    format_selector: Optional[str] = None,
    outtmpl: Optional[str] = None,
) -> dict:
    """Build the yt-dlp options dictionary for metadata lookups or downloads."""

    user_agent = select_random_user_agent()
    proxy = select_proxy(args)

    ydl_opts: Dict[str, object] = {
        "quiet": True,
        "no_warnings": not getattr(args, "verbose", False),
        "noprogress": True,
        "logger": logger,
        "retries": 3,
        "fragment_retries": 3,
        "http_headers": {
            "User-Agent": user_agent,
        },
    }

    if extract_flat:
        ydl_opts["extract_flat"] = "in_playlist"
        ydl_opts["skip_download"] = True
    if max_entries:
        ydl_opts["playlistend"] = max_entries
    if progress_hook:
        ydl_opts["progress_hooks"] = [progress_hook]
    if format_selector:
        ydl_opts["format"] = format_selector
    if outtmpl:
        ydl_opts["outtmpl"] = {"default": outtmpl}
        ydl_opts["overwrites"] = True
        ydl_opts["continuedl"] = False
    if proxy:
        ydl_opts["proxy"] = proxy
    if getattr(args, "cookies_from_browser", None):
        ydl_opts["cookiesfrombrowser"] = (args.cookies_from_browser,)
    timeout = getattr(args, "timeout", None)
    if timeout:
        ydl_opts["socket_timeout"] = timeout

    if getattr(args, "verbose", False):
        debug_parts = [
            "extract_flat=1" if extract_flat else "extract_flat=0",
            f"format={format_selector or 'yt-dlp-default'}",
        ]
        if max_entries:
            debug_parts.append(f"playlistend={max_entries}")
        if getattr(args, "cookies_from_browser", None):
            debug_parts.append(f"cookies_from_browser={args.cookies_from_browser}")
        user_agent_short = user_agent.split('(')[0].strip() if '(' in user_agent else user_agent[:50]
        debug_parts.append(f"user_agent={user_agent_short}")
        if proxy:
            debug_parts.append(f"proxy={proxy}")
        print("Constructed yt-dlp options: " + ", ".join(debug_parts))

    return ydl_opts
