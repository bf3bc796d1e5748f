"""Configuration and argument parsing for the LiuTube client."""

import argparse
import json
import os
import sys
import tempfile
from typing import Any, Dict, List, Optional, Sequence

from .logger import warn
from .models import DEFAULT_MAX_RESULTS, DOWNLOAD_TIMEOUT

DEFAULT_CONFIG_PATH = "liutube.json"

# Environment variable names
ENV_DOWNLOADS_DIR = "LIUTUBE_DOWNLOADS_DIR"
ENV_DATA_DIR = "LIUTUBE_DATA_DIR"
ENV_COOKIES_FROM_BROWSER = "LIUTUBE_COOKIES_FROM_BROWSER"
ENV_PROXY = "LIUTUBE_PROXY"

VALID_CONFIG_KEYS = {
    "downloads_dir", "data_dir", "max_results", "timeout",
    "cookies_from_browser", "proxy", "proxy_file",
    "width", "height", "always_on_top", "verbose",
}


def default_downloads_dir() -> str:
    return os.path.join(os.path.expanduser("~"), "Downloads")


def default_data_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "liutube-data")


def positive_int(value: str) -> int:
    """Return *value* parsed as a positive integer for argparse."""

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError(
            "Expected a positive integer"
        ) from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("Expected a positive integer")

    return parsed


def positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError("Expected a positive number") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("Expected a positive number")

    return parsed


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from a JSON file.

    Returns a dictionary with configuration values that can be used as defaults
    for command-line arguments. If the file doesn't exist or is invalid, returns
    an empty dictionary.
    """
    if not os.path.exists(config_path):
        return {}

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)

        if not isinstance(config, dict):
            warn(f"Config file {config_path} must contain a JSON object. Ignoring.")
            return {}

        invalid_keys = set(config.keys()) - VALID_CONFIG_KEYS
        if invalid_keys:
            warn(f"Unknown config keys ignored: {', '.join(sorted(invalid_keys))}")

        return {k: v for k, v in config.items() if k in VALID_CONFIG_KEYS}

    except json.JSONDecodeError as exc:
        warn(f"Failed to parse config file {config_path}: {exc}. Ignoring.")
        return {}
    except OSError as exc:
        warn(f"Failed to read config file {config_path}: {exc}. Ignoring.")
        return {}


def _config_path_from_argv(argv: Sequence[str]) -> str:
    config_path = DEFAULT_CONFIG_PATH
    if "--config" in argv:
        config_idx = list(argv).index("--config")
        if config_idx + 1 < len(argv):
            config_path = argv[config_idx + 1]
    return config_path


def build_parser(config: Optional[Dict[str, Any]] = None, description: Optional[str] = None) -> argparse.ArgumentParser:
    """Build the option parser shared by the desktop and terminal shells."""
    config = config or {}

    parser = argparse.ArgumentParser(
        description=description or "Search, play and download YouTube videos."
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to JSON configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--downloads-dir",
        default=config.get("downloads_dir"),
        help="Directory where downloaded videos are saved (default: ~/Downloads)",
    )
    parser.add_argument(
        "--data-dir",
        default=config.get("data_dir"),
        help="Directory holding the local history store (default: <tmp>/liutube-data)",
    )
    parser.add_argument(
        "--max-results",
        type=positive_int,
        default=config.get("max_results", DEFAULT_MAX_RESULTS),
        help=f"Number of search results to fetch (default: {DEFAULT_MAX_RESULTS})",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=config.get("timeout", DOWNLOAD_TIMEOUT),
        help=f"Request timeout in seconds for direct downloads (default: {DOWNLOAD_TIMEOUT:g})",
    )
    parser.add_argument(
        "--cookies-from-browser",
        default=config.get("cookies_from_browser"),
        help="Use cookies from your browser (chrome, safari, firefox, edge, etc.)",
    )
    parser.add_argument(
        "--proxy",
        default=config.get("proxy"),
        help="Use a single proxy for all requests (e.g., http://proxy.example.com:8080 or socks5://127.0.0.1:1080)",
    )
    parser.add_argument(
        "--proxy-file",
        default=config.get("proxy_file"),
        help="Path to a file containing proxy URLs (one per line). Proxies will be rotated randomly.",
    )
    parser.add_argument("--width", type=positive_int, default=config.get("width", 1200), help="Window width (default: 1200)")
    parser.add_argument("--height", type=positive_int, default=config.get("height", 800), help="Window height (default: 800)")
    parser.add_argument(
        "--always-on-top",
        dest="always_on_top",
        action="store_true",
        help="Keep the window above other windows (default)",
    )
    parser.add_argument(
        "--no-always-on-top",
        dest="always_on_top",
        action="store_false",
        help="Let the window be covered by other windows",
    )
    parser.set_defaults(always_on_top=config.get("always_on_top", True))
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=config.get("verbose", False),
        help="Print yt-dlp diagnostics and constructed options",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None, description: Optional[str] = None) -> argparse.Namespace:
    """Parse command-line arguments, using the config file for defaults."""
    if argv is None:
        argv = sys.argv[1:]

    config_path = _config_path_from_argv(argv)
    config = load_config_file(config_path)
    if config:
        print(f"Loaded configuration from {config_path}")

    args = build_parser(config, description).parse_args(argv)
    apply_environment_defaults(args)
    return args


def _normalize_env_str(value: Optional[str]) -> Optional[str]:
    """Normalize environment variable string value."""
    if not value:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def apply_environment_defaults(args, environ: Optional[Dict[str, str]] = None) -> None:
    """Populate unset options from the environment, then from built-in defaults."""

    if environ is None:
        environ = os.environ

    if not getattr(args, "downloads_dir", None):
        args.downloads_dir = _normalize_env_str(environ.get(ENV_DOWNLOADS_DIR)) or default_downloads_dir()
    args.downloads_dir = os.path.expanduser(args.downloads_dir)

    if not getattr(args, "data_dir", None):
        args.data_dir = _normalize_env_str(environ.get(ENV_DATA_DIR)) or default_data_dir()
    args.data_dir = os.path.expanduser(args.data_dir)

    if not getattr(args, "cookies_from_browser", None):
        args.cookies_from_browser = _normalize_env_str(environ.get(ENV_COOKIES_FROM_BROWSER))

    if not getattr(args, "proxy", None):
        args.proxy = _normalize_env_str(environ.get(ENV_PROXY))


def history_path(args) -> str:
    """Location of the key-value store backing the history log."""
    return os.path.join(args.data_dir, "storage.json")


def summarize_settings(args) -> List[str]:
    lines = [
        f"Downloads directory: {args.downloads_dir}",
        f"Data directory: {args.data_dir}",
        f"Search results per query: {args.max_results}",
    ]
    if args.cookies_from_browser:
        lines.append(f"Browser cookies: {args.cookies_from_browser}")
    if args.proxy:
        lines.append(f"Proxy: {args.proxy}")
    elif getattr(args, "proxy_file", None):
        lines.append(f"Proxy file: {args.proxy_file}")
    return lines
