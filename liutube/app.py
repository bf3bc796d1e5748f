"""Desktop shell: a frameless pywebview window around the bridge."""

import os
import sys
from typing import Optional, Sequence

import webview

from .bridge import create_api
from .config import parse_args, summarize_settings

WINDOW_TITLE = "LiuTube"


def page_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "web", "index.html")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv, description="LiuTube desktop client.")
    for line in summarize_settings(args):
        print(line)

    os.makedirs(args.data_dir, exist_ok=True)
    api = create_api(args)

    window = webview.create_window(
        WINDOW_TITLE,
        url=page_path(),
        js_api=api,
        width=args.width,
        height=args.height,
        frameless=True,
        easy_drag=True,
        on_top=args.always_on_top,
        background_color="#000000",
    )
    api.attach_window(window)
    webview.start(debug=args.verbose)
    return 0


if __name__ == "__main__":
    sys.exit(main())
