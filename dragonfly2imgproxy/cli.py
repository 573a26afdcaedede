from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from dragonfly2imgproxy.config import DragonflyConfig, load_settings
from dragonfly2imgproxy.errors import ConfigError, SizeSpecError
from dragonfly2imgproxy.jobs import Fetch, Job, Thumb
from dragonfly2imgproxy.signing import media_url
from dragonfly2imgproxy.translator import resize_directive


def _build_jobs(args: argparse.Namespace) -> List[Job]:
    jobs: List[Job] = [Fetch(path=args.fetch)]
    if args.thumb:
        resize_directive(args.thumb)  # reject specs the proxy would refuse
        jobs.append(Thumb(size_spec=args.thumb))
    return jobs


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dragonfly-sign",
        description="Print a signed Dragonfly media URL.",
    )
    parser.add_argument("--secret", help="Signing secret (default: $DRAGONFLY_SECRET)")
    parser.add_argument("--fetch", required=True, help="Source path, e.g. public/cat.jpg")
    parser.add_argument("--thumb", help="Size spec: 400x300, 400x300# or 400x>")
    parser.add_argument("--ext", help="Decorative extension appended to the payload")
    parser.add_argument("--no-convert", action="store_true", help="Add convert=false")
    parser.add_argument("--base-url", default="")
    args = parser.parse_args(argv)

    secret = args.secret if args.secret is not None else load_settings().secret
    try:
        config = DragonflyConfig(secret=secret)
        jobs = _build_jobs(args)
    except (ConfigError, SizeSpecError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    print(
        media_url(
            config.secret,
            jobs,
            ext=args.ext,
            convert=not args.no_convert,
            base_url=args.base_url,
        )
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
