from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping

from mediaproc.core.config import load_settings
from mediaproc.core.crypto import SourceEncryptor
from mediaproc.core.errors import ConfigurationError, error_body
from mediaproc.core.logging import configure_logging, get_logger
from mediaproc.imaging.dimension import ImageDimension
from mediaproc.imaging.mapper import Area, TransformRequest, map_request
from mediaproc.imaging.uri import EndpointConfig, ImgproxyUri, decode_source_segment

log = get_logger(__name__)


def _numbers(raw: str, count: int, *, name: str) -> list[float]:
    parts = [p.strip() for p in (raw or "").split(",")]
    if len(parts) != count:
        raise argparse.ArgumentTypeError(f"{name} expects {count} comma separated numbers")
    try:
        return [float(p) for p in parts]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{name} expects numbers") from exc


def _crop(raw: str) -> Area:
    w, h, x, y = _numbers(raw, 4, name="--crop")
    return Area(offset_left=x, offset_top=y, width=w, height=h)


def _focus(raw: str) -> Area:
    x, y, w, h = _numbers(raw, 4, name="--focus")
    return Area(offset_left=x, offset_top=y, width=w, height=h)


def _size(raw: str) -> tuple[int, int]:
    w, h = _numbers(raw, 2, name="--source-size")
    return int(w), int(h)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mediaproc-url",
        description="Print the imgproxy URL for a source image, configured from IMGPROXY_* env vars.",
    )
    parser.add_argument("source", nargs="?", help="absolute URL of the source image")
    parser.add_argument("--width", type=str, default=None, help="e.g. 300, 300m (fit) or 300c (fill)")
    parser.add_argument("--height", type=str, default=None)
    parser.add_argument("--min-width", type=int, default=None)
    parser.add_argument("--min-height", type=int, default=None)
    parser.add_argument("--max-width", type=int, default=None)
    parser.add_argument("--max-height", type=int, default=None)
    parser.add_argument("--crop", type=_crop, default=None, metavar="W,H,X,Y")
    parser.add_argument("--focus", type=_focus, default=None, metavar="X,Y,W,H")
    parser.add_argument("--focus-pixels", action="store_true", help="--focus is in source pixels, not in [0, 1]")
    parser.add_argument("--source-size", type=_size, default=None, metavar="W,H")
    parser.add_argument("--dpr", type=float, default=None)
    parser.add_argument("--hash", type=str, default=None, help="content hash of the source")
    parser.add_argument("--json", action="store_true", help="print url and dimension as JSON")
    parser.add_argument("--decode", type=str, default=None, metavar="SEGMENT", help="decode a source segment")
    return parser


def main(argv: list[str] | None = None, *, env: Mapping[str, str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(env)
        configure_logging(settings.log_level)

        if args.decode:
            encryptor = SourceEncryptor.from_key(settings.encryption_key) if settings.encryption_enabled else None
            print(decode_source_segment(args.decode, encryptor=encryptor))
            return 0

        if not args.source:
            parser.error("source is required")

        source_w, source_h = args.source_size or (None, None)
        request = TransformRequest(
            width=args.width,
            height=args.height,
            min_width=args.min_width,
            min_height=args.min_height,
            max_width=args.max_width,
            max_height=args.max_height,
            crop=args.crop,
            focus_area=args.focus,
            dpr=args.dpr,
            source_width=source_w,
            source_height=source_h,
            focus_in_pixels=args.focus_pixels,
        )

        uri = ImgproxyUri(EndpointConfig.from_settings(settings))
        uri.set_source(args.source)
        uri.apply(map_request(request, source_hash=args.hash))
        url = uri.build()
    except ConfigurationError as exc:
        print(json.dumps(error_body(code=exc.code, message=exc.message, details=exc.details)), file=sys.stderr)
        return 2
    except ValueError as exc:
        parser.error(str(exc))

    if args.json:
        dimension = ImageDimension.from_request(request)
        print(json.dumps({"url": url, "width": dimension.width, "height": dimension.height, "hash": uri.hash}))
    else:
        print(url)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
