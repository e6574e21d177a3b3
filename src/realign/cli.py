from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .adapters import DocumentAdapter
from .composite import MultiRegionAdapter
from .config import RealignConfig, load_config
from .errors import ContentModifiedError
from .logging_utils import setup_logging
from .models import InputFormat, Match, MatchWithReplacement, match_from_dict
from .surfaces import HtmlSurface, PlainTextSurface

_logger = logging.getLogger(__name__)

_CLI_CHECK_ID = "cli"
EXIT_CONTENT_MODIFIED = 3
EXIT_USAGE = 2


def _add_alignment_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--checked", required=True, help="Path to the text that was checked (snapshot).")
    p.add_argument("--current", required=True, help="Path to the current text.")
    p.add_argument("--matches", required=True, help="Path to a JSON list of matches in snapshot coordinates.")
    p.add_argument(
        "--format",
        choices=["text", "html"],
        default=None,
        help="Input format. Defaults to alignment.input_format from config.",
    )
    p.add_argument("--config", "-c", default=None, help="Path to YAML config.")
    p.add_argument("--log", default=None, help="Override log path.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="realign", description="Relocate checker matches onto edited text.")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("select", help="Align matches and print their ranges in the current text.")
    _add_alignment_args(s)

    r = sub.add_parser("replace", help="Align matches and apply their replacements.")
    _add_alignment_args(r)
    r.add_argument("--output", "-o", required=True, help="Path to write the replaced text.")

    c = sub.add_parser("compose", help="Compose several files into one wrapped document.")
    c.add_argument(
        "--region",
        action="append",
        required=True,
        metavar="ID=PATH",
        help="Region id and file; repeat for each region.",
    )
    c.add_argument("--wrapper", default=None, help="Wrapper element, e.g. 'div' or 'div class=\"part\"'.")
    c.add_argument("--config", "-c", default=None, help="Path to YAML config.")
    c.add_argument("--log", default=None, help="Override log path.")
    return p


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _load_matches(path: str) -> list[Match]:
    data = json.loads(_read_text(path))
    if not isinstance(data, list):
        raise ValueError(f"Matches file must hold a JSON list: {path}")
    return [match_from_dict(item) for item in data]


def _build_adapter(args: argparse.Namespace, cfg: RealignConfig) -> DocumentAdapter:
    fmt = InputFormat(args.format.upper()) if args.format else cfg.input_format
    current = _read_text(args.current)
    surface = HtmlSurface(current) if fmt == InputFormat.HTML else PlainTextSurface(current)
    adapter = DocumentAdapter(surface, config=cfg)
    adapter.sessions.record(_CLI_CHECK_ID, _read_text(args.checked))
    return adapter


def _emit(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _run_select(args: argparse.Namespace, cfg: RealignConfig) -> int:
    adapter = _build_adapter(args, cfg)
    aligned = adapter.select_ranges(_CLI_CHECK_ID, _load_matches(args.matches))
    _emit(
        {
            "aligned": [a.to_dict() for a in aligned],
            "selection": adapter.surface.get_selectable().span.to_list(),
        }
    )
    return 0


def _run_replace(args: argparse.Namespace, cfg: RealignConfig) -> int:
    matches = _load_matches(args.matches)
    missing = [m.range.to_list() for m in matches if not isinstance(m, MatchWithReplacement)]
    if missing:
        raise ValueError(f"Matches without a replacement: {missing}")
    adapter = _build_adapter(args, cfg)
    selection = adapter.replace_ranges(_CLI_CHECK_ID, matches)
    out_path = Path(args.output)
    out_path.write_text(adapter.surface.extract_current_text(), encoding="utf-8")
    _emit({"output": str(out_path), "selection": selection.to_list()})
    return 0


def _run_compose(args: argparse.Namespace, cfg: RealignConfig) -> int:
    multi = MultiRegionAdapter(config=cfg)
    for value in args.region:
        region_id, sep, path = value.partition("=")
        if not sep or not region_id or not path:
            raise ValueError(f"Invalid --region value: {value!r} (expected ID=PATH)")
        multi.add_region(DocumentAdapter(PlainTextSurface(_read_text(path)), config=cfg), args.wrapper, region_id)

    result = asyncio.run(multi.extract_content_for_check())
    _emit(
        {
            "content": result.content,
            "regions": [
                {
                    "id": region.id,
                    "global_start": region.global_start,
                    "global_end": region.global_end,
                    "wrapper_start_len": region.wrapper_start_len,
                }
                for region in multi.document.regions.values()
            ],
        }
    )
    return 0


_COMMANDS = {
    "select": _run_select,
    "replace": _run_replace,
    "compose": _run_compose,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config) if args.config else RealignConfig()
    except (OSError, ValueError) as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    log_path = args.log if args.log is not None else cfg.log_path
    setup_logging(Path(log_path) if log_path else None, cfg.logging_level)

    handler = _COMMANDS.get(args.cmd)
    if handler is None:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        return EXIT_USAGE
    try:
        return handler(args, cfg)
    except ContentModifiedError as exc:
        _logger.error(f"{exc} ({len(exc.unaligned)} match(es) not found)")
        return EXIT_CONTENT_MODIFIED
    except (OSError, ValueError, KeyError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
