"""Command-line panel detection.

Usage:
    python -m panelflow page1.png page2.png --json panels.json
    panelflow scans/*.png --preset fused --crop-dir out/
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .batch import detect_document
from .config import PRESET_ENV_VAR, PRESETS, DetectionParameters, get_preset, load_parameters
from .document import Document
from .errors import PanelFlowError
from .export import export_pngs
from .image_utils import load_image

log = logging.getLogger("panelflow")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="panelflow",
        description="Detect comic panels on rasterized pages",
    )
    parser.add_argument("images", nargs="+", help="Page images, in page order")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--preset", choices=sorted(PRESETS),
                        help=f"Parameter preset (default: ${PRESET_ENV_VAR} or 'default')")
    parser.add_argument("--config", help="YAML file of detection parameters")
    parser.add_argument("--kernel", type=int, dest="dilation_kernel_size",
                        help="Dilation kernel size")
    parser.add_argument("--min-area", type=float, dest="min_contour_area",
                        help="Minimum contour area in pixels")
    parser.add_argument("--merge", dest="merge_overlaps", action="store_true", default=None,
                        help="Enable padded overlap merging")
    parser.add_argument("--no-merge", dest="merge_overlaps", action="store_false", default=None,
                        help="Disable overlap merging")
    parser.add_argument("--workers", type=int, help="Worker threads (default: CPU count)")
    parser.add_argument("--timeout", type=float, help="Per-page timeout in seconds")
    parser.add_argument("--rtl", action="store_true", help="Right-to-left reading order")
    parser.add_argument("--json", dest="json_out", help="Write results to this file instead of stdout")
    parser.add_argument("--crop-dir", help="Write panel crops (pNNN_MM.png) to this directory")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="-v for progress, -vv for detector debug output")
    return parser


def resolve_parameters(args: argparse.Namespace) -> DetectionParameters:
    """Preset (flag, then environment), then YAML file, then individual flags."""
    preset = args.preset or os.environ.get(PRESET_ENV_VAR) or "default"
    params = get_preset(preset)
    if args.config:
        params = load_parameters(args.config, base=params)
    overrides = {
        k: v for k, v in (
            ("dilation_kernel_size", args.dilation_kernel_size),
            ("min_contour_area", args.min_contour_area),
        ) if v is not None
    }
    if args.merge_overlaps is not None:
        overrides["merge_overlaps"] = args.merge_overlaps
    if overrides:
        params = DetectionParameters.from_dict({**params.to_dict(), **overrides})
    return params.validate()


def main(argv: Optional[List[str]] = None, hard_exit: bool = False) -> int:
    """Application entry point.

    With ``hard_exit`` the process ends through ``os._exit`` once the report
    is written if any page timed out, instead of waiting for its worker.
    """
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        params = resolve_parameters(args)
    except (PanelFlowError, OSError) as e:
        print(f"panelflow: {e}", file=sys.stderr)
        return 2

    document = Document()
    load_errors = {}
    for number, path in enumerate(args.images, start=1):
        try:
            image = load_image(path)
        except PanelFlowError as e:
            log.error("%s", e)
            load_errors[number] = str(e)
            continue
        document.add_page(image, page_number=number)

    results = {r.page_number: r for r in detect_document(
        document, params, max_workers=args.workers, timeout=args.timeout)}

    report = []
    for number, path in enumerate(args.images, start=1):
        entry = {"page": number, "file": path}
        if number in load_errors:
            entry.update(success=False, error=load_errors[number], panels=[])
        else:
            result = results[number]
            page = document.page(number)
            entry.update(
                success=result.success,
                error=result.error_message,
                elapsed_ms=round(result.elapsed_ms, 1),
                panels=[p.to_dict() for p in page.sorted_panels(args.rtl)],
            )
        report.append(entry)

    text = json.dumps({"parameters": params.to_dict(), "pages": report}, indent=2)
    if args.json_out:
        with open(args.json_out, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    else:
        print(text)

    if args.crop_dir:
        os.makedirs(args.crop_dir, exist_ok=True)
        for name, data in export_pngs(document, rtl=args.rtl):
            with open(os.path.join(args.crop_dir, name), "wb") as f:
                f.write(data)

    code = 0 if all(entry["success"] for entry in report) else 1
    if hard_exit and any(r.timed_out for r in results.values()):
        log.info("Abandoning %d timed-out pages",
                 sum(1 for r in results.values() if r.timed_out))
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(code)
    return code


def run() -> None:
    """Console script entry point."""
    sys.exit(main(hard_exit=True))


if __name__ == "__main__":
    run()
