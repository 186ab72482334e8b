#!/usr/bin/env python3
"""
Walkthrough CLI

Usage modes:
- Default run: compile YAML, navigate to a step, print snapshot summary or write JSON
- Navigation script: --goto 3,1,5 replays a sequence of targets
- Autoplay: simulate autoplay on a virtual clock and report timing
- Inputs: --move C=1.2,0 moves a base point before navigating
- Validation: compile and check the step table, print the step list
- Utility: list bundled walkthroughs, show version, record JSONL event logs
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from glob import glob
from pathlib import Path
from typing import Any, Dict, List, Tuple

from walkthrough_core import __version__
from walkthrough_core.compiler import compile_from_file
from walkthrough_core.config import NavigatorConfig
from walkthrough_core.errors import WalkthroughError
from walkthrough_core.events import event_to_dict
from walkthrough_core.metrics import summarize
from walkthrough_core.scheduler import VirtualScheduler
from walkthrough_core.session import WalkthroughSession


def _point_move(text: str) -> Tuple[str, List[float]]:
    name, sep, coords = text.partition("=")
    try:
        x, y = (float(c) for c in coords.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected NAME=X,Y, got {text!r}")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected NAME=X,Y, got {text!r}")
    return name.strip(), [x, y]


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Navigate a geometry walkthrough from YAML and dump snapshot/metrics",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Utilities / meta
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv)")
    p.add_argument("--list-walkthroughs", action="store_true", help="List bundled YAML walkthroughs and exit")

    # Primary input
    p.add_argument("yaml", nargs="?", help="Path to YAML walkthrough (e.g., walkthroughs/square_perpendicular.yaml)")

    # Execution
    p.add_argument("--step", type=int, default=None, help="Step to navigate to (default: last step)")
    p.add_argument("--goto", type=str, default="", help="Comma-separated navigation targets, e.g. 3,1,5")
    p.add_argument("--autoplay", action="store_true", help="Simulate autoplay through every step")
    p.add_argument(
        "--move",
        type=_point_move,
        action="append",
        default=[],
        metavar="NAME=X,Y",
        help="Move a base point (frame units) before navigating; repeatable",
    )
    p.add_argument("--validate", action="store_true", help="Compile only and print the step table")
    p.add_argument("--out", type=str, default="", help="Optional output JSON file path")
    p.add_argument("--events", type=str, default="", help="Optional JSONL file receiving every event")

    # Navigator config overrides
    p.add_argument("--anim-duration", type=float, default=None, help="Seconds per element reveal pair")
    p.add_argument("--step-delay", type=float, default=None, help="Autoplay dwell per step (seconds)")
    p.add_argument("--width", type=float, default=None, help="Canvas width in pixels")
    p.add_argument("--height", type=float, default=None, help="Canvas height in pixels")
    p.add_argument("--instant", action="store_true", help="Draw the target step without animation")
    p.add_argument("--no-rollback", action="store_true", help="Keep steps drawn by a failed navigation")

    return p.parse_args(argv)


def build_config(args: argparse.Namespace, base: NavigatorConfig | None = None) -> NavigatorConfig:
    overrides: Dict[str, Any] = {}
    if args.anim_duration is not None:
        overrides["anim_duration"] = float(args.anim_duration)
    if args.step_delay is not None:
        overrides["auto_step_delay"] = float(args.step_delay)
    if args.width is not None:
        overrides["canvas_width"] = float(args.width)
    if args.height is not None:
        overrides["canvas_height"] = float(args.height)
    if args.instant:
        overrides["animate_final_step"] = False
    if args.no_rollback:
        overrides["rollback_on_error"] = False
    return (base or NavigatorConfig()).updated(overrides)


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def find_walkthroughs() -> List[str]:
    # Search relative to repo root and this script location
    here = Path(__file__).resolve()
    repo_root = here.parent.parent
    candidates = []
    for base in [repo_root / "walkthroughs", here.parent]:
        candidates.extend(sorted(glob(str(base / "*.yaml"))))
    seen = set()
    result = []
    for c in candidates:
        if c not in seen:
            seen.add(c)
            result.append(c)
    return result


def _emit(payload: Dict[str, Any], out: str) -> None:
    if out:
        with open(out, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
    else:
        print(json.dumps(payload, indent=2))


def run(args: argparse.Namespace) -> Dict[str, Any]:
    registry, yaml_config = compile_from_file(args.yaml)
    cfg = build_config(args, yaml_config)

    if args.validate:
        return {"name": registry.name, "title": registry.title, "total": registry.total, "steps": registry.describe()}

    scheduler = VirtualScheduler()
    session = WalkthroughSession(registry, scheduler=scheduler, config=cfg)
    recorded: List[Dict[str, Any]] = []
    session.subscribe(lambda ev: recorded.append(event_to_dict(ev)))

    if args.move:
        session.set_points(dict(args.move))

    if args.autoplay:
        session.toggle_autoplay()
        scheduler.run_until_idle()
    else:
        targets = [int(s) for s in args.goto.split(",") if s.strip()] if args.goto else []
        if not targets:
            targets = [registry.total if args.step is None else args.step]
        for target in targets:
            logging.info("Navigating to step %d", target)
            session.request_step(target)
            scheduler.run_until_idle()

    if args.events:
        with open(args.events, "w", encoding="utf-8") as f:
            for ev in recorded:
                f.write(json.dumps(ev) + "\n")

    snap = session.snapshot()
    return {
        "name": snap["name"],
        "current_step": snap["current_step"],
        "total": snap["total"],
        "explanation": snap["explanation"],
        "keys": snap["keys"],
        "skipped": snap["skipped"],
        "inputs": snap["inputs"],
        "elapsed": scheduler.now(),
        "metrics": summarize(session.navigator),
        "events": len(recorded),
    }


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.version:
        print(__version__)
        return 0

    if args.list_walkthroughs:
        print(json.dumps(find_walkthroughs(), indent=2))
        return 0

    if not args.yaml:
        print("error: missing YAML path (try --list-walkthroughs)", file=sys.stderr)
        return 2

    logging.info("Compiling walkthrough from %s", args.yaml)
    try:
        payload = run(args)
    except WalkthroughError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    _emit(payload, args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
