from __future__ import annotations

import argparse
from typing import List, Type

from manim import config as manim_config

from walkthrough_anim.scenes.walkthrough_scene import WalkthroughScene


def render_scene(
    scene_cls: Type[WalkthroughScene],
    walkthrough_path: str,
    plan="autoplay",
    quality: str = "ql",
    preview: bool = False,
    time_scale: float = 1.0,
):
    # Configure manim (quality shortcuts)
    if quality == "ql":
        manim_config.quality = "low_quality"
    elif quality == "qh":
        manim_config.quality = "high_quality"
    else:
        manim_config.quality = quality
    manim_config.preview = preview

    scene = scene_cls()
    setattr(scene, "_walkthrough_path", walkthrough_path)
    setattr(scene, "_plan", plan)
    # Pass time scale into scene for run_time scaling
    setattr(scene, "_time_scale", float(time_scale))
    scene.render()


def parse_plan(steps: str | None):
    if not steps:
        return "autoplay"
    return [int(s) for s in steps.split(",") if s.strip()]


def main(argv: List[str] | None = None):
    parser = argparse.ArgumentParser(description="Render a geometry walkthrough to video")
    parser.add_argument("walkthrough", help="YAML walkthrough definition (walkthroughs/*.yaml)")
    parser.add_argument("--scene", default="WalkthroughScene")
    parser.add_argument("--steps", help="Comma-separated step targets, e.g. 3,1,5 (default: autoplay)")
    parser.add_argument("--quality", default="ql", help="manim quality: ql/qh")
    parser.add_argument("--preview", action="store_true")
    parser.add_argument("--time-scale", type=float, default=1.0)
    args = parser.parse_args(argv)

    scene_map = {
        "WalkthroughScene": WalkthroughScene,
    }

    scene_cls = scene_map.get(args.scene)
    if scene_cls is None:
        raise SystemExit(f"Unknown scene: {args.scene}")

    render_scene(
        scene_cls,
        args.walkthrough,
        plan=parse_plan(args.steps),
        quality=args.quality,
        preview=args.preview,
        time_scale=args.time_scale,
    )


if __name__ == "__main__":  # pragma: no cover
    main()
