# threadart_app/management/commands/generate_pattern.py

import logging
import threading
from pathlib import Path

import numpy as np
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from PIL import Image, UnidentifiedImageError

from ...config import DEFAULTS, PRESETS, apply_preset
from ...export import connections_to_csv, field_to_png
from ...geometry import SHAPES, frame_from_params
from ...models import ConfigurationError, GenerationConfig
from ...planner import generate_pattern, prepare_inputs
from ...preprocessing import load_image

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Generate a thread-art pin sequence for an image and write it as CSV (and optionally PNG)."

    def add_arguments(self, parser):
        parser.add_argument("image", type=Path)
        parser.add_argument("--csv", type=Path, default=Path("string-art-pattern.csv"))
        parser.add_argument("--png", type=Path, default=None)
        parser.add_argument("--preset", choices=sorted(PRESETS))
        parser.add_argument("--shape", choices=SHAPES, default=DEFAULTS["shape"])
        parser.add_argument("--num-pins", type=int, default=DEFAULTS["num_pins"])
        parser.add_argument("--start-angle", type=float, default=DEFAULTS["start_angle"])
        parser.add_argument("--ellipse-ratio", type=float, default=DEFAULTS["ellipse_ratio"])
        parser.add_argument("--rect-ratio", type=float, default=DEFAULTS["rect_ratio"])
        parser.add_argument("--resolution", type=int, default=DEFAULTS["resolution"])
        parser.add_argument("--gamma", type=float, default=DEFAULTS["gamma"])
        parser.add_argument("--num-lines", type=int, default=DEFAULTS["num_lines"])
        parser.add_argument("--start-pin", type=int, default=DEFAULTS["start_pin"])
        parser.add_argument("--min-pin-gap", type=int, default=DEFAULTS["min_pin_gap"])
        parser.add_argument("--alpha", type=float, default=DEFAULTS["alpha"])
        parser.add_argument("--seed", type=int, default=None)

    def handle(self, *args, **opts):
        params = {name: opts[name] for name in DEFAULTS}
        if opts["preset"]:
            params = apply_preset(params, opts["preset"])

        if not opts["image"].exists():
            raise CommandError(f"Image not found at {opts['image']}.")

        try:
            frame = frame_from_params(
                params["shape"],
                params["num_pins"],
                start_angle=params["start_angle"],
                ellipse_ratio=params["ellipse_ratio"],
                rect_ratio=params["rect_ratio"],
            )
            config = GenerationConfig(
                num_lines=params["num_lines"],
                start_pin=params["start_pin"],
                min_pin_gap=params["min_pin_gap"],
                alpha=params["alpha"],
                resolution=params["resolution"],
            )
        except ConfigurationError as exc:
            raise CommandError(str(exc)) from exc

        try:
            image = load_image(opts["image"], logger=logger)
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
            raise CommandError(f"Could not decode {opts['image']}.") from exc
        pins, target = prepare_inputs(image, frame, config.resolution, params["gamma"], logger=logger)

        cancel_ev = threading.Event()

        def on_progress(step: int, total: int):
            self.stdout.write(f"Line {step} of {total}...")

        outcome = {}

        def run():
            try:
                outcome["result"] = generate_pattern(
                    target,
                    pins,
                    config,
                    logger=logger,
                    on_progress=on_progress,
                    cancel_event=cancel_ev,
                    rng=np.random.default_rng(opts["seed"]),
                    progress_interval=getattr(settings, "THREADART_PROGRESS_INTERVAL", 100),
                )
            except Exception as exc:
                outcome["error"] = exc

        # generate in a worker so Ctrl-C lands here and cancels between steps
        worker = threading.Thread(target=run, daemon=True)
        worker.start()
        try:
            while worker.is_alive():
                worker.join(0.2)
        except KeyboardInterrupt:
            self.stdout.write("Cancelling...")
            cancel_ev.set()
            worker.join()

        if "error" in outcome:
            raise CommandError(f"Generation failed: {outcome['error']}") from outcome["error"]
        result = outcome["result"]

        opts["csv"].write_text(connections_to_csv(result.connections))
        self.stdout.write(f"Wrote {len(result.connections)} connections to {opts['csv']}")
        if opts["png"] is not None:
            opts["png"].write_bytes(field_to_png(result.field, config.resolution))
            self.stdout.write(f"Wrote preview to {opts['png']}")
        self.stdout.write(self.style.SUCCESS(f"Pattern {result.state.value}."))
