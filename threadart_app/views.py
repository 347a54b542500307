# threadart_app/views.py
#
# Views for the thread-art web app:
# - Accepts an image upload plus frame / generation parameters
# - Runs pattern generation in a background thread per job
# - Streams logs and connections to the frontend using Server-Sent Events (SSE)
# - Serves the finished pattern as CSV and the rendered field as PNG
# - Manages per-job state (cancellation, logs, results, outputs)
#

import time
import json
import threading
import uuid
from collections import OrderedDict
from io import BytesIO

from django.conf import settings
from django.http import StreamingHttpResponse, JsonResponse, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from PIL import Image, UnidentifiedImageError

import logging
import numpy as np

from .config import DEFAULTS, PRESETS, apply_preset
from .export import connections_to_csv, field_to_png
from .geometry import SHAPES, frame_from_params
from .models import ConfigurationError, GenerationConfig, GenerationState
from .planner import ALGORITHMS, generate_pattern, prepare_inputs
from .preprocessing import load_image
from .renderer import render_frame_preview
from .sse_logging import create_sse_logger, release_sse_logger

logger = logging.getLogger(__name__)

# === Per-job registries ===
JOB_CANCEL_EVENTS: dict[str, threading.Event] = {}
JOB_LOGS: dict[str, list[str]] = {}
JOB_RESULTS: dict[str, list[dict]] = {}
JOB_STATES: dict[str, str] = {}
JOB_OUTPUTS: dict[str, tuple] = {}
JOB_THREADS: dict[str, threading.Thread] = {}
# finished job ids, oldest first
FINISHED_JOBS: "OrderedDict[str, None]" = OrderedDict()
_REGISTRY_LOCK = threading.Lock()

FAILED = "failed"
FINISHED_STATES = {GenerationState.COMPLETED.value, GenerationState.CANCELLED.value, FAILED}

INT_PARAMS = ("num_pins", "resolution", "num_lines", "start_pin", "min_pin_gap")
FLOAT_PARAMS = ("start_angle", "ellipse_ratio", "rect_ratio", "gamma", "alpha")

# Pillow raises OSError for truncated files and DecompressionBombError for huge ones
IMAGE_ERRORS = (UnidentifiedImageError, OSError, Image.DecompressionBombError)


def _read_params(data) -> dict:
    """Pull typed parameters out of a QueryDict, falling back to DEFAULTS."""
    params = dict(DEFAULTS)
    preset = data.get("preset")
    if preset and preset != "custom":
        try:
            params = apply_preset(params, preset)
        except ValueError as exc:
            raise ConfigurationError("preset", str(exc)) from exc

    for name in INT_PARAMS + FLOAT_PARAMS:
        raw = data.get(name)
        if raw in (None, ""):
            continue
        cast = int if name in INT_PARAMS else float
        try:
            params[name] = cast(raw)
        except ValueError as exc:
            raise ConfigurationError(name, f"not a valid {cast.__name__}: {raw!r}") from exc
    params["shape"] = data.get("shape") or params["shape"]
    return params


def _frame_from(params: dict):
    return frame_from_params(
        params["shape"],
        params["num_pins"],
        start_angle=params["start_angle"],
        ellipse_ratio=params["ellipse_ratio"],
        rect_ratio=params["rect_ratio"],
    )


def _config_error(exc: ConfigurationError) -> JsonResponse:
    return JsonResponse({"error": str(exc), "parameter": exc.parameter}, status=400)


@require_GET
def home(request):
    return JsonResponse({
        "defaults": DEFAULTS,
        "presets": PRESETS,
        "shapes": list(SHAPES),
        "algorithms": list(ALGORITHMS.keys()),
    })


def _max_resolution() -> int:
    return getattr(settings, "THREADART_MAX_RESOLUTION", 1000)


def _check_resolution(size: int) -> None:
    if size <= 0:
        raise ConfigurationError("resolution", f"must be positive, got {size}")
    if size > _max_resolution():
        raise ConfigurationError("resolution", f"must be at most {_max_resolution()}, got {size}")


# JSON endpoints: no session or auth, so there is no cookie for CSRF to protect
@csrf_exempt
@require_POST
def frame_preview(request):
    try:
        params = _read_params(request.POST)
        frame = _frame_from(params)
        _check_resolution(params["resolution"])
    except ConfigurationError as exc:
        return _config_error(exc)

    size = params["resolution"]
    img = render_frame_preview(frame, size, logger=logger)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return HttpResponse(buf.getvalue(), content_type="image/png")


@csrf_exempt
@require_POST
def start_job(request):
    upload = request.FILES.get("image")
    if upload is None:
        return JsonResponse({"error": "No image uploaded.", "parameter": "image"}, status=400)

    try:
        params = _read_params(request.POST)
        frame = _frame_from(params)
        _check_resolution(params["resolution"])
        config = GenerationConfig(
            num_lines=params["num_lines"],
            start_pin=params["start_pin"],
            min_pin_gap=params["min_pin_gap"],
            alpha=params["alpha"],
            resolution=params["resolution"],
        )
        seed = request.POST.get("seed")
        seed = int(seed) if seed not in (None, "") else None
    except ConfigurationError as exc:
        return _config_error(exc)
    except ValueError:
        return _config_error(ConfigurationError("seed", "not a valid int"))

    algorithm = request.POST.get("algorithm") or "greedy"
    if algorithm not in ALGORITHMS:
        valid = ", ".join(ALGORITHMS.keys())
        return JsonResponse(
            {"error": f"Unknown algorithm '{algorithm}'. Valid options: {valid}", "parameter": "algorithm"},
            status=400,
        )

    try:
        image = load_image(BytesIO(upload.read()), logger=logger)
    except IMAGE_ERRORS as exc:
        logger.warning(f"Rejected upload: {exc}")
        return JsonResponse({"error": "Could not decode image.", "parameter": "image"}, status=400)

    job_id = str(uuid.uuid4())
    cancel_ev = threading.Event()
    JOB_CANCEL_EVENTS[job_id] = cancel_ev
    JOB_LOGS[job_id] = []
    JOB_RESULTS[job_id] = []
    JOB_STATES[job_id] = GenerationState.IDLE.value

    job_logger = create_sse_logger(job_id, JOB_LOGS)
    progress_interval = getattr(settings, "THREADART_PROGRESS_INTERVAL", 100)

    def worker():
        JOB_STATES[job_id] = GenerationState.RUNNING.value
        started = time.time()
        try:
            job_logger.info(f"Preparing {frame.shape} frame with {frame.num_pins} pins")
            pins, target = prepare_inputs(
                image, frame, config.resolution, params["gamma"], logger=job_logger
            )

            def on_connection(connection):
                JOB_RESULTS[job_id].append({"type": "connection", **connection.as_dict()})

            def on_progress(step: int, total: int):
                job_logger.info(f"Line {step} of {total}...")

            job_logger.info(f"Generating {config.num_lines} lines")
            result = generate_pattern(
                target,
                pins,
                config,
                algorithm=algorithm,
                logger=job_logger,
                on_progress=on_progress,
                cancel_event=cancel_ev,
                rng=np.random.default_rng(seed),
                connection_callback=on_connection,
                progress_interval=progress_interval,
            )
        except Exception:
            job_logger.exception("Generation failed.")
            JOB_RESULTS[job_id].append({"type": "status", "state": FAILED})
            JOB_STATES[job_id] = FAILED
            _retire_job(job_id)
            return

        JOB_OUTPUTS[job_id] = (result, config.resolution)
        JOB_RESULTS[job_id].append({
            "type": "status",
            "state": result.state.value,
            "lines": len(result.connections),
            "elapsed": round(time.time() - started, 1),
        })
        if result.cancelled:
            job_logger.info(f"Job cancelled after {len(result.connections)} lines.")
        else:
            job_logger.info(f"Job complete: {len(result.connections)} lines.")
        # streams stop once the state is terminal, so publish it last
        JOB_STATES[job_id] = result.state.value
        _retire_job(job_id)

    thread = threading.Thread(target=worker, daemon=True)
    JOB_THREADS[job_id] = thread
    thread.start()
    return JsonResponse({"job_id": job_id})


def _finished(job_id: str) -> bool:
    # an evicted job counts as finished
    return JOB_STATES.get(job_id, FAILED) in FINISHED_STATES


def _retire_job(job_id: str) -> None:
    """Mark a job finished and evict the oldest finished jobs past the cap."""
    limit = max(0, getattr(settings, "THREADART_MAX_FINISHED_JOBS", 20))
    evicted = []
    with _REGISTRY_LOCK:
        FINISHED_JOBS[job_id] = None
        while len(FINISHED_JOBS) > limit:
            old_id, _ = FINISHED_JOBS.popitem(last=False)
            for registry in (JOB_CANCEL_EVENTS, JOB_LOGS, JOB_RESULTS, JOB_STATES, JOB_OUTPUTS, JOB_THREADS):
                registry.pop(old_id, None)
            evicted.append(old_id)
    for old_id in evicted:
        release_sse_logger(old_id)
    if evicted:
        logger.debug(f"Evicted {len(evicted)} finished job(s)")


def _poll_interval() -> float:
    return getattr(settings, "THREADART_SSE_POLL_SECONDS", 0.2)


@require_GET
def stream_logs(request):
    job_id = request.GET.get('job_id')
    if job_id not in JOB_LOGS:
        return HttpResponse(status=404)

    def event_stream():
        idx = 0
        while True:
            done = _finished(job_id)
            logs = JOB_LOGS.get(job_id, ())
            while idx < len(logs):
                yield f"data: {logs[idx]}\n\n".encode()
                idx += 1
            if done:
                break
            time.sleep(_poll_interval())
        release_sse_logger(job_id)

    return StreamingHttpResponse(event_stream(), content_type='text/event-stream')


@require_GET
def stream_results(request):
    job_id = request.GET.get('job_id')
    if job_id not in JOB_RESULTS:
        return HttpResponse(status=404)

    def event_stream():
        idx = 0
        while True:
            done = _finished(job_id)
            results = JOB_RESULTS.get(job_id, ())
            while idx < len(results):
                yield f"data: {json.dumps(results[idx])}\n\n".encode()
                idx += 1
            if done:
                break
            time.sleep(_poll_interval())

    return StreamingHttpResponse(event_stream(), content_type='text/event-stream')


@csrf_exempt
@require_POST
def stop_job(request, job_id):
    ev = JOB_CANCEL_EVENTS.get(str(job_id))
    if ev:
        ev.set()
        return HttpResponse(status=204)
    return HttpResponse(status=404)


def _job_output(job_id: str):
    if job_id not in JOB_STATES:
        return None, HttpResponse(status=404)
    output = JOB_OUTPUTS.get(job_id)
    if output is None:
        return None, JsonResponse({"error": "No pattern generated yet.", "state": JOB_STATES[job_id]}, status=409)
    return output, None


@require_GET
def download_csv(request, job_id):
    output, error = _job_output(str(job_id))
    if error is not None:
        return error
    result, _ = output
    response = HttpResponse(connections_to_csv(result.connections), content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="string-art-pattern.csv"'
    return response


@require_GET
def download_png(request, job_id):
    output, error = _job_output(str(job_id))
    if error is not None:
        return error
    result, resolution = output
    response = HttpResponse(field_to_png(result.field, resolution), content_type="image/png")
    response["Content-Disposition"] = 'attachment; filename="string-art-preview.png"'
    return response
