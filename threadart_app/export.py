# threadart_app/export.py

import csv
import io
from typing import Iterable

import numpy as np

from .models import Connection
from .renderer import to_image

CSV_HEADER = ("step", "start_pin", "end_pin")


def connections_to_csv(connections: Iterable[Connection]) -> str:
    """Winding instructions as CSV text, one newline-terminated row per connection."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for c in connections:
        writer.writerow((c.step, c.start_pin, c.end_pin))
    return buf.getvalue()


def field_to_png(field: np.ndarray, resolution: int) -> bytes:
    buf = io.BytesIO()
    to_image(field, resolution).save(buf, format="PNG")
    return buf.getvalue()
