"""Helpers for generating map marker icons."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import numpy as np
from PIL import Image, ImageDraw


_MARKER_COLOURS: Dict[str, str] = {
    "place": "#3b82f6",
    "vehicle": "#eab308",
}


def _generate_pin(colour: str, size: int = 64) -> Image.Image:
    """Draw a round pin with a white core, like a map marker seen from above."""

    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.ellipse([(0, 0), (size - 1, size - 1)], fill=colour, outline="white", width=max(1, size // 16))
    core = size // 3
    draw.ellipse([(core, core), (size - 1 - core, size - 1 - core)], fill="white")
    return image


def load_marker_icon(kind: str, icon_path: Optional[Path] = None, size: int = 64) -> np.ndarray:
    """Return a numpy array containing the RGBA icon for a marker kind."""

    if icon_path and Path(icon_path).exists():
        image = Image.open(icon_path).convert("RGBA")
        image = image.resize((size, size), Image.LANCZOS)
    else:
        image = _generate_pin(_MARKER_COLOURS.get(kind, "#444444"), size=size)
    return np.array(image)
