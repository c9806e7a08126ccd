"""Ground-truth evaluation of monocular reconstructions: scale, 3D error and normal angles."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from deformgt.calculator import RandomSource, save_results, scale_min_median

_log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_MIN_SCALE_POINTS = 50


@dataclass(frozen=True)
class AngleErrorSummary:
    """Statistics of a set of angular errors, in degrees."""

    minimum: float
    maximum: float
    median: float
    mean: float
    count: int


def error_file_name(output_path: PathLike, prefix: str, timestamp: float, suffix: str = "") -> str:
    """Build ``<output_path>/<prefix><timestamp:05d><suffix>.txt``.

    The timestamp is truncated to an unsigned integer and zero-padded to
    at least five digits.
    """
    if timestamp < 0:
        raise ValueError("timestamp must not be negative")
    return f"{os.fspath(output_path)}/{prefix}{int(timestamp):05d}{suffix}.txt"


def depth_ground_truth(
    depth_image, keypoint, cx: float, cy: float, fx: float, fy: float
) -> Tuple[float, float, float]:
    """Back-project a keypoint using the depth stored at its pixel.

    ``keypoint`` is an ``(x, y)`` pixel position; the pixel is found by
    truncating both coordinates.
    """
    depth = np.asarray(depth_image, dtype=np.float32)
    if depth.ndim != 2:
        raise ValueError("depth image must be a 2D array")
    x, y = (float(c) for c in keypoint)
    row, col = int(y), int(x)
    rows, cols = depth.shape
    if x < 0 or y < 0 or row >= rows or col >= cols:
        raise ValueError(f"keypoint ({x}, {y}) lies outside the depth image")
    d = float(depth[row, col])
    return (d * ((x - cx) / fx), d * ((y - cy) / fy), d)


def _paired_points(pos_mono, pos_stereo) -> Tuple[np.ndarray, np.ndarray]:
    mono = np.asarray(pos_mono, dtype=np.float64).reshape(-1, 3) if len(pos_mono) else np.empty((0, 3))
    stereo = (
        np.asarray(pos_stereo, dtype=np.float64).reshape(-1, 3) if len(pos_stereo) else np.empty((0, 3))
    )
    if mono.shape != stereo.shape:
        raise ValueError("pos_mono and pos_stereo must hold the same number of points")
    return mono, stereo


def estimate_scale(
    pos_mono,
    pos_stereo,
    rng: Optional[RandomSource] = None,
    min_points: int = _MIN_SCALE_POINTS,
) -> float:
    """Scale between monocular and ground-truth points, or 1.0 with too few points."""
    mono, stereo = _paired_points(pos_mono, pos_stereo)
    _log.debug("points evaluated: %d", len(mono))
    if len(mono) < min_points:
        return 1.0
    scale = scale_min_median(mono, stereo, rng)
    _log.debug("scale from ground truth: %s", scale)
    return scale


def estimate_3d_error(
    pos_mono, pos_stereo, scale: float, timestamp: float, output_path: PathLike
) -> float:
    """Mean Euclidean distance between ground truth and scaled monocular points.

    The individual errors are written to ``ErrorGTs<timestamp>.txt`` inside
    ``output_path``. With no points the mean is NaN.
    """
    mono, stereo = _paired_points(pos_mono, pos_stereo)
    errors = np.sqrt(np.sum((stereo - scale * mono) ** 2, axis=1))
    mean = float(np.sum(errors) / len(errors)) if len(errors) else math.nan
    _log.debug("mean surface error %s over %d points", mean, len(errors))
    name = error_file_name(output_path, "ErrorGTs", timestamp)
    save_results(errors.tolist(), name)
    return mean


def _normalised(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    # Vectors of zero length are left unchanged.
    safe = np.where(norms > 0, norms, 1.0)
    return vectors / safe


def angle_errors(normals_a, normals_b) -> List[float]:
    """Unsigned angles in degrees between paired normals, folded into [0, 90].

    Pairs whose angle is undefined (NaN) are left out.
    """
    a = np.asarray(normals_a, dtype=np.float64).reshape(-1, 3) if len(normals_a) else np.empty((0, 3))
    b = np.asarray(normals_b, dtype=np.float64).reshape(-1, 3) if len(normals_b) else np.empty((0, 3))
    if a.shape != b.shape:
        raise ValueError("both normal sets must hold the same number of vectors")
    dots = np.sum(_normalised(a) * _normalised(b), axis=1)
    with np.errstate(invalid="ignore"):
        angles = np.degrees(np.arccos(dots))
    angles = np.where(angles > 90, 180 - angles, angles)
    return [float(v) for v in angles if not math.isnan(v)]


def summarize_angle_errors(errors: Sequence[float]) -> AngleErrorSummary:
    """Minimum, maximum, median (upper middle element), mean and count of errors."""
    ordered = sorted(float(e) for e in errors)
    if not ordered:
        raise ValueError("no angle errors to summarise")
    return AngleErrorSummary(
        minimum=ordered[0],
        maximum=ordered[-1],
        median=ordered[len(ordered) // 2],
        mean=sum(ordered) / len(ordered),
        count=len(ordered),
    )