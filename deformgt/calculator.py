"""Stereo ground-truth helpers: scale recovery, result files and correlation matching."""

from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple, Union

import numpy as np

_log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class RandomSource(Protocol):
    """Anything with a ``random()`` method returning a float in [0, 1]."""

    def random(self) -> float: ...


@dataclass(frozen=True)
class StereoMatchConfig:
    """Window sizes and acceptance threshold for stereo correlation matching.

    ``template_x``/``template_y`` size the patch cut around the keypoint in the
    left image, ``search_x`` is the horizontal search extent in the right image,
    ``margin`` widens the vertical search band and ``threshold`` is the lowest
    normalised cross-correlation accepted as a match.
    """

    template_x: int
    template_y: int
    search_x: int
    margin: int
    threshold: float

    def __post_init__(self) -> None:
        if self.template_x <= 0 or self.template_y <= 0:
            raise ValueError("template size must be positive")
        if self.search_x <= 0:
            raise ValueError("search width must be positive")
        if self.margin < 0:
            raise ValueError("margin must not be negative")


def _as_points(points, name: str) -> np.ndarray:
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] < 3:
        raise ValueError(f"{name} must be a sequence of 3D points")
    return arr[:, :3]


def scale_min_median(pos_mono, pos_stereo, rng: Optional[RandomSource] = None) -> float:
    """Estimate the scale between a monocular and a stereo point cloud.

    Candidate scales are taken from the depth ratio of randomly sampled points;
    the one with the smallest median residual wins. Outliers against that scale
    are rejected and the final scale is the least-squares depth ratio of the
    inliers. Returns 0.0 when a candidate has no residuals left to rank; the
    result follows IEEE arithmetic and may be NaN or infinite for degenerate
    input.
    """
    mono = _as_points(pos_mono, "pos_mono")
    stereo = _as_points(pos_stereo, "pos_stereo")
    if mono.shape != stereo.shape:
        raise ValueError("pos_mono and pos_stereo must hold the same number of points")
    if rng is None:
        rng = random.Random()

    n_points = len(mono)
    min_med = np.float64(10000.0)
    best_scale = np.float64(0.0)
    final_points = 0

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for i in range(n_points):
            if rng.random() > 0.25:
                continue
            scale = stereo[i, 2] / mono[i, 2]
            sampled = [j for j in range(n_points) if j != i and rng.random() <= 0.25]
            diff = scale * mono[sampled] - stereo[sampled]
            residuals = np.sort(np.sqrt(np.sum(diff * diff, axis=1)))
            # The smallest residual is dropped before taking the median.
            kept = residuals[1:]
            final_points += 1
            if kept.size == 0:
                return 0.0
            median = kept[kept.size // 2]
            if median < min_med:
                min_med = median
                best_scale = scale

        desv = 1.4826 * (1.0 - 5.0 / (np.float64(final_points) - 1.0)) * np.sqrt(min_med)
        _log.debug("standard deviation %s", desv)

        diff = best_scale * mono - stereo
        residual = np.sqrt(np.sum(diff * diff, axis=1))
        inliers = (residual / desv) < 2.5

        num = np.sum(stereo[inliers, 2] * mono[inliers, 2])
        den = np.sum(mono[inliers, 2] * mono[inliers, 2])
        return float(num / den)


def save_results(values: Sequence[float], path: PathLike) -> None:
    """Write values as a right-aligned column, one per line, no trailing newline."""
    texts = [format(float(np.float32(v)), "g") for v in values]
    width = max((len(t) for t in texts), default=0)
    with open(path, "w", encoding="ascii") as handle:
        handle.write("\n".join(t.rjust(width) for t in texts))


def match_template_ccorr_normed(image, template) -> np.ndarray:
    """Normalised cross-correlation of ``template`` at every position in ``image``.

    The result has shape ``(H - h + 1, W - w + 1)``. Positions where the
    denominator vanishes score 0; rounding overshoots are clamped to +-1.
    """
    img = np.asarray(image, dtype=np.float64)
    tpl = np.asarray(template, dtype=np.float64)
    if img.ndim != tpl.ndim or img.ndim not in (2, 3):
        raise ValueError("image and template must both be 2D or both be 3D arrays")
    if img.ndim == 2:
        img = img[..., np.newaxis]
        tpl = tpl[..., np.newaxis]
    if img.shape[2] != tpl.shape[2]:
        raise ValueError("image and template must have the same number of channels")
    h, w = tpl.shape[:2]
    rows, cols = img.shape[:2]
    if h == 0 or w == 0 or h > rows or w > cols:
        raise ValueError("template must be non-empty and fit inside the image")

    windows = np.lib.stride_tricks.sliding_window_view(img, (h, w), axis=(0, 1))
    tpl_t = np.moveaxis(tpl, 2, 0)
    num = np.einsum("rcklm,klm->rc", windows, tpl_t)
    window_sq = np.einsum("rcklm,rcklm->rc", windows, windows)
    denom = np.sqrt(window_sq) * np.sqrt(np.sum(tpl * tpl))

    result = np.zeros_like(num)
    exact = np.abs(num) < denom
    result[exact] = num[exact] / denom[exact]
    near = ~exact & (np.abs(num) < denom * 1.125)
    result[near] = np.sign(num[near])
    return result


def _region(image: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
    rows, cols = image.shape[:2]
    if width <= 0 or height <= 0 or x < 0 or y < 0 or x + width > cols or y + height > rows:
        raise ValueError(f"region ({x}, {y}, {width}, {height}) lies outside the image")
    return image[y:y + height, x:x + width]


def estimate_gt(
    keypoint,
    im_left,
    im_right,
    mbf: float,
    cx: float,
    cy: float,
    fx: float,
    fy: float,
    config: StereoMatchConfig,
) -> Optional[Tuple[float, float, float]]:
    """Triangulate a left-image keypoint by correlation search in the right image.

    ``keypoint`` is an ``(x, y)`` pixel position. Returns the 3D point in the
    camera frame, or ``None`` when the keypoint is too close to the border, the
    patch is saturated, or no match reaches ``config.threshold``.
    """
    x, y = (float(c) for c in keypoint)
    left = np.asarray(im_left)
    right = np.asarray(im_right)
    rows, cols = right.shape[:2]

    if x < 0 or y < 0 or y > rows or x > cols - 60:
        return None

    temp_x, temp_y = config.template_x, config.template_y
    half_x, half_y = temp_x // 2, temp_y // 2
    search_x = config.search_x
    search_y = temp_y + config.margin

    if (x - half_x) < 20 or (y - half_y) < 0 or (x + half_x) > cols or (y + half_y) > rows:
        return None

    fin_x = int(x - search_x)
    fin_y = int(y - search_y)
    fin_x_right = int(x + mbf / 4)
    fin_y_right = fin_y + search_y * 2
    fin_x = max(fin_x, 0)
    fin_y = max(fin_y, 0)
    if fin_x_right > cols:
        search_x = cols - 1 - fin_x
    if fin_y_right > rows:
        search_y = int((rows - 1 - fin_y) / 2)

    patch = _region(left, int(x - half_x), int(y - half_y), temp_x, temp_y)
    if np.max(patch) > 250:
        return None
    search = _region(right, fin_x, fin_y, search_x, search_y * 2)

    result = match_template_ccorr_normed(search, patch)
    best_row, best_col = divmod(int(np.argmax(result)), result.shape[1])
    if result[best_row, best_col] < config.threshold:
        return None

    match_x = best_col + fin_x + half_x
    disparity = np.float64(abs(match_x - x))
    with np.errstate(divide="ignore", invalid="ignore"):
        depth = np.float64(mbf) / disparity
        return (
            float(depth * ((x - cx) / fx)),
            float(depth * ((y - cy) / fy)),
            float(depth),
        )