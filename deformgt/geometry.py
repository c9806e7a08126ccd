"""Keyframe retina normalisation and barycentric placement of points on a template."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np

_BOUND_MARGIN = 0.10
_INITIAL_BOUND = 0.75


@dataclass
class RetinaBounds:
    """Extent of the normalised (retina) keypoint coordinates of a keyframe.

    The defaults describe an empty extent. Each keypoint that falls outside
    the current extent pushes the bound past itself by a margin of 0.10.
    """

    umin: float = _INITIAL_BOUND
    umax: float = -_INITIAL_BOUND
    vmin: float = _INITIAL_BOUND
    vmax: float = -_INITIAL_BOUND

    def include(self, u: float, v: float) -> None:
        """Widen the bounds so that ``(u, v)`` lies inside them."""
        if u < self.umin:
            self.umin = u - _BOUND_MARGIN
        if u > self.umax:
            self.umax = u + _BOUND_MARGIN
        if v < self.vmin:
            self.vmin = v - _BOUND_MARGIN
        if v > self.vmax:
            self.vmax = v + _BOUND_MARGIN


def normalise_keypoints(keypoints, camera_matrix) -> Tuple[np.ndarray, RetinaBounds]:
    """Map pixel keypoints to retina coordinates with the inverse calibration.

    ``keypoints`` is a sequence of ``(x, y)`` pixel positions and
    ``camera_matrix`` the 3x3 intrinsic matrix. Returns an ``(N, 2)`` array of
    normalised coordinates and the bounds that enclose them.
    """
    k = np.asarray(camera_matrix, dtype=np.float64)
    if k.shape != (3, 3):
        raise ValueError("camera matrix must be 3x3")
    try:
        k_inv = np.linalg.inv(k)
    except np.linalg.LinAlgError as exc:
        raise ValueError("camera matrix is singular") from exc

    pts = np.asarray(keypoints, dtype=np.float64)
    if pts.size == 0:
        pts = pts.reshape(0, 2)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError("keypoints must be a sequence of (x, y) pairs")

    homogeneous = np.column_stack([pts, np.ones(len(pts))])
    normalised = (k_inv @ homogeneous.T).T[:, :2]

    bounds = RetinaBounds()
    for u, v in normalised:
        bounds.include(float(u), float(v))
    return normalised, bounds


@dataclass
class Node:
    """Template vertex with its current position and its shape-at-rest position.

    When the rest position is not given it starts equal to the current one.
    """

    x: float
    y: float
    z: float
    rest_x: Optional[float] = field(default=None)
    rest_y: Optional[float] = field(default=None)
    rest_z: Optional[float] = field(default=None)

    def __post_init__(self) -> None:
        if self.rest_x is None:
            self.rest_x = self.x
        if self.rest_y is None:
            self.rest_y = self.y
        if self.rest_z is None:
            self.rest_z = self.z

    @property
    def position(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def rest_position(self) -> Tuple[float, float, float]:
        return (self.rest_x, self.rest_y, self.rest_z)


def _three_nodes(nodes: Sequence[Node]) -> Sequence[Node]:
    nodes = list(nodes)
    if len(nodes) != 3:
        raise ValueError(f"a facet has exactly three nodes, got {len(nodes)}")
    return nodes


@dataclass(frozen=True)
class Barycentric:
    """Barycentric coordinates of a map point inside a triangular facet."""

    b1: float
    b2: float
    b3: float

    def _combine(self, coords: Sequence[Tuple[float, float, float]]) -> Tuple[float, float, float]:
        weights = (self.b1, self.b2, self.b3)
        return tuple(
            float(sum(w * c[axis] for w, c in zip(weights, coords))) for axis in range(3)
        )

    def position(self, nodes: Sequence[Node]) -> Tuple[float, float, float]:
        """Current 3D position from the facet's nodes."""
        return self._combine([n.position for n in _three_nodes(nodes)])

    def rest_position(self, nodes: Sequence[Node]) -> Tuple[float, float, float]:
        """3D position at the shape-at-rest of the facet's nodes."""
        return self._combine([n.rest_position for n in _three_nodes(nodes)])