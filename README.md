# deformgt

Tools for measuring how well a deformable monocular reconstruction matches
ground truth. Ground truth comes either from a rectified stereo pair (normalised
cross-correlation search in the right image) or from a registered depth image.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `deformgt.calculator`

- `StereoMatchConfig(template_x, template_y, search_x, margin, threshold)` —
  frozen dataclass with the template size, horizontal search width, vertical
  margin and the lowest correlation accepted as a match. Non-positive sizes or a
  negative margin raise `ValueError`.
- `match_template_ccorr_normed(image, template)` — normalised cross-correlation
  of a template at every position of a 2D or multi-channel image; the result has
  shape `(H - h + 1, W - w + 1)`.
- `estimate_gt(keypoint, im_left, im_right, mbf, cx, cy, fx, fy, config)` —
  triangulates an `(x, y)` left-image keypoint by searching for its patch in the
  right image. Returns an `(X, Y, Z)` tuple in the camera frame, or `None` when
  the keypoint is too close to the border, its patch is saturated (any value
  above 250) or the best correlation is below `config.threshold`.
- `scale_min_median(pos_mono, pos_stereo, rng=None)` — scale between a monocular
  and a ground-truth point cloud: randomised min-median fit on depth ratios,
  outlier rejection, then a least-squares depth ratio over the inliers. `rng` is
  any object with a `random()` method (a `random.Random` or a
  `numpy.random.Generator`); a fresh `random.Random` is used when omitted.
- `save_results(values, path)` — writes values as a right-aligned column, one
  per line.

### `deformgt.evaluation`

- `depth_ground_truth(depth_image, keypoint, cx, cy, fx, fy)` — back-projects a
  keypoint through the depth stored at its pixel.
- `estimate_scale(pos_mono, pos_stereo, rng=None, min_points=50)` — calls
  `scale_min_median`, or returns `1.0` when there are fewer than `min_points`
  pairs.
- `estimate_3d_error(pos_mono, pos_stereo, scale, timestamp, output_path)` —
  mean Euclidean distance between the ground truth and the scaled monocular
  points; per-point errors are written to `ErrorGTsNNNNN.txt` in `output_path`.
- `error_file_name(output_path, prefix, timestamp, suffix="")` — builds
  `<output_path>/<prefix><timestamp:05d><suffix>.txt`.
- `angle_errors(normals_a, normals_b)` — angles in degrees between paired
  normals, folded into [0, 90], with undefined angles left out.
- `summarize_angle_errors(errors)` — returns an `AngleErrorSummary` with
  `minimum`, `maximum`, `median`, `mean` and `count`.

### `deformgt.geometry`

- `normalise_keypoints(keypoints, camera_matrix)` — maps pixel keypoints to
  retina coordinates with the inverse calibration and returns them with their
  `RetinaBounds` (`umin`, `umax`, `vmin`, `vmax`, widened by `include(u, v)`).
- `Node(x, y, z, rest_x=None, rest_y=None, rest_z=None)` — template vertex with
  current and shape-at-rest positions.
- `Barycentric(b1, b2, b3)` — places a point on a facet of three nodes, in the
  current shape (`position(nodes)`) or at rest (`rest_position(nodes)`).

## Example

```python
import numpy as np
from deformgt.calculator import scale_min_median

rng = np.random.default_rng(0)
mono = rng.uniform(1.0, 2.0, size=(200, 3))
stereo = 3.0 * mono + rng.normal(0.0, 0.01, size=(200, 3))
print(scale_min_median(mono, stereo, rng))  # close to 3.0
```

## What the package does not do

- It has no command-line program; everything is called from Python.
- It does not read image sequences, timestamp lists or per-frame depth files
  from disk, and does not open cameras or videos: images and depth maps are
  passed in as arrays.
- It does not track cameras or build the map; it evaluates points that are
  handed to it.
- It has no point-cloud outlier filter or normal estimation of its own: point
  sets and normals are supplied by the caller.