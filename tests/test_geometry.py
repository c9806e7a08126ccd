import numpy as np
import pytest

from deformgt.geometry import Barycentric, Node, RetinaBounds, normalise_keypoints


K = np.array([[500.0, 0.0, 320.0], [0.0, 480.0, 240.0], [0.0, 0.0, 1.0]])


def test_empty_keypoints_keep_initial_bounds():
    points, bounds = normalise_keypoints([], K)
    assert points.shape == (0, 2)
    assert (bounds.umin, bounds.umax, bounds.vmin, bounds.vmax) == (0.75, -0.75, 0.75, -0.75)


def test_identity_matrix_leaves_points_unchanged():
    kps = [(0.3, -0.2), (1.5, 2.0)]
    points, _ = normalise_keypoints(kps, np.eye(3))
    np.testing.assert_allclose(points, np.array(kps))


def test_normalisation_round_trips_through_camera_matrix():
    kps = np.array([[10.0, 20.0], [320.0, 240.0], [639.0, 479.0]])
    points, _ = normalise_keypoints(kps, K)
    homogeneous = np.column_stack([points, np.ones(len(points))])
    pixels = (K @ homogeneous.T).T[:, :2]
    np.testing.assert_allclose(pixels, kps)


def test_principal_point_maps_to_origin():
    points, _ = normalise_keypoints([(320.0, 240.0)], K)
    np.testing.assert_allclose(points[0], [0.0, 0.0], atol=1e-12)


def test_bounds_enclose_every_point():
    rng = np.random.default_rng(3)
    kps = rng.uniform(0, 2000, size=(40, 2))
    points, bounds = normalise_keypoints(kps, K)
    u_min, u_max = float(points[:, 0].min()), float(points[:, 0].max())
    v_min, v_max = float(points[:, 1].min()), float(points[:, 1].max())
    eps = 1e-9
    assert u_min - 0.10 - eps <= bounds.umin <= u_min
    assert u_max <= bounds.umax <= u_max + 0.10 + eps
    assert v_min - 0.10 - eps <= bounds.vmin <= v_min
    assert v_max <= bounds.vmax <= v_max + 0.10 + eps


def test_outside_point_pushes_bounds_by_margin():
    bounds = RetinaBounds()
    bounds.include(2.0, -3.0)
    assert bounds.umax == pytest.approx(2.0 + 0.10)
    assert bounds.vmin == pytest.approx(-3.0 - 0.10)


def test_singular_camera_matrix_rejected():
    with pytest.raises(ValueError):
        normalise_keypoints([(1.0, 1.0)], np.zeros((3, 3)))


def test_wrong_shape_camera_matrix_rejected():
    with pytest.raises(ValueError):
        normalise_keypoints([(1.0, 1.0)], np.eye(2))


def test_bad_keypoint_shape_rejected():
    with pytest.raises(ValueError):
        normalise_keypoints([(1.0, 2.0, 3.0)], K)


def _facet():
    return [
        Node(1.0, 2.0, 3.0, rest_x=0.0, rest_y=0.0, rest_z=1.0),
        Node(4.0, 5.0, 6.0, rest_x=1.0, rest_y=0.0, rest_z=1.0),
        Node(7.0, 8.0, 9.0, rest_x=0.0, rest_y=1.0, rest_z=1.0),
    ]


@pytest.mark.parametrize("index", [0, 1, 2])
def test_unit_weight_selects_node(index):
    weights = [0.0, 0.0, 0.0]
    weights[index] = 1.0
    nodes = _facet()
    coords = Barycentric(*weights)
    assert coords.position(nodes) == pytest.approx(nodes[index].position)
    assert coords.rest_position(nodes) == pytest.approx(nodes[index].rest_position)


def test_weights_summing_to_one_on_coincident_nodes():
    nodes = [Node(2.0, -1.0, 5.0) for _ in range(3)]
    assert Barycentric(0.2, 0.3, 0.5).position(nodes) == pytest.approx((2.0, -1.0, 5.0))


def test_position_is_linear_in_weights():
    nodes = _facet()
    a = np.array(Barycentric(0.2, 0.3, 0.5).position(nodes))
    b = np.array(Barycentric(0.4, 0.6, 1.0).position(nodes))
    np.testing.assert_allclose(b, 2 * a)


def test_rest_position_defaults_to_current():
    node = Node(1.0, 2.0, 3.0)
    assert node.rest_position == node.position


def test_rest_position_ignores_current_coordinates():
    nodes = _facet()
    before = Barycentric(1 / 3, 1 / 3, 1 / 3).rest_position(nodes)
    for n in nodes:
        n.x += 10.0
    assert Barycentric(1 / 3, 1 / 3, 1 / 3).rest_position(nodes) == pytest.approx(before)


def test_wrong_node_count_rejected():
    with pytest.raises(ValueError):
        Barycentric(0.5, 0.5, 0.0).position(_facet()[:2])