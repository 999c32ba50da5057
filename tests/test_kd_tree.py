import numpy as np
import pytest

from kdviewer.model.kd_tree import KdTree, Neighbor, NOT_FOUND


def _preorder(tree):
    return [(node.index, tuple(node.point.tolist())) for node in tree.get_nodes()]


def _assert_split_invariant(node, k, depth=0):
    """Left subtree <= node <= right subtree on the node's split axis."""
    axis = depth % k
    stack = [(node.left, "left"), (node.right, "right")]
    for child, side in stack:
        if child is None:
            continue
        sub = [child]
        while sub:
            n = sub.pop()
            if side == "left":
                assert n.point[axis] <= node.point[axis]
            else:
                assert n.point[axis] >= node.point[axis]
            sub.extend(c for c in (n.left, n.right) if c is not None)
        _assert_split_invariant(child, k, depth + 1)


class TestBuild:
    """Tests for balanced construction."""

    def test_empty_point_set(self):
        """No points gives an empty tree."""
        tree = KdTree([])
        assert tree.root is None
        assert tree.is_empty()
        assert len(tree) == 0
        assert tree.get_nodes() == []
        assert tree.points.shape == (0, 3)

    def test_none_point_set(self):
        tree = KdTree(None, dimensions=2)
        assert tree.root is None
        assert tree.points.shape == (0, 2)

    def test_single_point(self):
        tree = KdTree([[1.0, 2.0, 3.0]])
        assert tree.root.index == 0
        assert tree.root.left is None and tree.root.right is None

    def test_median_split_structure(self):
        """Classic 2-d example: median on x, then on y."""
        points = [[2, 3], [5, 4], [9, 6], [4, 7], [8, 1], [7, 2]]
        tree = KdTree(points, dimensions=2)

        assert [p for _, p in _preorder(tree)] == [
            (7.0, 2.0), (5.0, 4.0), (2.0, 3.0), (4.0, 7.0), (9.0, 6.0), (8.0, 1.0)
        ]

    def test_node_index_is_position_in_input(self):
        points = [[2, 3], [5, 4], [9, 6], [4, 7], [8, 1], [7, 2]]
        tree = KdTree(points, dimensions=2)
        for node in tree.get_nodes():
            assert points[node.index] == node.point.tolist()

    def test_ties_keep_input_order(self):
        """Equal split coordinates keep input order, so the middle input becomes the root."""
        tree = KdTree([[1.0, 0.0], [1.0, 1.0], [1.0, 2.0]], dimensions=2)
        assert tree.root.index == 1
        assert tree.root.left.index == 0
        assert tree.root.right.index == 2

    def test_build_is_deterministic(self, rng):
        """Two constructions from the same input give identical pre-order traversals."""
        points = rng.integers(0, 5, size=(200, 3)).astype(float)
        assert _preorder(KdTree(points)) == _preorder(KdTree(points))

    def test_split_invariant_holds(self, rng):
        points = rng.normal(size=(300, 3))
        tree = KdTree(points)
        _assert_split_invariant(tree.root, 3)

    def test_balanced_depth(self, rng):
        points = rng.normal(size=(1023, 3))
        tree = KdTree(points)

        max_depth = 0
        stack = [(tree.root, 1)]
        while stack:
            node, depth = stack.pop()
            max_depth = max(max_depth, depth)
            stack.extend((c, depth + 1) for c in (node.left, node.right) if c is not None)
        assert max_depth == 10

    def test_does_not_mutate_input(self):
        points = np.array([[3.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
        original = points.copy()
        KdTree(points)
        np.testing.assert_array_equal(points, original)

    def test_points_are_read_only(self, unit_points):
        tree = KdTree(unit_points)
        with pytest.raises(ValueError):
            tree.points[0, 0] = 42.0

    def test_build_subtree_with_indices(self):
        tree = KdTree(dimensions=2)
        root = tree.build([[0.0, 0.0], [1.0, 1.0]], depth=1, indices=[10, 11])
        assert {root.index, (root.left or root.right).index} == {10, 11}

    def test_build_rejects_index_length_mismatch(self):
        tree = KdTree(dimensions=2)
        with pytest.raises(ValueError):
            tree.build([[0.0, 0.0]], indices=[1, 2])

    def test_wrong_point_dimension_rejected(self):
        with pytest.raises(ValueError):
            KdTree([[1.0, 2.0]], dimensions=3)

    def test_non_finite_points_rejected(self):
        with pytest.raises(ValueError):
            KdTree([[0.0, 0.0, 0.0], [1.0, np.nan, 0.0]])

    def test_invalid_dimensions_rejected(self):
        with pytest.raises(ValueError):
            KdTree(dimensions=0)


class TestInsert:
    """Tests for single-point insertion."""

    def test_insert_into_empty_tree_becomes_root(self):
        tree = KdTree()
        node = tree.insert([1.0, 2.0, 3.0])
        assert tree.root is node
        assert len(tree) == 1

    def test_equal_coordinate_goes_right(self):
        """Insertion compares with strict <, so equal coordinates descend right."""
        tree = KdTree([[5.0, 5.0]], dimensions=2)
        right = tree.insert([5.0, 1.0])
        left = tree.insert([3.0, 9.0])
        assert tree.root.right is right
        assert tree.root.left is left

    def test_second_level_uses_next_axis(self):
        tree = KdTree([[5.0, 5.0]], dimensions=2)
        child = tree.insert([6.0, 5.0])
        grandchild = tree.insert([7.0, 4.0])
        assert tree.root.right is child
        assert child.left is grandchild

    def test_inserted_points_get_next_index(self, unit_points):
        tree = KdTree(unit_points)
        node = tree.insert([9.0, 9.0, 9.0])
        assert node.index == len(unit_points)
        assert len(tree) == len(unit_points) + 1
        assert len(tree.get_nodes()) == len(unit_points) + 1

    def test_insert_does_not_extend_extracted_points(self, unit_points):
        tree = KdTree(unit_points)
        tree.insert([9.0, 9.0, 9.0])
        assert len(tree.points) == len(unit_points)
        assert tree.find_point_index([9.0, 9.0, 9.0]) == NOT_FOUND

    def test_insert_then_query_returns_point(self, rng):
        points = rng.uniform(-1, 1, size=(100, 3))
        tree = KdTree(points)
        new_point = [0.123, -0.456, 0.789]
        tree.insert(new_point)

        [match] = tree.nearest(new_point, 1)
        assert match.point == tuple(new_point)
        assert match.distance == 0.0

    def test_insert_wrong_dimension_rejected(self):
        tree = KdTree()
        with pytest.raises(ValueError):
            tree.insert([1.0, 2.0])

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_insert_non_finite_rejected(self, unit_points, bad):
        tree = KdTree(unit_points)
        with pytest.raises(ValueError):
            tree.insert([bad, 0.0, 0.0])
        # Tree is untouched by the rejected point
        assert len(tree) == len(unit_points)
        assert len(tree.get_nodes()) == len(unit_points)
        assert [n.index for n in tree.nearest([0.0, 0.0, 0.0], 2)] == [0, 1]

    def test_deep_degenerate_tree(self):
        """Sorted insertion degenerates into a chain deeper than the recursion limit."""
        tree = KdTree(dimensions=1)
        for x in range(2000):
            tree.insert([float(x)])

        assert len(tree.get_nodes()) == 2000
        [match] = tree.nearest([1999.2], 1)
        assert match.point == (1999.0,)


class TestNearestNeighbors:
    """Tests for bounded k-nearest-neighbor search."""

    def test_empty_tree_returns_empty(self):
        tree = KdTree()
        assert tree.nearest([0.0, 0.0, 0.0], 3) == []
        result = tree.k_nearest_neighbors([0.0, 0.0, 0.0], 3)
        assert result.shape == (0, 3)

    def test_unit_points_scenario(self, unit_points):
        result = KdTree(unit_points).k_nearest_neighbors([0.0, 0.0, 0.0], 2, highlight=False)

        assert result.shape == (2, 3)
        assert result[0].tolist() == [0.0, 0.0, 0.0]
        assert result[1].tolist() in ([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0])

    def test_distance_ties_resolve_by_input_order(self, unit_points):
        neighbors = KdTree(unit_points).nearest([0.0, 0.0, 0.0], 4)
        assert [n.index for n in neighbors] == [0, 1, 2, 3]
        assert [n.distance for n in neighbors] == [0.0, 1.0, 1.0, 1.0]

    def test_returns_neighbor_records(self, unit_points):
        [first] = KdTree(unit_points).nearest([5.0, 5.0, 4.0], 1)
        assert first == Neighbor(point=(5.0, 5.0, 5.0), index=4, distance=1.0)

    def test_count_above_size_returns_all_sorted(self, unit_points):
        neighbors = KdTree(unit_points).nearest([4.0, 4.0, 4.0], 50)
        assert len(neighbors) == len(unit_points)
        distances = [n.distance for n in neighbors]
        assert distances == sorted(distances)
        assert neighbors[0].index == 4

    def test_zero_count_returns_empty(self, unit_points):
        assert KdTree(unit_points).nearest([0.0, 0.0, 0.0], 0) == []

    def test_negative_count_rejected(self, unit_points):
        with pytest.raises(ValueError):
            KdTree(unit_points).nearest([0.0, 0.0, 0.0], -1)

    def test_query_dimension_mismatch_rejected(self, unit_points):
        tree = KdTree(unit_points)
        with pytest.raises(ValueError):
            tree.nearest([0.0, 0.0], 1)
        with pytest.raises(ValueError):
            tree.k_nearest_neighbors([0.0, 0.0, 0.0, 0.0], 1)

    def test_non_finite_query_rejected(self, unit_points):
        with pytest.raises(ValueError):
            KdTree(unit_points).nearest([np.nan, 0.0, 0.0], 1)

    def test_root_is_candidate_when_not_nearest(self):
        """A single neighbor far from the root is still found."""
        points = [[0.0, 0.0], [10.0, 0.0], [20.0, 0.0]]
        tree = KdTree(points, dimensions=2)
        assert tree.root.index == 1
        [match] = tree.nearest([19.0, 0.0], 1)
        assert match.index == 2

    @pytest.mark.parametrize("prune", [True, False])
    @pytest.mark.parametrize("count", [1, 3, 7, 25])
    def test_matches_brute_force_random(self, rng, brute_force, prune, count):
        points = rng.normal(size=(250, 3))
        tree = KdTree(points)
        for query in rng.normal(size=(20, 3)):
            neighbors = tree.nearest(query, count, prune=prune)
            assert [n.index for n in neighbors] == brute_force(points, query, count)

    @pytest.mark.parametrize("prune", [True, False])
    def test_matches_brute_force_with_duplicates_and_ties(self, rng, brute_force, prune):
        """Integer grid points: many exact duplicates and equal distances."""
        points = rng.integers(0, 4, size=(120, 3)).astype(float)
        tree = KdTree(points)
        for query in rng.integers(0, 4, size=(15, 3)).astype(float):
            neighbors = tree.nearest(query, 10, prune=prune)
            assert [n.index for n in neighbors] == brute_force(points, query, 10)

    def test_duplicate_points_both_returned(self):
        tree = KdTree([[1.0, 1.0, 1.0], [1.0, 1.0, 1.0], [3.0, 3.0, 3.0]])
        neighbors = tree.nearest([1.0, 1.0, 1.0], 2)
        assert [n.index for n in neighbors] == [0, 1]

    def test_matches_brute_force_two_dimensions(self, rng, brute_force):
        points = rng.uniform(0, 1, size=(150, 2))
        tree = KdTree(points, dimensions=2)
        for query in rng.uniform(0, 1, size=(10, 2)):
            assert [n.index for n in tree.nearest(query, 5)] == brute_force(points, query, 5)

    def test_matches_brute_force_after_inserts(self, rng, brute_force):
        initial = rng.normal(size=(50, 3))
        extra = rng.normal(size=(50, 3))
        tree = KdTree(initial)
        for p in extra:
            tree.insert(p)

        all_points = np.vstack([initial, extra])
        for query in rng.normal(size=(10, 3)):
            assert [n.index for n in tree.nearest(query, 6)] == brute_force(all_points, query, 6)


class TestHighlight:
    """Tests for the highlight side effect."""

    def test_highlight_clears_then_highlights(self, unit_points, highlighter):
        tree = KdTree(unit_points, highlighter=highlighter)
        tree.k_nearest_neighbors([0.0, 0.0, 0.0], 2, highlight=True)

        assert [c[0] for c in highlighter.calls] == ["clear", "highlight"]
        _, points, indices = highlighter.calls[1]
        assert indices == [0, 1]
        np.testing.assert_array_equal(points, [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])

    def test_second_query_replaces_highlight(self, unit_points, highlighter):
        tree = KdTree(unit_points, highlighter=highlighter)
        tree.k_nearest_neighbors([0.0, 0.0, 0.0], 2)
        tree.k_nearest_neighbors([5.0, 5.0, 5.0], 1)
        assert highlighter.calls[-2][0] == "clear"
        assert highlighter.current == [4]

    def test_no_highlight_when_disabled(self, unit_points, highlighter):
        tree = KdTree(unit_points, highlighter=highlighter)
        tree.k_nearest_neighbors([0.0, 0.0, 0.0], 2, highlight=False)
        assert highlighter.calls == []

    def test_empty_result_clears_highlight(self, highlighter):
        tree = KdTree(highlighter=highlighter)
        tree.k_nearest_neighbors([0.0, 0.0, 0.0], 2)
        assert highlighter.current == []


class TestLookupAndTraversal:

    def test_find_point_index(self, unit_points):
        tree = KdTree(unit_points)
        assert tree.find_point_index([0.0, 0.0, 1.0]) == 3
        assert tree.find_point_index([0.0, 0.0, 2.0]) == NOT_FOUND

    def test_find_point_index_returns_first_duplicate(self):
        tree = KdTree([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [1.0, 1.0, 1.0]])
        assert tree.find_point_index([1.0, 1.0, 1.0]) == 1

    def test_find_point_index_is_exact(self, unit_points):
        tree = KdTree(unit_points)
        assert tree.find_point_index([1.0 + 1e-12, 0.0, 0.0]) == NOT_FOUND

    def test_find_point_index_empty_tree(self):
        assert KdTree().find_point_index([0.0, 0.0, 0.0]) == NOT_FOUND

    def test_get_nodes_is_preorder(self):
        tree = KdTree([[2, 3], [5, 4], [9, 6], [4, 7], [8, 1], [7, 2]], dimensions=2)
        nodes = tree.get_nodes()
        assert nodes[0] is tree.root
        assert nodes[1] is tree.root.left
        assert nodes[2] is tree.root.left.left
        assert nodes[4] is tree.root.right

    def test_get_nodes_visits_every_point(self, rng):
        points = rng.normal(size=(77, 3))
        indices = sorted(node.index for node in KdTree(points).get_nodes())
        assert indices == list(range(77))
