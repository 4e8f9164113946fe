#!/usr/bin/env python3
"""
Tests de construction de l'arbre k-d : disposition implicite, invariants de
coupe et de taille des feuilles, validation des entrées.
"""

import sys

import numpy as np
import pytest

from kdnn import (
    Chebyshev,
    Euclidean,
    HyperRectangle,
    InvalidArgumentError,
    InvalidInputError,
    TreeData,
    build_tree,
)
from kdnn.builder.partition import select_split
from kdnn.core.tree import get_left, get_right


def subtree_range(tree_data: TreeData, index: int):
    """Intervalle [début, fin) des emplacements couverts par le sous-arbre `index`."""
    left = index
    while not tree_data.is_leaf(left):
        left = get_left(left)
    right = index
    while not tree_data.is_leaf(right):
        right = get_right(right)
    return tree_data.leaf_range(left)[0], tree_data.leaf_range(right)[1]


def test_tree_data_layout():
    """Les feuilles pavent [0, N) et chaque coupe sépare deux sous-arbres valides."""
    print("\n--- Test de la disposition implicite ---")
    for n_points in range(1, 160):
        for leaf_size in range(1, 13):
            td = TreeData(n_points, 2, leaf_size)
            leaves = range(td.n_internal_nodes + 1, 2 * td.n_leaves)

            positions = sorted(td.leaf_position(i) for i in leaves)
            assert positions == list(range(td.n_leaves))

            ranges = sorted(td.leaf_range(i) for i in leaves)
            assert ranges[0][0] == 0 and ranges[-1][1] == n_points
            for (_, end), (start, _) in zip(ranges, ranges[1:]):
                assert end == start
            for start, end in ranges:
                assert 1 <= end - start <= leaf_size

            for index in range(1, td.n_internal_nodes + 1):
                low, high = subtree_range(td, index)
                mid = td.split_index(index)
                assert low < mid < high
                assert subtree_range(td, get_left(index)) == (low, mid)
                assert subtree_range(td, get_right(index)) == (mid, high)
    print("✓ Disposition implicite OK")


def test_split_invariant():
    """Chaque point d'un sous-arbre gauche (droit) est <= (>=) à la valeur de coupe."""
    rng = np.random.default_rng(0)
    for reorder in (True, False):
        points = rng.normal(size=(1000, 3))
        tree = build_tree(points, metric=Euclidean(), leaf_size=7, reorder=reorder)
        td = tree.tree_data
        for index in range(1, td.n_internal_nodes + 1):
            dim = tree.node_split_dim[index]
            val = tree.node_split_val[index]
            low, mid = subtree_range(td, get_left(index))
            _, high = subtree_range(td, get_right(index))
            assert np.all(tree.leaf_points(low, mid)[:, dim] <= val)
            assert np.all(tree.leaf_points(mid, high)[:, dim] >= val)
            assert tree.node_lo[index] <= val <= tree.node_hi[index]
    print("✓ Invariant de coupe OK")


def test_leaf_sizes_and_permutation():
    rng = np.random.default_rng(1)
    points = rng.random((523, 4))
    tree = build_tree(points, metric=Euclidean(), leaf_size=10)

    stats = tree.get_statistics()
    assert stats["leaf_count"] == 53
    assert stats["max_leaf_size"] == 10
    assert stats["min_leaf_size"] == 3
    assert sum(stats["leaf_sizes"]) == 523

    # la permutation est une bijection et les données réordonnées la suivent
    assert sorted(tree.indices.tolist()) == list(range(523))
    np.testing.assert_array_equal(tree.data, points[tree.indices])
    print(f"✓ {tree}")


def test_widest_dimension_is_split_first():
    points = np.array([[0.0, 0.0], [1.0, 10.0], [2.0, 3.0], [3.0, 7.0], [0.5, 4.0]])
    tree = build_tree(points, metric=Euclidean(), leaf_size=2)
    assert tree.node_split_dim[1] == 1
    assert tree.node_lo[1] == 0.0 and tree.node_hi[1] == 10.0


def test_root_rectangle_restored():
    rng = np.random.default_rng(2)
    points = rng.uniform(-5, 5, size=(300, 3))
    tree = build_tree(points, metric=Chebyshev(), leaf_size=4)
    np.testing.assert_array_equal(tree.hyper_rec.mins, points.min(axis=0))
    np.testing.assert_array_equal(tree.hyper_rec.maxes, points.max(axis=0))


def test_tree_is_read_only():
    points = np.random.default_rng(3).random((50, 2))
    tree = build_tree(points, metric=Euclidean(), leaf_size=5, reorder=False)
    assert np.shares_memory(tree.data, points)
    assert not tree.data.flags.writeable
    assert not tree.indices.flags.writeable
    # le tableau de l'appelant reste modifiable
    assert points.flags.writeable
    with pytest.raises(ValueError):
        tree.indices[0] = 1


def test_single_leaf_tree():
    tree = build_tree([[0.5, 0.5]], metric=Euclidean())
    assert tree.tree_data.n_internal_nodes == 0
    assert tree.get_height() == 0
    assert tree.leaf_range(1) == (0, 1)


def test_integer_points_are_converted():
    tree = build_tree([[0, 1], [2, 3], [4, 5]], metric=Euclidean(), leaf_size=1)
    assert tree.data.dtype == np.float64
    assert tree.get_leaf_count() == 3


def test_config_defaults():
    points = np.random.default_rng(4).random((40, 2))
    config = {"build_tree": {"leaf_size": 4, "reorder": False, "metric": "chebyshev"}}
    tree = build_tree(points, config=config)
    assert tree.leaf_size == 4
    assert not tree.reordered
    assert tree.metric == Chebyshev()


def test_build_errors():
    with pytest.raises(InvalidInputError):
        build_tree(np.zeros((0, 3)), metric=Euclidean())
    with pytest.raises(InvalidInputError):
        build_tree(np.zeros((5, 0)), metric=Euclidean())
    with pytest.raises(InvalidInputError):
        build_tree([[0.0, np.nan], [1.0, 2.0]], metric=Euclidean())
    with pytest.raises(InvalidInputError):
        build_tree([[0.0, np.inf]], metric=Euclidean())
    with pytest.raises(InvalidInputError):
        build_tree([1.0, 2.0, 3.0], metric=Euclidean())
    with pytest.raises(InvalidArgumentError):
        build_tree([[0.0, 1.0]], metric=Euclidean(), leaf_size=0)
    with pytest.raises(InvalidArgumentError):
        build_tree([[0.0, 1.0]], metric="hamming", leaf_size=2)
    # toutes les erreurs restent des ValueError
    with pytest.raises(ValueError):
        build_tree(np.zeros((0, 3)), metric=Euclidean())


def test_select_split():
    rng = np.random.default_rng(5)
    data = rng.normal(size=(100, 2))
    indices = np.arange(100)
    select_split(indices, data, 10, 90, 40, 1)
    assert sorted(indices.tolist()) == list(range(100))
    np.testing.assert_array_equal(indices[:10], np.arange(10))
    np.testing.assert_array_equal(indices[90:], np.arange(90, 100))
    pivot = data[indices[40], 1]
    assert np.all(data[indices[10:40], 1] <= pivot)
    assert np.all(data[indices[41:90], 1] >= pivot)
    assert pivot == np.sort(data[10:90, 1])[30]
    with pytest.raises(IndexError):
        select_split(indices, data, 10, 20, 20, 0)


def test_hyperrectangle_min_distance():
    rect = HyperRectangle([0.0, 0.0], [1.0, 2.0])
    assert rect.min_distance(np.array([0.5, 1.0]), Euclidean()) == 0.0
    assert rect.min_distance(np.array([4.0, 6.0]), Euclidean()) == 25.0
    assert rect.min_distance(np.array([-1.0, 5.0]), Chebyshev()) == 3.0
    assert rect.widest_dimension() == 1


def test_save_statistics(tmp_path):
    points = np.random.default_rng(6).random((100, 3))
    tree = build_tree(points, metric=Euclidean(), leaf_size=8)
    path = tmp_path / "stats.txt"
    tree.save_statistics(str(path))
    content = path.read_text()
    assert "Nombre de feuilles    : 13" in content


def main():
    """Fonction principale pour exécuter les tests."""
    print("=== Tests de construction de l'arbre KDNN ===")
    return pytest.main([__file__, "-q"])


if __name__ == "__main__":
    sys.exit(main())
