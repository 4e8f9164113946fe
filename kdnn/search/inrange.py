"""
Recherche par rayon fixe dans un arbre k-d.
"""

from typing import List

import numpy as np

from kdnn.core.errors import InvalidArgumentError
from kdnn.core.tree import KDTree, get_left, get_right
from kdnn.search.knn import _check_query


def _add_points_inrange(tree: KDTree, index: int, point: np.ndarray, r: float,
                        idx_in_ball: List[int]) -> None:
    start, end = tree.leaf_range(index)
    dists = tree.metric.accumulated(tree.leaf_points(start, end), point)
    idx_in_ball.extend(tree.indices[start:end][dists <= r].tolist())


def _inrange_kernel(tree: KDTree, index: int, point: np.ndarray, r: float,
                    idx_in_ball: List[int], min_dist: float) -> None:
    # Le point est hors du rectangle : ignorer tout le sous-arbre
    if min_dist > r:
        return

    if tree.is_leaf(index):
        _add_points_inrange(tree, index, point, r, idx_in_ball)
        return

    metric = tree.metric
    split_dim = tree.node_split_dim[index]
    p_dim = point[split_dim]
    split_diff = p_dim - tree.node_split_val[index]

    if split_diff > 0:  # Le point est à droite de la valeur de coupe
        close = get_right(index)
        far = get_left(index)
        ddiff = max(0.0, p_dim - tree.node_hi[index])
    else:  # Le point est à gauche de la valeur de coupe
        close = get_left(index)
        far = get_right(index)
        ddiff = max(0.0, tree.node_lo[index] - p_dim)

    _inrange_kernel(tree, close, point, r, idx_in_ball, min_dist)

    diff_tot = metric.combine(metric.contribution(split_diff), metric.contribution(ddiff))
    new_min = metric.accumulate(min_dist, diff_tot)
    _inrange_kernel(tree, far, point, r, idx_in_ball, new_min)


def _inrange_single(tree: KDTree, point: np.ndarray, r: float, sortres: bool) -> List[int]:
    idx_in_ball: List[int] = []
    init_min = tree.hyper_rec.min_distance(point, tree.metric)
    _inrange_kernel(tree, 1, point, r, idx_in_ball, init_min)
    if sortres:
        idx_in_ball.sort()
    return idx_in_ball


def inrange(tree: KDTree, points, radius: float, sortres: bool = False):
    """
    Recherche tous les points à une distance <= radius d'un ou plusieurs points.

    Args:
        tree: Arbre construit par build_tree()
        points: Point de requête (d,) ou tableau de requêtes (m, d)
        radius: Rayon de recherche (>= 0, inclus)
        sortres: Trier les identifiants par ordre croissant (sinon ordre de parcours)

    Returns:
        List[int] des identifiants d'origine pour un point,
        une liste de ces listes pour un tableau de requêtes.
    """
    try:
        radius = float(radius)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Rayon invalide: {radius!r}") from e
    if not np.isfinite(radius) or radius < 0:
        raise InvalidArgumentError(f"Le rayon doit être un réel positif ou nul, reçu {radius}")

    r = tree.metric.normalize_radius(radius)

    queries = np.asarray(points, dtype=np.float64)
    if queries.ndim == 2:
        queries = [_check_query(tree, q) for q in queries]
        return [_inrange_single(tree, q, r, sortres) for q in queries]

    return _inrange_single(tree, _check_query(tree, queries), r, sortres)
