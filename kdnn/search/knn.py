"""
Recherche des k plus proches voisins dans un arbre k-d (séparation et évaluation).
"""

from bisect import bisect_right
from typing import Callable, List, Optional, Tuple

import numpy as np

from kdnn.core.errors import DimensionMismatchError, InvalidArgumentError, InvalidInputError
from kdnn.core.tree import KDTree, get_left, get_right


class KnnBuffer:
    """
    Tampon de résultats de capacité fixe k, trié par distance croissante.

    Les distances sont stockées sous forme accumulée. Un candidat n'entre dans
    un tampon plein que s'il est strictement meilleur que le pire résultat ;
    à distance égale il se place après les résultats déjà présents.
    """

    def __init__(self, k: int):
        self.k = k
        self.idxs: List[int] = [-1] * k
        self.dists: List[float] = [np.inf] * k
        self.size = 0  # nombre de places occupées

    @property
    def worst(self) -> float:
        return self.dists[-1]

    @property
    def full(self) -> bool:
        return self.size == self.k

    def accepts(self, dist: float) -> bool:
        """
        Indique si un candidat à la distance `dist` entrerait dans le tampon.

        Tant qu'une place reste libre, une distance égale au pire (+inf, par
        exemple après un dépassement de capacité flottante) est acceptée.
        """
        if self.full:
            return dist < self.dists[-1]
        return dist <= self.dists[-1]

    def push(self, idx: int, dist: float) -> bool:
        """Insère un candidat s'il améliore le k-ième meilleur. Retourne True si inséré."""
        if not self.accepts(dist):
            return False
        # les places libres restent en fin de tampon
        pos = bisect_right(self.dists, dist, 0, self.size)
        self.dists.insert(pos, dist)
        self.idxs.insert(pos, idx)
        self.dists.pop()
        self.idxs.pop()
        self.size = min(self.size + 1, self.k)
        return True


def _check_query(tree: KDTree, point) -> np.ndarray:
    point = np.asarray(point, dtype=np.float64)
    if point.ndim != 1:
        raise InvalidInputError(f"Le point de requête doit être un vecteur, reçu un tableau {point.ndim}D")
    if point.shape[0] != tree.n_dims:
        raise DimensionMismatchError(tree.n_dims, point.shape[0])
    if not np.all(np.isfinite(point)):
        raise InvalidInputError("Le point de requête contient des valeurs non finies")
    return point


def _add_points_knn(tree: KDTree, index: int, point: np.ndarray, buffer: KnnBuffer,
                    skip: Optional[Callable[[int], bool]]) -> None:
    """Parcours linéaire d'une feuille."""
    start, end = tree.leaf_range(index)
    dists = tree.metric.accumulated(tree.leaf_points(start, end), point)
    candidates = dists < buffer.worst if buffer.full else dists <= buffer.worst
    for offset in np.flatnonzero(candidates):
        dist = dists[offset]
        if not buffer.accepts(dist):
            continue
        idx = int(tree.indices[start + offset])
        if skip is not None and skip(idx):
            continue
        buffer.push(idx, float(dist))


def _knn_kernel(tree: KDTree, index: int, point: np.ndarray, buffer: KnnBuffer,
                min_dist: float, skip: Optional[Callable[[int], bool]]) -> None:
    if tree.is_leaf(index):
        _add_points_knn(tree, index, point, buffer, skip)
        return

    metric = tree.metric
    split_dim = tree.node_split_dim[index]
    p_dim = point[split_dim]
    split_diff = p_dim - tree.node_split_val[index]
    # Le point est à droite de la valeur de coupe
    if split_diff > 0:
        close = get_right(index)
        far = get_left(index)
        ddiff = max(0.0, p_dim - tree.node_hi[index])
    else:
        close = get_left(index)
        far = get_right(index)
        ddiff = max(0.0, tree.node_lo[index] - p_dim)

    # Toujours descendre d'abord dans le sous-arbre le plus proche
    _knn_kernel(tree, close, point, buffer, min_dist, skip)

    diff_tot = metric.combine(metric.contribution(split_diff), metric.contribution(ddiff))
    new_min = metric.accumulate(min_dist, diff_tot)
    # inf - inf après dépassement de capacité : borne inconnue, on explore
    if np.isnan(new_min) or buffer.accepts(new_min):
        _knn_kernel(tree, far, point, buffer, new_min, skip)


def _knn_single(tree: KDTree, point: np.ndarray, k: int,
                skip: Optional[Callable[[int], bool]]) -> Tuple[np.ndarray, np.ndarray]:
    buffer = KnnBuffer(k)
    init_min = tree.hyper_rec.min_distance(point, tree.metric)
    _knn_kernel(tree, 1, point, buffer, init_min, skip)

    idxs = np.asarray(buffer.idxs, dtype=np.int64)
    dists = np.asarray(buffer.dists, dtype=np.float64)
    # moins de k points disponibles : résultat plus court
    found = idxs >= 0
    return idxs[found], tree.metric.finalize(dists[found])


def knn(tree: KDTree, points, k: int, skip: Optional[Callable[[int], bool]] = None):
    """
    Recherche les k plus proches voisins d'un ou plusieurs points.

    Si l'arbre contient moins de k points (ou moins de k points non exclus
    par `skip`), le résultat est plus court : il contient tous les points
    disponibles. À distance égale, le premier point rencontré est conservé
    en premier.

    Args:
        tree: Arbre construit par build_tree()
        points: Point de requête (d,) ou tableau de requêtes (m, d)
        k: Nombre de voisins (>= 1)
        skip: Fonction identifiant -> bool ; les points pour lesquels elle
              retourne True sont ignorés

    Returns:
        Pour un point : (idxs, dists), tableaux numpy des identifiants
        d'origine et des distances finales, par distance croissante.
        Pour un tableau de requêtes : (liste d'idxs, liste de dists).
    """
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
        raise InvalidArgumentError(f"k doit être un entier >= 1, reçu {k!r}")
    k = int(k)

    queries = np.asarray(points, dtype=np.float64)
    if queries.ndim == 2:
        queries = [_check_query(tree, q) for q in queries]
        results = [_knn_single(tree, q, k, skip) for q in queries]
        return [r[0] for r in results], [r[1] for r in results]

    return _knn_single(tree, _check_query(tree, queries), k, skip)
