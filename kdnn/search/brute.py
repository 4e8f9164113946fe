"""
Recherche exhaustive (référence exacte) pour valider et mesurer l'arbre k-d.
"""

from typing import List, Tuple

import faiss
import numpy as np

from kdnn.core.metrics import Euclidean, MinkowskiMetric


def brute_knn(points: np.ndarray, query: np.ndarray, k: int,
              metric: MinkowskiMetric) -> Tuple[np.ndarray, np.ndarray]:
    """
    Recherche naïve des k voisins les plus proches.

    Args:
        points: Points (n, d)
        query: Point de requête (d,)
        k: Nombre de voisins à retourner (tronqué à n)
        metric: Métrique

    Returns:
        Tuple[np.ndarray, np.ndarray]: identifiants et distances finales, par distance croissante
    """
    dists = metric.accumulated(np.asarray(points), np.asarray(query, dtype=np.float64))
    order = np.argsort(dists, kind="stable")[:k]
    return order.astype(np.int64), metric.finalize(dists[order])


def brute_knn_faiss(points: np.ndarray, query: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Recherche naïve euclidienne avec un index FAISS plat (IndexFlatL2).
    Calcul en float32 : les distances sont moins précises qu'avec brute_knn.
    """
    points_f32 = np.ascontiguousarray(points, dtype=np.float32)
    k = min(k, points_f32.shape[0])
    index = faiss.IndexFlatL2(points_f32.shape[1])
    index.add(points_f32)
    D, I = index.search(np.ascontiguousarray(query, dtype=np.float32).reshape(1, -1), k)
    return I[0].astype(np.int64), np.sqrt(np.maximum(D[0], 0.0))


def brute_inrange(points: np.ndarray, query: np.ndarray, radius: float,
                  metric: MinkowskiMetric) -> List[int]:
    """
    Identifiants de tous les points à une distance <= radius de `query`.
    Comparaison faite sur les distances accumulées, comme dans l'arbre.
    """
    dists = metric.accumulated(np.asarray(points), np.asarray(query, dtype=np.float64))
    return np.flatnonzero(dists <= metric.normalize_radius(float(radius))).tolist()


def supports_faiss(metric: MinkowskiMetric) -> bool:
    """FAISS (IndexFlatL2) ne couvre que la distance euclidienne."""
    return isinstance(metric, Euclidean)
