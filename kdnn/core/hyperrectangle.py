"""
Boîte englobante alignée sur les axes (hyper-rectangle).
"""

import numpy as np

from kdnn.core.metrics import MinkowskiMetric


class HyperRectangle:
    """
    Hyper-rectangle défini par ses bornes `mins` et `maxes` (mins[d] <= maxes[d]).

    Pendant la construction, le builder resserre une borne avant chaque appel
    récursif et la restaure au retour.
    """

    def __init__(self, mins: np.ndarray, maxes: np.ndarray):
        self.mins = np.array(mins, dtype=np.float64)
        self.maxes = np.array(maxes, dtype=np.float64)

    @classmethod
    def from_points(cls, points: np.ndarray) -> "HyperRectangle":
        """Plus petit hyper-rectangle contenant toutes les lignes de `points`."""
        return cls(np.min(points, axis=0), np.max(points, axis=0))

    def spread(self) -> np.ndarray:
        """Étendue sur chaque dimension."""
        return self.maxes - self.mins

    def widest_dimension(self) -> int:
        """Dimension d'étendue maximale (la première en cas d'égalité)."""
        return int(np.argmax(self.spread()))

    def min_distance(self, point: np.ndarray, metric: MinkowskiMetric) -> float:
        """
        Distance accumulée (non finalisée) entre `point` et le rectangle.
        Nulle si le point est à l'intérieur.
        """
        diff = np.maximum(0.0, np.maximum(self.mins - point, point - self.maxes))
        return float(metric.reduce(metric.contribution(diff)))

    def __repr__(self) -> str:
        return f"HyperRectangle(mins={self.mins.tolist()}, maxes={self.maxes.tolist()})"
