"""
Module des métriques de Minkowski pour KDNN.

Une métrique est décrite par quelques opérations numériques. Pendant le
parcours de l'arbre, les distances restent sous forme "accumulée" (par
exemple le carré de la distance euclidienne) : seule la distance finale
renvoyée à l'utilisateur passe par `finalize`.
"""

import numpy as np
from typing import Optional, Union

from kdnn.core.errors import InvalidArgumentError

Number = Union[float, np.ndarray]


class MinkowskiMetric:
    """
    Classe de base des métriques de la famille de Minkowski.

    Les sous-classes redéfinissent les opérations élémentaires ; toutes
    acceptent indifféremment des scalaires ou des tableaux numpy.
    """

    name = "minkowski"

    def contribution(self, diff: Number) -> Number:
        """Contribution d'une différence de coordonnées sur un axe."""
        raise NotImplementedError

    def combine(self, split_part: Number, bound_part: Number) -> Number:
        """
        Fusionne la contribution du franchissement du plan de coupe avec celle
        déjà comptée pour le rectangle parent sur le même axe.

        Pour les métriques additives, l'ancienne contribution est remplacée
        par la nouvelle.
        """
        return split_part - bound_part

    def accumulate(self, total: Number, part: Number) -> Number:
        """Ajoute la contribution d'un axe à un total courant."""
        return total + part

    def reduce(self, parts: np.ndarray, axis: int = -1) -> np.ndarray:
        """Version vectorisée de `accumulate` sur un axe d'un tableau de contributions."""
        return np.sum(parts, axis=axis)

    def finalize(self, acc: Number) -> Number:
        """Convertit une distance accumulée en vraie distance."""
        return acc

    def normalize_radius(self, radius: float) -> float:
        """Convertit un rayon utilisateur dans la représentation accumulée."""
        return radius

    def accumulated(self, points: np.ndarray, query: np.ndarray) -> np.ndarray:
        """
        Distances accumulées entre chaque ligne de `points` et `query`.

        Args:
            points: Tableau (m, d)
            query: Point de dimension d

        Returns:
            np.ndarray: Tableau (m,) de distances non finalisées
        """
        return self.reduce(self.contribution(points - query), axis=-1)

    def pairwise(self, points: np.ndarray, query: np.ndarray) -> np.ndarray:
        """Distances finales entre chaque ligne de `points` et `query`."""
        return self.finalize(self.accumulated(points, query))

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        """Distance finale entre deux points."""
        a = np.asarray(a, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        return float(self.finalize(self.reduce(self.contribution(a - b))))

    def __eq__(self, other) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Euclidean(MinkowskiMetric):
    """Distance euclidienne, accumulée sous forme de carré."""

    name = "euclidean"

    def contribution(self, diff):
        return diff * diff

    def finalize(self, acc):
        return np.sqrt(acc)

    def normalize_radius(self, radius):
        return radius * radius


class Cityblock(MinkowskiMetric):
    """Distance de Manhattan (norme L1)."""

    name = "cityblock"

    def contribution(self, diff):
        return np.abs(diff)


Manhattan = Cityblock


class Chebyshev(MinkowskiMetric):
    """Distance de Chebyshev (norme infinie) : les contributions se combinent par maximum."""

    name = "chebyshev"

    def contribution(self, diff):
        return np.abs(diff)

    def combine(self, split_part, bound_part):
        # la contribution du plan de coupe majore toujours celle du rectangle parent
        return split_part

    def accumulate(self, total, part):
        return max(total, part)

    def reduce(self, parts, axis=-1):
        return np.max(parts, axis=axis)


class Minkowski(MinkowskiMetric):
    """Distance de Minkowski d'ordre p (p >= 1)."""

    name = "minkowski"

    def __init__(self, p: float = 2.0):
        """
        Args:
            p: Ordre de la norme, au moins 1
        """
        p = float(p)
        if not np.isfinite(p) or p < 1:
            raise InvalidArgumentError(f"L'ordre p de la métrique de Minkowski doit être >= 1, reçu {p}")
        self.p = p

    def contribution(self, diff):
        return np.abs(diff) ** self.p

    def finalize(self, acc):
        return acc ** (1.0 / self.p)

    def normalize_radius(self, radius):
        return radius ** self.p

    def __eq__(self, other) -> bool:
        return isinstance(other, Minkowski) and other.p == self.p

    def __hash__(self) -> int:
        return hash((Minkowski, self.p))

    def __repr__(self) -> str:
        return f"Minkowski(p={self.p:g})"


_METRICS = {
    "euclidean": Euclidean,
    "cityblock": Cityblock,
    "manhattan": Cityblock,
    "chebyshev": Chebyshev,
}


def get_metric(name: str, p: Optional[float] = None) -> MinkowskiMetric:
    """
    Construit une métrique à partir de son nom (tel qu'écrit dans config.yaml).

    Args:
        name: "euclidean", "cityblock" / "manhattan", "chebyshev" ou "minkowski"
        p: Ordre de la norme pour "minkowski" (2 par défaut)

    Returns:
        MinkowskiMetric: Instance de la métrique demandée
    """
    key = str(name).strip().lower()
    if key == "minkowski":
        return Minkowski(2.0 if p is None else p)
    if key not in _METRICS:
        choices = ", ".join(sorted(list(_METRICS) + ["minkowski"]))
        raise InvalidArgumentError(f"Métrique inconnue: {name!r} (choix possibles: {choices})")
    return _METRICS[key]()
