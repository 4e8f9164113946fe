"""
Étape de partition du builder : sélection en place le long d'une dimension.
"""

import numpy as np


def select_split(indices: np.ndarray, data: np.ndarray, low: int, high: int,
                 mid: int, split_dim: int) -> None:
    """
    Réordonne `indices[low:high]` en place pour que l'emplacement `mid`
    contienne le point dont la coordonnée `split_dim` est la statistique
    d'ordre de rang `mid - low`, les emplacements précédents ayant une
    coordonnée <= et les suivants une coordonnée >=.

    Sélection par introselect (numpy.argpartition) : temps linéaire en moyenne.

    Args:
        indices: Permutation des identifiants de points, modifiée en place
        data: Points d'origine (n, d)
        low: Début de l'intervalle (inclus)
        high: Fin de l'intervalle (exclue)
        mid: Emplacement à fixer, low <= mid < high
        split_dim: Dimension de coupe
    """
    if not low <= mid < high:
        raise IndexError(f"Indice de sélection {mid} hors de l'intervalle [{low}, {high})")
    segment = indices[low:high]
    order = np.argpartition(data[segment, split_dim], mid - low, kind="introselect")
    indices[low:high] = segment[order]
