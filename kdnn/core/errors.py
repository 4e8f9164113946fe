"""
Exceptions levées par KDNN.
Toutes dérivent de ValueError : ce sont des erreurs de l'appelant, détectées
avant tout parcours de l'arbre.
"""


class KDNNError(ValueError):
    """Erreur de base pour KDNN."""


class InvalidInputError(KDNNError):
    """Données de construction malformées (aucun point, dimension nulle, valeurs non finies...)."""


class DimensionMismatchError(KDNNError):
    """La dimension du point de requête ne correspond pas à celle de l'arbre."""

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(
            f"Dimension du point de requête ({got}) différente de la dimension de l'arbre ({expected})"
        )


class InvalidArgumentError(KDNNError):
    """Paramètre invalide (rayon négatif, k < 1, leaf_size < 1...)."""
