"""
Module de structures d'arbre pour KDNN.
Définit l'arbre k-d construit (KDTree) et ses métadonnées de disposition (TreeData).

L'arbre est un arbre binaire complet implicite : le nœud i a pour enfants
2i et 2i+1, les nœuds internes sont numérotés de 1 à n_internal_nodes et les
feuilles ne sont pas matérialisées (indices > n_internal_nodes).
"""

import numpy as np
from typing import Any, Dict, Tuple

from kdnn.core.hyperrectangle import HyperRectangle
from kdnn.core.metrics import MinkowskiMetric


def get_left(index: int) -> int:
    return 2 * index


def get_right(index: int) -> int:
    return 2 * index + 1


class TreeData:
    """
    Métadonnées de disposition de l'arbre implicite.

    Toutes les feuilles contiennent exactement `leaf_size` points, sauf la
    feuille la plus à droite qui en contient `last_node_size` (entre 1 et
    leaf_size).
    """

    def __init__(self, n_points: int, n_dims: int, leaf_size: int):
        """
        Args:
            n_points: Nombre de points N (>= 1)
            n_dims: Dimension D
            leaf_size: Capacité maximale d'une feuille (>= 1)
        """
        self.n_points = n_points
        self.n_dims = n_dims
        self.leaf_size = leaf_size

        self.n_leaves = -(-n_points // leaf_size)
        self.n_internal_nodes = self.n_leaves - 1
        # plus petite puissance de 2 >= n_leaves : premier indice du dernier niveau
        self.cross_node = 1 << (self.n_leaves - 1).bit_length()
        self.last_node_size = n_points - self.n_internal_nodes * leaf_size

    def is_leaf(self, index: int) -> bool:
        return index > self.n_internal_nodes

    def leaf_position(self, index: int) -> int:
        """Position de la feuille `index` dans l'ordre gauche-droite des feuilles."""
        if index >= self.cross_node:
            return index - self.cross_node
        return index - self.cross_node + self.n_leaves

    def leaf_range(self, index: int) -> Tuple[int, int]:
        """Intervalle [début, fin) des emplacements de stockage de la feuille `index`."""
        start = self.leaf_position(index) * self.leaf_size
        return start, min(start + self.leaf_size, self.n_points)

    def split_index(self, index: int) -> int:
        """
        Emplacement de coupe du nœud interne `index` : début de la feuille la
        plus à gauche de son sous-arbre droit. Le sous-arbre gauche ne contient
        donc que des feuilles pleines.
        """
        node = get_right(index)
        while node <= self.n_internal_nodes:
            node = get_left(node)
        return self.leaf_range(node)[0]

    def __repr__(self) -> str:
        return (f"TreeData(n_points={self.n_points}, n_dims={self.n_dims}, leaf_size={self.leaf_size}, "
                f"n_leaves={self.n_leaves}, n_internal_nodes={self.n_internal_nodes})")


class KDTree:
    """
    Arbre k-d construit, immuable.
    Utiliser `kdnn.build_tree()` pour créer une instance.

    Les nœuds internes sont stockés sous forme de tableaux parallèles indexés
    par l'indice implicite du nœud (l'emplacement 0 est inutilisé) :
    `node_lo`/`node_hi` (étendue du rectangle parent sur la dimension de
    coupe), `node_split_val` et `node_split_dim`.
    """

    def __init__(self,
                 data: np.ndarray,
                 hyper_rec: HyperRectangle,
                 indices: np.ndarray,
                 metric: MinkowskiMetric,
                 node_lo: np.ndarray,
                 node_hi: np.ndarray,
                 node_split_val: np.ndarray,
                 node_split_dim: np.ndarray,
                 tree_data: TreeData,
                 reordered: bool):
        self.data = data                  # (n, d) : copie réordonnée ou données d'origine
        self.hyper_rec = hyper_rec        # rectangle englobant tous les points
        self.indices = indices            # emplacement de stockage -> identifiant d'origine
        self.metric = metric
        self.node_lo = node_lo
        self.node_hi = node_hi
        self.node_split_val = node_split_val
        self.node_split_dim = node_split_dim
        self.tree_data = tree_data
        self.reordered = reordered

        for array in (self.data, self.indices, self.node_lo, self.node_hi,
                      self.node_split_val, self.node_split_dim,
                      self.hyper_rec.mins, self.hyper_rec.maxes):
            array.flags.writeable = False

        self.stats = {}

    @property
    def n_points(self) -> int:
        return self.tree_data.n_points

    @property
    def n_dims(self) -> int:
        return self.tree_data.n_dims

    @property
    def leaf_size(self) -> int:
        return self.tree_data.leaf_size

    def __len__(self) -> int:
        return self.tree_data.n_points

    def is_leaf(self, index: int) -> bool:
        return self.tree_data.is_leaf(index)

    def leaf_range(self, index: int) -> Tuple[int, int]:
        return self.tree_data.leaf_range(index)

    def leaf_points(self, start: int, end: int) -> np.ndarray:
        """Points des emplacements [start, end), dans l'ordre de stockage."""
        if self.reordered:
            return self.data[start:end]
        return self.data[self.indices[start:end]]

    def get_height(self) -> int:
        """
        Calcule la hauteur de l'arbre (profondeur maximale des feuilles).

        Returns:
            int: Hauteur de l'arbre (0 si l'arbre n'a qu'une feuille)
        """
        return (2 * self.tree_data.n_leaves - 1).bit_length() - 1

    def get_leaf_count(self) -> int:
        return self.tree_data.n_leaves

    def get_node_count(self) -> int:
        return 2 * self.tree_data.n_leaves - 1

    def get_statistics(self) -> Dict[str, Any]:
        """
        Calcule diverses statistiques sur l'arbre.

        Returns:
            Dict: Dictionnaire de statistiques
        """
        td = self.tree_data
        leaves = range(td.n_internal_nodes + 1, 2 * td.n_leaves)
        leaf_sizes = [end - start for start, end in (td.leaf_range(i) for i in leaves)]
        leaf_depths = [i.bit_length() - 1 for i in leaves]

        split_dims = np.asarray(self.node_split_dim[1:], dtype=np.int64)
        split_counts = np.bincount(split_dims, minlength=td.n_dims) if split_dims.size else np.zeros(td.n_dims, dtype=np.int64)

        stats = {
            "n_points": td.n_points,
            "n_dims": td.n_dims,
            "leaf_size": td.leaf_size,
            "metric": repr(self.metric),
            "reordered": self.reordered,
            "node_count": self.get_node_count(),
            "internal_node_count": td.n_internal_nodes,
            "leaf_count": td.n_leaves,
            "max_depth": max(leaf_depths),
            "min_leaf_depth": min(leaf_depths),
            "avg_leaf_depth": sum(leaf_depths) / len(leaf_depths),
            "leaf_sizes": leaf_sizes,
            "min_leaf_size": min(leaf_sizes),
            "max_leaf_size": max(leaf_sizes),
            "avg_leaf_size": sum(leaf_sizes) / len(leaf_sizes),
            "splits_per_dim": split_counts.tolist(),
        }

        # Conserver les statistiques dans l'instance
        self.stats = stats

        return stats

    def __str__(self) -> str:
        """Représentation sous forme de chaîne pour le débogage."""
        return (f"KDTree(points={self.n_points}, dims={self.n_dims}, "
                f"leaves={self.tree_data.n_leaves}, height={self.get_height()}, "
                f"metric={self.metric!r}, reordered={self.reordered})")

    __repr__ = __str__

    def save_statistics(self, file_path: str) -> None:
        """
        Sauvegarde les statistiques de l'arbre dans un fichier texte.

        Args:
            file_path: Chemin du fichier de sortie
        """
        stats = self.get_statistics()

        with open(file_path, "w") as f:
            f.write("STATISTIQUES DE L'ARBRE KDNN\n")
            f.write("============================\n\n")

            f.write("Structure générale\n")
            f.write("-----------------\n")
            f.write(f"Nombre de points      : {stats['n_points']}\n")
            f.write(f"Dimension             : {stats['n_dims']}\n")
            f.write(f"Métrique              : {stats['metric']}\n")
            f.write(f"Données réordonnées   : {'oui' if stats['reordered'] else 'non'}\n")
            f.write(f"Nombre total de nœuds : {stats['node_count']}\n")
            f.write(f"Nombre de feuilles    : {stats['leaf_count']}\n")
            f.write(f"Profondeur maximale   : {stats['max_depth']}\n")
            f.write(f"Profondeur min feuille: {stats['min_leaf_depth']}\n")
            f.write(f"Profondeur moy feuille: {stats['avg_leaf_depth']:.2f}\n\n")

            f.write("Statistiques des feuilles\n")
            f.write("------------------------\n")
            f.write(f"Capacité      : {stats['leaf_size']} points\n")
            f.write(f"Taille moyenne: {stats['avg_leaf_size']:.2f} points\n")
            f.write(f"Taille min    : {stats['min_leaf_size']} points\n")
            f.write(f"Taille max    : {stats['max_leaf_size']} points\n\n")

            f.write("Coupes par dimension\n")
            f.write("--------------------\n")
            for dim, count in enumerate(stats["splits_per_dim"]):
                f.write(f"  dimension {dim}: {count} coupes\n")
