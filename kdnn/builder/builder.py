"""
Constructeur d'arbres k-d KDNN.
Partitionne récursivement les points en un arbre binaire complet implicite.
"""

import time
from typing import Any, Dict, Optional, Union

import numpy as np

from kdnn.core.errors import InvalidArgumentError, InvalidInputError
from kdnn.core.hyperrectangle import HyperRectangle
from kdnn.core.metrics import MinkowskiMetric, get_metric
from kdnn.core.tree import KDTree, TreeData, get_left, get_right
from kdnn.builder.partition import select_split
from kdnn.utils.config import ConfigManager


def _as_points(points: Any) -> np.ndarray:
    """Valide et convertit les points d'entrée en tableau (n, d) flottant."""
    try:
        data = np.asarray(points)
        if not np.issubdtype(data.dtype, np.floating):
            data = data.astype(np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Points non numériques: {e}") from e

    if data.ndim != 2:
        raise InvalidInputError(f"Les points doivent former un tableau 2D (n, d), reçu {data.ndim}D")
    n, d = data.shape
    if n == 0:
        raise InvalidInputError("Impossible de construire un arbre sans aucun point")
    if d == 0:
        raise InvalidInputError("Impossible de construire un arbre de dimension 0")
    if not np.all(np.isfinite(data)):
        raise InvalidInputError("Les points contiennent des valeurs non finies (NaN ou infini)")
    return data


def _as_metric(metric: Union[MinkowskiMetric, str], p: Optional[float] = None) -> MinkowskiMetric:
    if isinstance(metric, MinkowskiMetric):
        return metric
    if isinstance(metric, str):
        return get_metric(metric, p)
    raise InvalidArgumentError(f"Métrique non supportée: {type(metric).__name__}")


def _build_node(index: int,
                data: np.ndarray,
                data_reordered: Optional[np.ndarray],
                hyper_rec: HyperRectangle,
                nodes: Dict[str, np.ndarray],
                indices: np.ndarray,
                low: int,
                high: int,
                tree_data: TreeData) -> None:
    """
    Construit récursivement le sous-arbre du nœud `index` sur les
    emplacements [low, high) de la permutation.

    `hyper_rec` est resserré avant chaque appel récursif puis restauré : au
    retour de cette fonction il est identique à ce qu'il était à l'entrée.
    """
    if tree_data.is_leaf(index):
        if data_reordered is not None:
            data_reordered[low:high] = data[indices[low:high]]
        return

    split_dim = hyper_rec.widest_dimension()
    mid = tree_data.split_index(index)

    select_split(indices, data, low, high, mid, split_dim)
    split_val = data[indices[mid], split_dim]

    lo = hyper_rec.mins[split_dim]
    hi = hyper_rec.maxes[split_dim]

    nodes["lo"][index] = lo
    nodes["hi"][index] = hi
    nodes["split_val"][index] = split_val
    nodes["split_dim"][index] = split_dim

    # Sous-arbre gauche avec le rectangle resserré
    hyper_rec.maxes[split_dim] = split_val
    _build_node(get_left(index), data, data_reordered, hyper_rec, nodes,
                indices, low, mid, tree_data)
    hyper_rec.maxes[split_dim] = hi  # Restaurer le rectangle

    # Sous-arbre droit avec le rectangle resserré
    hyper_rec.mins[split_dim] = split_val
    _build_node(get_right(index), data, data_reordered, hyper_rec, nodes,
                indices, mid, high, tree_data)
    hyper_rec.mins[split_dim] = lo  # Restaurer le rectangle


def build_tree(
    points: Any,
    metric: Optional[Union[MinkowskiMetric, str]] = None,
    leaf_size: Optional[int] = None,
    reorder: Optional[bool] = None,
    config: Optional[Dict[str, Any]] = None,
    verbose: bool = False
) -> KDTree:
    """
    Construit un arbre k-d à partir d'un ensemble de points.

    Les paramètres laissés à None sont lus dans la configuration (section
    `build_tree` de config.yaml, ou du dictionnaire `config` fourni).

    Args:
        points: Tableau (n, d) de coordonnées finies, un point par ligne
        metric: Métrique (instance ou nom, ex. "euclidean")
        leaf_size: Nombre maximal de points par feuille (>= 1, 10 par défaut)
        reorder: Si True, copie les points dans l'ordre de parcours de l'arbre
                 (parcours des feuilles plus rapide, mémoire doublée) ;
                 sinon l'arbre référence le tableau d'origine
        config: Configuration personnalisée (facultatif, sinon utilise config.yaml)
        verbose: Afficher les messages de progression

    Returns:
        KDTree: L'arbre construit
    """
    if metric is None or leaf_size is None or reorder is None:
        if config is None:
            build_config = ConfigManager().get_section("build_tree")
        else:
            build_config = config.get("build_tree", {})
        if metric is None:
            metric = get_metric(build_config.get("metric", "euclidean"), build_config.get("p"))
        leaf_size = leaf_size if leaf_size is not None else build_config.get("leaf_size", 10)
        reorder = reorder if reorder is not None else build_config.get("reorder", True)

    metric = _as_metric(metric)
    if isinstance(leaf_size, bool) or not isinstance(leaf_size, (int, np.integer)) or leaf_size < 1:
        raise InvalidArgumentError(f"leaf_size doit être un entier >= 1, reçu {leaf_size!r}")
    leaf_size = int(leaf_size)
    reorder = bool(reorder)

    data = _as_points(points)
    n_points, n_dims = data.shape

    start_time = time.time()
    if verbose:
        print(f"⏳ Construction de l'arbre k-d: {n_points:,} points (dim {n_dims}), "
              f"leaf_size={leaf_size}, métrique={metric!r}, reorder={reorder}")

    tree_data = TreeData(n_points, n_dims, leaf_size)
    n_slots = tree_data.n_internal_nodes + 1  # l'emplacement 0 n'est pas utilisé
    nodes = {
        "lo": np.zeros(n_slots, dtype=data.dtype),
        "hi": np.zeros(n_slots, dtype=data.dtype),
        "split_val": np.zeros(n_slots, dtype=data.dtype),
        "split_dim": np.zeros(n_slots, dtype=np.int64),
    }
    indices = np.arange(n_points, dtype=np.int64)
    data_reordered = np.empty_like(data) if reorder else None

    # Premier rectangle englobant tous les points
    hyper_rec = HyperRectangle.from_points(data)

    _build_node(1, data, data_reordered, hyper_rec, nodes, indices, 0, n_points, tree_data)

    tree = KDTree(
        data=data_reordered if reorder else data.view(),
        hyper_rec=hyper_rec,
        indices=indices,
        metric=metric,
        node_lo=nodes["lo"],
        node_hi=nodes["hi"],
        node_split_val=nodes["split_val"],
        node_split_dim=nodes["split_dim"],
        tree_data=tree_data,
        reordered=reorder,
    )

    if verbose:
        elapsed = time.time() - start_time
        print(f"✓ Arbre construit en {elapsed:.2f}s")
        print(f"  → {tree.get_node_count():,} nœuds, {tree_data.n_leaves:,} feuilles, hauteur {tree.get_height()}")

    return tree
