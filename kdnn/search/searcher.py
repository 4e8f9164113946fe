"""
Module de recherche pour KDNN.
Interface regroupant les requêtes dans l'arbre, la recherche naïve de
référence et l'évaluation des performances.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from tqdm.auto import tqdm

from kdnn.core.tree import KDTree
from kdnn.search.brute import brute_inrange, brute_knn, brute_knn_faiss, supports_faiss
from kdnn.search.inrange import inrange
from kdnn.search.knn import knn


class Searcher:
    """
    Classe principale pour la recherche dans un KDTree.
    """

    def __init__(self, tree: KDTree, points: Optional[np.ndarray] = None, use_faiss: bool = True):
        """
        Initialise le chercheur.

        Args:
            tree: Arbre construit par build_tree()
            points: Points d'origine, dans l'ordre des identifiants (facultatif,
                    reconstruits depuis l'arbre si None)
            use_faiss: Utiliser FAISS pour la recherche naïve (métrique euclidienne uniquement)
        """
        self.tree = tree
        if points is None:
            points = self._original_points(tree)
        self.points = np.asarray(points)
        self.use_faiss = use_faiss

        if use_faiss and not supports_faiss(tree.metric):
            print(f"⚠️ FAISS ne supporte que la distance euclidienne ({tree.metric!r}). Utilisation de numpy à la place.")
            self.use_faiss = False

    @staticmethod
    def _original_points(tree: KDTree) -> np.ndarray:
        if not tree.reordered:
            return tree.data
        points = np.empty_like(tree.data)
        points[tree.indices] = tree.data
        return points

    def knn(self, query: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        return knn(self.tree, query, k)

    def inrange(self, query: np.ndarray, radius: float) -> List[int]:
        return inrange(self.tree, query, radius)

    def brute_force_search(self, query: np.ndarray, k: int = 10) -> Tuple[np.ndarray, np.ndarray]:
        """
        Recherche naïve des k voisins les plus proches.

        Args:
            query: Point de requête
            k: Nombre de voisins à retourner

        Returns:
            Tuple[np.ndarray, np.ndarray]: identifiants et distances
        """
        if self.use_faiss:
            return brute_knn_faiss(self.points, query, k)
        return brute_knn(self.points, query, k, self.tree.metric)

    def brute_force_inrange(self, query: np.ndarray, radius: float) -> List[int]:
        return brute_inrange(self.points, query, radius, self.tree.metric)

    def evaluate_search(self, queries: np.ndarray, k: int = 10,
                        radius: Optional[float] = None) -> Dict[str, Any]:
        """
        Évalue les performances de l'arbre face à la recherche naïve.

        Args:
            queries: Points de requête (m, d)
            k: Nombre de voisins à retourner
            radius: Rayon pour évaluer aussi la recherche par rayon (facultatif)

        Returns:
            Dict[str, Any]: Dictionnaire de métriques de performance
        """
        print(f"\n⏳ Évaluation avec {len(queries)} requêtes, k={k}"
              + (f", rayon={radius}" if radius is not None else "") + "...")

        tree_search_time = 0.0
        naive_search_time = 0.0
        range_tree_time = 0.0
        range_naive_time = 0.0
        recall_sum = 0.0
        range_exact = 0
        range_sizes = []
        k_eff = min(k, len(self.points))

        for i, query in enumerate(tqdm(queries, desc="Évaluation")):
            # Recherche dans l'arbre
            start_time = time.time()
            tree_results, _ = self.knn(query, k)
            tree_search_time += time.time() - start_time

            # Recherche naïve
            start_time = time.time()
            naive_results, _ = self.brute_force_search(query, k)
            naive_search_time += time.time() - start_time

            # Calcul du recall
            intersection = set(tree_results.tolist()).intersection(set(naive_results.tolist()))
            recall_sum += len(intersection) / k_eff

            if radius is not None:
                start_time = time.time()
                tree_ball = self.inrange(query, radius)
                range_tree_time += time.time() - start_time

                start_time = time.time()
                naive_ball = self.brute_force_inrange(query, radius)
                range_naive_time += time.time() - start_time

                range_sizes.append(len(tree_ball))
                if set(tree_ball) == set(naive_ball):
                    range_exact += 1

        n_queries = len(queries)
        avg_tree_time = tree_search_time / n_queries
        avg_naive_time = naive_search_time / n_queries
        avg_recall = recall_sum / n_queries
        speedup = avg_naive_time / avg_tree_time if avg_tree_time > 0 else 0

        results = {
            "k": k,
            "n_queries": n_queries,
            "avg_tree_time": avg_tree_time,
            "avg_naive_time": avg_naive_time,
            "speedup": speedup,
            "avg_recall": avg_recall,
        }

        print("\n✓ Résultats de l'évaluation:")
        print(f"  - Nombre de requêtes     : {n_queries}")
        print(f"  - k (voisins demandés)   : {k}")
        print(f"  - Recherche naïve        : {'FAISS' if self.use_faiss else 'numpy'}")
        print(f"  - Temps moyen (arbre)    : {avg_tree_time*1000:.2f} ms")
        print(f"  - Temps moyen (naïf)     : {avg_naive_time*1000:.2f} ms")
        print(f"  - Accélération           : {speedup:.2f}x")
        print(f"  - Recall moyen           : {avg_recall:.4f} ({avg_recall*100:.2f}%)")

        if radius is not None:
            avg_range_tree = range_tree_time / n_queries
            avg_range_naive = range_naive_time / n_queries
            results.update({
                "radius": radius,
                "avg_range_tree_time": avg_range_tree,
                "avg_range_naive_time": avg_range_naive,
                "range_exact_rate": range_exact / n_queries,
                "avg_range_size": sum(range_sizes) / n_queries,
            })
            print(f"  - Rayon                  : {radius}")
            print(f"  - Temps moyen rayon (arbre): {avg_range_tree*1000:.2f} ms")
            print(f"  - Temps moyen rayon (naïf) : {avg_range_naive*1000:.2f} ms")
            print(f"  - Résultats moyens       : {results['avg_range_size']:.1f} points")
            print(f"  - Requêtes exactes       : {range_exact}/{n_queries}")

        return results
