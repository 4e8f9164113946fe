"""
Module pour la recherche interactive en ligne de commande.
Lit des coordonnées au clavier et affiche les plus proches voisins et les
points situés dans le rayon demandé.
"""

import argparse
import time
from typing import Dict, Optional, Tuple

import numpy as np

from kdnn.builder.builder import build_tree
from kdnn.core.errors import InvalidInputError, KDNNError
from kdnn.core.metrics import get_metric
from kdnn.io.reader import read_points
from kdnn.search.searcher import Searcher


def parse_point(text: str) -> np.ndarray:
    """Convertit "1.0 2.5, 3" en vecteur numpy (espaces ou virgules comme séparateurs)."""
    values = text.replace(",", " ").split()
    try:
        return np.array([float(v) for v in values], dtype=np.float64)
    except ValueError as e:
        raise InvalidInputError(f"Coordonnées invalides: {text!r}") from e


def format_results(searcher: Searcher, results: Dict, timings: Dict[str, float], max_shown: int = 20) -> str:
    """
    Formate les résultats de recherche pour l'affichage en terminal.

    Args:
        searcher: Chercheur utilisé (pour afficher les coordonnées)
        results: Résultats de search_once
        timings: Dictionnaire des temps d'exécution
        max_shown: Nombre maximal de points affichés pour la recherche par rayon

    Returns:
        str: Résultats formatés
    """
    output = []

    output.append("\n🕒 Temps:")
    output.append(f"  → k plus proches voisins: {timings['knn']*1000:.2f} ms")
    output.append(f"  → Recherche par rayon   : {timings['inrange']*1000:.2f} ms")

    output.append(f"\n📋 {len(results['idxs'])} plus proches voisins:")
    for i, (idx, dist) in enumerate(zip(results["idxs"], results["dists"]), 1):
        coords = ", ".join(f"{c:.4f}" for c in searcher.points[idx])
        output.append(f"  {i}. #{idx} ({coords}) → distance {dist:.6f}")

    ball = results["ball"]
    output.append(f"\n📋 {len(ball)} points dans le rayon {results['radius']}:")
    shown = sorted(ball)[:max_shown]
    if shown:
        output.append("  " + ", ".join(f"#{idx}" for idx in shown) + (" ..." if len(ball) > max_shown else ""))

    return "\n".join(output)


def search_once(searcher: Searcher, text: str, k: int, radius: float) -> Tuple[Dict, Dict[str, float]]:
    """
    Effectue une seule recherche.

    Args:
        searcher: Chercheur KDNN
        text: Coordonnées saisies
        k: Nombre de voisins
        radius: Rayon de recherche

    Returns:
        Tuple[Dict, Dict[str, float]]: Résultats et timings
    """
    point = parse_point(text)

    knn_start = time.time()
    idxs, dists = searcher.knn(point, k)
    knn_time = time.time() - knn_start

    inrange_start = time.time()
    ball = searcher.inrange(point, radius)
    inrange_time = time.time() - inrange_start

    results = {"idxs": idxs.tolist(), "dists": dists.tolist(), "ball": ball, "radius": radius}
    timings = {"knn": knn_time, "inrange": inrange_time}
    return results, timings


def search_interactive(searcher: Searcher, k: int, radius: float) -> Tuple[Optional[Dict], Optional[Dict[str, float]]]:
    """
    Effectue une recherche interactive.

    Returns:
        Résultats et timings, ou (None, None) si l'utilisateur quitte
    """
    try:
        text = input(f"\nCoordonnées du point ({searcher.tree.n_dims} valeurs, q pour quitter): ")
    except EOFError:
        return None, None

    if text.strip().lower() in ['q', 'quit', 'exit']:
        return None, None

    return search_once(searcher, text, k, radius)


def search_command(args: argparse.Namespace) -> int:
    """
    Commande pour effectuer une recherche interactive dans un terminal.

    Args:
        args: Arguments de ligne de commande

    Returns:
        int: Code de retour (0 pour succès, autre pour erreur)
    """
    try:
        print(f"🔍 Mode recherche KDNN interactive...")
        print(f"  - Points: {args.points_file}")
        print(f"  - Métrique: {args.metric}")
        print(f"  - K (nombre de résultats): {args.k}")
        print(f"  - Rayon: {args.radius}")

        reader = read_points(file_path=args.points_file, mode=args.mode)
        tree = build_tree(
            reader.points,
            metric=get_metric(args.metric, args.p),
            leaf_size=args.leaf_size,
            reorder=args.reorder,
            verbose=True
        )
        searcher = Searcher(tree, points=reader.points, use_faiss=False)

        print(f"\n💬 Interface de recherche interactive KDNN")
        print(f"  → Tapez les coordonnées séparées par des espaces et appuyez sur Entrée")
        print(f"  → Tapez 'q' pour quitter")

        try:
            while True:
                try:
                    results, timings = search_interactive(searcher, args.k, args.radius)
                except KDNNError as e:
                    print(f"⚠️ {e}")
                    continue

                if results is None:
                    print("\n👋 Au revoir!")
                    break

                print(format_results(searcher, results, timings))
        except KeyboardInterrupt:
            print("\n👋 Recherche interrompue. Au revoir!")

    except Exception as e:
        print(f"\n❌ Erreur: {str(e)}")
        import traceback
        traceback.print_exc()
        return 1

    return 0
