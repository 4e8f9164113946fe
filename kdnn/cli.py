"""
Interface en ligne de commande pour KDNN.
Fournit des commandes pour générer des points, tester les performances de
l'arbre k-d et effectuer des recherches interactives.
"""

import sys
import argparse
from typing import List, Optional

from kdnn import __version__
from kdnn.utils.config import ConfigManager, load_config
from kdnn.utils.cli_generate import generate_command
from kdnn.utils.cli_test import test_command
from kdnn.utils.cli_search import search_command

METRIC_CHOICES = ["euclidean", "cityblock", "manhattan", "chebyshev", "minkowski"]


def _add_tree_arguments(parser: argparse.ArgumentParser, build_config: dict) -> None:
    """Options de construction communes aux commandes test et search."""
    parser.add_argument("--leaf_size", type=int, default=build_config["leaf_size"],
                        help="Nombre maximal de points par feuille")
    parser.add_argument("--metric", choices=METRIC_CHOICES, default=build_config["metric"],
                        help="Métrique de distance")
    parser.add_argument("--p", type=float, default=build_config.get("p", 2.0),
                        help="Ordre de la norme pour la métrique minkowski")
    parser.add_argument("--reorder", dest="reorder", action="store_true", default=build_config["reorder"],
                        help="Copier les points dans l'ordre de parcours de l'arbre")
    parser.add_argument("--no-reorder", dest="reorder", action="store_false",
                        help="Conserver la disposition d'origine des points")
    parser.add_argument("--mode", choices=["ram", "mmap"], default="ram",
                        help="Mode de chargement des points")


def build_parser(config_manager: ConfigManager) -> argparse.ArgumentParser:
    """Construit le parseur d'arguments avec les valeurs par défaut de la configuration."""
    build_config = config_manager.get_section("build_tree")
    search_config = config_manager.get_section("search")
    generate_config = config_manager.get_section("generate")

    # Définir les chemins par défaut
    default_points_path = config_manager.get_file_path("default_points", "points.bin")

    # Parseur principal
    parser = argparse.ArgumentParser(
        description="KDNN - Arbre k-d pour la recherche exacte des plus proches voisins",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--config", default=config_manager.config_path,
                        help="Chemin vers le fichier de configuration")
    parser.add_argument("--version", action="version", version=f"KDNN v{__version__}")

    # Sous-parseurs pour les différentes commandes
    subparsers = parser.add_subparsers(dest="command", help="Commandes disponibles")

    # Commande generate
    generate_parser = subparsers.add_parser("generate", help="Générer un fichier de points aléatoires")
    generate_parser.add_argument("out_file", nargs="?", default=default_points_path,
                                 help="Fichier binaire de sortie")
    generate_parser.add_argument("--n", type=int, default=generate_config["n"],
                                 help="Nombre de points")
    generate_parser.add_argument("--d", type=int, default=generate_config["d"],
                                 help="Dimension des points")
    generate_parser.add_argument("--seed", type=int, default=generate_config["seed"],
                                 help="Graine du générateur aléatoire")
    generate_parser.set_defaults(func=generate_command)

    # Commande test
    test_parser = subparsers.add_parser("test", help="Tester la performance de la recherche")
    test_parser.add_argument("points_file", nargs="?", default=default_points_path,
                             help="Fichier binaire contenant les points")
    _add_tree_arguments(test_parser, build_config)
    test_parser.add_argument("--k", type=int, default=search_config["k"],
                             help="Nombre de voisins à retourner")
    test_parser.add_argument("--radius", type=float, default=search_config["radius"],
                             help="Rayon pour la recherche par rayon")
    test_parser.add_argument("--queries", type=int, default=search_config["queries"],
                             help="Nombre de requêtes aléatoires à effectuer")
    test_parser.add_argument("--use_faiss", dest="use_faiss", action="store_true", default=search_config["use_faiss"],
                             help="Utiliser FAISS pour la recherche naïve")
    test_parser.add_argument("--no-faiss", dest="use_faiss", action="store_false",
                             help="Utiliser numpy pour la recherche naïve")
    test_parser.add_argument("--stats_file", default=None,
                             help="Fichier texte où sauvegarder les statistiques de l'arbre")
    test_parser.set_defaults(func=test_command)

    # Commande search
    search_parser = subparsers.add_parser("search", help="Recherche interactive en ligne de commande")
    search_parser.add_argument("points_file", nargs="?", default=default_points_path,
                               help="Fichier binaire contenant les points")
    _add_tree_arguments(search_parser, build_config)
    search_parser.add_argument("--k", type=int, default=search_config["k"],
                               help="Nombre de voisins à afficher")
    search_parser.add_argument("--radius", type=float, default=search_config["radius"],
                               help="Rayon pour la recherche par rayon")
    search_parser.set_defaults(func=search_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Point d'entrée principal pour l'interface en ligne de commande.

    Returns:
        int: Code de retour (0 pour succès, autre pour erreur)
    """
    # Lecture anticipée de --config : les valeurs par défaut des options en dépendent
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default=None)
    known_args, _ = pre_parser.parse_known_args(argv)
    config_manager = load_config(known_args.config)
    parser = build_parser(config_manager)

    # Traitement des arguments
    args = parser.parse_args(argv)

    # Exécution de la commande spécifiée
    if hasattr(args, "func"):
        return args.func(args)
    else:
        parser.print_help()
        return 0

if __name__ == "__main__":
    sys.exit(main())
