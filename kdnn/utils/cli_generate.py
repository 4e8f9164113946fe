"""
Module pour la génération de données de test.
Écrit des points aléatoires uniformes dans [0, 1)^d au format binaire KDNN.
"""

import argparse

import numpy as np

from kdnn.io.writer import write_points


def generate_command(args: argparse.Namespace) -> int:
    """
    Commande pour générer un fichier de points aléatoires.

    Args:
        args: Arguments de ligne de commande

    Returns:
        int: Code de retour (0 pour succès, autre pour erreur)
    """
    try:
        if args.n < 1 or args.d < 1:
            print(f"❌ n et d doivent être >= 1 (reçu n={args.n}, d={args.d})")
            return 1

        print(f"🎲 Génération de {args.n:,} points aléatoires (dim {args.d}, graine {args.seed})...")
        rng = np.random.default_rng(args.seed)
        points = rng.random((args.n, args.d), dtype=np.float64)
        write_points(points, args.out_file)

        print(f"\nPour tester la recherche sur ces points :")
        print(f"  python -m kdnn.cli test {args.out_file} --k 10")
        print(f"\nPour faire des recherches interactives :")
        print(f"  python -m kdnn.cli search {args.out_file}")

    except Exception as e:
        print(f"\n❌ Erreur: {str(e)}")
        import traceback
        traceback.print_exc()
        return 1

    return 0
