"""
Module d'écriture de points pour KDNN.
"""

import os
import struct
import time

import numpy as np

from kdnn.core.errors import InvalidInputError
from kdnn.io.reader import HEADER_FORMAT


def write_points(points: np.ndarray, file_path: str, verbose: bool = True) -> None:
    """
    Écrit des points dans un fichier binaire.
    Format: header (n, d: uint64) suivi des données en float32.

    Args:
        points: Tableau numpy contenant les points (shape: [n, d])
        file_path: Chemin du fichier de sortie
        verbose: Afficher les messages de progression
    """
    points = np.asarray(points)
    if points.ndim != 2:
        raise InvalidInputError(f"Les points doivent former un tableau 2D (n, d), reçu {points.ndim}D")
    n, d = points.shape
    start_time = time.time()
    if verbose:
        print(f"⏳ Écriture de {n:,} points (dim {d}) vers {file_path}...")

    # Créer le répertoire si nécessaire
    os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)

    points_float32 = np.ascontiguousarray(points, dtype=np.float32)

    with open(file_path, "wb") as f:
        # Écrire l'entête: nombre de points (n) et dimension (d)
        f.write(struct.pack(HEADER_FORMAT, n, d))
        f.write(points_float32.tobytes())

    if verbose:
        elapsed = time.time() - start_time
        print(f"✓ {n:,} points (dim {d}) écrits dans {file_path} [terminé en {elapsed:.2f}s]")
