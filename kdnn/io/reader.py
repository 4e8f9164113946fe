"""
Module de lecture de points pour KDNN.
Format binaire : entête (n, d: uint64 little-endian) suivi des données float32 ligne par ligne.
"""

import os
import struct
import time
from typing import Optional

import numpy as np

from kdnn.core.errors import InvalidInputError

HEADER_FORMAT = "<QQ"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)


class PointReader:
    """
    Classe pour lire des points depuis un fichier binaire.
    Supporte deux modes: RAM et mmap.
    """

    def __init__(self, file_path: Optional[str] = None, mode: str = "ram", verbose: bool = True):
        """
        Initialise le lecteur de points.

        Args:
            file_path: Chemin vers le fichier binaire contenant les points
            mode: Mode de lecture - "ram" (défaut) ou "mmap"
            verbose: Afficher les messages de progression
        """
        self.file_path = file_path
        self.mode = mode.lower()

        if self.mode not in ["ram", "mmap"]:
            raise ValueError("Mode doit être 'ram' ou 'mmap'")

        self.n = 0  # Nombre de points
        self.d = 0  # Dimension des points
        self.points: Optional[np.ndarray] = None

        if file_path is not None:
            self._load_points(verbose)

    @classmethod
    def from_array(cls, points: np.ndarray) -> "PointReader":
        """Crée un lecteur autour d'un tableau déjà en mémoire."""
        points = np.asarray(points)
        if points.ndim != 2:
            raise InvalidInputError(f"Les points doivent former un tableau 2D (n, d), reçu {points.ndim}D")
        reader = cls(None, "ram")
        reader.n, reader.d = points.shape
        reader.points = points
        return reader

    def _load_points(self, verbose: bool) -> None:
        """Charge les points selon le mode choisi."""
        start_time = time.time()
        if verbose:
            print(f"⏳ Chargement des points depuis {self.file_path} en mode {self.mode.upper()}...")

        file_size = os.path.getsize(self.file_path)
        with open(self.file_path, "rb") as f:
            header = f.read(HEADER_SIZE)
            if len(header) != HEADER_SIZE:
                raise InvalidInputError(f"Entête incomplet dans {self.file_path}")
            self.n, self.d = struct.unpack(HEADER_FORMAT, header)

        expected_size = HEADER_SIZE + self.n * self.d * 4  # float32 = 4 octets
        if file_size < expected_size:
            raise InvalidInputError(
                f"Fichier tronqué: {file_size} octets, {expected_size} attendus pour {self.n} points de dimension {self.d}"
            )

        if self.mode == "ram":
            with open(self.file_path, "rb") as f:
                f.seek(HEADER_SIZE)
                buffer = f.read(self.n * self.d * 4)
            self.points = np.frombuffer(buffer, dtype=np.float32).reshape(self.n, self.d)
        else:
            self.points = np.memmap(self.file_path, dtype=np.float32, mode="r",
                                    offset=HEADER_SIZE, shape=(self.n, self.d))

        if verbose:
            elapsed = time.time() - start_time
            print(f"✓ {self.n:,} points (dim {self.d}) prêts en mode {self.mode.upper()} [terminé en {elapsed:.2f}s]")

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, index):
        """
        Récupère un ou plusieurs points par leur indice.

        Args:
            index: Un entier, une liste d'entiers ou un slice

        Returns:
            Un point numpy ou un tableau de points
        """
        return self.points[index]

    def close(self) -> None:
        """Libère la référence aux points (le fichier mappé est fermé par numpy)."""
        self.points = None


def read_points(file_path: Optional[str] = None, mode: str = "ram",
                points: Optional[np.ndarray] = None, verbose: bool = True) -> PointReader:
    """
    Fonction utilitaire pour lire des points.

    Args:
        file_path: Chemin du fichier binaire
        mode: "ram" ou "mmap"
        points: Tableau déjà en mémoire (remplace file_path)
        verbose: Afficher les messages de progression

    Returns:
        PointReader: Lecteur de points
    """
    if points is not None:
        return PointReader.from_array(points)
    elif file_path is not None:
        return PointReader(file_path, mode, verbose=verbose)
    else:
        raise ValueError("Soit file_path soit points doit être fourni")
