"""
Module de gestion de la configuration pour KDNN.
Centralise le chargement et l'accès à la configuration YAML.
"""

import copy
import os
import yaml

# Chemin par défaut du fichier de configuration
DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "config.yaml")

# Configuration par défaut
DEFAULT_CONFIG = {
    "build_tree": {
        "leaf_size": 10,
        "reorder": True,
        "metric": "euclidean",  # euclidean, cityblock, chebyshev ou minkowski
        "p": 2.0,               # ordre de la norme pour minkowski
    },
    "search": {
        "k": 10,
        "radius": 0.1,
        "queries": 100,
        "use_faiss": True
    },
    "generate": {
        "n": 10000,
        "d": 3,
        "seed": 42
    },
    "files": {
        "points_dir": ".",
        "default_points": "points.bin"
    }
}

class ConfigManager:
    """Gestionnaire de configuration pour KDNN."""

    def __init__(self, config_path=None):
        """
        Initialise le gestionnaire de configuration.

        Paramètres :
            config_path: Chemin vers le fichier de configuration YAML.
                         Si None, utilise le chemin par défaut.
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.config = self.load_config()

    def load_config(self):
        """
        Charge la configuration depuis le fichier YAML.

        Retourne :
            Dict: La configuration chargée, ou la configuration par défaut si le
            fichier est absent ou illisible.
        """
        if not os.path.exists(self.config_path):
            return copy.deepcopy(DEFAULT_CONFIG)

        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f) or {}

            # Vérifier et compléter la configuration
            self._ensure_complete_config(config)

            return config
        except (OSError, yaml.YAMLError, AttributeError) as e:
            print(f"⚠️ Erreur lors du chargement de la configuration: {str(e)}")
            print(f"⚠️ Utilisation des paramètres par défaut")
            return copy.deepcopy(DEFAULT_CONFIG)

    def _ensure_complete_config(self, config):
        """
        S'assure que la configuration contient toutes les sections nécessaires.
        Complète avec les valeurs par défaut si nécessaire.

        Paramètres :
            config: Configuration à vérifier et compléter.
        """
        for section, default_values in DEFAULT_CONFIG.items():
            if not isinstance(config.get(section), dict):
                if config.get(section) is not None:
                    print(f"⚠️ Section '{section}' invalide dans la configuration, valeurs par défaut utilisées")
                config[section] = default_values.copy()
            else:
                for key, value in default_values.items():
                    if key not in config[section]:
                        config[section][key] = value

    def get_section(self, section):
        """
        Récupère une section complète de la configuration.

        Paramètres :
            section: Nom de la section à récupérer.

        Retourne :
            Dict: La section demandée, ou un dictionnaire vide si la section n'existe pas.
        """
        return self.config.get(section, {})

    def get(self, section, key, default=None):
        """
        Récupère une valeur spécifique de la configuration.

        Paramètres :
            section: La section contenant la clé.
            key: La clé à récupérer.
            default: Valeur par défaut si la clé n'existe pas.

        Retourne :
            La valeur associée à la clé, ou la valeur par défaut si la clé n'existe pas.
        """
        section_data = self.get_section(section)
        return section_data.get(key, default)

    def get_file_path(self, file_key, default=None):
        """
        Construit le chemin complet vers un fichier spécifié dans la configuration.

        Paramètres :
            file_key: Clé du fichier dans la section 'files'.
            default: Valeur par défaut si la clé n'existe pas.

        Retourne :
            Le chemin complet vers le fichier.
        """
        files_section = self.get_section("files")

        if file_key.startswith("default_"):
            file_name = files_section.get(file_key, default)
            dir_path = files_section.get("points_dir", ".")
            return os.path.join(dir_path, file_name)
        else:
            # Pour les autres clés, retourner directement la valeur
            return files_section.get(file_key, default)

    def reload(self, config_path=None):
        """
        Recharge la configuration depuis un nouveau fichier.

        Paramètres :
            config_path: Nouveau chemin de configuration. Si None, utilise le chemin actuel.
        """
        if config_path:
            self.config_path = config_path
        self.config = self.load_config()

    def __str__(self):
        """Représentation de la configuration pour le débogage."""
        return f"Configuration chargée depuis: {self.config_path}"

# Fonction utilitaire pour charger une configuration
def load_config(config_path=None):
    """
    Fonction utilitaire pour charger rapidement une configuration.

    Paramètres :
        config_path: Chemin vers le fichier de configuration YAML.
                     Si None, utilise le chemin par défaut.

    Retourne :
        ConfigManager: Instance du gestionnaire de configuration.
    """
    return ConfigManager(config_path)
