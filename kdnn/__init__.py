# KDNN - Arbre k-d pour la recherche exacte des plus proches voisins

__version__ = "1.0.0"

# Import main components for direct API access
from kdnn.core.errors import KDNNError, InvalidInputError, DimensionMismatchError, InvalidArgumentError
from kdnn.core.metrics import MinkowskiMetric, Euclidean, Cityblock, Manhattan, Chebyshev, Minkowski, get_metric
from kdnn.core.hyperrectangle import HyperRectangle
from kdnn.core.tree import KDTree, TreeData
from kdnn.builder.builder import build_tree
from kdnn.search.knn import knn
from kdnn.search.inrange import inrange
from kdnn.search.searcher import Searcher
