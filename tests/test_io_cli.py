#!/usr/bin/env python3
"""
Tests de la configuration, des fichiers de points, du chercheur et de
l'interface en ligne de commande.
"""

import configparser
import os
import struct
import sys

import numpy as np
import pytest

from kdnn import Cityblock, Euclidean, InvalidInputError, KDNNError, Searcher, build_tree
from kdnn.cli import main as cli_main
from kdnn.io.reader import HEADER_FORMAT, read_points
from kdnn.io.writer import write_points
from kdnn.utils.cli_search import parse_point, search_once
from kdnn.utils.config import DEFAULT_CONFIG, ConfigManager


def test_config_merges_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("build_tree:\n  leaf_size: 32\nsearch:\n")
    config = ConfigManager(str(path))

    assert config.get("build_tree", "leaf_size") == 32
    assert config.get("build_tree", "metric") == "euclidean"
    assert config.get_section("search") == DEFAULT_CONFIG["search"]
    assert config.get("search", "missing", "x") == "x"
    assert config.get_file_path("default_points") == os.path.join(".", "points.bin")


def test_config_missing_or_invalid_file(tmp_path):
    config = ConfigManager(str(tmp_path / "absent.yaml"))
    assert config.config == DEFAULT_CONFIG
    # les valeurs par défaut ne sont jamais partagées
    config.config["build_tree"]["leaf_size"] = 1
    assert DEFAULT_CONFIG["build_tree"]["leaf_size"] == 10

    broken = tmp_path / "broken.yaml"
    broken.write_text("build_tree: [1, 2\n")
    config.reload(str(broken))
    assert config.config_path == str(broken)
    assert config.get("build_tree", "leaf_size") == 10


def test_config_section_not_a_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("build_tree: 5\nsearch:\n  k: 3\n")
    config = ConfigManager(str(path))
    assert config.get_section("build_tree") == DEFAULT_CONFIG["build_tree"]
    assert config.get("search", "k") == 3


def test_pytest_collects_only_tests_directory():
    # kdnn/utils/cli_test.py correspond au motif *_test.py de pytest
    parser = configparser.ConfigParser()
    parser.read(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "setup.cfg"))
    assert parser.get("tool:pytest", "testpaths").split() == ["tests"]
    assert parser.get("tool:pytest", "python_files").split() == ["test_*.py"]


@pytest.mark.parametrize("mode", ["ram", "mmap"])
def test_points_file_roundtrip(tmp_path, mode):
    points = np.random.default_rng(20).random((64, 5))
    path = str(tmp_path / "sub" / "points.bin")
    write_points(points, path, verbose=False)
    assert os.path.getsize(path) == struct.calcsize(HEADER_FORMAT) + 64 * 5 * 4

    reader = read_points(path, mode=mode, verbose=False)
    assert len(reader) == 64 and reader.d == 5
    assert reader.points.dtype == np.float32
    np.testing.assert_allclose(reader[3], points[3], rtol=1e-6)
    np.testing.assert_allclose(reader.points, points, rtol=1e-6)
    reader.close()
    assert reader.points is None


def test_truncated_points_file(tmp_path):
    path = tmp_path / "points.bin"
    path.write_bytes(struct.pack(HEADER_FORMAT, 10, 3) + b"\x00" * 16)
    with pytest.raises(InvalidInputError):
        read_points(str(path), verbose=False)

    path.write_bytes(b"\x01\x02")
    with pytest.raises(InvalidInputError):
        read_points(str(path), verbose=False)


def test_read_points_from_array():
    reader = read_points(points=np.zeros((4, 2)))
    assert len(reader) == 4
    with pytest.raises(ValueError):
        read_points()


def test_searcher_evaluation():
    rng = np.random.default_rng(21)
    points = rng.random((600, 3))
    tree = build_tree(points, metric=Cityblock(), leaf_size=8)
    searcher = Searcher(tree, use_faiss=True)
    # FAISS est désactivé pour une métrique non euclidienne
    assert not searcher.use_faiss
    # les points d'origine sont reconstruits depuis l'arbre réordonné
    np.testing.assert_array_equal(searcher.points, points)

    results = searcher.evaluate_search(rng.random((10, 3)), k=5, radius=0.15)
    assert results["n_queries"] == 10
    assert results["avg_recall"] == 1.0
    assert results["range_exact_rate"] == 1.0


def test_searcher_faiss_matches_tree():
    rng = np.random.default_rng(22)
    points = rng.random((500, 4)).astype(np.float32)
    tree = build_tree(points, metric=Euclidean(), leaf_size=10)
    searcher = Searcher(tree, points=points, use_faiss=True)
    query = rng.random(4)
    idxs, dists = searcher.knn(query, 6)
    faiss_idxs, faiss_dists = searcher.brute_force_search(query, 6)
    assert set(idxs.tolist()) == set(faiss_idxs.tolist())
    np.testing.assert_allclose(dists, faiss_dists, rtol=1e-4)


def test_parse_point():
    np.testing.assert_array_equal(parse_point("1.0 2.5, 3"), [1.0, 2.5, 3.0])
    with pytest.raises(InvalidInputError):
        parse_point("1.0 abc")


def test_search_once():
    points = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [5.0, 5.0]])
    searcher = Searcher(build_tree(points, metric=Euclidean(), leaf_size=2), use_faiss=False)
    results, timings = search_once(searcher, "0 0", 2, 1.5)
    assert results["idxs"][0] == 0
    assert sorted(results["ball"]) == [0, 1, 2]
    assert set(timings) == {"knn", "inrange"}


def test_cli_generate_test_and_search(tmp_path, monkeypatch):
    path = str(tmp_path / "points.bin")
    stats = str(tmp_path / "stats.txt")

    assert cli_main(["generate", path, "--n", "200", "--d", "2", "--seed", "3"]) == 0
    assert len(read_points(path, verbose=False)) == 200

    assert cli_main(["test", path, "--queries", "5", "--k", "3", "--no-faiss",
                     "--leaf_size", "6", "--stats_file", stats]) == 0
    assert os.path.exists(stats)

    answers = iter(["0.5 0.5", "1 2 3", "q"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    assert cli_main(["search", path, "--k", "2", "--metric", "chebyshev"]) == 0

    # fichier absent : code d'erreur
    assert cli_main(["test", str(tmp_path / "absent.bin"), "--queries", "2"]) == 1


def test_cli_config_option(tmp_path):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("generate:\n  n: 37\n  d: 4\n")
    path = str(tmp_path / "points.bin")

    assert cli_main(["--config", str(config_path), "generate", path]) == 0
    reader = read_points(path, verbose=False)
    assert (len(reader), reader.d) == (37, 4)


def test_cli_test_closes_reader_on_error(tmp_path, monkeypatch):
    path = str(tmp_path / "points.bin")
    write_points(np.random.default_rng(23).random((50, 2)), path, verbose=False)

    readers = []

    def tracking_read_points(*args, **kwargs):
        reader = read_points(*args, **kwargs)
        readers.append(reader)
        return reader

    def failing_evaluation(self, *args, **kwargs):
        raise KDNNError("évaluation impossible")

    monkeypatch.setattr("kdnn.utils.cli_test.read_points", tracking_read_points)
    monkeypatch.setattr(Searcher, "evaluate_search", failing_evaluation)

    assert cli_main(["test", path, "--queries", "3", "--no-faiss"]) == 1
    assert len(readers) == 1
    assert readers[0].points is None


def main():
    """Fonction principale pour exécuter les tests."""
    print("=== Tests configuration, fichiers et CLI KDNN ===")
    return pytest.main([__file__, "-q"])


if __name__ == "__main__":
    sys.exit(main())
