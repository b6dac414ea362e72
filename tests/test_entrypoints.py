import importlib

import numpy as np
import pytest

from benchmarking.cache import ResultCache
from benchmarking.cli import main
from benchmarking.regions import write_homography
from benchmarking.schemas import DetectorScores


ENTRYPOINTS = [
    "bench",
    "benchmarking.cli",
]


@pytest.mark.parametrize("module_name", ENTRYPOINTS)
def test_entrypoint_help(module_name):
    module = importlib.import_module(module_name)
    assert hasattr(module, "main"), f"{module_name} missing main()"

    with pytest.raises(SystemExit) as excinfo:
        module.main(["--help"])

    assert excinfo.value.code == 0


@pytest.mark.parametrize("command", ["run", "sequence", "check", "cache"])
def test_subcommand_help(command):
    with pytest.raises(SystemExit) as excinfo:
        main([command, "--help"])
    assert excinfo.value.code == 0


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage: bench" in capsys.readouterr().out


def test_unknown_detector_rejected():
    with pytest.raises(SystemExit) as excinfo:
        main(["run", "a", "b", "H", "-d", "surf"])
    assert excinfo.value.code == 2


def test_check_reports_missing_evaluator(tmp_path, capsys):
    assert main(["check", "--evaluator-dir", str(tmp_path)]) == 1
    assert "NOT available" in capsys.readouterr().out


def test_run_reports_missing_image(tmp_path, capsys):
    homography = tmp_path / "H1to2p"
    write_homography(homography, np.eye(3))
    code = main([
        "run", str(tmp_path / "img1.ppm"), str(tmp_path / "img2.ppm"), str(homography),
        "--cache", str(tmp_path / "results.db"),
        "--evaluator-dir", str(tmp_path),
    ])
    assert code == 1
    assert "Error:" in capsys.readouterr().out


class TestCacheCommands:
    def _seed(self, tmp_path):
        path = tmp_path / "results.db"
        cache = ResultCache(path)
        cache.store("kmEval|2|a", DetectorScores(repeatability=0.5, num_correspondences=3))
        cache.store("kmEval|4|a", DetectorScores(repeatability=0.5, num_correspondences=3))
        return path, cache

    def test_stats(self, tmp_path, capsys):
        path, _ = self._seed(tmp_path)
        assert main(["cache", "--cache", str(path), "stats"]) == 0
        assert "Entries: 2" in capsys.readouterr().out

    def test_clear_with_prefix(self, tmp_path, capsys):
        path, cache = self._seed(tmp_path)
        assert main(["cache", "--cache", str(path), "clear", "--prefix", "kmEval|2", "-f"]) == 0
        assert "Deleted: 1" in capsys.readouterr().out
        assert cache.stats().entries == 1

    def test_clear_aborted_without_confirmation(self, tmp_path, monkeypatch):
        path, cache = self._seed(tmp_path)
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        assert main(["cache", "--cache", str(path), "clear"]) == 0
        assert cache.stats().entries == 2

    @pytest.mark.parametrize("command", [["stats"], ["clear", "-f"]])
    def test_corrupt_store_reports_error(self, tmp_path, capsys, command):
        path = tmp_path / "results.db"
        path.write_bytes(b"garbage" * 100)
        assert main(["cache", "--cache", str(path), *command]) == 1
        assert "Error:" in capsys.readouterr().out

    def test_bare_cache_prints_help(self, capsys):
        assert main(["cache"]) == 1
        assert "stats" in capsys.readouterr().out
