"""Tests for vertrace.api module."""

from __future__ import annotations

import re
from pathlib import Path
from unittest import mock

import pytest

import vertrace
from vertrace.api import DATA_FILE_ENV, axis_ticks, evolution_graph, filter_options, load_data
from vertrace.core.parser import VisualizationData
from vertrace.errors import PayloadError


class TestModuleExports:
    """Tests for vertrace module-level exports."""

    def test_version_is_string(self) -> None:
        assert isinstance(vertrace.__version__, str)

    def test_version_format(self) -> None:
        """__version__ is X.Y.Z, X.Y.Z+local or the 0.0.0+unknown fallback."""
        pattern = r"^\d+\.\d+\.\d+(\+.+)?$"
        assert re.match(pattern, vertrace.__version__), f"Invalid version: {vertrace.__version__}"

    def test_all_exports_exist(self) -> None:
        for name in vertrace.__all__:
            assert hasattr(vertrace, name), f"Missing export: {name}"


class TestLoadData:
    """Tests for load_data."""

    def test_from_file(self, data_file: Path, monkeypatch) -> None:
        monkeypatch.delenv(DATA_FILE_ENV, raising=False)
        data = load_data(input_file=data_file)
        assert "net/http" in data.package_evolution

    def test_from_env_file(self, data_file: Path, monkeypatch) -> None:
        monkeypatch.setenv(DATA_FILE_ENV, str(data_file))
        with mock.patch("vertrace.api.VersionTraceClient") as client_cls:
            data = load_data()
        client_cls.assert_not_called()
        assert "crypto/tls" in data.package_evolution

    def test_from_backend(self, monkeypatch) -> None:
        monkeypatch.delenv(DATA_FILE_ENV, raising=False)
        expected = VisualizationData(packages=("maps",))
        with mock.patch("vertrace.api.VersionTraceClient") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.fetch_visualization.return_value = expected
            assert load_data(base_url="http://backend.test/api") is expected
        client_cls.assert_called_once_with("http://backend.test/api")

    def test_bad_file(self, tmp_path: Path) -> None:
        with pytest.raises(PayloadError):
            load_data(input_file=tmp_path / "missing.json")


class TestEvolutionGraph:
    """Tests for evolution_graph, filter_options and axis_ticks."""

    def test_unfiltered(self, mixed_data: VisualizationData) -> None:
        assert len(evolution_graph(mixed_data).nodes) == 6

    def test_filtered(self, mixed_data: VisualizationData) -> None:
        graph = evolution_graph(mixed_data, packages=["crypto/tls"], categories=["Security Fix"])
        assert [n.id for n in graph.nodes] == ["crypto/tls-2.0.2"]

    def test_filter_options(self, mixed_data: VisualizationData) -> None:
        options = filter_options(evolution_graph(mixed_data))
        assert options["packages"] == ["crypto/tls", "net/http"]
        assert "Security Fix" in options["categories"]

    def test_axis_ticks(self, mixed_data: VisualizationData) -> None:
        ticks = axis_ticks(mixed_data)
        assert len(ticks) == 6
        assert ticks[-1].identifier == "2.0.2"
        assert ticks[-1].x == 150 + 5 * 180
