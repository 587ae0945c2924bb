"""Shared fixtures: small visualization payloads shaped like the backend's JSON."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vertrace.core.parser import VisualizationData, parse_visualization_data


def record(version: str, date: str, change_type: str, description: str = "") -> dict:
    return {
        "version": version,
        "release_date": f"{date}T00:00:00Z",
        "change_type": change_type,
        "description": description or f"{change_type} in {version}",
        "summary_ja": "",
        "source_url": None,
    }


def release(version: str, date: str) -> dict:
    return {"version": version, "release_date": f"{date}T00:00:00Z", "url": ""}


NET_HTTP_PAYLOAD = {
    "releases": [
        release("1.21", "2023-08-08"),
        release("1.21.1", "2023-09-06"),
        release("1.22", "2024-02-06"),
    ],
    "packages": ["net/http"],
    "package_evolution": {
        "net/http": [
            record("1.21", "2023-08-08", "Added"),
            record("1.21.1", "2023-09-06", "Bug Fix"),
            record("1.22", "2024-02-06", "Modified"),
        ],
    },
}

# Two packages; crypto/tls first appears in 2.0.1, so its 2.0.x group has no anchor.
MIXED_PAYLOAD = {
    "releases": [
        release("1.21", "2023-08-08"),
        release("1.21.1", "2023-09-06"),
        release("1.22", "2024-02-06"),
        release("2.0", "2024-08-13"),
        release("2.0.1", "2024-09-05"),
        release("2.0.2", "2024-10-01"),
    ],
    "packages": ["log/slog", "crypto/tls", "net/http"],
    "package_evolution": {
        "net/http": [
            record("1.22", "2024-02-06", "Modified"),
            record("1.21", "2023-08-08", "Added"),
            record("1.21.1", "2023-09-06", "Bug Fix"),
            record("2.0", "2024-08-13", "Removed"),
        ],
        "crypto/tls": [
            record("2.0.2", "2024-10-01", "Security Fix"),
            record("2.0.1", "2024-09-05", "Bug Fix"),
        ],
    },
}


@pytest.fixture
def net_http_data() -> VisualizationData:
    return parse_visualization_data(NET_HTTP_PAYLOAD)


@pytest.fixture
def mixed_data() -> VisualizationData:
    return parse_visualization_data(MIXED_PAYLOAD)


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """MIXED_PAYLOAD written to disk, as `vertrace graph -i` reads it."""
    path = tmp_path / "visualization.json"
    path.write_text(json.dumps(MIXED_PAYLOAD), encoding="utf-8")
    return path
