from pathlib import Path
from typing import Callable, Dict, List, Tuple

import pytest
import yaml

from jsonnetize.replicator import Replicator, mirror_path
from jsonnetize.resolver import ManifestResolver

# ============================================================================
# Kustomization Tree Fixtures
# ============================================================================


def write_tree(root: Path, files: Dict[str, object]) -> None:
    """Create files below ``root``.

    Dict and list values are written as YAML, strings and bytes verbatim.
    """
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        elif isinstance(content, str):
            path.write_text(content)
        else:
            path.write_text(yaml.safe_dump(content, sort_keys=False))


class FakeRenderer:
    """Stands in for jsonnet: records calls and writes a marker file."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Path, Path]] = []

    def __call__(self, source: Path, destination: Path) -> None:
        self.calls.append((source, destination))
        destination.write_text(f"# rendered from {source.name}\n")


@pytest.fixture
def input_root(tmp_path) -> Path:
    root = tmp_path / "input"
    root.mkdir()
    return root


@pytest.fixture
def output_root(tmp_path) -> Path:
    root = tmp_path / "output"
    root.mkdir()
    return root


@pytest.fixture
def mirror_root(input_root, output_root) -> Path:
    """Where the input root lands inside the output tree."""
    return mirror_path(output_root, input_root)


@pytest.fixture
def make_tree(input_root) -> Callable[[Dict[str, object]], Path]:
    def _make(files: Dict[str, object]) -> Path:
        write_tree(input_root, files)
        return input_root

    return _make


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def replicator(input_root, output_root, fake_renderer) -> Replicator:
    return Replicator(input_root, output_root, renderer=fake_renderer)


@pytest.fixture
def resolver(input_root, output_root, replicator) -> ManifestResolver:
    return ManifestResolver(input_root, output_root, replicator=replicator)
