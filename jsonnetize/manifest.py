"""Kustomization manifest model.

Only the three reference lists (resources, generators, transformers) are
interpreted. Every other key of the document is carried through untouched.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from jsonnetize.exceptions import (
    EmptyReferenceError,
    InvalidManifestError,
    ManifestNotFoundError,
    wrap_os_error,
)
from jsonnetize.references import ListKind

logger = logging.getLogger(__name__)

# Tried in order; the first one present wins
MANIFEST_FILENAMES: Tuple[str, ...] = ("kustomization.yml", "kustomization.yaml")

REFERENCE_FIELDS: Tuple[Tuple[str, ListKind], ...] = (
    ("resources", ListKind.RESOURCE),
    ("generators", ListKind.PLUGIN),
    ("transformers", ListKind.PLUGIN),
)


@dataclass
class Manifest:
    """One kustomization file and its parsed document."""

    path: Path
    document: Dict[str, Any]

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def filename(self) -> str:
        return self.path.name

    def references(self, field_name: str) -> List[str]:
        """Return the reference list stored under ``field_name``."""
        return list(self.document.get(field_name) or [])

    def replace_references(self, field_name: str, references: List[str]) -> None:
        """Swap in a rewritten reference list.

        A list absent from the original document stays absent.
        """
        original = self.document.get(field_name)
        if original is None:
            if references:
                raise InvalidManifestError(
                    f"Cannot add {field_name} to a manifest that has none",
                    manifest=self.path,
                )
            return
        if len(references) != len(original):
            raise InvalidManifestError(
                f"Rewritten {field_name} has {len(references)} entries, "
                f"expected {len(original)}",
                manifest=self.path,
            )
        self.document[field_name] = list(references)

    def validate(self) -> None:
        """Check the reference lists before anything is resolved.

        Raises:
            InvalidManifestError: If a list field is not a list of strings
            EmptyReferenceError: If any list holds an empty entry
        """
        for field_name, _ in REFERENCE_FIELDS:
            value = self.document.get(field_name)
            if value is None:
                continue
            if not isinstance(value, list):
                raise InvalidManifestError(
                    f"{field_name} must be a list, got {type(value).__name__}",
                    manifest=self.path,
                )
            for index, entry in enumerate(value):
                if entry is None or entry == "":
                    raise EmptyReferenceError(
                        f"Empty path in {field_name} of {self.path}",
                        manifest=self.path,
                        field_name=field_name,
                        index=index,
                    )
                if not isinstance(entry, str):
                    raise InvalidManifestError(
                        f"{field_name}[{index}] must be a string, "
                        f"got {type(entry).__name__}",
                        manifest=self.path,
                    )

    def dump(self, destination: Path) -> None:
        """Write the document to ``destination``, creating its directory."""
        content = yaml.safe_dump(
            self.document, sort_keys=False, default_flow_style=False
        )
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(content, encoding="utf-8")
        except OSError as e:
            raise wrap_os_error(e, source=self.path, destination=destination) from e
        logger.debug(f"Wrote manifest {destination}")


def find_manifest_file(directory: Path) -> Path:
    """Locate the kustomization file of a directory.

    Args:
        directory: Directory expected to hold a kustomization

    Returns:
        Path of the first recognized manifest file

    Raises:
        ManifestNotFoundError: If no recognized file exists, or the one found
            is not a regular file
    """
    found: Optional[Path] = None
    for name in MANIFEST_FILENAMES:
        candidate = directory / name
        if candidate.exists():
            found = candidate
            break

    if found is None:
        raise ManifestNotFoundError(
            f"Couldn't find kustomization file in {directory}", directory=directory
        )
    if not found.is_file():
        raise ManifestNotFoundError(f"{found} is not a file", directory=directory)
    return found


def load_manifest(directory: Path) -> Manifest:
    """Find, read and parse the kustomization of ``directory``.

    Raises:
        ManifestNotFoundError: If the directory holds no kustomization file
        InvalidManifestError: If the file is not a YAML mapping
        ReplicationError: If the file cannot be read
    """
    path = find_manifest_file(directory)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise wrap_os_error(e, source=path) from e

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidManifestError(
            f"Could not parse {path}", manifest=path, cause=e
        ) from e

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise InvalidManifestError(
            f"{path} must contain a mapping, got {type(document).__name__}",
            manifest=path,
        )
    return Manifest(path=path, document=document)


__all__ = [
    "MANIFEST_FILENAMES",
    "REFERENCE_FIELDS",
    "Manifest",
    "find_manifest_file",
    "load_manifest",
]
