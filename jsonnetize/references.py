"""Reference classification for kustomization entries.

A reference is any string found in a resources, generators or transformers
list. Classification looks only at the string itself: whether it parses as a
non-local URL, and whether a local path names a Jsonnet template.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

JSONNET_EXTENSION = ".jsonnet"
RENDERED_SUFFIX = ".yml"

LOCAL_SCHEMES = ("", "file")


class ReferenceKind(Enum):
    """What a single reference string denotes."""

    NON_LOCAL = "non-local"
    TEMPLATED = "templated"
    LITERAL = "literal"


class ListKind(Enum):
    """The kustomization list a reference was read from.

    Resources may name subdirectories holding another kustomization;
    generators and transformers (plugins) may only name files or remote
    locators.
    """

    RESOURCE = ("Resource", True)
    PLUGIN = ("Plugin", False)

    def __init__(self, label: str, allows_directories: bool) -> None:
        self.label = label
        self.allows_directories = allows_directories

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class Reference:
    """A classified reference.

    ``raw`` is the string as written in the manifest. ``path`` is the local
    filesystem path it denotes, or None for non-local references.
    """

    raw: str
    kind: ReferenceKind
    path: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.kind is not ReferenceKind.NON_LOCAL

    @property
    def is_absolute(self) -> bool:
        return self.path is not None and os.path.isabs(self.path)

    @property
    def rendered(self) -> str:
        """Reference to write back once the template has been rendered."""
        return self.raw + RENDERED_SUFFIX


def local_path(reference: str) -> Optional[str]:
    """Return the filesystem path a reference denotes, or None if non-local."""
    try:
        parsed = urlsplit(reference)
    except ValueError:
        # Unparseable locators are never resolved locally
        return None
    if parsed.scheme not in LOCAL_SCHEMES:
        return None
    if parsed.scheme == "file":
        return parsed.path
    return reference


def is_jsonnet_file(path: str) -> bool:
    return path.endswith(JSONNET_EXTENSION)


def classify(reference: str) -> Reference:
    """Classify a reference string.

    Args:
        reference: Entry from a kustomization reference list

    Returns:
        Reference carrying the kind and, for local references, the path

    Example:
        >>> classify("https://example.com/plugin.yml").kind
        <ReferenceKind.NON_LOCAL: 'non-local'>
        >>> classify("config.jsonnet").kind
        <ReferenceKind.TEMPLATED: 'templated'>
        >>> classify("/abs/config.jsonnet").kind
        <ReferenceKind.LITERAL: 'literal'>
    """
    path = local_path(reference)
    if path is None:
        return Reference(reference, ReferenceKind.NON_LOCAL)
    # Absolute paths may point outside the mirrored tree; never render them
    if is_jsonnet_file(path) and not os.path.isabs(path):
        return Reference(reference, ReferenceKind.TEMPLATED, path)
    return Reference(reference, ReferenceKind.LITERAL, path)


__all__ = [
    "JSONNET_EXTENSION",
    "RENDERED_SUFFIX",
    "ListKind",
    "Reference",
    "ReferenceKind",
    "classify",
    "is_jsonnet_file",
    "local_path",
]
