"""
jsonnetize

Materializes a kustomization tree whose resources, generators and
transformers may reference Jsonnet sources: every template is rendered to
YAML, every literal file copied, every manifest rewritten to point at the
results, and the mirrored tree is handed to ``kustomize build``.
"""

__version__ = "0.1.0"

# Route structlog through stdlib logging before any module logs
from jsonnetize import logging_config  # noqa: E402,F401
