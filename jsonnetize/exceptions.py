"""
Custom Exception Hierarchy for jsonnetize

Every failure during a run aborts the whole tree resolution. The classes here
carry enough context (the offending manifest, reference or command) for the
top-level handler to print a useful message before exiting non-zero.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class JsonnetizeError(Exception):
    """
    Base exception class for all jsonnetize errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Structural errors
class StructuralError(JsonnetizeError):
    """Base class for errors in the shape of the kustomization tree."""

    pass


class ManifestNotFoundError(StructuralError):
    """Raised when a directory holds no usable kustomization file."""

    def __init__(
        self,
        message: str,
        directory: Optional[Union[str, Path]] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if directory is not None:
            context["directory"] = str(directory)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MANIFEST_NOT_FOUND")
        kwargs.setdefault(
            "recovery_suggestion",
            "Add a kustomization.yml or kustomization.yaml to the directory",
        )
        super().__init__(message, **kwargs)


class EmptyReferenceError(StructuralError):
    """Raised when a reference list contains an empty entry."""

    def __init__(
        self,
        message: str,
        manifest: Optional[Union[str, Path]] = None,
        field_name: Optional[str] = None,
        index: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if manifest is not None:
            context["manifest"] = str(manifest)
        if field_name:
            context["field"] = field_name
        if index is not None:
            context["index"] = index
        kwargs["context"] = context
        kwargs.setdefault("error_code", "EMPTY_REFERENCE")
        super().__init__(message, **kwargs)


class InvalidManifestError(StructuralError):
    """Raised when a kustomization file cannot be interpreted."""

    def __init__(
        self,
        message: str,
        manifest: Optional[Union[str, Path]] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if manifest is not None:
            context["manifest"] = str(manifest)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_MANIFEST")
        super().__init__(message, **kwargs)


class InvalidRootError(StructuralError):
    """Raised when the command-line path is not a kustomization root."""

    def __init__(
        self, message: str, path: Optional[Union[str, Path]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if path is not None:
            context["path"] = str(path)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_ROOT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Pass a kustomization directory or its kustomization.yml/.yaml file",
        )
        super().__init__(message, **kwargs)


# Filesystem errors
class ReplicationError(JsonnetizeError):
    """Raised when a file cannot be copied or written into the output tree."""

    def __init__(
        self,
        message: str,
        source: Optional[Union[str, Path]] = None,
        destination: Optional[Union[str, Path]] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if source is not None:
            context["source"] = str(source)
        if destination is not None:
            context["destination"] = str(destination)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "REPLICATION_FAILED")
        super().__init__(message, **kwargs)


# External process errors
class ExternalProcessError(JsonnetizeError):
    """Base class for failures of the jsonnet and kustomize subprocesses."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if command:
            cmd_str = " ".join(command)
            # Truncate long commands
            if len(cmd_str) > 100:
                cmd_str = cmd_str[:97] + "..."
            context["command"] = cmd_str
        if returncode is not None:
            context["returncode"] = returncode
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.command = command
        self.returncode = returncode


class RenderError(ExternalProcessError):
    """Raised when jsonnet fails to render a template."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "RENDER_FAILED")
        super().__init__(message, **kwargs)


class BuildError(ExternalProcessError):
    """Raised when kustomize fails to build the materialized tree."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "BUILD_FAILED")
        super().__init__(message, **kwargs)


def wrap_os_error(
    exc: OSError,
    source: Optional[Union[str, Path]] = None,
    destination: Optional[Union[str, Path]] = None,
) -> ReplicationError:
    """
    Wrap a filesystem error in our custom exception hierarchy.

    Args:
        exc: The original exception
        source: Path being read when the error occurred
        destination: Path being written when the error occurred

    Returns:
        ReplicationError: Wrapped exception with the paths as context
    """
    return ReplicationError(
        f"Filesystem operation failed: {exc.strerror or exc}",
        source=source,
        destination=destination,
        cause=exc,
    )
