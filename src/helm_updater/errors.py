"""Exception hierarchy.

Everything except ConfigError is recovered at the granularity of a single
dependency or a single manifest file.
"""

from __future__ import annotations


class HelmUpdaterError(Exception):
    """Base class for all helm-updater errors."""


class ConfigError(HelmUpdaterError):
    """Configuration could not be loaded or failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors))


class TransientFetchError(HelmUpdaterError):
    """Network, timeout, HTTP or payload error talking to a version source."""

    def __init__(self, url: str, message: str, chart_name: str | None = None):
        self.url = url
        self.chart_name = chart_name
        super().__init__(message)


class AuthenticationError(TransientFetchError):
    """The version source rejected our (possibly missing) credentials."""


class UnparsableVersion(HelmUpdaterError):
    """A version string is not a semantic version."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Unparsable version: {version!r}")


class StructuralPathNotFound(HelmUpdaterError):
    """A structural path does not resolve in the document or in its text."""

    def __init__(self, path: tuple[str, ...], document_index: int, reason: str = ""):
        self.path = path
        self.document_index = document_index
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Could not find field at path {'.'.join(path)} in document {document_index}{detail}"
        )


class PostMutationValidationFailure(HelmUpdaterError):
    """Mutated manifest text no longer parses, or changed more than intended."""
