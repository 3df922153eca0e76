"""Data models for local package discovery."""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class DependencySpec:
    """A requested package, optionally pinned to an exact version."""
    name: str
    version_constraint: Optional[str] = None

    @property
    def identifier(self) -> str:
        """Render back to the ``name`` / ``name@version`` form."""
        if self.version_constraint:
            return f"{self.name}@{self.version_constraint}"
        return self.name

    @property
    def is_constrained(self) -> bool:
        return bool(self.version_constraint)


@dataclass(frozen=True)
class ManifestRecord:
    """Merged dependency declarations of one manifest file."""
    path: str
    dependencies: Dict[str, str]


@dataclass(frozen=True)
class Candidate:
    """A concrete installation of a dependency found next to some manifest."""
    dependency_name: str
    version: str  # range markers stripped
    source_directory: str
    declared_version: str  # raw string from the manifest


@dataclass(frozen=True)
class ResolutionResult:
    """The single chosen source for one dependency name."""
    dependency: str
    path: str
    version: str
