"""Token parsing and version normalization utilities."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import semantic_version

from constants import Constants
from discovery.models import DependencySpec


def tokenize_identifier(s: str) -> Tuple[str, Optional[str]]:
    """Return (name, version or None) split at the first '@' past index 0.

    A leading '@' belongs to a scoped package name (``@scope/pkg``) and is
    never treated as the version separator. Names hold no other '@', but
    versions may (``npm:left-pad@1.3.0``, ``git+ssh://git@host/repo.git``).
    """
    s = s.strip()
    idx = s.find("@", 1)
    if idx < 0:
        return s, None
    name = s[:idx].strip()
    version = s[idx + 1:].strip()
    return name, version or None


def parse_spec(token: str) -> DependencySpec:
    """Parse a ``name`` or ``name@version`` token into a DependencySpec.

    Raises:
        ValueError: If the token has no package name.
    """
    name, version = tokenize_identifier(token)
    if not name:
        raise ValueError(f"Invalid dependency identifier: {token!r}")
    return DependencySpec(name=name, version_constraint=version)


def parse_specs(tokens: Iterable[str]) -> List[DependencySpec]:
    """Parse tokens, keeping the first spec for each package name."""
    specs: List[DependencySpec] = []
    seen = set()
    for tok in tokens:
        spec = parse_spec(tok)
        if spec.name in seen:
            continue
        seen.add(spec.name)
        specs.append(spec)
    return specs


def has_range_marker(version: str) -> bool:
    return version.strip().startswith(Constants.RANGE_MARKERS)


def specs_from_manifest(dependencies: Mapping[str, Any]) -> List[str]:
    """Turn a manifest ``dependencies`` mapping into request tokens.

    Range-prefixed versions (``^1.2.0``, ``~1.2.0``) are requested without a
    constraint so the best local copy can be reused; anything else is pinned.
    """
    tokens = []
    for name, version in dependencies.items():
        if not isinstance(version, str) or has_range_marker(version):
            tokens.append(name)
        else:
            tokens.append(f"{name}@{version}")
    return tokens


def normalize_version(raw: str) -> str:
    """Strip surrounding whitespace and leading range markers.

    >>> normalize_version("^1.3.0")
    '1.3.0'
    >>> normalize_version("~0.2")
    '0.2'
    >>> normalize_version("latest")
    'latest'
    """
    return raw.strip().lstrip("".join(Constants.RANGE_MARKERS)).strip()


def parse_semver(raw: str) -> Optional[semantic_version.Version]:
    """Return the semantic version of a normalized version string.

    Partial versions are coerced (``1.2`` -> ``1.2.0``). Strings that are
    not versions at all (``latest``, ``*``, git URLs) yield None.
    """
    cleaned = normalize_version(raw)
    if cleaned.startswith(("v", "=")):
        cleaned = cleaned[1:]
    try:
        return semantic_version.Version.coerce(cleaned)
    except ValueError:
        return None


def merge_dependency_groups(
    manifest: Mapping[str, Any], precedence: Optional[List[str]] = None
) -> Dict[str, str]:
    """Merge dependency groups of a manifest into one name -> version mapping.

    Groups are visited in ``precedence`` order (default: dependencies,
    devDependencies, peerDependencies). On a name collision the first group
    wins. Groups that are missing or not mappings are ignored, as are
    entries whose version is not a string. Returns a new dict.
    """
    merged: Dict[str, str] = {}
    for group in precedence or Constants.DEPENDENCY_GROUPS:
        declared = manifest.get(group)
        if not isinstance(declared, Mapping):
            continue
        for name, version in declared.items():
            if name in merged or not isinstance(version, str):
                continue
            merged[name] = version
    return merged
