"""Pick one candidate per requested dependency using semantic versioning."""

import logging
import os
from typing import List, Mapping, Optional, Sequence

from discovery.models import Candidate, DependencySpec, ResolutionResult
from discovery.parser import parse_semver

logger = logging.getLogger(__name__)


class VersionResolver:
    """Collapse discovered candidates to at most one result per dependency."""

    def pick(self, spec: DependencySpec, candidates: Sequence[Candidate]) -> Optional[Candidate]:
        """Select the candidate to reuse for ``spec``.

        Constrained specs take the first candidate (the matcher only emits
        exact matches for them). Unconstrained specs take the highest semantic
        version; versions that do not parse rank below every parseable one and
        ties keep the candidate found first. Candidates whose source directory
        no longer exists are ignored.
        """
        usable = [c for c in candidates if os.path.isdir(c.source_directory)]
        if not usable:
            return None
        if spec.is_constrained:
            return usable[0]

        best = usable[0]
        best_version = parse_semver(best.version)
        for candidate in usable[1:]:
            version = parse_semver(candidate.version)
            if version is None:
                continue
            if best_version is None or version > best_version:
                best, best_version = candidate, version
        return best

    def resolve(
        self, specs: Sequence[DependencySpec], candidates: Mapping[str, Sequence[Candidate]]
    ) -> List[ResolutionResult]:
        """Return results in request order, one per resolvable dependency name."""
        results: List[ResolutionResult] = []
        seen = set()
        for spec in specs:
            if spec.name in seen:
                continue
            chosen = self.pick(spec, candidates.get(spec.name, ()))
            if chosen is None:
                continue
            seen.add(spec.name)
            logger.debug(
                "Resolved %s to %s from %d candidate(s)",
                spec.name, chosen.version, len(candidates.get(spec.name, ())),
            )
            results.append(
                ResolutionResult(
                    dependency=spec.name,
                    path=chosen.source_directory,
                    version=chosen.version,
                )
            )
        return results
