"""Match requested specs against dependencies declared in discovered manifests."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Dict, List, Optional, Sequence

from common.errors import ManifestParseError, StaleCandidateError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from discovery.models import Candidate, DependencySpec, ManifestRecord
from discovery.parser import merge_dependency_groups, normalize_version

logger = logging.getLogger(__name__)

CandidateMap = Dict[str, List[Candidate]]


def load_manifest(path: str) -> ManifestRecord:
    """Read a manifest and merge its dependency groups.

    Raises:
        ManifestParseError: If the file cannot be read, is not valid JSON, or
            does not contain a JSON object.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestParseError(path, str(e)) from e
    if not isinstance(data, dict):
        raise ManifestParseError(path, "top-level value is not an object")
    return ManifestRecord(path=path, dependencies=merge_dependency_groups(data))


class DependencyMatcher:
    """Produce Candidates from manifests, in bounded concurrent batches."""

    def __init__(self, batch_size: Optional[int] = None, install_dir_name: Optional[str] = None):
        self.batch_size = max(1, batch_size or Constants.BATCH_SIZE)
        self.install_dir_name = install_dir_name or Constants.INSTALL_DIR_NAME

    def is_nested_install_path(self, path: str) -> bool:
        """True for paths inside an install directory inside another one."""
        parts = os.path.normpath(path).split(os.sep)
        return parts.count(self.install_dir_name) > 1

    def _check_candidate(self, record: ManifestRecord, spec: DependencySpec) -> Optional[Candidate]:
        declared = record.dependencies.get(spec.name)
        if declared is None:
            return None
        if spec.is_constrained and declared != spec.version_constraint:
            return None
        source = os.path.join(os.path.dirname(record.path), self.install_dir_name, spec.name)
        if not os.path.isdir(source):
            raise StaleCandidateError(spec.name, source)
        return Candidate(
            dependency_name=spec.name,
            version=normalize_version(declared),
            source_directory=source,
            declared_version=declared,
        )

    def match_manifest(self, path: str, specs: Sequence[DependencySpec]) -> List[Candidate]:
        """Return the candidates one manifest contributes for ``specs``.

        Parse failures are logged and contribute nothing.
        """
        if self.is_nested_install_path(path):
            return []
        try:
            record = load_manifest(path)
        except ManifestParseError as e:
            logger.warning("%s", e)
            return []

        matches: List[Candidate] = []
        for spec in specs:
            try:
                candidate = self._check_candidate(record, spec)
            except StaleCandidateError as e:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Stale candidate excluded",
                        extra=extra_context(
                            event="stale_candidate",
                            component="matcher",
                            target=e.path,
                            dependency=e.dependency,
                        ),
                    )
                continue
            if candidate is not None:
                matches.append(candidate)
        return matches

    async def match(self, manifest_paths: Sequence[str], specs: Sequence[DependencySpec]) -> CandidateMap:
        """Collect candidates for ``specs`` across ``manifest_paths``.

        Manifests are processed in batches of ``batch_size``: the manifests of
        one batch are read concurrently, batches run one after another and
        their results are merged into the shared map between batches.

        A constrained spec stops being searched for after the batch in which
        its first exact match was merged. Unconstrained specs are searched in
        every batch because the best version needs every candidate. Once no
        spec is left to search for, remaining batches are skipped.
        """
        candidates: CandidateMap = {spec.name: [] for spec in specs}
        seen = set()
        pending = list(specs)
        total = len(manifest_paths)
        processed = 0

        for start in range(0, total, self.batch_size):
            if not pending:
                logger.debug("All requested versions found, skipping remaining manifests")
                break
            batch = manifest_paths[start:start + self.batch_size]
            batch_specs = tuple(pending)
            batch_results = await asyncio.gather(
                *(asyncio.to_thread(self.match_manifest, path, batch_specs) for path in batch)
            )

            for matches in batch_results:
                for candidate in matches:
                    key = (candidate.dependency_name, candidate.declared_version)
                    if key in seen:
                        continue
                    seen.add(key)
                    candidates[candidate.dependency_name].append(candidate)

            pending = [
                s for s in pending if not (s.is_constrained and candidates[s.name])
            ]
            processed += len(batch)
            logger.debug("Analyzed %d/%d manifests", processed, total)

        logger.info("Package analysis complete")
        return candidates
