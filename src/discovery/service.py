"""Discovery pipeline: crawl roots, match manifests, resolve versions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from discovery.crawler import ManifestCrawler, default_roots
from discovery.matcher import DependencyMatcher
from discovery.models import DependencySpec, ResolutionResult
from discovery.resolver import VersionResolver
from install.cancellation import CancellationToken
from install.local_state import LocalState

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryOutcome:
    """Resolved results plus the names skipped because they are already local."""
    results: List[ResolutionResult] = field(default_factory=list)
    satisfied: List[str] = field(default_factory=list)
    manifest_count: int = 0


class DiscoveryService:
    """Wire crawler, matcher and resolver together for one run."""

    def __init__(
        self,
        crawler: Optional[ManifestCrawler] = None,
        matcher: Optional[DependencyMatcher] = None,
        resolver: Optional[VersionResolver] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.crawler = crawler or ManifestCrawler(token=token)
        self.matcher = matcher or DependencyMatcher(install_dir_name=self.crawler.install_dir_name)
        self.resolver = resolver or VersionResolver()

    async def discover(
        self,
        specs: Sequence[DependencySpec],
        state: LocalState,
        custom_root: Optional[str] = None,
    ) -> DiscoveryOutcome:
        outcome = DiscoveryOutcome()
        pending = []
        for spec in specs:
            if state.is_satisfied(spec.name):
                logger.info("%s is already installed locally", spec.name)
                outcome.satisfied.append(spec.name)
            else:
                pending.append(spec)
        if not pending:
            return outcome

        roots = default_roots(custom_root)
        logger.info("Scanning %s for dependencies", ", ".join(roots))
        manifests = await self.crawler.crawl(roots)
        outcome.manifest_count = len(manifests)

        candidates = await self.matcher.match(manifests, pending)
        outcome.results = self.resolver.resolve(pending, candidates)
        return outcome
