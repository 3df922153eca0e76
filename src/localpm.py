"""localpm - offline-first installer for npm packages.

Reuses copies of the requested packages that already exist somewhere on this
machine and falls back to npm/yarn/pnpm for the rest.

    Returns:
        int: Exit code
"""
import asyncio
import logging
import sys

from args import parse_args
from cli_config import apply_config, load_config
from common.errors import FallbackProcessError
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from discovery.parser import parse_specs, specs_from_manifest
from discovery.service import DiscoveryService
from install.cancellation import CancellationToken, install_signal_handlers
from install.fallback import FallbackDispatcher, compute_remainder
from install.installer import CacheInstaller
from install.local_state import LocalState

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    level = "ERROR" if args.QUIET else args.LOG_LEVEL
    configure_logging(level)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)
        logger.info("Logging to file: %s", args.LOG_FILE)


def build_request_tokens(args, state):
    """Return the identifiers to install, or None when there is no input.

    Positional arguments win; otherwise the local manifest's dependencies are
    used.
    """
    if args.packages:
        return list(args.packages)
    if not state.manifest_exists:
        return None
    tokens = specs_from_manifest(state.dependencies)
    if tokens:
        logger.info("Found dependencies in %s:", Constants.PACKAGE_JSON_FILE)
        for tok in tokens:
            logger.info("  %s", tok)
    return tokens


def run(argv=None, project_dir=None, token=None):
    """Run one install pass and return the exit code."""
    args = parse_args(argv)
    _setup_logging(args)

    config = load_config(args.CONFIG)
    if config:
        apply_config(config)
        logger.info("Loaded config from: %s", args.CONFIG)
    package_manager = args.PACKAGE_MANAGER or Constants.DEFAULT_PACKAGE_MANAGER

    if token is None:
        token = CancellationToken()
        install_signal_handlers(token)

    state = LocalState.load(project_dir)
    tokens = build_request_tokens(args, state)
    if tokens is None:
        logger.error("No %s found and no packages specified", Constants.PACKAGE_JSON_FILE)
        return ExitCodes.FILE_ERROR.value
    if not tokens:
        logger.warning("No dependencies found in %s", Constants.PACKAGE_JSON_FILE)
        return ExitCodes.SUCCESS.value

    try:
        specs = parse_specs(tokens)
    except ValueError as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR.value

    if is_debug_enabled(logger):
        logger.debug(
            "Requests built",
            extra=extra_context(
                event="decision",
                component="cli",
                action="parse_specs",
                count=len(specs),
                package_manager=package_manager,
            ),
        )

    logger.info("Searching for packages in local cache...")
    service = DiscoveryService(token=token)
    outcome = asyncio.run(service.discover(specs, state, args.ROOT_PATH))

    dispatcher = FallbackDispatcher(package_manager, token)
    try:
        if not outcome.results:
            remainder = compute_remainder(specs, [], outcome.satisfied)
            if remainder:
                logger.info("No packages found in cache, falling back to %s...", package_manager)
            dispatcher.dispatch_specs(remainder)
            return ExitCodes.SUCCESS.value

        logger.info("Found packages in cache:")
        for result in outcome.results:
            logger.info("  %s@%s (%s)", result.dependency, result.version, result.path)

        report = CacheInstaller().install(outcome.results, state)
        if report.failed:
            logger.warning("Could not install from cache: %s", ", ".join(report.failed))

        dispatcher.dispatch_specs(compute_remainder(specs, outcome.results, outcome.satisfied))
    except FallbackProcessError as e:
        logger.error("Installation failed: %s", e)
        return ExitCodes.FALLBACK_ERROR.value

    return ExitCodes.SUCCESS.value


def main():
    """Main function of the program."""
    sys.exit(run())


if __name__ == "__main__":
    main()
