"""Argument parsing functionality for localpm."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="localpm",
        description=(
            "localpm - Install npm packages from copies already on this machine"
        ),
        epilog=(
            "examples:\n"
            "  localpm react@17.0.2 react-dom\n"
            "  localpm lodash --root-path /path/to/projects\n"
            "  localpm express --package-manager yarn"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=True,
    )

    parser.add_argument("packages",
                        metavar="PACKAGE",
                        help="Dependencies to install (name or name@version). "
                             "Defaults to the dependencies of ./package.json",
                        nargs="*",
                        default=[])
    parser.add_argument("-r", "--root-path",
                        dest="ROOT_PATH",
                        help="Custom root directory to scan for packages",
                        action="store",
                        type=str)
    parser.add_argument("-p", "--package-manager",
                        dest="PACKAGE_MANAGER",
                        help="Package manager used for packages not found locally",
                        action="store",
                        type=str,
                        choices=Constants.SUPPORTED_PACKAGE_MANAGERS,
                        default=None)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only log errors.",
                        action="store_true")

    return parser.parse_args(argv)
