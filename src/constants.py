"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    FALLBACK_ERROR = 4
    INTERRUPTED = 130


class PackageManagers(Enum):
    """External package managers used for fallback installs.

    Args:
        Enum (string): Package managers supported by the program.
    """

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    Values may be overridden at startup by cli_config.apply_config().
    """

    SUPPORTED_PACKAGE_MANAGERS = [
        PackageManagers.NPM.value,
        PackageManagers.YARN.value,
        PackageManagers.PNPM.value,
    ]
    DEFAULT_PACKAGE_MANAGER = PackageManagers.NPM.value
    INSTALL_COMMANDS = {
        PackageManagers.NPM.value: ["install"],
        PackageManagers.YARN.value: ["add"],
        PackageManagers.PNPM.value: ["add"],
    }

    PACKAGE_JSON_FILE = "package.json"
    INSTALL_DIR_NAME = "node_modules"
    # Order matters: earlier groups win on name collisions.
    DEPENDENCY_GROUPS = ["dependencies", "devDependencies", "peerDependencies"]
    RANGE_MARKERS = ("^", "~")
    EXCLUDED_DIRS = ["tmp", "dist", "build", "coverage", "test"]

    BATCH_SIZE = 50
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "LOCALPM_LOG_LEVEL"
    CONFIG_SECTION = "localpm"
