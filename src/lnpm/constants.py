"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1
    INTERRUPTED = 130


class PackageManagers(Enum):
    """Package managers lnpm can delegate the install step to.

    Args:
        Enum (string): Package manager executable names.
    """

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    PACKUMENT_ACCEPT = (
        "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"
    )
    MANIFEST_ACCEPT = "application/json"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests

    PACKAGE_JSON_FILE = "package.json"
    YARN_LOCK_FILE = "yarn.lock"
    PNPM_LOCK_FILE = "pnpm-lock.yaml"

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"

    DEV_PREFIX = "dev:"
    LATEST_TAG = "latest"
    DEFAULT_VERSION_SPEC = "*"
    TYPES_SCOPE = "@types"
    TYPED_PROJECT_MARKERS = ["typescript", "ts-node"]
    TYPE_DECLARATION_FIELDS = ["types", "typings"]

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    DEFAULT_LOG_LEVEL = "WARNING"
    ENV_LOG_LEVEL = "LNPM_LOG_LEVEL"
    ENV_REGISTRY = "LNPM_REGISTRY"
    ENV_NPM_REGISTRY = "npm_config_registry"
