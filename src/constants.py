"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    CONNECTION_ERROR = 2
    FILE_ERROR = 1
    EXIT_WARNINGS = 3


class EndpointType(Enum):
    """Package sources supported by the installer.

    Args:
        Enum (string): Endpoint type names as written in specifiers and lock entries.
    """

    NPM = "npm"
    EDP = "edp"
    GITHUB = "github"
    GITLAB = "gitlab"
    LOCAL = "file"
    URL = "url"

    @classmethod
    def from_value(cls, value):
        """Look up an endpoint type by its specifier name (case-insensitive).

        Returns:
            EndpointType or None when the name is unknown.
        """
        if isinstance(value, cls):
            return value
        if not value:
            return None
        value = str(value).strip().lower()
        if value == "local":
            return cls.LOCAL
        for item in cls:
            if item.value == value:
                return item
        return None


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    Values are overridden at startup by cli_config.apply_config_overrides.
    """

    # Endpoints
    DEFAULT_ENDPOINT_TYPE = EndpointType.NPM.value
    DEFAULT_ENDPOINT_VALUE = None
    REGISTRY_URL_NPM = "https://registry.npmjs.org"
    REGISTRY_URL_EDP = "http://edp-registry.baidu.com"
    GITHUB_API_BASE = "https://api.github.com"
    GITHUB_CODELOAD_BASE = "https://codeload.github.com"
    DEFAULT_GITHUB_OWNER = None
    GITHUB_TOKEN = None
    DEFAULT_GITLAB_OWNER = None
    DEFAULT_GITLAB_DOMAIN = "https://gitlab.com"
    DEFAULT_GITLAB_TOKEN = None
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
    ENV_GITLAB_TOKEN = "GITLAB_TOKEN"

    # Project layout
    MANIFEST_FILE = "package.json"
    INSTALL_DIR = "dep"
    SAVE_TARGET_KEY = None
    MODULE_CONFIG_KEY = "requireConfig"
    LOCK_CONFIG_KEY = "lock"
    DEFAULT_MODULE_BASE_URL = "src"
    PACKAGE_META_FILES = ["package.json", "bower.json", "component.json"]
    CONFIG_FILES = [".compkg.yml", ".compkg.yaml", ".compkg.json"]

    # Versions
    LATEST_VERSION_TAGS = ["latest", "stable", "*"]
    DEFAULT_BRANCH = "master"

    # HTTP
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    REPO_API_PER_PAGE = 100

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "COMPKG_LOG_LEVEL"
