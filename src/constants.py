"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    UNSUPPORTED_VERSION = 2


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Runtime identity
    RUNTIME_VERSION = "1.3.5"
    BUILTIN_SCALA_VERSIONS = ["2.13.14"]

    # Artifact coordinates
    MTAGS_GROUP_ID = "org.scalameta"
    MTAGS_ARTIFACT_PREFIX = "mtags_"
    REPOSITORIES = [
        "https://repo1.maven.org/maven2/",
        "https://oss.sonatype.org/content/repositories/snapshots/",
    ]
    SNAPSHOT_INDEX_URL = "https://oss.sonatype.org/content/repositories/snapshots/org/scalameta/"
    ARTIFACT_CACHE_DIR = os.path.join(os.path.expanduser("~"), ".cache", "mtags-resolver")

    # Nightly markers
    NIGHTLY_MARKER = "NIGHTLY"
    NONBOOTSTRAPPED_MARKER = "nonbootstrapped"

    # Removed Scala versions, pointing to the last runtime version that supported them.
    REMOVED_VERSIONS = {
        "2.13.1": "0.11.10",
        "2.13.2": "0.11.10",
        "2.13.3": "0.11.12",
        "2.12.9": "0.11.10",
        "2.12.10": "0.11.12",
        "3.0.0": "0.11.10",
        "3.0.1": "0.11.10",
        "3.2.2-RC1": "0.11.10",
    }

    # Retry policy
    MAX_TRIES_IN_A_ROW = 2
    RETRY_COOLDOWN_SEC = 300

    # HTTP
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    USER_AGENT = "mtags-resolver/1.0"

    # Logging
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "MTAGS_RESOLVER_LOG_LEVEL"

    # Configuration
    ENV_PREFIX = "MTAGS_RESOLVER_"
    CONFIG_SECTION = "resolver"
    DEFAULT_CONFIG_PATHS = [
        "mtags-resolver.yml",
        "mtags-resolver.yaml",
        os.path.join(os.path.expanduser("~"), ".config", "mtags-resolver", "config.yml"),
    ]
