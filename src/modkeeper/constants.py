"""
Constants and configuration values for modkeeper.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# Catalog location
DEFAULT_MODLINKS_URL = (
    "https://raw.githubusercontent.com/hk-modding/modlinks/main/ModLinks.xml"
)
DEFAULT_MODLINKS_FILE = "ModLinks.xml"

# Network settings (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 8192
# Connection retries handed to urllib3; status and read failures are never retried.
DEFAULT_CONNECT_RETRIES = 0

# File and directory names
APP_NAME = "modkeeper"
MODS_DIR_NAME = "Mods"
DISABLED_DIR_NAME = "Disabled"
ZIP_EXTENSION = ".zip"
DLL_EXTENSION = ".dll"
DIR_PERMISSIONS = 0o750

# Mods whose install folder holds user data (e.g. skins) that survives reinstalls
DEFAULT_KEEP_USER_DATA = ["Custom Knight"]

# Catalog document layout
MANIFEST_TAG = "Manifest"
MANIFEST_INDENT = "    "
MANIFEST_BLOCK_PATTERN = rb"(?s)<Manifest>.*?</Manifest>"
VERSION_COMPONENTS = 4

# Publishing
VERSION_URL_PATTERN = r"/v(\d+(?:\.\d+)*)/"
NUMERIC_VERSION_PATTERN = r"^\d+(?:\.\d+)*$"
DEPS_NONE_KEYWORD = "none"

# Platform identifiers used by per-platform link sets
PLATFORM_WINDOWS = "windows"
PLATFORM_MAC = "mac"
PLATFORM_LINUX = "linux"
SUPPORTED_PLATFORMS = (PLATFORM_WINDOWS, PLATFORM_MAC, PLATFORM_LINUX)

# Placeholder for installed mods that are not in the catalog
NOT_AVAILABLE = "N/A"

# Logging configuration
LOGGER_NAME = "modkeeper"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "modkeeper.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Configuration file names
CONFIG_FILE_NAME = "modkeeper.yaml"

# Environment variable names
LOG_LEVEL_ENV_VAR = "MODKEEPER_LOG_LEVEL"
INSTALL_DIR_ENV_VAR = "HK15PATH"
MODLINKS_URL_ENV_VAR = "MODLINKSURL"
