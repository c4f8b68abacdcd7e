"""
Constants and configuration values for releasefetch.

This module contains the hardcoded values, URL templates, timeouts and other
constants used throughout the application.
"""

# Release host and API URLs
DEFAULT_RELEASE_HOST = "github.com"
API_HOST_PREFIX = "api."
RELEASE_BY_TAG_PATH = "/repos/{owner}/{repo}/releases/tags/{tag}"

# Request headers
GITHUB_API_ACCEPT = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"
ASSET_ACCEPT = "application/octet-stream"

# Network timeouts (in seconds)
GITHUB_API_TIMEOUT = 10
DEFAULT_REQUEST_TIMEOUT = 30

# Download settings
DEFAULT_CHUNK_SIZE = 8192
HASH_READ_CHUNK_SIZE = 4096
SHA256_HEX_LENGTH = 64
DEFAULT_RETRIES = 0
RETRY_BACKOFF_SECONDS = 1.0

# Environment variable names
TOKEN_ENV_VAR = "GITHUB_TOKEN"
LOG_LEVEL_ENV_VAR = "RELEASEFETCH_LOG_LEVEL"

# Configuration file names
APP_NAME = "releasefetch"
CONFIG_FILE_NAME = "config.yaml"
DOWNLOADS_DIR_NAME = "downloads"

# Logging configuration
LOGGER_NAME = "releasefetch"
LOG_FILE_NAME = "releasefetch.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Platform key normalization for manifests
OS_ALIASES = {
    "darwin": "darwin",
    "macos": "darwin",
    "linux": "linux",
    "windows": "windows",
}
ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8": "arm64",
    "i386": "386",
    "i686": "386",
}

# User-facing remediation text for a missing credential
MISSING_TOKEN_HELP = """\
To fix this:
1. Create a Personal Access Token at: https://github.com/settings/tokens
2. Grant it 'repo' scope for private repository access
3. Set the environment variable:
   export {env_var}=your_token_here
4. Add to your shell profile for persistence:
   echo 'export {env_var}=your_token_here' >> ~/.zshrc

Then try again."""
