"""Constants shared across gitdeliver.

Contains:
- Git object constants (file mode)
- Repository conventions (quarantine folder, ignore file name)
- Delivery defaults (head branch, server root)
- GitHub API settings and environment variable names
"""

# Mode used for every blob written to a tree: regular, non-executable file
FILE_MODE = "100644"

# Ignored modules are relocated under this folder instead of their real path
QUARANTINE_FOLDER = ".amplication/ignored"

# Ignore declaration read from the root of the target repository
IGNORE_FILE_NAME = ".amplicationignore"

# Delivery defaults
DEFAULT_HEAD_BRANCH = "amplication"
DEFAULT_SERVER_ROOT = "server"

# GitHub REST API
DEFAULT_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
REQUEST_TIMEOUT = 30.0

# Environment variables
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"
GITHUB_API_URL_ENV_VAR = "GITHUB_API_URL"
