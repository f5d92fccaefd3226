"""Generated-code delivery to GitHub repositories."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gitdeliver")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"
