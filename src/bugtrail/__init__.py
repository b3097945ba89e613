"""bugtrail — local-first bug tracker with a filtered query and analytics engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bugtrail")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from bugtrail.core import Bug, BugTrailDB, User

__all__ = ["Bug", "BugTrailDB", "User", "__version__"]
