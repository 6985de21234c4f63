"""Version information for sbomgraph."""
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version


def get_version() -> str:
    """Installed distribution version, or a dev marker when running from a checkout."""
    try:
        return version('sbomgraph')
    except PackageNotFoundError:
        return '0.0.0-dev'


__version__ = get_version()
