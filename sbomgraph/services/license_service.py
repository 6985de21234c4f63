"""
License resolution for dependencies.

Sources are tried in order and the first hit wins:

1. Local Gradle module cache (POM files)
2. Maven Central
3. Google Maven
4. GitHub license API (externally pinned dependencies only)

Every source has the same signature, ``DependencyNode -> LicenseRecord | None``,
and never raises: network and parse failures fall through to the next source.
"""
import re
import threading
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Sequence
from concurrent.futures import as_completed
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import requests
import structlog
from ratelimit import limits
from ratelimit import RateLimitException

from sbomgraph.core.client import get_http_client
from sbomgraph.core.config import PathConfig
from sbomgraph.core.config import RegistryConfig
from sbomgraph.core.pom import parse_pom_file
from sbomgraph.core.pom import parse_pom_license
from sbomgraph.core.stats import LicenseStats
from sbomgraph.core.validation import is_valid_coordinate
from sbomgraph.core.validation import is_valid_repository_identifier
from sbomgraph.models.dependency import DependencyNode
from sbomgraph.models.license import LicenseRecord

logger = structlog.get_logger('license_service')

LicenseStrategy = Callable[[DependencyNode], LicenseRecord | None]

# Unauthenticated GitHub REST quota
GITHUB_CALLS = 60
GITHUB_PERIOD = 3600


def attempt(strategy: LicenseStrategy, dep: DependencyNode) -> LicenseRecord | None:
    """Run one source, degrading any failure to None."""
    try:
        return strategy(dep)
    except Exception as e:
        logger.debug(
            'License source failed', source=_source_name(strategy),
            dependency=dep.id, error=str(e),
        )
        return None


def first_license(strategies: Sequence[LicenseStrategy]) -> LicenseStrategy:
    """Combine strategies; the first non-None result wins."""
    def resolve(dep: DependencyNode) -> LicenseRecord | None:
        for strategy in strategies:
            record = attempt(strategy, dep)
            if record is not None:
                return record
        return None
    return resolve


def _source_name(strategy: LicenseStrategy) -> str:
    return getattr(strategy, 'name', type(strategy).__name__)


class LocalCacheLicenseSource:
    """Looks for the POM in the local Gradle module cache."""
    name = 'local-cache'

    def __init__(self, paths: PathConfig):
        self.paths = paths

    def find_pom(self, dep: DependencyNode) -> Path | None:
        pom_dir = self.paths.get_descriptor_dir(dep.group, dep.name, dep.version)
        if not pom_dir.is_dir():
            logger.debug('POM directory not found', dependency=dep.id, path=str(pom_dir))
            return None

        entries = sorted(pom_dir.iterdir())
        for entry in entries:
            if entry.is_file() and entry.suffix == '.pom':
                return entry

        # Gradle stores files in hash subdirectories
        for entry in entries:
            if entry.is_dir():
                for candidate in sorted(entry.iterdir()):
                    if candidate.is_file() and candidate.suffix == '.pom':
                        return candidate

        logger.debug('No POM file in cache', dependency=dep.id, path=str(pom_dir))
        return None

    def __call__(self, dep: DependencyNode) -> LicenseRecord | None:
        if dep.externally_pinned:
            return None
        pom_file = self.find_pom(dep)
        if pom_file is None:
            return None
        return parse_pom_file(pom_file)


class RemoteRegistryLicenseSource:
    """Fetches the POM from a Maven-layout repository."""

    def __init__(self, name: str, base_url: str, session: requests.Session, timeout: tuple[float, float]):
        self.name = name
        self.base_url = base_url.rstrip('/')
        self.session = session
        self.timeout = timeout

    def build_url(self, dep: DependencyNode) -> str | None:
        if not all(is_valid_coordinate(part) for part in (dep.group, dep.name, dep.version)):
            logger.debug('Invalid Maven coordinates', dependency=dep.id)
            return None
        group_path = dep.group.replace('.', '/')
        return f"{self.base_url}/{group_path}/{dep.name}/{dep.version}/{dep.name}-{dep.version}.pom"

    def __call__(self, dep: DependencyNode) -> LicenseRecord | None:
        if dep.externally_pinned:
            return None
        url = self.build_url(dep)
        if url is None:
            return None

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug('Network error fetching POM', url=url, error=str(e))
            return None

        if response.status_code != 200:
            logger.debug('POM not available', url=url, status=response.status_code)
            return None
        return parse_pom_license(response.content)


class GitHubLicenseSource:
    """Asks the GitHub license API about the repository of a pinned dependency."""
    name = 'github'

    def __init__(self, api_url: str, session: requests.Session, timeout: tuple[float, float]):
        self.api_url = api_url.rstrip('/')
        self.session = session
        self.timeout = timeout

    @staticmethod
    def repository_path(location: str | None) -> tuple[str, str] | None:
        """Extract (owner, repo) from a GitHub repository URL."""
        if not location or 'github.com' not in location.lower():
            return None
        path = location.strip().removesuffix('/').removesuffix('.git')
        path = re.split(r'github\.com', path, maxsplit=1, flags=re.IGNORECASE)[1].lstrip('/:')
        parts = path.split('/')
        if len(parts) < 2:
            return None
        owner, repo = parts[0], parts[1]
        if not (is_valid_repository_identifier(owner) and is_valid_repository_identifier(repo)):
            return None
        return owner, repo

    @limits(calls=GITHUB_CALLS, period=GITHUB_PERIOD)
    def _get_license(self, owner: str, repo: str) -> requests.Response:
        return self.session.get(
            f"{self.api_url}/repos/{owner}/{repo}/license",
            headers={'Accept': 'application/vnd.github.v3+json'},
            timeout=self.timeout,
        )

    def __call__(self, dep: DependencyNode) -> LicenseRecord | None:
        if not dep.externally_pinned:
            return None
        repository = self.repository_path(dep.location)
        if repository is None:
            logger.debug('No usable GitHub repository', dependency=dep.id, location=dep.location)
            return None

        try:
            response = self._get_license(*repository)
        except RateLimitException:
            logger.warning('GitHub license lookups rate limited', dependency=dep.id)
            return None
        except requests.RequestException as e:
            logger.debug('Network error fetching GitHub license', dependency=dep.id, error=str(e))
            return None

        if response.status_code != 200:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None

        license_data = payload.get('license') if isinstance(payload, dict) else None
        spdx_id = (license_data or {}).get('spdx_id')
        if not spdx_id or spdx_id == 'NOASSERTION':
            return None
        return LicenseRecord(id=spdx_id, name=license_data.get('name') or spdx_id, url=None)


class LicenseResolver:
    """
    Resolves the license of each dependency once per generation run.

    Use as a context manager so the HTTP session is released at the end
    of the run.
    """

    def __init__(
        self,
        strategies: Sequence[LicenseStrategy],
        session: requests.Session | None = None,
        stats: LicenseStats | None = None,
    ):
        self.strategies = list(strategies)
        self.session = session
        self.stats = stats or LicenseStats()
        self._cache: dict[str, LicenseRecord | None] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, paths: PathConfig, registry: RegistryConfig) -> 'LicenseResolver':
        session = get_http_client(retries=registry.retries, pool_size=registry.pool_size)
        strategies: list[LicenseStrategy] = [
            LocalCacheLicenseSource(paths),
            RemoteRegistryLicenseSource('maven-central', registry.primary_url, session, registry.timeout),
            RemoteRegistryLicenseSource('google-maven', registry.secondary_url, session, registry.timeout),
            GitHubLicenseSource(registry.github_api_url, session, registry.timeout),
        ]
        return cls(strategies, session=session)

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def resolve(self, dep: DependencyNode) -> LicenseRecord | None:
        with self._lock:
            if dep.id in self._cache:
                return self._cache[dep.id]

        record = None
        source = None
        for strategy in self.strategies:
            record = attempt(strategy, dep)
            if record is not None:
                source = _source_name(strategy)
                break

        with self._lock:
            self._cache[dep.id] = record
        if record is None:
            self.stats.inc_unresolved()
            logger.info('Unable to resolve license from any source', dependency=dep.id)
        else:
            self.stats.inc_resolved(source)
            logger.debug('License resolved', dependency=dep.id, license=record.id, source=source)
        return record

    def resolve_all(self, deps: Iterable[DependencyNode], workers: int = 8) -> dict[str, LicenseRecord | None]:
        """Resolve many dependencies concurrently; keys follow input order."""
        deps = list(deps)
        self.stats.total += len(deps)
        results: dict[str, LicenseRecord | None] = {dep.id: None for dep in deps}

        with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
            futures = {executor.submit(self.resolve, dep): dep for dep in deps}
            for future in as_completed(futures):
                dep = futures[future]
                try:
                    results[dep.id] = future.result()
                except Exception as e:
                    logger.error('Error in worker thread during license resolution', dependency=dep.id, error=str(e))
                    self.stats.inc_failed()

        logger.info(
            'License resolution complete', total=len(deps),
            resolved=self.stats.resolved, unresolved=self.stats.unresolved,
            sources=dict(self.stats.sources), elapsed=f"{self.stats.elapsed_time:.2f}s",
        )
        return results
