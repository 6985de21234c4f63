"""Configuration management for sbomgraph."""
import os
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str) -> set[str]:
    value = os.getenv(name, '')
    return {item.strip() for item in value.split(',') if item.strip()}


@dataclass
class PathConfig:
    """File system locations consumed by a generation run."""
    gradle_user_home: Path = field(
        default_factory=lambda: Path(
            os.getenv('GRADLE_USER_HOME', str(Path.home() / '.gradle')),
        ),
    )
    package_resolved_path: Path | None = field(
        default_factory=lambda: Path(os.environ['SBOMGRAPH_PACKAGE_RESOLVED'])
        if os.getenv('SBOMGRAPH_PACKAGE_RESOLVED') else None,
    )

    @property
    def module_cache_dir(self) -> Path:
        return self.gradle_user_home / 'caches' / 'modules-2' / 'files-2.1'

    def get_descriptor_dir(self, group: str, name: str, version: str) -> Path:
        """Cache directory holding the POM of group:name:version (or hash subdirectories)."""
        return self.module_cache_dir / group / name / version


@dataclass
class RegistryConfig:
    """Remote registries and HTTP client settings."""
    primary_url: str = 'https://repo1.maven.org/maven2'
    secondary_url: str = 'https://dl.google.com/dl/android/maven2'
    github_api_url: str = 'https://api.github.com'
    ossindex_url: str = 'https://ossindex.sonatype.org/api/v3/component-report'
    connect_timeout: float = 10.0
    read_timeout: float = 10.0
    retries: int = 2
    pool_size: int = 16

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


@dataclass
class ScanConfig:
    include_licenses: bool = field(
        default_factory=lambda: _env_flag('SBOMGRAPH_LICENSES', True),
    )
    enable_vulnerability_scanning: bool = field(
        default_factory=lambda: _env_flag('SBOMGRAPH_VULNERABILITY_SCAN', False),
    )
    workers: int = field(
        default_factory=lambda: int(os.getenv('SBOMGRAPH_WORKERS', '8')),
    )


@dataclass
class PolicyConfig:
    """
    Organizational policy.

    ``max_allowed_severity`` of None disables the vulnerability check;
    ``NONE`` means no vulnerability is tolerated.
    """
    allowed_licenses: set[str] = field(
        default_factory=lambda: _env_list('SBOMGRAPH_ALLOWED_LICENSES'),
    )
    max_allowed_severity: str | None = field(
        default_factory=lambda: _normalize_severity_setting(os.getenv('SBOMGRAPH_MAX_SEVERITY')),
    )
    fail_on_violation: str = field(
        default_factory=lambda: os.getenv('SBOMGRAPH_FAIL_ON_VIOLATION', 'NEVER'),
    )


def _normalize_severity_setting(value: str | None) -> str | None:
    if value is None or value.strip().upper() in ('', 'OFF'):
        return None
    return value.strip().upper()


@dataclass
class SbomGraphConfig:
    paths: PathConfig = field(default_factory=PathConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)

    @classmethod
    def load(cls) -> 'SbomGraphConfig':
        return cls()


_config: SbomGraphConfig | None = None


def get_config() -> SbomGraphConfig:
    global _config
    if _config is None:
        _config = SbomGraphConfig.load()
    return _config
