import hashlib
from pathlib import Path

import structlog

from sbomgraph.core.client import get_http_client
from sbomgraph.core.config import get_config
from sbomgraph.core.config import SbomGraphConfig
from sbomgraph.core.stats import TraversalStats
from sbomgraph.models.bom import BillOfMaterials
from sbomgraph.models.bom import Component
from sbomgraph.models.dependency import DependencyCollectionResult
from sbomgraph.models.dependency import DependencyNode
from sbomgraph.models.license import LicenseRecord
from sbomgraph.models.resolution import Module
from sbomgraph.services.collector_service import GraphCollector
from sbomgraph.services.license_service import LicenseResolver
from sbomgraph.services.module_service import ModuleClosureFinder
from sbomgraph.services.pinned_service import collect_pinned_dependencies
from sbomgraph.services.scope_service import ScopeSelection
from sbomgraph.services.scope_service import select_scopes_for_modules
from sbomgraph.services.vulnerability_service import VulnerabilityScanner

logger = structlog.get_logger('sbom_service')


def calculate_sha256(file_path: Path) -> str | None:
    hasher = hashlib.sha256()
    try:
        with open(file_path, 'rb') as f:
            while chunk := f.read(8192):
                hasher.update(chunk)
    except OSError as e:
        logger.debug('Could not hash artifact', path=str(file_path), error=str(e))
        return None
    return hasher.hexdigest()


def is_ios_target(target: str) -> bool:
    return 'ios' in target.lower()


class SbomService:
    """Runs one generation: modules -> scopes -> graph -> licenses -> vulnerabilities."""

    def __init__(
        self,
        config: SbomGraphConfig | None = None,
        resolver: LicenseResolver | None = None,
        scanner: VulnerabilityScanner | None = None,
    ):
        self.config = config or get_config()
        self._resolver = resolver
        self._scanner = scanner

    def collect(self, root: Module, selection: ScopeSelection) -> DependencyCollectionResult:
        modules = ModuleClosureFinder().find(root)
        scopes = select_scopes_for_modules(modules, selection)
        logger.info(
            'Collecting dependencies', target=selection.target,
            modules=len(modules), scopes=len(scopes),
        )
        result = GraphCollector().collect(scopes, TraversalStats())

        pinned_path = self.config.paths.package_resolved_path
        if is_ios_target(selection.target) and pinned_path is not None:
            self._add_pinned(result, pinned_path)
        return result

    @staticmethod
    def _add_pinned(result: DependencyCollectionResult, path: Path) -> None:
        known = set(result.ids)
        added = 0
        for node in collect_pinned_dependencies(path):
            if node.id in known:
                continue
            known.add(node.id)
            result.dependencies.append(node)
            result.graph.setdefault(node.id, [])
            added += 1
        logger.info('Added externally pinned dependencies', count=added, path=str(path))

    def resolve_licenses(self, dependencies: list[DependencyNode]) -> dict[str, LicenseRecord | None]:
        if self._resolver is not None:
            return self._resolver.resolve_all(dependencies, self.config.scan.workers)
        with LicenseResolver.from_config(self.config.paths, self.config.registry) as resolver:
            return resolver.resolve_all(dependencies, self.config.scan.workers)

    def scan_vulnerabilities(self, components: list[Component]):
        if self._scanner is not None:
            return self._scanner.scan(components)
        registry = self.config.registry
        session = get_http_client(retries=registry.retries, pool_size=registry.pool_size)
        try:
            return VulnerabilityScanner(session, registry.ossindex_url, registry.timeout).scan(components)
        finally:
            session.close()

    def generate(self, root: Module, selection: ScopeSelection, name: str = '') -> BillOfMaterials:
        result = self.collect(root, selection)

        licenses: dict[str, LicenseRecord | None] = {}
        if self.config.scan.include_licenses:
            licenses = self.resolve_licenses(result.dependencies)

        components = []
        for dep in result.dependencies:
            license_record = licenses.get(dep.id)
            components.append(
                Component(
                    bom_ref=dep.id,
                    group=dep.group,
                    name=dep.name,
                    version=dep.version,
                    purl=dep.purl,
                    licenses=[license_record] if license_record else [],
                    sha256=calculate_sha256(dep.file) if dep.file is not None and dep.file.is_file() else None,
                ),
            )

        vulnerabilities = []
        if self.config.scan.enable_vulnerability_scanning:
            vulnerabilities = self.scan_vulnerabilities(components)

        logger.info(
            'SBOM generation complete', target=selection.target,
            components=len(components), vulnerabilities=len(vulnerabilities),
        )
        return BillOfMaterials(
            name=name or root.path,
            target=selection.target,
            components=components,
            graph=result.graph,
            vulnerabilities=vulnerabilities,
        )
