"""Reads externally pinned dependencies from a Package.resolved file."""
import json
from pathlib import Path
from typing import Any

import structlog

from sbomgraph.models.dependency import DependencyNode
from sbomgraph.models.pinned_package import PinnedPackage

logger = structlog.get_logger('pinned_service')


def _parse_pin(pin: Any) -> PinnedPackage | None:
    if not isinstance(pin, dict):
        return None
    identity = pin.get('identity') or pin.get('package')
    location = pin.get('location') or pin.get('repositoryURL')
    state = pin.get('state')
    if not identity or not location or not isinstance(state, dict):
        return None
    return PinnedPackage(
        identity=identity,
        location=location,
        version=state.get('version') or 'unknown',
        revision=state.get('revision'),
        kind=pin.get('kind') or 'remoteSourceControl',
    )


def parse_package_resolved(path: Path) -> list[PinnedPackage]:
    """
    Parse both Package.resolved layouts: top-level ``pins`` (v2/v3) and
    ``object.pins`` (v1). Malformed files yield no packages.
    """
    if not path.is_file():
        logger.debug('Package.resolved not found', path=str(path))
        return []

    try:
        with open(path, encoding='utf-8') as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning('Failed to parse Package.resolved', path=str(path), error=str(e))
        return []

    if not isinstance(document, dict):
        logger.warning('Unexpected Package.resolved layout', path=str(path))
        return []

    if 'pins' in document:
        pins = document.get('pins')
    else:
        wrapper = document.get('object')
        pins = wrapper.get('pins') if isinstance(wrapper, dict) else None

    if pins is None:
        pins = []
    if not isinstance(pins, list):
        logger.warning('Unexpected pins value in Package.resolved', path=str(path), type=type(pins).__name__)
        return []

    packages = []
    for pin in pins:
        try:
            package = _parse_pin(pin)
        except ValueError as e:
            logger.warning('Failed to parse Swift package pin', error=str(e))
            continue
        if package is not None:
            packages.append(package)

    logger.info('Parsed pinned dependencies', path=str(path), packages=len(packages))
    return packages


def collect_pinned_dependencies(path: Path) -> list[DependencyNode]:
    return [package.to_dependency_node() for package in parse_package_resolved(path)]
