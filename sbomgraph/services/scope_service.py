from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from sbomgraph.models.resolution import Module
from sbomgraph.models.resolution import Scope

logger = structlog.get_logger('scope_service')

# Scopes that never end up in a shipped artifact
BUILD_ONLY_MARKERS = ('compileonly', 'kapt', 'ksp', 'annotationprocessor', 'provided')


@dataclass(frozen=True)
class ScopeSelection:
    """Target platform and the debug/release/test toggles."""
    target: str = 'android'
    include_debug: bool = False
    include_release: bool = True
    include_test: bool = False


def matches_target(scope_name: str, target: str) -> bool:
    name = scope_name.lower()
    target = target.lower()
    if target == 'android':
        return 'android' in name or 'jvm' in name
    if target == 'ios':
        return 'ios' in name
    return target in name


def is_build_only(scope_name: str) -> bool:
    name = scope_name.lower()
    return any(marker in name for marker in BUILD_ONLY_MARKERS)


def is_variant_included(scope_name: str, selection: ScopeSelection) -> bool:
    name = scope_name.lower()
    if 'test' in name:
        return selection.include_test
    if 'debug' in name:
        return selection.include_debug
    if 'release' in name:
        return selection.include_release
    return True


def select_scopes(module: Module, selection: ScopeSelection) -> list[Scope]:
    """Return the scopes of ``module`` eligible for dependency collection."""
    selected = []
    for scope in module.scopes:
        if not scope.can_be_resolved:
            continue
        if not matches_target(scope.name, selection.target):
            continue
        if is_build_only(scope.name):
            logger.debug('Skipping build-time-only scope', module=module.path, scope=scope.name)
            continue
        if is_variant_included(scope.name, selection):
            selected.append(scope)

    logger.debug(
        'Scope selection', module=module.path, target=selection.target,
        total=len(module.scopes), included=[s.name for s in selected],
    )
    return selected


def select_scopes_for_modules(modules: Iterable[Module], selection: ScopeSelection) -> list[Scope]:
    scopes: list[Scope] = []
    for module in modules:
        scopes.extend(select_scopes(module, selection))
    return scopes
