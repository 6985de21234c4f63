from dataclasses import replace
from pathlib import Path

import dotenv
import structlog
import typer
from rich.markup import escape
from rich.table import Table

from sbomgraph.core.config import get_config
from sbomgraph.core.decorators import handle_errors
from sbomgraph.core.logging import console
from sbomgraph.models.bom import BillOfMaterials
from sbomgraph.models.bom import ViolationKind
from sbomgraph.models.snapshot import ResolutionSnapshot
from sbomgraph.services.sbom_service import SbomService
from sbomgraph.services.scope_service import ScopeSelection
from sbomgraph.services.violation_service import EvaluationResult
from sbomgraph.services.violation_service import ViolationEvaluator

logger = structlog.get_logger('check')

dotenv.load_dotenv()


def render_components(bom: BillOfMaterials) -> Table:
    table = Table(title=f"Components: {bom.name} ({bom.target})")
    table.add_column('Component', style='cyan')
    table.add_column('License', style='magenta')
    table.add_column('Children', justify='right')
    for component in bom.components:
        license_ids = ', '.join(lic.id for lic in component.licenses) or '-'
        table.add_row(component.bom_ref, license_ids, str(len(bom.graph.get(component.bom_ref, []))))
    return table


def render_violations(result: EvaluationResult) -> Table:
    table = Table(title='Policy Violations')
    table.add_column('Kind', style='cyan')
    table.add_column('Component', style='magenta')
    table.add_column('Detail', style='dim')
    for violation in result.violations:
        style = 'red' if violation.kind == ViolationKind.VULNERABILITY else 'yellow'
        table.add_row(f"[{style}]{violation.kind}[/{style}]", escape(violation.subject_id), escape(violation.detail))
    return table


@handle_errors
def main(
    snapshot: Path = typer.Argument(..., help='Resolution snapshot (JSON) exported from the build'),
    module: str = typer.Option(None, help='Root module path (default: first module of the snapshot)'),
    target: str = typer.Option('android', help='Target platform (android, ios, jvm, js, ...)'),
    debug_scopes: bool = typer.Option(False, '--debug-scopes/--no-debug-scopes', help='Include debug scopes'),
    release: bool = typer.Option(True, '--release/--no-release', help='Include release scopes'),
    test: bool = typer.Option(False, '--test/--no-test', help='Include test scopes'),
    allowed_license: list[str] = typer.Option(None, '--allowed-license', help='Allowed license id (repeatable)'),
    max_severity: str = typer.Option(None, help='Highest tolerated severity (CRITICAL..NONE, OFF disables)'),
    fail_on: str = typer.Option(None, help='Fail policy: ALWAYS, PULL_REQUEST or NEVER'),
    package_resolved: Path = typer.Option(None, help='Package.resolved with externally pinned dependencies'),
    licenses: bool = typer.Option(None, '--licenses/--no-licenses', help='Resolve licenses'),
    vulnerabilities: bool = typer.Option(None, '--vulnerabilities/--no-vulnerabilities', help='Scan for vulnerabilities'),
    workers: int = typer.Option(None, help='Concurrent license lookups'),
):
    """
    Build the dependency graph of a module and check it against policy.
    """
    config = get_config()
    if package_resolved is not None:
        config.paths = replace(config.paths, package_resolved_path=package_resolved)
    if licenses is not None:
        config.scan = replace(config.scan, include_licenses=licenses)
    if vulnerabilities is not None:
        config.scan = replace(config.scan, enable_vulnerability_scanning=vulnerabilities)
    if workers is not None:
        config.scan = replace(config.scan, workers=workers)
    if allowed_license:
        config.policy = replace(config.policy, allowed_licenses=set(allowed_license))
    if max_severity is not None:
        value = max_severity.strip().upper()
        config.policy = replace(config.policy, max_allowed_severity=None if value == 'OFF' else value)
    if fail_on is not None:
        config.policy = replace(config.policy, fail_on_violation=fail_on)

    resolution = ResolutionSnapshot.load(snapshot)
    if not resolution.modules:
        raise ValueError(f"No modules in snapshot: {snapshot}")
    root = resolution.module(module) if module else resolution.modules[0]

    selection = ScopeSelection(
        target=target,
        include_debug=debug_scopes,
        include_release=release,
        include_test=test,
    )
    bom = SbomService(config).generate(root, selection, name=resolution.name)
    console.print(render_components(bom))

    evaluator = ViolationEvaluator(config.policy)
    result = evaluator.evaluate(bom)
    if result.violations:
        console.print(render_violations(result))
    evaluator.apply(result)
