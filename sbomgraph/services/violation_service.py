"""
Policy evaluation over a finished bill of materials.

Licenses are checked against an allow-list, vulnerabilities against a
maximum tolerated severity, and the fail policy decides whether the
resulting violations stop the build.
"""
from collections import Counter
from dataclasses import dataclass
from dataclasses import field

import structlog

from sbomgraph.core.config import PolicyConfig
from sbomgraph.core.environment import CIEnvironment
from sbomgraph.core.errors import PolicyViolationError
from sbomgraph.models.bom import BillOfMaterials
from sbomgraph.models.bom import Component
from sbomgraph.models.bom import Violation
from sbomgraph.models.bom import ViolationKind
from sbomgraph.models.bom import Vulnerability
from sbomgraph.models.severity import FailPolicy
from sbomgraph.models.severity import SeverityLevel

logger = structlog.get_logger('violation_service')

MISSING_LICENSE = 'No license information available'
# Severity assumed for findings that carry no usable rating
DEFAULT_SEVERITY = SeverityLevel.HIGH


@dataclass
class EvaluationResult:
    violations: list[Violation] = field(default_factory=list)
    should_fail: bool = False

    def count(self, kind: ViolationKind) -> int:
        return sum(1 for v in self.violations if v.kind == kind)


def format_component(component: Component) -> str:
    return f"{component.group or 'unknown'}:{component.name or 'unknown'}:{component.version or 'unknown'}"


def build_violation_message(violations: list[Violation]) -> str:
    counts = Counter(v.kind for v in violations)
    lines = ['Build failed due to license or vulnerability violations:']
    if counts[ViolationKind.LICENSE]:
        lines.append(f"  - {counts[ViolationKind.LICENSE]} license violation(s)")
    if counts[ViolationKind.VULNERABILITY]:
        lines.append(f"  - {counts[ViolationKind.VULNERABILITY]} vulnerability violation(s)")
    lines.append('See the violation log above for details.')
    return '\n'.join(lines)


class ViolationEvaluator:

    def __init__(self, policy: PolicyConfig, environment: CIEnvironment | None = None):
        self.policy = policy
        self.environment = environment

    def check_licenses(self, bom: BillOfMaterials) -> list[Violation]:
        if not self.policy.allowed_licenses:
            return []
        allowed = {license_id.upper() for license_id in self.policy.allowed_licenses}
        allowed_display = sorted(self.policy.allowed_licenses)

        violations = []
        for component in bom.components:
            subject = format_component(component)
            declared = [(lic.id or lic.name or 'UNKNOWN').upper() for lic in component.licenses]
            if not declared:
                violations.append(Violation(kind=ViolationKind.LICENSE, subject_id=subject, detail=MISSING_LICENSE))
                continue
            for license_id in declared:
                if license_id not in allowed:
                    violations.append(
                        Violation(
                            kind=ViolationKind.LICENSE,
                            subject_id=subject,
                            detail=f"License '{license_id}' is not in allowed list: {allowed_display}",
                        ),
                    )

        logger.debug('License check complete', violations=len(violations))
        return violations

    def check_vulnerabilities(self, bom: BillOfMaterials) -> list[Violation]:
        if self.policy.max_allowed_severity is None:
            return []
        max_allowed = SeverityLevel.parse(self.policy.max_allowed_severity)
        if max_allowed is None:
            logger.warning(
                'Invalid max_allowed_severity, skipping vulnerability check',
                value=self.policy.max_allowed_severity,
                allowed=[str(level) for level in SeverityLevel],
            )
            return []

        violations = []
        for vulnerability in bom.vulnerabilities:
            severity = vulnerability.severity or DEFAULT_SEVERITY
            if severity.is_more_severe_than(max_allowed):
                detail = f"{vulnerability.id} (Severity: {severity}) - {vulnerability.description or 'No description'}"
                if vulnerability.reference:
                    detail += f" (see {vulnerability.reference})"
                violations.append(
                    Violation(
                        kind=ViolationKind.VULNERABILITY,
                        subject_id=self._affected(bom, vulnerability),
                        detail=detail,
                    ),
                )

        logger.debug('Vulnerability check complete', violations=len(violations))
        return violations

    @staticmethod
    def _affected(bom: BillOfMaterials, vulnerability: Vulnerability) -> str:
        ref = vulnerability.affects[0] if vulnerability.affects else 'Unknown'
        component = bom.find_component(ref)
        return format_component(component) if component else ref

    def should_fail(self, violations: list[Violation]) -> bool:
        if not violations:
            return False

        raw = str(self.policy.fail_on_violation).strip().upper()
        try:
            policy = FailPolicy(raw)
        except ValueError:
            logger.warning(
                'Invalid fail_on_violation value, defaulting to NEVER',
                value=self.policy.fail_on_violation,
                allowed=[str(p) for p in FailPolicy],
            )
            return False

        if policy is FailPolicy.ALWAYS:
            return True
        if policy is FailPolicy.PULL_REQUEST:
            environment = self.environment or CIEnvironment.detect()
            logger.info(
                'Evaluating PULL_REQUEST fail policy',
                azure_pipelines=environment.is_azure_pipelines,
                pull_request=environment.is_pull_request,
            )
            return environment.is_azure_pipelines and environment.is_pull_request
        return False

    def evaluate(self, bom: BillOfMaterials) -> EvaluationResult:
        violations = self.check_licenses(bom) + self.check_vulnerabilities(bom)
        return EvaluationResult(violations=violations, should_fail=self.should_fail(violations))

    def enforce(self, bom: BillOfMaterials) -> EvaluationResult:
        """Evaluate, log every violation, and raise when the policy says the build must stop."""
        return self.apply(self.evaluate(bom))

    def apply(self, result: EvaluationResult) -> EvaluationResult:
        if not result.violations:
            logger.info('No license or vulnerability violations found')
            return result

        for violation in result.violations:
            logger.error(
                'Policy violation', kind=str(violation.kind),
                component=violation.subject_id, detail=violation.detail,
            )

        if result.should_fail:
            raise PolicyViolationError(build_violation_message(result.violations), result.violations)

        logger.warning(
            'Violations found but build will not fail',
            fail_on_violation=str(self.policy.fail_on_violation),
            license_violations=result.count(ViolationKind.LICENSE),
            vulnerability_violations=result.count(ViolationKind.VULNERABILITY),
        )
        return result
