"""Known-vulnerability lookup against the Sonatype OSS Index."""
from collections.abc import Iterable
from collections.abc import Sequence

import pydantic
import requests
import structlog

from sbomgraph.models.bom import Component
from sbomgraph.models.bom import Vulnerability
from sbomgraph.models.ossindex import ComponentReport
from sbomgraph.models.ossindex import ReportedVulnerability
from sbomgraph.models.severity import SeverityLevel

logger = structlog.get_logger('vulnerability_service')

BATCH_SIZE = 128


def _batches(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class VulnerabilityScanner:
    """Queries OSS Index component reports for a set of components."""

    def __init__(self, session: requests.Session, url: str, timeout: tuple[float, float] = (10.0, 30.0)):
        self.session = session
        self.url = url
        self.timeout = timeout

    def scan(self, components: Sequence[Component]) -> list[Vulnerability]:
        by_purl = {c.purl: c.bom_ref for c in components}
        found: dict[str, Vulnerability] = {}

        for batch in _batches(list(by_purl), BATCH_SIZE):
            for report in self._fetch_reports(batch):
                bom_ref = by_purl.get(report.coordinates)
                for entry in report.vulnerabilities:
                    try:
                        reported = ReportedVulnerability.model_validate(entry)
                    except pydantic.ValidationError as e:
                        logger.warning(
                            'Skipping malformed vulnerability entry',
                            coordinates=report.coordinates, error=str(e),
                        )
                        continue
                    vuln_id = reported.key
                    if not vuln_id:
                        continue
                    if vuln_id in found:
                        if bom_ref and bom_ref not in found[vuln_id].affects:
                            found[vuln_id].affects.append(bom_ref)
                        continue
                    score = reported.cvss_score
                    found[vuln_id] = Vulnerability(
                        id=vuln_id,
                        cvss_score=score,
                        severity=SeverityLevel.from_cvss(score) if score is not None else None,
                        description=reported.description or reported.title,
                        reference=reported.reference,
                        affects=[bom_ref] if bom_ref else [],
                    )

        logger.info('Vulnerability scan complete', components=len(by_purl), vulnerabilities=len(found))
        return list(found.values())

    def _fetch_reports(self, coordinates: Sequence[str]) -> list[ComponentReport]:
        try:
            response = self.session.post(
                self.url, json={'coordinates': list(coordinates)}, timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning('Vulnerability lookup failed', error=str(e), batch=len(coordinates))
            return []

        if response.status_code != 200:
            logger.warning(
                'Vulnerability lookup rejected', status=response.status_code, batch=len(coordinates),
            )
            return []

        try:
            reports = response.json()
        except ValueError:
            logger.warning('Unreadable vulnerability report', batch=len(coordinates))
            return []
        if not isinstance(reports, list):
            logger.warning('Unexpected vulnerability report layout', batch=len(coordinates))
            return []

        parsed = []
        for report in reports:
            try:
                parsed.append(ComponentReport.model_validate(report))
            except pydantic.ValidationError as e:
                logger.warning('Skipping malformed component report', error=str(e))
        return parsed
