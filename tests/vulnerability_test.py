from unittest.mock import MagicMock

import requests

from sbomgraph.models.bom import Component
from sbomgraph.models.severity import SeverityLevel
from sbomgraph.services.vulnerability_service import BATCH_SIZE
from sbomgraph.services.vulnerability_service import VulnerabilityScanner

URL = 'https://ossindex.sonatype.org/api/v3/component-report'


def component(name, version='1.0'):
    return Component(
        bom_ref=f"g:{name}:{version}", group='g', name=name, version=version,
        purl=f"pkg:maven/g/{name}@{version}",
    )


def response(status_code=200, payload=None):
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = payload
    return mock


def test_scan_maps_reports_to_vulnerabilities():
    session = MagicMock()
    session.post.return_value = response(payload=[
        {
            'coordinates': 'pkg:maven/g/a@1.0',
            'vulnerabilities': [
                {'id': 'sonatype-1', 'cve': 'CVE-2024-0001', 'cvssScore': 9.8, 'title': 'RCE'},
                {'id': 'sonatype-2', 'cvssScore': 5.0, 'description': 'Info leak'},
            ],
        },
        {
            'coordinates': 'pkg:maven/g/b@1.0',
            'vulnerabilities': [{'cve': 'CVE-2024-0001', 'cvssScore': 9.8}],
        },
    ])
    scanner = VulnerabilityScanner(session, URL)

    found = {v.id: v for v in scanner.scan([component('a'), component('b')])}

    assert set(found) == {'CVE-2024-0001', 'sonatype-2'}
    assert found['CVE-2024-0001'].severity is SeverityLevel.CRITICAL
    assert found['CVE-2024-0001'].description == 'RCE'
    assert found['CVE-2024-0001'].affects == ['g:a:1.0', 'g:b:1.0']
    assert found['sonatype-2'].severity is SeverityLevel.MEDIUM


def test_scan_without_score_leaves_severity_unset():
    session = MagicMock()
    session.post.return_value = response(payload=[
        {'coordinates': 'pkg:maven/g/a@1.0', 'vulnerabilities': [{'id': 'GHSA-xxxx'}]},
    ])

    found = VulnerabilityScanner(session, URL).scan([component('a')])

    assert found[0].severity is None


def test_scan_batches_requests():
    session = MagicMock()
    session.post.return_value = response(payload=[])
    components = [component(f"lib{i}") for i in range(BATCH_SIZE + 5)]

    VulnerabilityScanner(session, URL).scan(components)

    sizes = [len(call.kwargs['json']['coordinates']) for call in session.post.call_args_list]
    assert sizes == [BATCH_SIZE, 5]


def test_scan_degrades_on_errors():
    session = MagicMock()
    scanner = VulnerabilityScanner(session, URL)

    session.post.return_value = response(status_code=429)
    assert scanner.scan([component('a')]) == []

    session.post.return_value = response(payload={'unexpected': True})
    assert scanner.scan([component('a')]) == []

    session.post.side_effect = requests.Timeout('slow')
    assert scanner.scan([component('a')]) == []


def test_cvss_bands():
    assert SeverityLevel.from_cvss(9.0) is SeverityLevel.CRITICAL
    assert SeverityLevel.from_cvss(7.5) is SeverityLevel.HIGH
    assert SeverityLevel.from_cvss(4.0) is SeverityLevel.MEDIUM
    assert SeverityLevel.from_cvss(0.1) is SeverityLevel.LOW
    assert SeverityLevel.from_cvss(0.0) is SeverityLevel.NONE


def test_scan_skips_malformed_entries_and_reports():
    session = MagicMock()
    session.post.return_value = response(payload=[
        'not a report',
        {'coordinates': 'pkg:maven/g/a@1.0', 'vulnerabilities': 'oops'},
        {
            'coordinates': 'pkg:maven/g/b@1.0',
            'vulnerabilities': [
                {'id': 'x', 'cvssScore': '7.5'},
                {'id': 'y', 'cvssScore': 'high'},
                ['not', 'an', 'entry'],
                {'id': 'z', 'cvssScore': 2.0, 'reference': 'https://ossindex.sonatype.org/vulnerability/z'},
            ],
        },
        {'coordinates': 'pkg:maven/g/c@1.0', 'vulnerabilities': None},
    ])

    found = {v.id: v for v in VulnerabilityScanner(session, URL).scan(
        [component('a'), component('b'), component('c')],
    )}

    assert set(found) == {'x', 'z'}
    assert found['x'].cvss_score == 7.5
    assert found['x'].severity is SeverityLevel.HIGH
    assert found['x'].affects == ['g:b:1.0']
    assert found['z'].reference == 'https://ossindex.sonatype.org/vulnerability/z'
