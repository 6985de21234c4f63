from unittest.mock import MagicMock

import pytest
import requests

from sbomgraph.core.config import PathConfig
from sbomgraph.core.config import RegistryConfig
from sbomgraph.core.pom import parse_pom_license
from sbomgraph.core.spdx import normalize_license
from sbomgraph.models.dependency import DependencyNode
from sbomgraph.models.license import LicenseRecord
from sbomgraph.services.license_service import first_license
from sbomgraph.services.license_service import GitHubLicenseSource
from sbomgraph.services.license_service import LicenseResolver
from sbomgraph.services.license_service import LocalCacheLicenseSource
from sbomgraph.services.license_service import RemoteRegistryLicenseSource

POM = b"""<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.squareup.okio</groupId>
  <artifactId>okio</artifactId>
  <licenses>
    <license>
      <name>The Apache Software License, Version 2.0</name>
      <url>https://www.apache.org/licenses/LICENSE-2.0.txt</url>
    </license>
    <license>
      <name>MIT License</name>
    </license>
  </licenses>
</project>
"""


def okio():
    return DependencyNode(group='com.squareup.okio', name='okio', version='3.9.0')


def pinned(location='https://github.com/apple/swift-log.git'):
    return DependencyNode(
        group='apple', name='swift-log', version='1.5.4',
        externally_pinned=True, location=location,
    )


def response(status_code=200, content=b'', payload=None):
    mock = MagicMock()
    mock.status_code = status_code
    mock.content = content
    mock.json.return_value = payload
    return mock


@pytest.mark.parametrize(
    'name', [
        'Apache License 2.0',
        'The Apache Software License, Version 2.0',
        'Apache-2.0',
        'APACHE LICENSE, VERSION 2.0',
    ],
)
def test_apache_variants_normalize_to_one_id(name):
    assert normalize_license(name) == 'Apache-2.0'


@pytest.mark.parametrize(
    'name, url, expected', [
        ('The MIT License', None, 'MIT'),
        ('GNU Lesser General Public License v2.1', None, 'LGPL-2.1-or-later'),
        ('GNU General Public License, version 2', None, 'GPL-2.0-or-later'),
        ('Eclipse Public License - v 1.0', None, 'EPL-1.0'),
        ('New BSD License', None, 'BSD-3-Clause'),
        ('Custom', 'https://opensource.org/licenses/MIT', 'MIT'),
        (None, 'http://www.apache.org/licenses/LICENSE-2.0', 'Apache-2.0'),
        ('Proprietary Vendor License', 'https://vendor.example/eula', 'Proprietary Vendor License'),
        (None, 'https://vendor.example/eula', None),
        (None, None, None),
    ],
)
def test_normalize_license(name, url, expected):
    assert normalize_license(name, url) == expected


def test_mit_requires_a_word_boundary():
    assert normalize_license('Permitted Use License') == 'Permitted Use License'


def test_parse_pom_takes_first_license_and_ignores_namespace():
    record = parse_pom_license(POM)

    assert record == LicenseRecord(
        id='Apache-2.0',
        name='The Apache Software License, Version 2.0',
        url='https://www.apache.org/licenses/LICENSE-2.0.txt',
    )


def test_parse_pom_without_license_or_malformed():
    assert parse_pom_license(b'<project><artifactId>x</artifactId></project>') is None
    assert parse_pom_license(b'<project><licenses>') is None
    assert parse_pom_license(b'') is None


def test_parse_pom_with_url_only_uses_id_as_name():
    record = parse_pom_license(
        b'<project><licenses><license><url>https://opensource.org/licenses/MIT</url></license></licenses></project>',
    )

    assert record.id == 'MIT'
    assert record.name == 'MIT'


def test_local_cache_finds_pom_in_hash_subdirectory(tmp_path):
    paths = PathConfig(gradle_user_home=tmp_path, package_resolved_path=None)
    version_dir = paths.get_descriptor_dir('com.squareup.okio', 'okio', '3.9.0')
    hash_dir = version_dir / '3f4a9b0c'
    hash_dir.mkdir(parents=True)
    (hash_dir / 'okio-3.9.0.pom').write_bytes(POM)
    (version_dir / 'a1b2c3').mkdir()

    record = LocalCacheLicenseSource(paths)(okio())

    assert record.id == 'Apache-2.0'


def test_local_cache_miss_and_pinned_skip(tmp_path):
    source = LocalCacheLicenseSource(PathConfig(gradle_user_home=tmp_path, package_resolved_path=None))

    assert source(okio()) is None
    assert source(pinned()) is None


def test_remote_registry_builds_maven_layout_url():
    session = MagicMock()
    session.get.return_value = response(content=POM)
    source = RemoteRegistryLicenseSource('maven-central', 'https://repo1.maven.org/maven2/', session, (1, 1))

    record = source(okio())

    assert record.id == 'Apache-2.0'
    session.get.assert_called_once_with(
        'https://repo1.maven.org/maven2/com/squareup/okio/okio/3.9.0/okio-3.9.0.pom',
        timeout=(1, 1),
    )


def test_remote_registry_rejects_invalid_coordinates_without_request():
    session = MagicMock()
    source = RemoteRegistryLicenseSource('maven-central', 'https://repo1.maven.org/maven2', session, (1, 1))
    dep = DependencyNode(group='com.example', name='../../etc', version='1.0')

    assert source(dep) is None
    session.get.assert_not_called()


def test_remote_registry_degrades_on_404_and_network_error():
    session = MagicMock()
    source = RemoteRegistryLicenseSource('google-maven', 'https://dl.google.com/dl/android/maven2', session, (1, 1))

    session.get.return_value = response(status_code=404)
    assert source(okio()) is None

    session.get.side_effect = requests.ConnectionError('offline')
    assert source(okio()) is None


def test_remote_registry_skips_pinned():
    session = MagicMock()
    source = RemoteRegistryLicenseSource('maven-central', 'https://repo1.maven.org/maven2', session, (1, 1))

    assert source(pinned()) is None
    session.get.assert_not_called()


@pytest.mark.parametrize(
    'location, expected', [
        ('https://github.com/apple/swift-log.git', ('apple', 'swift-log')),
        ('https://GitHub.com/apple/swift-log/', ('apple', 'swift-log')),
        ('git@github.com:pointfreeco/swift-snapshot-testing.git', ('pointfreeco', 'swift-snapshot-testing')),
        ('https://gitlab.com/group/project.git', None),
        ('https://github.com/only-owner', None),
        (None, None),
    ],
)
def test_repository_path(location, expected):
    assert GitHubLicenseSource.repository_path(location) == expected


def test_github_source_reads_spdx_id():
    session = MagicMock()
    session.get.return_value = response(payload={'license': {'spdx_id': 'Apache-2.0', 'name': 'Apache License 2.0'}})
    source = GitHubLicenseSource('https://api.github.com', session, (1, 1))

    record = source(pinned())

    assert record == LicenseRecord(id='Apache-2.0', name='Apache License 2.0', url=None)
    assert session.get.call_args.args[0] == 'https://api.github.com/repos/apple/swift-log/license'


def test_github_source_ignores_noassertion_and_unpinned():
    session = MagicMock()
    session.get.return_value = response(payload={'license': {'spdx_id': 'NOASSERTION', 'name': 'Other'}})
    source = GitHubLicenseSource('https://api.github.com', session, (1, 1))

    assert source(pinned()) is None
    assert source(okio()) is None
    assert session.get.call_count == 1


def test_first_license_short_circuits_and_degrades():
    calls = []

    def broken(dep):
        calls.append('broken')
        raise RuntimeError('boom')

    def found(dep):
        calls.append('found')
        return LicenseRecord(id='MIT', name='MIT')

    def never(dep):
        calls.append('never')
        return LicenseRecord(id='GPL-3.0-or-later', name='GPL')

    record = first_license([broken, found, never])(okio())

    assert record.id == 'MIT'
    assert calls == ['broken', 'found']


def test_resolver_memoizes_per_dependency():
    calls = []

    def source(dep):
        calls.append(dep.id)
        return None

    resolver = LicenseResolver([source])

    assert resolver.resolve(okio()) is None
    assert resolver.resolve(okio()) is None
    assert calls == ['com.squareup.okio:okio:3.9.0']
    assert resolver.stats.unresolved == 1


def test_resolve_all_keeps_input_order():
    deps = [DependencyNode(group='g', name=f"lib{i}", version='1') for i in range(20)]

    def source(dep):
        return LicenseRecord(id='MIT', name='MIT') if int(dep.name[3:]) % 2 else None

    resolver = LicenseResolver([source])
    results = resolver.resolve_all(deps, workers=4)

    assert list(results) == [dep.id for dep in deps]
    assert results['g:lib1:1'].id == 'MIT'
    assert results['g:lib0:1'] is None
    assert resolver.stats.resolved == 10
    assert resolver.stats.unresolved == 10


def test_resolver_closes_session_on_exit():
    session = MagicMock()

    with LicenseResolver([], session=session) as resolver:
        assert resolver.resolve(okio()) is None

    session.close.assert_called_once()
    assert resolver.session is None


def test_from_config_orders_sources(tmp_path):
    resolver = LicenseResolver.from_config(
        PathConfig(gradle_user_home=tmp_path, package_resolved_path=None), RegistryConfig(),
    )
    try:
        assert [s.name for s in resolver.strategies] == ['local-cache', 'maven-central', 'google-maven', 'github']
    finally:
        resolver.close()
