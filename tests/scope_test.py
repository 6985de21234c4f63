import pytest

from sbomgraph.models.snapshot import ResolutionSnapshot
from sbomgraph.services.scope_service import is_build_only
from sbomgraph.services.scope_service import is_variant_included
from sbomgraph.services.scope_service import matches_target
from sbomgraph.services.scope_service import ScopeSelection
from sbomgraph.services.scope_service import select_scopes


@pytest.mark.parametrize(
    'scope_name, target, expected', [
        ('releaseRuntimeClasspath', 'android', False),
        ('androidReleaseRuntimeClasspath', 'android', True),
        ('jvmRuntimeClasspath', 'android', True),
        ('iosArm64CompileKlibraries', 'ios', True),
        ('jvmRuntimeClasspath', 'ios', False),
        ('wasmJsRuntimeClasspath', 'wasmjs', True),
        ('jsRuntimeClasspath', 'wasm', False),
        ('AndroidDebugRuntimeClasspath', 'ANDROID', True),
    ],
)
def test_matches_target(scope_name, target, expected):
    assert matches_target(scope_name, target) is expected


@pytest.mark.parametrize(
    'scope_name, expected', [
        ('compileOnly', True),
        ('kaptAndroidRelease', True),
        ('kspJvm', True),
        ('annotationProcessor', True),
        ('providedCompile', True),
        ('jvmRuntimeClasspath', False),
    ],
)
def test_is_build_only(scope_name, expected):
    assert is_build_only(scope_name) is expected


def test_variant_classes_checked_in_order():
    selection = ScopeSelection(include_debug=True, include_release=True, include_test=False)

    # "test" wins over "debug" and "release"
    assert is_variant_included('androidDebugUnitTestRuntimeClasspath', selection) is False
    assert is_variant_included('androidReleaseUnitTestRuntimeClasspath', selection) is False
    assert is_variant_included('androidDebugRuntimeClasspath', selection) is True
    assert is_variant_included('jvmRuntimeClasspath', ScopeSelection(include_release=False)) is True


def test_default_selection_keeps_release_only():
    selection = ScopeSelection()

    assert selection.target == 'android'
    assert is_variant_included('androidReleaseRuntimeClasspath', selection) is True
    assert is_variant_included('androidDebugRuntimeClasspath', selection) is False
    assert is_variant_included('jvmTestRuntimeClasspath', selection) is False


def test_select_scopes_applies_every_rule():
    snapshot = ResolutionSnapshot.from_dict({
        'modules': [{'path': ':app', 'scopes': [
            {'name': 'androidReleaseRuntimeClasspath'},
            {'name': 'androidDebugRuntimeClasspath'},
            {'name': 'jvmRuntimeClasspath'},
            {'name': 'jvmTestRuntimeClasspath'},
            {'name': 'kaptAndroidRelease'},
            {'name': 'androidReleaseApiElements', 'resolvable': False},
            {'name': 'iosArm64CompileKlibraries'},
        ]}],
    })

    selected = select_scopes(snapshot.module(':app'), ScopeSelection())

    assert [s.name for s in selected] == ['androidReleaseRuntimeClasspath', 'jvmRuntimeClasspath']


def test_select_scopes_for_ios_with_debug():
    snapshot = ResolutionSnapshot.from_dict({
        'modules': [{'path': ':shared', 'scopes': [
            {'name': 'iosArm64DebugCompileKlibraries'},
            {'name': 'iosArm64ReleaseCompileKlibraries'},
            {'name': 'androidReleaseRuntimeClasspath'},
        ]}],
    })
    selection = ScopeSelection(target='ios', include_debug=True)

    selected = select_scopes(snapshot.module(':shared'), selection)

    assert [s.name for s in selected] == ['iosArm64DebugCompileKlibraries', 'iosArm64ReleaseCompileKlibraries']
