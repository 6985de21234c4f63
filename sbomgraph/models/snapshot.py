"""
JSON snapshot of a host's resolution state.

Components are declared once in a table and referenced by key, so shared
subgraphs and cycles can be expressed::

    {
      "name": "demo",
      "components": {
        "app":  {"module": ":app", "dependencies": ["okio"]},
        "okio": {"library": "com.squareup.okio:okio:3.9.0", "dependencies": []}
      },
      "modules": [
        {"path": ":app", "scopes": [
          {"name": "releaseRuntimeClasspath", "root": "app",
           "module_dependencies": [":shared"], "artifacts": {}}
        ]}
      ]
    }
"""
from collections.abc import Iterable
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel
from pydantic import Field
from pydantic import model_validator

from sbomgraph.core.validation import load_json_file
from sbomgraph.core.validation import parse_library_id
from sbomgraph.core.validation import ValidationError
from sbomgraph.models.resolution import ComponentIdentity
from sbomgraph.models.resolution import LibraryIdentity
from sbomgraph.models.resolution import Module
from sbomgraph.models.resolution import ModuleIdentity
from sbomgraph.models.resolution import ResolutionError
from sbomgraph.models.resolution import ResolvedComponent
from sbomgraph.models.resolution import Scope


class ComponentEntry(BaseModel):
    library: str | None = None
    module: str | None = None
    dependencies: list[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_kind(self) -> 'ComponentEntry':
        if (self.library is None) == (self.module is None):
            raise ValueError('component needs exactly one of "library" or "module"')
        if self.library is not None:
            parse_library_id(self.library)
        return self


class ScopeEntry(BaseModel):
    name: str
    resolvable: bool = True
    root: str | None = None
    module_dependencies: list[str] = Field(default_factory=list)
    artifacts: dict[str, str | None] = Field(default_factory=dict)
    # Error recorded by the host when the scope failed to resolve
    error: str | None = None


class ModuleEntry(BaseModel):
    path: str
    scopes: list[ScopeEntry] = Field(default_factory=list)


class SnapshotDocument(BaseModel):
    name: str = ''
    components: dict[str, ComponentEntry] = Field(default_factory=dict)
    modules: list[ModuleEntry] = Field(default_factory=list)


class SnapshotComponent(ResolvedComponent):

    def __init__(self, key: str, entry: ComponentEntry, snapshot: 'ResolutionSnapshot'):
        self.key = key
        self._entry = entry
        self._snapshot = snapshot
        if entry.library is not None:
            self._identity: ComponentIdentity = LibraryIdentity(*parse_library_id(entry.library))
        else:
            self._identity = ModuleIdentity(entry.module or '')

    @property
    def identity(self) -> ComponentIdentity:
        return self._identity

    def dependencies(self) -> Iterable[ResolvedComponent]:
        return [self._snapshot.component(key) for key in self._entry.dependencies]

    def __repr__(self) -> str:
        return f"SnapshotComponent({self.key!r})"


class SnapshotScope(Scope):

    def __init__(self, entry: ScopeEntry, snapshot: 'ResolutionSnapshot'):
        self._entry = entry
        self._snapshot = snapshot

    @property
    def name(self) -> str:
        return self._entry.name

    @property
    def can_be_resolved(self) -> bool:
        return self._entry.resolvable

    def resolution_root(self) -> ResolvedComponent:
        if self._entry.error:
            raise ResolutionError(self._entry.error)
        if self._entry.root is None:
            raise ResolutionError(f"Scope {self.name} has no resolution root")
        return self._snapshot.component(self._entry.root)

    def resolved_artifacts(self) -> Mapping[str, Path | None]:
        if self._entry.error:
            raise ResolutionError(self._entry.error)
        return {
            dep_id: Path(path) if path else None
            for dep_id, path in self._entry.artifacts.items()
        }

    def module_dependencies(self) -> Iterable[Module]:
        return [self._snapshot.module(path) for path in self._entry.module_dependencies]

    def __repr__(self) -> str:
        return f"SnapshotScope({self.name!r})"


class SnapshotModule(Module):

    def __init__(self, entry: ModuleEntry, snapshot: 'ResolutionSnapshot'):
        self._path = entry.path
        self._scopes = [SnapshotScope(s, snapshot) for s in entry.scopes]

    @property
    def path(self) -> str:
        return self._path

    @property
    def scopes(self) -> Sequence[Scope]:
        return self._scopes


class ResolutionSnapshot:
    """Resolution state loaded from a snapshot document."""

    def __init__(self, document: SnapshotDocument):
        self.name = document.name
        self._components = {
            key: SnapshotComponent(key, entry, self)
            for key, entry in document.components.items()
        }
        self._modules = {m.path: SnapshotModule(m, self) for m in document.modules}
        self._check_references(document)

    def _check_references(self, document: SnapshotDocument) -> None:
        for key, entry in document.components.items():
            missing = [d for d in entry.dependencies if d not in self._components]
            if missing:
                raise ValidationError(f"Component {key!r} references unknown components: {missing}")
        for module in document.modules:
            for scope in module.scopes:
                if scope.root is not None and scope.root not in self._components:
                    raise ValidationError(
                        f"Scope {module.path}:{scope.name} has unknown root {scope.root!r}",
                    )
                unknown = [p for p in scope.module_dependencies if p not in self._modules]
                if unknown:
                    raise ValidationError(
                        f"Scope {module.path}:{scope.name} depends on unknown modules: {unknown}",
                    )

    @classmethod
    def from_dict(cls, data: dict) -> 'ResolutionSnapshot':
        try:
            document = SnapshotDocument.model_validate(data)
        except ValueError as e:
            raise ValidationError(f"Invalid resolution snapshot: {e}")
        return cls(document)

    @classmethod
    def load(cls, file_path: str | Path) -> 'ResolutionSnapshot':
        return cls.from_dict(load_json_file(Path(file_path)))

    def component(self, key: str) -> SnapshotComponent:
        return self._components[key]

    def module(self, path: str) -> SnapshotModule:
        try:
            return self._modules[path]
        except KeyError:
            raise ValidationError(f"Unknown module: {path}")

    @property
    def modules(self) -> list[SnapshotModule]:
        return list(self._modules.values())
