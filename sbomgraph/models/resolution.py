"""
Read-only view of the host build tool's resolution state.

The host resolves dependencies itself; these classes only describe the
shape this package consumes. Concrete implementations wrap the host's
objects (or a JSON snapshot, see ``sbomgraph.models.snapshot``).
"""
from abc import ABC
from abc import abstractmethod
from collections.abc import Iterable
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LibraryIdentity:
    group: str
    name: str
    version: str

    @property
    def id(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"


@dataclass(frozen=True)
class ModuleIdentity:
    path: str


ComponentIdentity = LibraryIdentity | ModuleIdentity


class ResolutionError(Exception):
    """A scope could not be resolved by the host."""


class ResolvedComponent(ABC):
    """A node of a scope's resolution graph."""

    @property
    @abstractmethod
    def identity(self) -> ComponentIdentity:
        ...

    @abstractmethod
    def dependencies(self) -> Iterable['ResolvedComponent']:
        """Resolved children; unresolved declarations are not yielded."""


class Scope(ABC):
    """A named set of dependency declarations of a module."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def can_be_resolved(self) -> bool:
        ...

    @abstractmethod
    def resolution_root(self) -> ResolvedComponent:
        ...

    @abstractmethod
    def resolved_artifacts(self) -> Mapping[str, Path | None]:
        """Local artifact files keyed by library id."""

    @abstractmethod
    def module_dependencies(self) -> Iterable['Module']:
        """Modules this scope declares a dependency on."""


class Module(ABC):

    @property
    @abstractmethod
    def path(self) -> str:
        ...

    @property
    @abstractmethod
    def scopes(self) -> Sequence[Scope]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"
