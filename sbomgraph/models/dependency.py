from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import model_validator


class DependencyNode(BaseModel):
    """A resolved library dependency, identified by ``group:name:version``."""
    group: str
    name: str
    version: str
    id: str = ''
    file: Path | None = None
    externally_pinned: bool = False
    # Repository URL for externally pinned dependencies
    location: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='before')
    @classmethod
    def derive_id(cls, data):
        if isinstance(data, dict) and not data.get('id'):
            data = dict(data)
            data['id'] = f"{data.get('group')}:{data.get('name')}:{data.get('version')}"
        return data

    @property
    def purl(self) -> str:
        kind = 'swift' if self.externally_pinned else 'maven'
        return f"pkg:{kind}/{self.group}/{self.name}@{self.version}"


@dataclass
class DependencyCollectionResult:
    """Deduplicated dependencies plus the acyclic parent -> children graph."""
    dependencies: list[DependencyNode] = field(default_factory=list)
    graph: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ids(self) -> list[str]:
        return [dep.id for dep in self.dependencies]

    def get(self, dependency_id: str) -> DependencyNode | None:
        for dep in self.dependencies:
            if dep.id == dependency_id:
                return dep
        return None
