from pydantic import BaseModel

from sbomgraph.models.dependency import DependencyNode

HOSTING_MARKERS = ('github', 'gitlab')
DEFAULT_GROUP = 'swift'


class PinnedPackage(BaseModel):
    """A dependency pinned by Swift Package Manager's Package.resolved."""
    identity: str
    location: str
    version: str = 'unknown'
    revision: str | None = None
    kind: str = 'remoteSourceControl'

    @property
    def group(self) -> str:
        """Organization segment of the repository URL, e.g. 'google' for github.com/google/x."""
        parts = self.location.removesuffix('.git').split('/')
        for index, part in enumerate(parts):
            if any(marker in part.lower() for marker in HOSTING_MARKERS):
                if index + 1 < len(parts) and parts[index + 1]:
                    return parts[index + 1]
                break
        return DEFAULT_GROUP

    def to_dependency_node(self) -> DependencyNode:
        return DependencyNode(
            group=self.group,
            name=self.identity,
            version=self.version,
            externally_pinned=True,
            location=self.location,
        )
