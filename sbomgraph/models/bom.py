"""In-memory bill of materials handed to policy evaluation."""
from enum import Enum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from sbomgraph.models.license import LicenseRecord
from sbomgraph.models.severity import SeverityLevel


class Component(BaseModel):
    """A library entry of the bill of materials."""
    bom_ref: str
    group: str
    name: str
    version: str
    purl: str
    licenses: list[LicenseRecord] = Field(default_factory=list)
    sha256: str | None = None


class Vulnerability(BaseModel):
    id: str
    severity: SeverityLevel | None = None
    cvss_score: float | None = None
    description: str | None = None
    reference: str | None = None
    affects: list[str] = Field(default_factory=list)


class BillOfMaterials(BaseModel):
    name: str = ''
    target: str = ''
    components: list[Component] = Field(default_factory=list)
    graph: dict[str, list[str]] = Field(default_factory=dict)
    vulnerabilities: list[Vulnerability] = Field(default_factory=list)

    def find_component(self, bom_ref: str) -> Component | None:
        return next((c for c in self.components if c.bom_ref == bom_ref), None)


class ViolationKind(str, Enum):
    LICENSE = 'license'
    VULNERABILITY = 'vulnerability'

    def __str__(self) -> str:
        return self.value


class Violation(BaseModel):
    kind: ViolationKind
    subject_id: str
    detail: str

    model_config = ConfigDict(frozen=True)
