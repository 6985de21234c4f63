"""Response shapes of the OSS Index component-report API."""
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class ReportedVulnerability(BaseModel):
    id: str | None = None
    cve: str | None = None
    title: str | None = None
    description: str | None = None
    reference: str | None = None
    cvss_score: float | None = Field(default=None, alias='cvssScore')

    model_config = ConfigDict(populate_by_name=True)

    @property
    def key(self) -> str | None:
        return self.cve or self.id


class ComponentReport(BaseModel):
    coordinates: str = ''
    # Entries are validated one at a time so a bad one does not drop the report
    vulnerabilities: list[Any] = Field(default_factory=list)

    @field_validator('vulnerabilities', mode='before')
    @classmethod
    def null_as_empty(cls, value):
        return [] if value is None else value
