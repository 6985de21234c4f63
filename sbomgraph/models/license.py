from pydantic import BaseModel
from pydantic import ConfigDict


class LicenseRecord(BaseModel):
    """License of a dependency: canonical SPDX-style id plus the declared name."""
    id: str
    name: str
    url: str | None = None

    model_config = ConfigDict(frozen=True)
