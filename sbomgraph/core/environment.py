"""CI environment detection."""
import os
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class CIEnvironment:
    is_azure_pipelines: bool = False
    is_pull_request: bool = False

    @classmethod
    def detect(cls, environ: Mapping[str, str] | None = None) -> 'CIEnvironment':
        env = os.environ if environ is None else environ
        return cls(
            is_azure_pipelines=env.get('TF_BUILD') == 'True' or env.get('AGENT_ID') is not None,
            is_pull_request=env.get('BUILD_REASON') == 'PullRequest',
        )
