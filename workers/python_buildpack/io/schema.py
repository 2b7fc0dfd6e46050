"""
Schema - Pydantic model for the compile receipt.

One receipt per compile run, written on success and on failure. It records
which states the pipeline reached, which layout it chose and what moved in
and out of the cache.

Runtime contract fields (present in every receipt):
  package_name, pipeline_version, schema_version, profile_id.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from python_buildpack import PACKAGE_NAME, PIPELINE_VERSION, SCHEMA_VERSION


class BuildState(str, Enum):
    INIT = "INIT"
    LAYOUT_DECIDED = "LAYOUT_DECIDED"
    CACHE_RESTORED = "CACHE_RESTORED"
    ENV_READY = "ENV_READY"
    DEPS_INSTALLED = "DEPS_INSTALLED"
    FINALIZED = "FINALIZED"
    CACHE_PERSISTED = "CACHE_PERSISTED"
    DONE = "DONE"
    FAILED = "FAILED"


class BuildStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class BuildReceipt(BaseModel):
    package_name: str = PACKAGE_NAME
    pipeline_version: str = PIPELINE_VERSION
    schema_version: str = SCHEMA_VERSION
    profile_id: str

    build_dir: str
    cache_dir: str
    app_kind: Optional[str] = None

    layout: Optional[str] = None          # modern | legacy
    fresh_cache: bool = False
    force_rebuild: bool = False
    env_rebuilt: bool = False

    states: List[BuildState] = Field(default_factory=list)
    restored: List[str] = Field(default_factory=list)
    persisted: List[str] = Field(default_factory=list)
    vcs_clients: List[str] = Field(default_factory=list)
    framework_hook_ran: bool = False

    status: Optional[BuildStatus] = None
    failure_reason: Optional[str] = None
    failure_message: Optional[str] = None

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def state(self) -> BuildState:
        return self.states[-1] if self.states else BuildState.INIT
