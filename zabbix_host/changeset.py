from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .log import utc_now_rfc3339
from .models import DEFAULT_API_CONFIG, HostSpec
from .reconcile import ChangeSet


class Requirement(BaseModel):
    kind: str
    name: str

    model_config = ConfigDict(extra="forbid")


class ChangeSetV1(BaseModel):
    schema_version: Literal["1.0"]
    hostname: str
    action: Literal["none", "create", "update", "delete"]
    host_id: Optional[str] = None
    interface_id: Optional[str] = None
    group_create: bool = False
    changes: dict[str, Any] = Field(default_factory=dict)
    requires: list[Requirement] = Field(default_factory=list)
    computed_at: str
    meta: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


def build_changeset_payload(
    desired: HostSpec,
    changeset: ChangeSet,
    api_config: str = DEFAULT_API_CONFIG,
    schema_version: str = "1.0",
) -> dict:
    payload = ChangeSetV1(
        schema_version=schema_version,
        hostname=desired.hostname,
        action=changeset.action.value,
        host_id=changeset.host_id,
        interface_id=changeset.interface_id,
        group_create=changeset.group_create,
        changes={name: change.desired for name, change in changeset.changes.items()},
        requires=[
            Requirement(kind=dependency.kind, name=dependency.name)
            for dependency in desired.dependencies(api_config)
        ],
        computed_at=utc_now_rfc3339(),
        meta={
            "ensure": desired.ensure.value,
            "out_of_sync": sorted(changeset.changes),
            "version": __version__,
        },
    )
    return payload.model_dump(mode="json", exclude_none=True)
