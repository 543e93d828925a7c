from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .errors import ValidationError
from .log import LogFn, stderr_sink
from .munge import normalize_boolean, normalize_encryption_mode

DEFAULT_API_CONFIG = "/etc/zabbix/api.conf"

DEPRECATED_GROUP_MESSAGE = (
    "Passing group to zabbix_host is deprecated and will be removed. Use groups instead."
)

MANAGED_PROPERTIES = (
    "ip_address",
    "interface_type",
    "interface_details",
    "use_ip",
    "port",
    "groups",
    "templates",
    "macros",
    "proxy",
    "tls_connect",
    "tls_accept",
    "tls_issuer",
    "tls_subject",
)

MacroPair = Union[tuple[str, str], dict[str, str]]

_READ_ONLY = {"writable": False}


class Ensure(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class Source(str, Enum):
    DECLARATION = "declaration"
    OBSERVED = "observed"
    UPDATE = "update"


@dataclass(frozen=True)
class Dependency:
    kind: str
    name: str


def migrate(raw: Mapping[str, Any], log: LogFn | None = None) -> dict[str, Any]:
    """Move the deprecated ``group`` value onto ``groups``.

    Returns a new mapping, ``raw`` is left untouched. When both fields are
    supplied nothing is moved and the mutual exclusion check rejects the spec.
    """
    data = dict(raw)
    if data.get("group") is None:
        return data

    (log or _deprecation_log)("warning", DEPRECATED_GROUP_MESSAGE)
    if data.get("groups"):
        return data

    data["groups"] = [data.pop("group")]
    return data


class HostSpec(BaseModel):
    hostname: str = Field(min_length=1)
    ensure: Ensure = Ensure.PRESENT

    id: Optional[str] = Field(default=None, json_schema_extra=_READ_ONLY)
    interface_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("interface_id", "interfaceid"),
        json_schema_extra=_READ_ONLY,
    )

    ip_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("ip_address", "ipaddress")
    )
    interface_type: int = Field(
        default=1, validation_alias=AliasChoices("interface_type", "interfacetype")
    )
    interface_details: Any = Field(
        default=None, validation_alias=AliasChoices("interface_details", "interfacedetails")
    )
    use_ip: Optional[bool] = None
    port: Optional[Union[int, str]] = None

    group: Optional[str] = None
    groups: Optional[list[str]] = None
    group_create: bool = False

    templates: Optional[list[str]] = None
    macros: Optional[list[MacroPair]] = None
    proxy: Optional[str] = None

    tls_connect: Optional[int] = None
    tls_accept: Optional[int] = None
    tls_issuer: Optional[str] = None
    tls_subject: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_declaration(cls, raw: Mapping[str, Any], log: LogFn | None = None) -> "HostSpec":
        return cls.model_validate(raw, context={"source": Source.DECLARATION, "log": log})

    @classmethod
    def from_observed(cls, raw: Mapping[str, Any]) -> "HostSpec":
        return cls.model_validate(raw, context={"source": Source.OBSERVED})

    @classmethod
    def read_only_fields(cls) -> tuple[str, ...]:
        return tuple(
            name
            for name, field in cls.model_fields.items()
            if isinstance(field.json_schema_extra, dict)
            and field.json_schema_extra.get("writable") is False
        )

    @classmethod
    def reject_read_only(cls, data: Mapping[str, Any]) -> None:
        for name in cls.read_only_fields():
            if _input_keys(cls, name) & set(data):
                raise ValidationError(
                    f"{name} is read-only and is only available via observed state."
                )

    @model_validator(mode="before")
    @classmethod
    def prepare_input(cls, data: Any, info: ValidationInfo) -> Any:
        if not isinstance(data, Mapping):
            return data

        context = info.context or {}
        source = context.get("source", Source.DECLARATION)
        if source == Source.OBSERVED:
            return data
        if source == Source.DECLARATION:
            cls.reject_read_only(data)
        return migrate(data, log=context.get("log"))

    @field_validator("use_ip", "group_create", mode="before")
    @classmethod
    def munge_boolean(cls, value: Any) -> Any:
        if value is None:
            return value
        return normalize_boolean(value)

    @field_validator("tls_connect", "tls_accept", mode="before")
    @classmethod
    def munge_encryption(cls, value: Any) -> Any:
        if value is None:
            return value
        return normalize_encryption_mode(value)

    @model_validator(mode="after")
    def validate_groups(self) -> "HostSpec":
        if self.group is not None and self.groups:
            raise ValidationError("group and groups are mutually exclusive")
        return self

    def with_changes(self, log: LogFn | None = None, **changes: Any) -> "HostSpec":
        """Return a new spec with ``changes`` applied and re-validated."""
        self.reject_read_only(changes)
        data = {
            name: value
            for name, value in self.__dict__.items()
            if value is not None
        }
        data.update((_field_name(type(self), key), value) for key, value in changes.items())
        return type(self).model_validate(data, context={"source": Source.UPDATE, "log": log})

    def properties(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in MANAGED_PROPERTIES
            if getattr(self, name) is not None
        }

    @staticmethod
    def dependencies(api_config: str = DEFAULT_API_CONFIG) -> list[Dependency]:
        return [Dependency(kind="file", name=api_config)]


def _input_keys(model: type[BaseModel], name: str) -> set[str]:
    alias = model.model_fields[name].validation_alias
    if isinstance(alias, AliasChoices):
        return {name, *(choice for choice in alias.choices if isinstance(choice, str))}
    return {name}


def _field_name(model: type[BaseModel], key: str) -> str:
    for name in model.model_fields:
        if key in _input_keys(model, name):
            return name
    return key


_deprecation_log = stderr_sink("deprecation")
