"""Domain types for the alert relay — inbound notification and outbound issue."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _Payload(BaseModel):
    """Base for Alertmanager payload parts: camelCase aliases, extras ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # JSON null means "not set": the field keeps its empty default.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class AlertInstance(_Payload):
    """A single alert inside a notification. Times are kept as sent."""

    starts_at: str = Field(default="", alias="startsAt")
    ends_at: str = Field(default="", alias="endsAt")
    generator_url: str = Field(default="", alias="generatorURL")


class CommonAnnotations(_Payload):
    description: str = ""
    summary: str = ""


class CommonLabels(_Payload):
    alertname: str = ""
    namespace: str = ""
    node: str = ""
    service: str = ""
    severity: str = ""


class AlertNotification(_Payload):
    """Alertmanager webhook payload.

    Missing fields decode to empty values, matching the zero-value
    behaviour callers of the relay have relied on.
    """

    receiver: str = ""
    status: str = ""
    alerts: list[AlertInstance] = Field(default_factory=list)
    common_annotations: CommonAnnotations = Field(
        default_factory=CommonAnnotations, alias="commonAnnotations"
    )
    common_labels: CommonLabels = Field(default_factory=CommonLabels, alias="commonLabels")

    @field_validator("alerts", mode="before")
    @classmethod
    def _null_alerts_are_empty(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{} if item is None else item for item in value]
        return value


class IssueRequest(BaseModel):
    """Body of a GitLab ``POST /projects/:id/issues`` call."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
