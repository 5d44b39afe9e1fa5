"""Pure functions that turn an Alertmanager payload into an IssueRequest."""

from __future__ import annotations

import pydantic
import structlog

from alertrelay.exceptions import DecodeError, ValidationError
from alertrelay.relay.types import AlertNotification, IssueRequest

logger = structlog.get_logger(__name__)

TITLE_TEMPLATE = "ALERTMANAGER -> Namespace:{namespace} Node:{node}"


def decode_alert(raw: bytes) -> AlertNotification:
    """Parse a webhook body into an AlertNotification.

    Raises:
        DecodeError: Body is not JSON, not an object, or has a field of
            the wrong type.
    """
    try:
        return AlertNotification.model_validate_json(raw)
    except pydantic.ValidationError as exc:
        first = exc.errors(include_input=False)[0]
        where = ".".join(str(p) for p in first["loc"])
        detail = f"{where}: {first['msg']}" if where else first["msg"]
        raise DecodeError(f"invalid alert payload ({detail})") from exc


def format_issue(alert: AlertNotification) -> IssueRequest:
    """Build the issue title and description from a notification.

    Times and the generator URL come from the first alert instance; the
    rest from the common labels and annotations.

    Raises:
        ValidationError: The notification carries no alert instances.
    """
    if not alert.alerts:
        raise ValidationError("alert payload contains no alerts")

    first = alert.alerts[0]
    labels = alert.common_labels
    annotations = alert.common_annotations

    title = TITLE_TEMPLATE.format(namespace=labels.namespace, node=labels.node)
    description = (
        f"Service: {labels.service}\n\n"
        f" AlertName: {labels.alertname}\n\n"
        f" Receiver: {alert.receiver}\n\n"
        f" Status: {alert.status}\n\n"
        f" StartTime: {first.starts_at}\n\n"
        f" EndTime: {first.ends_at}\n\n"
    )
    description += (
        f"generatorURL: {first.generator_url}\n\n"
        f" Description: {annotations.description}\n\n"
        f" Summary: {annotations.summary}\n\n"
    )
    return IssueRequest(title=title, description=description)


def transform(raw: bytes) -> IssueRequest:
    """Decode a webhook body and format it as an issue."""
    alert = decode_alert(raw)
    issue = format_issue(alert)
    logger.debug(
        "alert_transformed",
        receiver=alert.receiver,
        status=alert.status,
        alerts=len(alert.alerts),
        title=issue.title,
    )
    return issue
