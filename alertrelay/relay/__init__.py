"""Alert relay pipeline — decode, format, dispatch, serve."""

from alertrelay.relay.dispatcher import IssueDispatcher, issues_url
from alertrelay.relay.server import build_ssl_context, create_web_app, start_server
from alertrelay.relay.transformer import decode_alert, format_issue, transform
from alertrelay.relay.types import (
    AlertInstance,
    AlertNotification,
    CommonAnnotations,
    CommonLabels,
    IssueRequest,
)

__all__ = [
    "AlertInstance",
    "AlertNotification",
    "CommonAnnotations",
    "CommonLabels",
    "IssueDispatcher",
    "IssueRequest",
    "build_ssl_context",
    "create_web_app",
    "decode_alert",
    "format_issue",
    "issues_url",
    "start_server",
    "transform",
]
