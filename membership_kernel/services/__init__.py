"""Kernel services: the workflow engine and the event log it writes."""

from membership_kernel.services.event_log import EventLog
from membership_kernel.services.workflow_engine import (
    DEFAULT_REJECTION_PLACEHOLDER,
    PAYLOAD_NOTE,
    PAYLOAD_REASON_REJECTED,
    WorkflowEngine,
)

__all__ = [
    "DEFAULT_REJECTION_PLACEHOLDER",
    "EventLog",
    "PAYLOAD_NOTE",
    "PAYLOAD_REASON_REJECTED",
    "WorkflowEngine",
]
