"""Utility modules for the estimate agent."""

from utils.workflow_logger import (
    log_workflow_start,
    log_workflow_complete,
    log_step_start,
    log_step_output,
    log_step_fallback,
)

__all__ = [
    "log_workflow_start",
    "log_workflow_complete",
    "log_step_start",
    "log_step_output",
    "log_step_fallback",
]
