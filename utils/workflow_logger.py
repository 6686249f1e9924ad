"""Workflow step logger for the initial estimate pipeline.

Prints banner blocks that are easy to spot in the dev server console and
emits the matching structlog event for log aggregation.
"""

import json
import structlog
from typing import Dict, Any, List, Optional

from models.db import utcnow

logger = structlog.get_logger()

BANNER_WIDTH = 80
WORKFLOW_BANNER_CHAR = "█"
STEP_BANNER_CHAR = "═"
FALLBACK_BANNER_CHAR = "~"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Center text in a line of the given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _format_json(data: Dict[str, Any], indent: int = 2) -> str:
    try:
        return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(data)


def _print_block(char: str, title: str, rows: List[str], margin: str = "║") -> None:
    print("\n")
    print(char * BANNER_WIDTH)
    print(_create_banner(char, title))
    print(char * BANNER_WIDTH)
    for row in rows:
        print(f"{margin} {row}")
    print(char * BANNER_WIDTH)
    print("\n")


def log_workflow_start(workflow: str, estimate_id: str, steps: List[str]) -> None:
    _print_block(
        WORKFLOW_BANNER_CHAR,
        f"WORKFLOW STARTED: {workflow.upper()}",
        [
            f"Estimate ID : {estimate_id}",
            f"Timestamp   : {utcnow().isoformat()}",
            f"Steps       : {' → '.join(steps)}",
        ],
    )
    logger.info("workflow_started", workflow=workflow, estimate_id=estimate_id, steps=steps)


def log_workflow_complete(
    workflow: str,
    estimate_id: str,
    steps: Dict[str, str],
    duration_ms: int,
) -> None:
    """Log the workflow summary with the status of every step."""
    fallback_steps = [name for name, status in steps.items() if status != "completed"]
    title = "✓ WORKFLOW COMPLETED" if not fallback_steps else "WORKFLOW COMPLETED WITH FALLBACKS"
    _print_block(
        WORKFLOW_BANNER_CHAR,
        title,
        [
            f"Estimate ID : {estimate_id}",
            f"Duration    : {duration_ms:,} ms ({duration_ms / 1000:.2f}s)",
        ] + [f"  {name:<20}: {status}" for name, status in steps.items()],
    )
    logger.info(
        "workflow_completed",
        workflow=workflow,
        estimate_id=estimate_id,
        duration_ms=duration_ms,
        fallback_steps=fallback_steps,
    )


def log_step_start(step: str, estimate_id: str) -> None:
    _print_block(
        STEP_BANNER_CHAR,
        f"▶ STEP: {step.upper()}",
        [f"Estimate ID  : {estimate_id}", "Status       : STARTED"],
    )
    logger.info("workflow_step_started", step=step, estimate_id=estimate_id)


def log_step_output(
    step: str,
    estimate_id: str,
    output: Dict[str, Any],
    duration_ms: int = 0,
) -> None:
    """Log a step's output as formatted JSON."""
    rows = [f"Estimate ID  : {estimate_id}", f"Duration     : {duration_ms:,} ms", "OUTPUT DATA:"]
    rows.extend(f" {line}" for line in _format_json(output).split("\n"))
    _print_block(STEP_BANNER_CHAR, f"✓ STEP OUTPUT: {step.upper()}", rows)
    logger.info(
        "workflow_step_completed",
        step=step,
        estimate_id=estimate_id,
        duration_ms=duration_ms,
        output_keys=list(output.keys()),
    )


def log_step_fallback(step: str, estimate_id: str, error: str, fallback: Optional[Dict[str, Any]] = None) -> None:
    rows = [f"Estimate ID  : {estimate_id}", f"Error        : {error}"]
    if fallback:
        rows.append(f"Fallback     : {_format_json(fallback, indent=None)}")
    _print_block(FALLBACK_BANNER_CHAR, f"↻ STEP FALLBACK: {step.upper()}", rows, margin="~")
    logger.warning("workflow_step_fallback", step=step, estimate_id=estimate_id, error=error)
