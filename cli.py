"""Command-line front-end for the estimate agent.

Usage:
  estimate-cli setup
  estimate-cli list-estimates [--session ID] [--verbose]
  estimate-cli create-estimate [--session ID] [--title T] [--requirements R] [--run-workflow]
  estimate-cli cleanup
  estimate-cli embed-categories [--missing-only]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional
from uuid import uuid4

import structlog

from config.settings import settings
from config.errors import EstimateAgentError
from config.logging_config import configure_logging
from api.container import ServiceContainer
from services.seed_service import seed_reference_data

logger = structlog.get_logger()

DEFAULT_TITLE = "CLI estimate"
DEFAULT_REQUIREMENTS = "Simple requirements for a test estimate."


def _format_amount(value: Optional[float]) -> str:
    return f"{value:,.0f}" if value is not None else "not calculated"


def cmd_setup(services: ServiceContainer, args: argparse.Namespace) -> int:
    result = seed_reference_data(services.session_factory)
    if result.skipped:
        print("Reference data already exists. Skipping seed.")
    else:
        print(
            f"Seeded {result.categories_created} system categories "
            f"and {result.templates_created} question templates."
        )
    print("Setup complete.")
    return 0


def _print_estimate_details(services: ServiceContainer, estimate) -> None:
    print(f"Requirements: {estimate.initial_requirements}")
    print(f"Total amount: {_format_amount(estimate.total_amount)}")

    items = services.estimate_service.get_estimate_items(estimate.id)
    print("\nItems:")
    for index, item in enumerate(items, start=1):
        selected = "yes" if item.is_selected else "no"
        print(f"{index}. {item.name} - {item.unit_price:,.0f} (selected: {selected})")

    questions = services.question_service.get_estimate_questions(estimate.id)
    print("\nQuestions and answers:")
    for index, question in enumerate(questions, start=1):
        print(f"Q{index}: {question.question}")
        print(f"A: {question.answer or 'unanswered'}")
        print("---")


def cmd_list_estimates(services: ServiceContainer, args: argparse.Namespace) -> int:
    if args.session:
        estimate = services.estimate_service.get_temporary_estimate_by_session_id(args.session)
        if estimate is None:
            print(f"No estimate found for session '{args.session}'.")
            return 1

        print("Estimate:")
        print(f"ID: {estimate.id}")
        print(f"Title: {estimate.title}")
        print(f"Status: {estimate.status}")
        print(f"Created: {estimate.created_at.isoformat()}")
        if args.verbose:
            _print_estimate_details(services, estimate)
        return 0

    estimates = services.estimate_service.list_recent_estimates(limit=5)
    if not estimates:
        print("No estimates yet.")
        return 0

    print("Recent estimates:")
    for index, estimate in enumerate(estimates, start=1):
        print(
            f"{index}. ID: {estimate.id} | Title: {estimate.title} | "
            f"Status: {estimate.status} | Session: {estimate.session_id}"
        )
    return 0


def cmd_create_estimate(services: ServiceContainer, args: argparse.Namespace) -> int:
    session_id = args.session or str(uuid4())
    title = args.title or DEFAULT_TITLE
    requirements = args.requirements or DEFAULT_REQUIREMENTS

    estimate = services.estimate_service.create_temporary_estimate(
        session_id=session_id,
        title=title,
        initial_requirements=requirements,
    )
    print("Created estimate:")
    print(f"ID: {estimate.id}")
    print(f"Title: {estimate.title}")
    print(f"Session: {session_id}")

    if args.run_workflow:
        result = asyncio.run(services.workflow.run(requirements, estimate.id))
        print(f"\nCategory: {result.category_name} (confidence {result.category.confidence:.2f})")
        print(f"Questions generated: {result.question_count}")

    print("\nTo see the details:")
    print(f"  estimate-cli list-estimates --session {session_id} --verbose")
    return 0


def cmd_cleanup(services: ServiceContainer, args: argparse.Namespace) -> int:
    deleted = services.estimate_service.delete_expired_estimates()
    print(f"Deleted {deleted} expired estimate(s).")
    return 0


def cmd_embed_categories(services: ServiceContainer, args: argparse.Namespace) -> int:
    result = asyncio.run(
        services.category_embedding_service.embed_categories(missing_only=args.missing_only)
    )
    print(f"Stored embeddings for {result.embedded} system category(ies).")
    for category_id in result.failed:
        print(f"Failed: {category_id}", file=sys.stderr)
    return 1 if result.failed else 0


COMMANDS = {
    "setup": cmd_setup,
    "list-estimates": cmd_list_estimates,
    "create-estimate": cmd_create_estimate,
    "cleanup": cmd_cleanup,
    "embed-categories": cmd_embed_categories,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="estimate-cli", description="Estimate agent CLI")
    parser.add_argument("-s", "--session", help="Session ID")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show details")

    # Global options are also accepted after the command name
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-s", "--session", default=argparse.SUPPRESS, help="Session ID")
    common.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Show details")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("setup", parents=[common], help="Create tables and seed reference data")
    subparsers.add_parser("list-estimates", parents=[common], help="List recent estimates or show one session")

    create = subparsers.add_parser("create-estimate", parents=[common], help="Create a new estimate")
    create.add_argument("--title", help=f"Estimate title (default: {DEFAULT_TITLE!r})")
    create.add_argument("--requirements", help="Requirement text")
    create.add_argument(
        "--run-workflow",
        action="store_true",
        help="Categorize and generate questions after creating",
    )

    subparsers.add_parser("cleanup", parents=[common], help="Delete expired temporary estimates")

    embed = subparsers.add_parser(
        "embed-categories", parents=[common], help="Store embeddings of the system categories"
    )
    embed.add_argument(
        "--missing-only",
        action="store_true",
        help="Only embed categories without an embedding",
    )
    return parser


def main(argv: Optional[List[str]] = None, services: Optional[ServiceContainer] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.environment)
    services = services or ServiceContainer.build(settings)

    try:
        return COMMANDS[args.command](services, args)
    except EstimateAgentError as e:
        logger.error("cli_command_failed", command=args.command, code=e.code, error=e.message)
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
