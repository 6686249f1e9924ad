"""POST /api/v1/requirements: accept initial requirements and start the workflow."""

import asyncio
from uuid import uuid4

import structlog

from api.container import get_services
from api.responses import success_response, json_response
from api.routes.helpers import get_request_json, parse_body, require_fields
from api.routes.v1 import v1
from models.schemas import InitialRequirementRequest, InitialRequirementResponse

logger = structlog.get_logger()

UNTITLED_ESTIMATE = "Untitled estimate"
BACKGROUND_MESSAGE = "Requirements received. Processing in the background"


@v1.route("/requirements", methods=["POST"])
def create_requirements():
    """Store the requirements as a draft estimate and generate its questions.

    The response is 201 even when the workflow fails; the client then polls
    the questions endpoint.
    """
    data = get_request_json()
    require_fields(data, "description")
    body = parse_body(InitialRequirementRequest, data)

    services = get_services()
    session_id = body.session_id or str(uuid4())
    title = f"Estimate for {body.organization}" if body.organization else UNTITLED_ESTIMATE

    estimate = services.estimate_service.create_temporary_estimate(
        session_id=session_id,
        title=title,
        initial_requirements=body.description,
        description=body.description,
        metadata=body.to_metadata(),
    )
    logger.info("requirements_received", estimate_id=estimate.id, session_id=session_id)

    try:
        result = asyncio.run(services.workflow.run(body.description, estimate.id))
    except Exception as e:
        logger.exception("initial_workflow_failed", estimate_id=estimate.id, error=str(e))
        message = BACKGROUND_MESSAGE
    else:
        if result.succeeded:
            message = (
                f"Requirements received. Category: {result.category_name}, "
                f"{result.question_count} questions generated"
            )
        else:
            message = BACKGROUND_MESSAGE

    response = InitialRequirementResponse(id=estimate.id, session_id=session_id, message=message)
    return json_response(success_response(response.model_dump()), status=201)
