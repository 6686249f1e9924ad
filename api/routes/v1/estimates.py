"""Estimate endpoints: details, line items, totals, status, email and finalization."""

from flask import request

from api.container import get_services
from api.responses import success_response, json_response
from api.routes.helpers import parse_body
from api.routes.v1 import v1
from config.errors import ValidationError
from models.schemas import (
    EmailRequest,
    EstimateItemsRequest,
    EstimateResultResponse,
    ItemSelectionRequest,
    StatusUpdateRequest,
)

DEFAULT_LIST_LIMIT = 5
MAX_LIST_LIMIT = 100


def _limit_param() -> int:
    raw = request.args.get("limit")
    if raw is None:
        return DEFAULT_LIST_LIMIT
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationError("limit must be an integer", field="limit")
    if limit < 1:
        raise ValidationError("limit must be positive", field="limit")
    return min(limit, MAX_LIST_LIMIT)


def _estimate_result(services, estimate, total: float) -> EstimateResultResponse:
    items = services.estimate_service.get_estimate_items(estimate.id)
    return EstimateResultResponse(
        id=estimate.id,
        session_id=estimate.session_id,
        items=[item.to_dict() for item in items],
        total_amount=total,
        pdf_url=estimate.pdf_url,
    )


@v1.route("/estimates", methods=["GET"])
def list_estimates():
    services = get_services()
    estimates = services.estimate_service.list_recent_estimates(limit=_limit_param())
    return json_response(success_response([e.to_dict() for e in estimates]))


@v1.route("/estimates/<session_id>", methods=["GET"])
def get_estimate(session_id: str):
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    data = estimate.to_dict()
    data["items"] = [i.to_dict() for i in services.estimate_service.get_estimate_items(estimate.id)]
    data["questions"] = [q.to_dict() for q in services.question_service.get_estimate_questions(estimate.id)]
    return json_response(success_response(data))


@v1.route("/estimates/<session_id>/items", methods=["GET"])
def list_items(session_id: str):
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    items = services.estimate_service.get_estimate_items(estimate.id)
    return json_response(success_response([i.to_dict() for i in items]))


@v1.route("/estimates/<session_id>/items", methods=["POST"])
def create_items(session_id: str):
    body = parse_body(EstimateItemsRequest)
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    items = services.estimate_service.create_estimate_items(estimate.id, body.items)
    return json_response(success_response([i.to_dict() for i in items]), status=201)


@v1.route("/estimates/<session_id>/items/<item_id>", methods=["PATCH"])
def update_item(session_id: str, item_id: str):
    body = parse_body(ItemSelectionRequest)
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    services.estimate_service.update_item_selection(estimate.id, item_id, body.is_selected)
    total = services.estimate_service.update_total_amount(estimate.id)
    return json_response(success_response(_estimate_result(services, estimate, total).model_dump()))


@v1.route("/estimates/<session_id>/total", methods=["GET"])
def get_total(session_id: str):
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    total = services.estimate_service.update_total_amount(estimate.id)
    return json_response(success_response(_estimate_result(services, estimate, total).model_dump()))


@v1.route("/estimates/<session_id>/status", methods=["PATCH"])
def update_status(session_id: str):
    body = parse_body(StatusUpdateRequest)
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    updated = services.estimate_service.update_status(estimate.id, body.status)
    return json_response(success_response(updated.to_dict()))


@v1.route("/estimates/<session_id>/email", methods=["POST"])
def save_email(session_id: str):
    body = parse_body(EmailRequest)
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    updated = services.estimate_service.save_email(estimate.id, body.email)
    return json_response(success_response(updated.to_dict(), message="Notification queued"))


@v1.route("/estimates/<session_id>/finalize", methods=["POST"])
def finalize_estimate(session_id: str):
    services = get_services()
    estimate = services.estimate_service.require_temporary_estimate_by_session_id(session_id)
    services.estimate_service.update_total_amount(estimate.id)
    finalized = services.estimate_service.promote_to_permanent(estimate.id)
    return json_response(success_response(finalized.to_dict()), status=201)
