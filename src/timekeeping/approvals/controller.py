from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import arg_int, arg_text, current_actor, json_body, login_required, parse_enum
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import Decision
from ..core.exceptions import ValidationError
from ..container import Container


def _decision(data: dict) -> Decision:
    decision = parse_enum(Decision, data.get("decision"), "decision")
    if decision is None:
        raise ValidationError("Decision is required (approve or reject)")
    return decision


def register(app: Flask, container: Container) -> None:
    service = container.approval_service

    @app.route("/api/time-entries/<int:entry_id>/decision", methods=["POST"], endpoint="api_decide_time_entry")
    @login_required
    def decide(entry_id: int):
        actor = current_actor()
        data = json_body()
        entry = service.decide(
            tenant_id=actor.tenant_id,
            entry_id=entry_id,
            decision=_decision(data),
            approver_id=actor.user_id,
            approver_role=actor.approver_role,
            notes=arg_text("notes", data),
        )
        return jsonify(entry.to_dict())

    @app.route("/api/time-entries/bulk-decision", methods=["POST"], endpoint="api_bulk_decide_time_entries")
    @login_required
    def bulk_decide():
        actor = current_actor()
        data = json_body()
        entry_ids = data.get("entry_ids")
        if not isinstance(entry_ids, list) or not entry_ids:
            raise ValidationError("entry_ids must be a non-empty list")
        try:
            entry_ids = [int(i) for i in entry_ids]
        except (TypeError, ValueError):
            raise ValidationError("entry_ids must contain integers")

        result = service.bulk_decide(
            tenant_id=actor.tenant_id,
            entry_ids=entry_ids,
            decision=_decision(data),
            approver_id=actor.user_id,
            approver_role=actor.approver_role,
            notes=arg_text("notes", data),
        )
        return jsonify(result.to_dict())

    @app.route("/api/approvals/pending", methods=["GET"], endpoint="api_pending_approvals")
    @login_required
    def pending():
        actor = current_actor()
        entries = service.list_pending(
            tenant_id=actor.tenant_id,
            user_id=arg_int("user_id"),
            approver_id=actor.user_id,
            approver_role=actor.approver_role,
            limit=arg_int("limit", default=DEFAULT_LIST_LIMIT),
        )
        return jsonify({"count": len(entries), "entries": [e.to_dict() for e in entries]})
