from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_hhmm
from ..common.http import (
    arg_date,
    arg_int,
    arg_text,
    current_actor,
    json_body,
    login_required,
    manager_required,
    parse_enum,
)
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import AbsenceStatus, AbsenceType, Decision, Role
from ..core.exceptions import ValidationError
from ..container import Container

_MANAGING_ROLES = {Role.ADMIN, Role.MANAGER}


def register(app: Flask, container: Container) -> None:
    ledger = container.exception_ledger

    @app.route("/api/exceptions", methods=["POST"], endpoint="api_report_exception")
    @login_required
    def report_exception():
        actor = current_actor()
        data = json_body()

        contractor_id = arg_int("contractor_id", data, default=actor.user_id)
        if contractor_id != actor.user_id and actor.role not in _MANAGING_ROLES:
            raise ValidationError("Contractors can only report their own exceptions")

        start_date = arg_date("start_date", data)
        if start_date is None:
            raise ValidationError("start_date is required")
        absence_type = parse_enum(AbsenceType, data.get("exception_type"), "exception type")
        if absence_type is None:
            raise ValidationError("exception_type is required")

        start_time = arg_text("start_time", data)
        end_time = arg_text("end_time", data)
        absence = ledger.report_exception(
            tenant_id=actor.tenant_id,
            contractor_id=contractor_id,
            start_date=start_date,
            end_date=arg_date("end_date", data),
            absence_type=absence_type,
            is_full_day=bool(data.get("is_full_day", True)),
            hours_affected=data.get("hours_affected"),
            start_time=parse_hhmm(start_time) if start_time else None,
            end_time=parse_hhmm(end_time) if end_time else None,
            reason=arg_text("reason", data),
            description=arg_text("description", data),
            created_by=actor.user_id,
        )
        return jsonify(absence.to_dict()), 201

    @app.route("/api/exceptions", methods=["GET"], endpoint="api_list_exceptions")
    @login_required
    def list_exceptions():
        actor = current_actor()
        contractor_id = arg_int("contractor_id")
        if actor.role not in _MANAGING_ROLES:
            contractor_id = actor.user_id

        items = ledger.list_exceptions(
            tenant_id=actor.tenant_id,
            contractor_id=contractor_id,
            start=arg_date("start_date"),
            end=arg_date("end_date"),
            status=parse_enum(AbsenceStatus, arg_text("status"), "status"),
            absence_type=parse_enum(AbsenceType, arg_text("exception_type"), "exception type"),
            limit=arg_int("limit", default=DEFAULT_LIST_LIMIT),
        )
        return jsonify({"count": len(items), "exceptions": [a.to_dict() for a in items]})

    @app.route("/api/exceptions/<int:absence_id>/decision", methods=["POST"], endpoint="api_decide_exception")
    @manager_required
    def decide_exception(absence_id: int):
        actor = current_actor()
        data = json_body()
        decision = parse_enum(Decision, data.get("decision"), "decision")
        if decision is None:
            raise ValidationError("Decision is required (approve or reject)")

        if decision is Decision.APPROVE:
            absence = ledger.approve_exception(
                tenant_id=actor.tenant_id,
                absence_id=absence_id,
                current_role=actor.role,
                decided_by=actor.user_id,
            )
        else:
            absence = ledger.reject_exception(
                tenant_id=actor.tenant_id,
                absence_id=absence_id,
                current_role=actor.role,
                decided_by=actor.user_id,
                reason=arg_text("reason", data) or "",
            )
        return jsonify(absence.to_dict())
