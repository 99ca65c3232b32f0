from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import arg_bool, arg_date, arg_int, arg_text, current_actor, json_body, login_required, parse_enum
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import ApprovalStatus, Role
from ..core.exceptions import NotFoundError
from ..container import Container
from .model import EntryFilters

# Roles that may read other users' entries within their tenant.
_READ_ALL_ROLES = {Role.ADMIN, Role.MANAGER, Role.CLIENT_CONTACT}


def register(app: Flask, container: Container) -> None:
    service = container.time_entry_service

    @app.route("/api/time-entries/clock-in", methods=["POST"], endpoint="api_clock_in")
    @login_required
    def clock_in():
        actor = current_actor()
        data = json_body()
        entry = service.clock_in(
            tenant_id=actor.tenant_id,
            user_id=actor.user_id,
            project_id=arg_int("project_id", data),
            client_id=arg_int("client_id", data),
            task_description=data.get("task_description"),
        )
        return jsonify(entry.to_dict()), 201

    @app.route("/api/time-entries/<int:entry_id>/clock-out", methods=["POST"], endpoint="api_clock_out")
    @login_required
    def clock_out(entry_id: int):
        actor = current_actor()
        data = json_body()
        entry = service.get_entry(tenant_id=actor.tenant_id, entry_id=entry_id)
        if entry.user_id != actor.user_id and actor.role not in (Role.ADMIN, Role.MANAGER):
            raise NotFoundError(f"Time entry {entry_id} not found")
        entry = service.clock_out(
            tenant_id=actor.tenant_id,
            entry_id=entry_id,
            break_minutes=arg_int("break_minutes", data, default=0),
        )
        return jsonify(entry.to_dict())

    @app.route("/api/time-entries", methods=["GET"], endpoint="api_list_time_entries")
    @login_required
    def list_entries():
        actor = current_actor()
        user_id = arg_int("user_id")
        if actor.role not in _READ_ALL_ROLES:
            user_id = actor.user_id

        filters = EntryFilters(
            user_id=user_id,
            project_id=arg_int("project_id"),
            start_date=arg_date("start_date"),
            end_date=arg_date("end_date"),
            approval_status=parse_enum(ApprovalStatus, arg_text("approval_status"), "approval status"),
            is_auto_generated=arg_bool("is_auto_generated"),
            limit=arg_int("limit", default=DEFAULT_LIST_LIMIT),
        )
        entries = service.list_entries(tenant_id=actor.tenant_id, filters=filters)
        return jsonify({"count": len(entries), "entries": [e.to_dict() for e in entries]})

    @app.route("/api/time-entries/<int:entry_id>", methods=["GET"], endpoint="api_get_time_entry")
    @login_required
    def get_entry(entry_id: int):
        actor = current_actor()
        entry = service.get_entry(tenant_id=actor.tenant_id, entry_id=entry_id)
        if actor.role not in _READ_ALL_ROLES and entry.user_id != actor.user_id:
            raise NotFoundError(f"Time entry {entry_id} not found")
        return jsonify(entry.to_dict())
