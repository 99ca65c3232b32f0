from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import arg_date, arg_int, current_actor, login_required
from ..core.enums import Role
from ..core.exceptions import NotFoundError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.report_service

    @app.route("/api/contractors/<int:contractor_id>/timesheet", methods=["GET"], endpoint="api_contractor_timesheet")
    @login_required
    def contractor_timesheet(contractor_id: int):
        actor = current_actor()
        if actor.role == Role.CONTRACTOR and actor.user_id != contractor_id:
            raise NotFoundError(f"Contractor {contractor_id} not found")

        sheet = service.contractor_timesheet(
            tenant_id=actor.tenant_id,
            contractor_id=contractor_id,
            start=arg_date("start_date"),
            end=arg_date("end_date"),
            project_id=arg_int("project_id"),
        )
        return jsonify(
            {
                "contractor": {
                    "id": sheet.contractor.contractor_id,
                    "full_name": sheet.contractor.full_name,
                    "email": sheet.contractor.email,
                },
                "period": {
                    "start_date": sheet.start_date.isoformat() if sheet.start_date else None,
                    "end_date": sheet.end_date.isoformat() if sheet.end_date else None,
                },
                "summary": sheet.summary.to_dict(),
                "entries": [e.to_dict() for e in sheet.entries],
            }
        )
