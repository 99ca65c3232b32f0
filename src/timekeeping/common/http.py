"""JSON plumbing shared by the feature controllers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session

from ..core.enums import ApproverRole, Role
from ..core.exceptions import ConflictError, DomainError, NotFoundError, PolicyError, ValidationError
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    NotFoundError.code: 404,
    ConflictError.code: 409,
    ValidationError.code: 400,
    PolicyError.code: 403,
}


@dataclass(frozen=True)
class Actor:
    tenant_id: int
    user_id: int
    role: Role

    @property
    def approver_role(self) -> ApproverRole:
        if self.role in (Role.ADMIN, Role.MANAGER):
            return ApproverRole.MANAGER
        if self.role == Role.CLIENT_CONTACT:
            return ApproverRole.CLIENT
        raise PolicyError("Only managers and client contacts can decide time entries")


def current_actor() -> Actor:
    return Actor(
        tenant_id=int(session["tenant_id"]),
        user_id=int(session["user_id"]),
        role=Role(session.get("role", Role.CONTRACTOR.value)),
    )


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "tenant_id" not in session:
            return jsonify({"error": "Authentication required", "code": "unauthenticated"}), 401
        return view(*args, **kwargs)

    return wrapper


def manager_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "tenant_id" not in session:
            return jsonify({"error": "Authentication required", "code": "unauthenticated"}), 401
        if session.get("role") not in (Role.ADMIN.value, Role.MANAGER.value):
            return jsonify({"error": "Manager role required", "code": PolicyError.code}), 403
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def arg_date(name: str, data: Optional[dict] = None):
    source = request.args if data is None else data
    value = source.get(name)
    return parse_iso_date(value) if value else None


def arg_int(name: str, data: Optional[dict] = None, *, default: Optional[int] = None) -> Optional[int]:
    source = request.args if data is None else data
    value = source.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def arg_text(name: str, data: Optional[dict] = None) -> Optional[str]:
    source = request.args if data is None else data
    value = source.get(name)
    return str(value) if value not in (None, "") else None


def arg_bool(name: str) -> Optional[bool]:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in {"1", "true", "yes"}


def parse_enum(enum_cls, value: Any, field_name: str):
    if value is None or value == "":
        return None
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name} {value!r} (expected one of: {allowed})")


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = STATUS_BY_CODE.get(e.code, 400)
        return jsonify({"error": str(e), "code": e.code}), status
