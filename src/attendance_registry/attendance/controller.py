from __future__ import annotations

from functools import wraps

from flask import Flask, g, jsonify, request

from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ..container import Container

API_PREFIX = "/api/v1/attendance"


def error_status(exc: DomainError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    return 400


def register(app: Flask, container: Container) -> None:
    """JSON routes over AttendanceService.

    Identity is resolved upstream: the gateway forwards the actor id, its flattened
    permission codes and the correlation id as headers.
    """

    def actor_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor_id = (request.headers.get("X-Actor-Id") or "").strip()
            if not actor_id:
                return jsonify({"error": {"code": "UNAUTHORIZED", "message": "Unauthorized"}}), 401

            raw = request.headers.get("X-Actor-Permissions") or ""
            g.actor_id = actor_id
            g.actor_permissions = [p.strip() for p in raw.split(",") if p.strip()]
            g.request_id = request.headers.get("X-Request-Id")
            return view(*args, **kwargs)

        return wrapper

    def handle_domain_error(exc: DomainError):
        return jsonify({"error": {"code": exc.code, "message": exc.message}}), error_status(exc)

    app.register_error_handler(DomainError, handle_domain_error)

    def _body() -> dict:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("JSON body is required")
        return body

    @app.route(f"{API_PREFIX}/mark", methods=["POST"], endpoint="attendance_mark")
    @actor_required
    def mark():
        body = _body()
        result = container.attendance_service.mark(
            employee_id=str(body.get("employeeId") or ""),
            attendance_date=body.get("attendanceDate"),
            status=body.get("status"),
            source=body.get("source"),
            note=body.get("note"),
            reason=body.get("reason"),
            actor_id=g.actor_id,
            actor_permissions=g.actor_permissions,
            request_id=g.request_id,
        )
        return jsonify(result.to_dict()), 201 if result.record.version == 1 else 200

    @app.route(f"{API_PREFIX}/override", methods=["POST"], endpoint="attendance_override")
    @actor_required
    def override():
        body = _body()
        expected_version = body.get("expectedVersion")
        if expected_version is not None:
            try:
                expected_version = int(expected_version)
            except (TypeError, ValueError):
                raise ValidationError("expectedVersion must be an integer")
        result = container.attendance_service.override(
            employee_id=str(body.get("employeeId") or ""),
            attendance_date=body.get("attendanceDate"),
            status=body.get("status"),
            source=body.get("source") or "HR",
            note=body.get("note"),
            reason=body.get("reason"),
            actor_id=g.actor_id,
            actor_permissions=g.actor_permissions,
            request_id=g.request_id,
            expected_version=expected_version,
        )
        return jsonify(result.to_dict()), 200

    @app.route(f"{API_PREFIX}/bulk-mark", methods=["POST"], endpoint="attendance_bulk_mark")
    @actor_required
    def bulk_mark():
        body = _body()
        items = body.get("items")
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise ValidationError("items must be a list of objects")

        result = container.attendance_service.bulk_mark(
            attendance_date=body.get("attendanceDate"),
            source=body.get("source"),
            items=items,
            actor_id=g.actor_id,
            actor_permissions=g.actor_permissions,
            request_id=g.request_id,
        )
        return jsonify(result.to_dict()), 200

    @app.route(f"{API_PREFIX}/month", methods=["GET"], endpoint="attendance_month")
    @actor_required
    def month():
        result = container.attendance_service.by_month(
            month=request.args.get("month") or "",
            division_id=request.args.get("divisionId") or None,
            actor_permissions=g.actor_permissions,
        )
        return jsonify(result.to_dict()), 200

    @app.route(f"{API_PREFIX}/summary", methods=["GET"], endpoint="attendance_summary")
    @actor_required
    def summary():
        result = container.attendance_service.summary(
            month=request.args.get("month") or "",
            division_id=request.args.get("divisionId") or None,
            actor_permissions=g.actor_permissions,
        )
        return jsonify(result.to_dict()), 200
