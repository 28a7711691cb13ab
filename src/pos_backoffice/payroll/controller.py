from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request

from ..common.date_ranges import DateRange, months_span, parse_months, resolve_request_range
from ..common.web import (
    api_action,
    bool_arg,
    current_branch_id,
    download_response,
    json_body,
    login_required,
    role_required,
)
from ..container import Container
from ..core.enums import LedgerKind, LedgerStatus, Role
from ..core.exceptions import NotFoundError, ValidationError


def salary_period_from_args(args, *, today) -> Optional[DateRange]:
    """A month list wins; otherwise startDate/endDate, then a named preset."""
    months = parse_months(args.get("months"))
    if months:
        return months_span(months)
    return resolve_request_range(
        today=today,
        preset=args.get("dateFilter"),
        custom_date=args.get("customDate"),
        date_from=args.get("startDate"),
        date_to=args.get("endDate"),
    )


def _ledger_kind(slug: str) -> LedgerKind:
    try:
        return LedgerKind.from_slug(slug)
    except ValueError:
        raise NotFoundError(f"Unknown ledger type: {slug}")


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service
    managers = (Role.ADMIN, Role.MANAGER)

    def _period() -> Optional[DateRange]:
        return salary_period_from_args(request.args, today=container.today())

    @app.route("/api/staff-salaries", methods=["GET"], endpoint="api_salaries")
    @app.route("/api/staff-salaries/with-employees", methods=["GET"], endpoint="api_salaries_with_employees")
    @login_required
    @api_action("fetch staff salaries")
    def list_salaries():
        return jsonify(service.list_with_employees(_period(), branch_id=current_branch_id()))

    @app.route("/api/staff-salaries/summary", methods=["GET"], endpoint="api_salaries_summary")
    @login_required
    @api_action("fetch salary summary")
    def salary_summary():
        return jsonify(service.summary(_period(), branch_id=current_branch_id()))

    @app.route("/api/staff-salaries/export", methods=["GET"], endpoint="api_salaries_export")
    @login_required
    @api_action("export staff salaries")
    def export_salaries():
        file = service.export(_period(), fmt=request.args.get("format", "csv"), branch_id=current_branch_id())
        return download_response(app, file.content, mimetype=file.mimetype, filename=file.filename)

    @app.route("/api/staff-salaries/payables", methods=["GET"], endpoint="api_payables")
    @login_required
    @api_action("fetch payables")
    def payables():
        rows = service.payables(branch_id=current_branch_id(), include_inactive=bool(bool_arg("includeInactive")))
        return jsonify([r.to_dict() for r in rows])

    @app.route("/api/staff-salaries/payables/summary", methods=["GET"], endpoint="api_payables_summary")
    @login_required
    @api_action("fetch payable summary")
    def payables_summary():
        return jsonify(service.payable_summary(branch_id=current_branch_id()))

    @app.route("/api/staff-salaries", methods=["POST"], endpoint="api_salaries_create")
    @role_required(*managers)
    @api_action("create staff salary")
    def create_salary():
        return jsonify(service.create_salary(json_body()).to_dict()), 201

    @app.route("/api/staff-salaries/bulk-release", methods=["POST"], endpoint="api_salaries_bulk_release")
    @role_required(*managers)
    @api_action("release salaries")
    def bulk_release():
        data = json_body()
        if isinstance(data.get("salaries"), list):
            result = service.bulk_create(data["salaries"])
        elif isinstance(data.get("employeeIds"), list):
            amounts = data.get("amounts") or {}
            if not isinstance(amounts, dict):
                raise ValidationError("amounts must be an object keyed by employee")
            result = service.release(
                data["employeeIds"],
                salary_date=data.get("salaryDate"),
                amounts=amounts,
                note=data.get("note"),
            )
        else:
            raise ValidationError("Provide salaries or employeeIds")
        return jsonify(result.to_dict())

    @app.route("/api/staff-salaries/<salary_id>", methods=["GET"], endpoint="api_salaries_get")
    @login_required
    @api_action("fetch staff salary")
    def get_salary(salary_id: str):
        return jsonify(service.get_salary(salary_id).to_dict())

    @app.route("/api/staff-salaries/<salary_id>", methods=["PATCH", "PUT"], endpoint="api_salaries_update")
    @role_required(*managers)
    @api_action("update staff salary")
    def update_salary(salary_id: str):
        return jsonify(service.update_salary(salary_id, json_body()).to_dict())

    @app.route("/api/staff-salaries/<salary_id>", methods=["DELETE"], endpoint="api_salaries_delete")
    @role_required(*managers)
    @api_action("delete staff salary")
    def delete_salary(salary_id: str):
        service.delete_salary(salary_id)
        return jsonify({"success": True})

    @app.route("/api/staff-ledger/<kind>", methods=["GET"], endpoint="api_ledger_list")
    @login_required
    @api_action("fetch ledger entries")
    def list_entries(kind: str):
        status_s = request.args.get("status")
        try:
            status = LedgerStatus(status_s) if status_s and status_s != "all" else None
        except ValueError:
            raise ValidationError("Status must be pending or settled")
        entries = service.list_ledger(
            _ledger_kind(kind),
            employee_pk=request.args.get("employeeId") or None,
            status=status,
            branch_id=current_branch_id(),
        )
        return jsonify([e.to_dict() for e in entries])

    @app.route("/api/staff-ledger/<kind>", methods=["POST"], endpoint="api_ledger_create")
    @role_required(*managers)
    @api_action("create ledger entry")
    def create_entry(kind: str):
        return jsonify(service.create_entry(_ledger_kind(kind), json_body()).to_dict()), 201

    @app.route("/api/staff-ledger/<kind>/<entry_id>", methods=["PATCH", "PUT"], endpoint="api_ledger_update")
    @role_required(*managers)
    @api_action("update ledger entry")
    def update_entry(kind: str, entry_id: str):
        return jsonify(service.update_entry(_ledger_kind(kind), entry_id, json_body()).to_dict())

    @app.route("/api/staff-ledger/<kind>/<entry_id>", methods=["DELETE"], endpoint="api_ledger_delete")
    @role_required(*managers)
    @api_action("delete ledger entry")
    def delete_entry(kind: str, entry_id: str):
        service.delete_entry(_ledger_kind(kind), entry_id)
        return jsonify({"success": True})
