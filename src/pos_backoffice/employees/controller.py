from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.date_ranges import resolve_request_range
from ..common.web import (
    api_action,
    current_branch_id,
    download_response,
    json_body,
    login_required,
    role_required,
)
from ..container import Container
from ..core.enums import EmployeeStatus, Role
from ..core.exceptions import ValidationError
from ..spreadsheets.reader import read_table
from .model import EmployeeFilter


def employee_filter_from_args(args, *, branch_id, today) -> EmployeeFilter:
    status_s = (args.get("status") or "all").strip().lower()
    if status_s == "all":
        status = None
    else:
        try:
            status = EmployeeStatus(status_s)
        except ValueError:
            raise ValidationError("Status must be all, active or inactive")

    joined = resolve_request_range(
        today=today,
        preset=args.get("dateFilter"),
        custom_date=args.get("customDate"),
        date_from=args.get("joinDateFrom"),
        date_to=args.get("joinDateTo"),
    )
    return EmployeeFilter(
        search=args.get("search", ""),
        status=status,
        position=(args.get("position") or None),
        department=(args.get("department") or None),
        joined=joined,
        branch_id=branch_id,
    )


def register(app: Flask, container: Container) -> None:
    service = container.employee_service
    managers = (Role.ADMIN, Role.MANAGER)

    def _criteria() -> EmployeeFilter:
        return employee_filter_from_args(request.args, branch_id=current_branch_id(), today=container.today())

    @app.route("/api/employees", methods=["GET"], endpoint="api_employees")
    @login_required
    @api_action("fetch employees")
    def list_employees():
        return jsonify([e.to_dict() for e in service.list_employees(_criteria())])

    @app.route("/api/employees/paginated", methods=["GET"], endpoint="api_employees_paginated")
    @login_required
    @api_action("fetch employees")
    def list_employees_paginated():
        page = service.list_paginated(_criteria(), container.page_request(request.args))
        return jsonify(page.to_dict("employees", lambda e: e.to_dict()))

    @app.route("/api/employees/next-id", methods=["GET"], endpoint="api_employees_next_id")
    @login_required
    @api_action("generate employee ID")
    def next_id():
        return jsonify({"employeeId": service.next_employee_id()})

    @app.route("/api/employees/export", methods=["GET"], endpoint="api_employees_export")
    @login_required
    @api_action("export employees")
    def export_employees():
        file = service.export(_criteria(), fmt=request.args.get("format", "csv"))
        return download_response(app, file.content, mimetype=file.mimetype, filename=file.filename)

    @app.route("/api/employees/template", methods=["GET"], endpoint="api_employees_template")
    @login_required
    @api_action("download template")
    def import_template():
        file = service.import_template(fmt=request.args.get("format", "csv"))
        return download_response(app, file.content, mimetype=file.mimetype, filename=file.filename)

    @app.route("/api/employees/import", methods=["POST"], endpoint="api_employees_import")
    @role_required(*managers)
    @api_action("import employees")
    def import_employees():
        upload = request.files.get("file")
        if upload:
            rows = read_table(upload.read(), upload.filename or "")
        else:
            rows = json_body().get("employees")
            if not isinstance(rows, list):
                raise ValidationError("Provide a file or an employees array")
        result = service.import_rows(rows, branch_id=current_branch_id())
        return jsonify(result.to_dict())

    @app.route("/api/employees", methods=["POST"], endpoint="api_employees_create")
    @role_required(*managers)
    @api_action("create employee")
    def create_employee():
        employee = service.create(json_body(), branch_id=current_branch_id())
        return jsonify(employee.to_dict()), 201

    @app.route("/api/employees/<employee_pk>", methods=["GET"], endpoint="api_employee_get")
    @login_required
    @api_action("fetch employee")
    def get_employee(employee_pk: str):
        return jsonify(service.get(employee_pk).to_dict())

    @app.route("/api/employees/<employee_pk>", methods=["PATCH", "PUT"], endpoint="api_employee_update")
    @role_required(*managers)
    @api_action("update employee")
    def update_employee(employee_pk: str):
        return jsonify(service.update(employee_pk, json_body()).to_dict())

    @app.route("/api/employees/<employee_pk>", methods=["DELETE"], endpoint="api_employee_delete")
    @role_required(*managers)
    @api_action("delete employee")
    def delete_employee(employee_pk: str):
        service.delete(employee_pk)
        return jsonify({"success": True})

    def _register_org_units(slug: str, unit_service) -> None:
        @app.route(f"/api/{slug}", methods=["GET"], endpoint=f"api_{slug}")
        @login_required
        @api_action(f"fetch {slug}")
        def list_units():
            return jsonify([u.to_dict() for u in unit_service.list_all()])

        @app.route(f"/api/{slug}", methods=["POST"], endpoint=f"api_{slug}_create")
        @role_required(*managers)
        @api_action(f"create {slug}")
        def create_unit():
            data = json_body()
            unit = unit_service.create(name=data.get("name"), description=data.get("description"))
            return jsonify(unit.to_dict()), 201

        @app.route(f"/api/{slug}/<unit_id>", methods=["PATCH", "PUT"], endpoint=f"api_{slug}_update")
        @role_required(*managers)
        @api_action(f"update {slug}")
        def update_unit(unit_id: str):
            data = json_body()
            unit = unit_service.update(unit_id, name=data.get("name"), description=data.get("description"))
            return jsonify(unit.to_dict())

        @app.route(f"/api/{slug}/<unit_id>", methods=["DELETE"], endpoint=f"api_{slug}_delete")
        @role_required(*managers)
        @api_action(f"delete {slug}")
        def delete_unit(unit_id: str):
            unit_service.delete(unit_id)
            return jsonify({"success": True})

    _register_org_units("positions", container.position_service)
    _register_org_units("departments", container.department_service)
