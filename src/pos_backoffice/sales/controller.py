from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.date_ranges import parse_months, resolve_request_range
from ..common.money import optional_decimal
from ..common.web import (
    api_action,
    current_branch_id,
    download_response,
    json_body,
    login_required,
    role_required,
)
from ..container import Container
from ..core.enums import PaymentStatus, Role
from ..core.exceptions import ValidationError
from .model import OrderFilter


def order_filter_from_args(args, *, branch_id, today) -> OrderFilter:
    status_s = (args.get("paymentStatus") or "all").strip().lower()
    if status_s == "all":
        payment_status = None
    else:
        try:
            payment_status = PaymentStatus(status_s)
        except ValueError:
            raise ValidationError("Payment status must be all, paid, due or partial")

    return OrderFilter(
        search=args.get("search", ""),
        branch_id=branch_id,
        payment_method=args.get("paymentMethod") or None,
        payment_status=payment_status,
        min_amount=optional_decimal(args.get("minAmount"), "minAmount"),
        max_amount=optional_decimal(args.get("maxAmount"), "maxAmount"),
        date_range=resolve_request_range(
            today=today,
            preset=args.get("dateFilter"),
            custom_date=args.get("customDate"),
            date_from=args.get("dateFrom"),
            date_to=args.get("dateTo"),
        ),
        months=parse_months(args.get("months")),
        product_search=args.get("productSearch", ""),
    )


def register(app: Flask, container: Container) -> None:
    service = container.sales_service
    managers = (Role.ADMIN, Role.MANAGER)

    def _filter() -> OrderFilter:
        return order_filter_from_args(request.args, branch_id=current_branch_id(), today=container.today())

    @app.route("/api/orders/paginated", methods=["GET"], endpoint="api_orders_paginated")
    @login_required
    @api_action("fetch orders")
    def list_orders():
        page = service.list_paginated(_filter(), container.page_request(request.args))
        return jsonify(page.to_dict("orders", lambda o: o.to_dict()))

    @app.route("/api/orders/export", methods=["GET"], endpoint="api_orders_export")
    @login_required
    @api_action("export sales")
    def export_orders():
        fmt = (request.args.get("format") or "csv").strip().lower()
        if fmt == "json":
            return jsonify({"orders": [o.to_dict() for o in service.export_orders(_filter())]})
        file = service.export(_filter(), fmt=fmt)
        return download_response(app, file.content, mimetype=file.mimetype, filename=file.filename)

    @app.route("/api/sales/stats", methods=["GET"], endpoint="api_sales_stats")
    @login_required
    @api_action("fetch sales stats")
    def sales_stats():
        return jsonify(service.stats(_filter()))

    @app.route("/api/sales/summary/paginated", methods=["GET"], endpoint="api_sales_summary")
    @login_required
    @api_action("fetch sales summary")
    def sales_summary():
        period = resolve_request_range(
            today=container.today(),
            preset=request.args.get("dateFilter"),
            custom_date=request.args.get("customDate"),
            date_from=request.args.get("startDate") or request.args.get("dateFrom"),
            date_to=request.args.get("endDate") or request.args.get("dateTo"),
        )
        page = service.product_summary(
            period,
            branch_id=current_branch_id(),
            search=request.args.get("search", ""),
            page=container.page_request(request.args),
        )
        return jsonify(page.to_dict("items", lambda r: r.to_dict()))

    @app.route("/api/orders/<order_id>", methods=["GET"], endpoint="api_order_get")
    @login_required
    @api_action("fetch order")
    def get_order(order_id: str):
        return jsonify(service.get(order_id).to_dict(include_items=True))

    @app.route("/api/orders/<order_id>/items", methods=["GET"], endpoint="api_order_items")
    @login_required
    @api_action("fetch order items")
    def order_items(order_id: str):
        return jsonify([i.to_dict() for i in service.list_items(order_id)])

    @app.route("/api/orders/<order_id>", methods=["PATCH", "PUT"], endpoint="api_order_update")
    @role_required(*managers)
    @api_action("update order")
    def update_order(order_id: str):
        return jsonify(service.update_payment(order_id, json_body()).to_dict())

    @app.route("/api/orders/<order_id>", methods=["DELETE"], endpoint="api_order_delete")
    @role_required(*managers)
    @api_action("delete order")
    def delete_order(order_id: str):
        service.delete(order_id)
        return jsonify({"success": True})
