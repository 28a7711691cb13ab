from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.date_ranges import resolve_request_range
from ..common.money import optional_decimal
from ..common.serialization import to_json_value
from ..common.web import (
    api_action,
    bool_arg,
    current_branch_id,
    download_response,
    json_body,
    list_arg,
    login_required,
    role_required,
)
from ..container import Container
from ..core.enums import AdjustmentType, Role, StockStatus
from ..core.exceptions import ValidationError
from ..spreadsheets.reader import read_table
from .model import AdjustmentFilter, ProductFilter


def product_filter_from_args(args, *, branch_id, threshold, today, in_stock=None, has_shortage=None) -> ProductFilter:
    status_s = (args.get("status") or "all").strip().lower()
    if status_s == "all":
        status = None
    else:
        try:
            status = StockStatus(status_s)
        except ValueError:
            raise ValidationError("Status must be all, in_stock, low_stock or out_of_stock")

    return ProductFilter(
        search=args.get("search", ""),
        branch_id=branch_id,
        category_id=(args.get("categoryId") if args.get("categoryId") not in (None, "", "all") else None),
        status=status,
        threshold=threshold,
        min_price=optional_decimal(args.get("minPrice"), "minPrice"),
        max_price=optional_decimal(args.get("maxPrice"), "maxPrice"),
        in_stock=in_stock,
        has_shortage=has_shortage,
        created=resolve_request_range(
            today=today,
            preset=args.get("dateFilter"),
            custom_date=args.get("customDate"),
            date_from=args.get("dateFrom"),
            date_to=args.get("dateTo"),
        ),
    )


def adjustment_filter_from_args(args, *, branch_id, today) -> AdjustmentFilter:
    type_s = (args.get("adjustmentType") or "all").strip().lower()
    if type_s == "all":
        adjustment_type = None
    else:
        try:
            adjustment_type = AdjustmentType(type_s)
        except ValueError:
            raise ValidationError("Adjustment type must be all, add, remove or set")
    return AdjustmentFilter(
        product_id=args.get("productId") or None,
        adjustment_type=adjustment_type,
        search=args.get("search", ""),
        branch_id=branch_id,
        created=resolve_request_range(
            today=today,
            preset=args.get("dateFilter"),
            custom_date=args.get("customDate"),
            date_from=args.get("dateFrom"),
            date_to=args.get("dateTo"),
        ),
    )


def register(app: Flask, container: Container) -> None:
    inventory = container.inventory_service
    adjustments = container.adjustment_service
    main_products = container.main_product_service
    managers = (Role.ADMIN, Role.MANAGER)

    def _product_filter() -> ProductFilter:
        return product_filter_from_args(
            request.args,
            branch_id=current_branch_id(),
            threshold=inventory.threshold,
            today=container.today(),
            in_stock=bool_arg("inStock"),
            has_shortage=bool_arg("hasShortage"),
        )

    # --- categories -----------------------------------------------------

    @app.route("/api/categories", methods=["GET"], endpoint="api_categories")
    @login_required
    @api_action("fetch categories")
    def list_categories():
        return jsonify([c.to_dict() for c in inventory.list_categories()])

    @app.route("/api/categories", methods=["POST"], endpoint="api_categories_create")
    @role_required(*managers)
    @api_action("create category")
    def create_category():
        data = json_body()
        category = inventory.create_category(name=data.get("name"), description=data.get("description"))
        return jsonify(category.to_dict()), 201

    # --- products -------------------------------------------------------

    @app.route("/api/products", methods=["GET"], endpoint="api_products")
    @app.route("/api/products/paginated", methods=["GET"], endpoint="api_products_paginated")
    @login_required
    @api_action("fetch products")
    def list_products():
        page = inventory.list_paginated(_product_filter(), container.page_request(request.args))
        return jsonify(page.to_dict("products", lambda p: p.to_dict(inventory.threshold)))

    @app.route("/api/products/export", methods=["GET"], endpoint="api_products_export")
    @login_required
    @api_action("export products")
    def export_products():
        file = inventory.export_products(_product_filter(), fmt=request.args.get("format", "csv"))
        return download_response(app, file.content, mimetype=file.mimetype, filename=file.filename)

    @app.route("/api/products/template", methods=["GET"], endpoint="api_products_template")
    @login_required
    @api_action("download template")
    def product_import_template():
        file = inventory.import_template(fmt=request.args.get("format", "xlsx"))
        return download_response(app, file.content, mimetype=file.mimetype, filename=file.filename)

    @app.route("/api/products/import", methods=["POST"], endpoint="api_products_import")
    @role_required(*managers)
    @api_action("import products")
    def import_products():
        upload = request.files.get("file")
        if upload:
            rows = read_table(upload.read(), upload.filename or "")
        else:
            rows = json_body().get("products")
            if not isinstance(rows, list):
                raise ValidationError("Provide a file or a products array")
        return jsonify(inventory.import_products(rows, branch_id=current_branch_id()).to_dict())

    @app.route("/api/products", methods=["POST"], endpoint="api_products_create")
    @role_required(*managers)
    @api_action("create product")
    def create_product():
        product = inventory.create_product(json_body(), branch_id=current_branch_id())
        return jsonify(product.to_dict(inventory.threshold)), 201

    @app.route("/api/products/<product_id>", methods=["GET"], endpoint="api_product_get")
    @login_required
    @api_action("fetch product")
    def get_product(product_id: str):
        return jsonify(inventory.get_product(product_id).to_dict(inventory.threshold))

    @app.route("/api/products/<product_id>", methods=["PATCH", "PUT"], endpoint="api_product_update")
    @role_required(*managers)
    @api_action("update product")
    def update_product(product_id: str):
        return jsonify(inventory.update_product(product_id, json_body()).to_dict(inventory.threshold))

    @app.route("/api/products/<product_id>", methods=["DELETE"], endpoint="api_product_delete")
    @role_required(*managers)
    @api_action("delete product")
    def delete_product(product_id: str):
        inventory.delete_product(product_id)
        return jsonify({"success": True})

    # --- stock ------------------------------------------------------------

    @app.route("/api/inventory/low-stock", methods=["GET"], endpoint="api_low_stock")
    @login_required
    @api_action("fetch low stock products")
    def low_stock():
        page = inventory.low_stock(branch_id=current_branch_id(), page=container.page_request(request.args))
        return jsonify(page.to_dict("products", lambda p: p.to_dict(inventory.threshold)))

    @app.route("/api/inventory/stats", methods=["GET"], endpoint="api_inventory_stats")
    @login_required
    @api_action("fetch inventory stats")
    def inventory_stats():
        return jsonify(inventory.stats(branch_id=current_branch_id()))

    @app.route("/api/inventory/sold-quantities", methods=["GET"], endpoint="api_sold_quantities")
    @login_required
    @api_action("fetch sold quantities")
    def sold_quantities():
        ids = list_arg("productIds") or None
        return jsonify(to_json_value(inventory.sold_quantities(ids)))

    @app.route("/api/inventory/adjustments", methods=["GET"], endpoint="api_adjustments")
    @login_required
    @api_action("fetch adjustments")
    def list_adjustments():
        criteria = adjustment_filter_from_args(request.args, branch_id=current_branch_id(), today=container.today())
        page = adjustments.list_paginated(criteria, container.page_request(request.args))
        return jsonify(page.to_dict("adjustments", lambda a: a.to_dict()))

    @app.route("/api/inventory/adjustments", methods=["POST"], endpoint="api_adjustments_create")
    @role_required(*managers)
    @api_action("create adjustment")
    def create_adjustment():
        adjustment = adjustments.create(json_body(), performed_by=session.get("username"))
        return jsonify(adjustment.to_dict()), 201

    @app.route("/api/inventory/adjustments/<adjustment_id>", methods=["PATCH", "PUT"], endpoint="api_adjustments_update")
    @role_required(*managers)
    @api_action("update adjustment")
    def update_adjustment(adjustment_id: str):
        return jsonify(adjustments.update(adjustment_id, json_body()).to_dict())

    @app.route("/api/inventory/adjustments/<adjustment_id>", methods=["DELETE"], endpoint="api_adjustments_delete")
    @role_required(*managers)
    @api_action("delete adjustment")
    def delete_adjustment(adjustment_id: str):
        adjustments.delete(adjustment_id)
        return jsonify({"success": True})

    # --- main products ----------------------------------------------------

    @app.route("/api/main-products", methods=["GET"], endpoint="api_main_products")
    @login_required
    @api_action("fetch main products")
    def list_main_products():
        return jsonify([m.to_dict() for m in main_products.list_all()])

    @app.route("/api/main-products", methods=["POST"], endpoint="api_main_products_create")
    @role_required(*managers)
    @api_action("create main product")
    def create_main_product():
        return jsonify(main_products.create(json_body()).to_dict()), 201

    @app.route("/api/main-products/<main_id>", methods=["GET"], endpoint="api_main_product_get")
    @login_required
    @api_action("fetch main product")
    def get_main_product(main_id: str):
        return jsonify(main_products.get(main_id).to_dict())

    @app.route("/api/main-products/<main_id>", methods=["PATCH", "PUT"], endpoint="api_main_product_update")
    @role_required(*managers)
    @api_action("update main product")
    def update_main_product(main_id: str):
        return jsonify(main_products.update(main_id, json_body()).to_dict())

    @app.route("/api/main-products/<main_id>", methods=["DELETE"], endpoint="api_main_product_delete")
    @role_required(*managers)
    @api_action("delete main product")
    def delete_main_product(main_id: str):
        main_products.delete(main_id)
        return jsonify({"success": True})

    @app.route("/api/main-products/<main_id>/items", methods=["GET"], endpoint="api_main_product_items")
    @login_required
    @api_action("fetch main product items")
    def list_main_product_items(main_id: str):
        return jsonify([i.to_dict() for i in main_products.list_items(main_id)])

    @app.route("/api/main-products/<main_id>/items", methods=["POST"], endpoint="api_main_product_items_add")
    @role_required(*managers)
    @api_action("link product")
    def add_main_product_item(main_id: str):
        main_products.add_item(main_id, json_body().get("productId"))
        return jsonify({"success": True}), 201

    @app.route(
        "/api/main-products/<main_id>/items/<product_id>",
        methods=["DELETE"],
        endpoint="api_main_product_items_remove",
    )
    @role_required(*managers)
    @api_action("unlink product")
    def remove_main_product_item(main_id: str, product_id: str):
        main_products.remove_item(main_id, product_id)
        return jsonify({"success": True})

    @app.route("/api/main-products/<main_id>/stats", methods=["GET"], endpoint="api_main_product_stats")
    @login_required
    @api_action("fetch main product stats")
    def main_product_stats(main_id: str):
        return jsonify(main_products.stats(main_id))
