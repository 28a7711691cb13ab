from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Mapping

from .common.datetime_utils import now_local
from .common.pagination import PageRequest
from .core.constants import (
    DEFAULT_INVOICE_PREFIX,
    DEFAULT_PAGE_SIZE,
    DEFAULT_STOCK_THRESHOLD,
    MAX_EXPORT_ROWS,
)
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository, MySQLOrgUnitRepository
from .employees.service import EmployeeService, OrgUnitService
from .inventory.mysql_inventory_repository import (
    MySQLAdjustmentRepository,
    MySQLCategoryRepository,
    MySQLMainProductRepository,
    MySQLProductRepository,
)
from .inventory.service import AdjustmentService, InventoryService, MainProductService
from .payroll.calculator.standard_calculator import StandardPayableCalculator
from .payroll.mysql_payroll_repository import MySQLLedgerRepository, MySQLSalaryRepository
from .payroll.service import PayrollService
from .sales.mysql_sales_repository import MySQLOrderRepository
from .sales.service import SalesService
from .users.mysql_user_repository import MySQLBranchRepository, MySQLUserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    auth_service: AuthService
    employee_service: EmployeeService
    position_service: OrgUnitService
    department_service: OrgUnitService
    payroll_service: PayrollService
    inventory_service: InventoryService
    adjustment_service: AdjustmentService
    main_product_service: MainProductService
    sales_service: SalesService

    conn: Any = None
    page_size: int = DEFAULT_PAGE_SIZE
    clock: Callable[[], datetime] = now_local

    def today(self) -> date:
        return self.clock().date()

    def page_request(self, args: Mapping[str, Any]) -> PageRequest:
        return PageRequest.from_args(args, default_limit=self.page_size)


def build_container(
    *,
    db_config: dict,
    invoice_prefix: str = DEFAULT_INVOICE_PREFIX,
    stock_threshold: int = DEFAULT_STOCK_THRESHOLD,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_export_rows: int = MAX_EXPORT_ROWS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    branches_repo = MySQLBranchRepository(conn)
    employees_repo = MySQLEmployeeRepository(conn)
    positions_repo = MySQLOrgUnitRepository(conn, "positions")
    departments_repo = MySQLOrgUnitRepository(conn, "departments")
    salaries_repo = MySQLSalaryRepository(conn)
    ledger_repo = MySQLLedgerRepository(conn)
    categories_repo = MySQLCategoryRepository(conn)
    products_repo = MySQLProductRepository(conn)
    adjustments_repo = MySQLAdjustmentRepository(conn)
    main_products_repo = MySQLMainProductRepository(conn)
    orders_repo = MySQLOrderRepository(conn)

    return Container(
        conn=conn,
        page_size=page_size,
        auth_service=AuthService(users_repo, branches_repo),
        employee_service=EmployeeService(employees_repo),
        position_service=OrgUnitService(positions_repo, label="Position"),
        department_service=OrgUnitService(departments_repo, label="Department"),
        payroll_service=PayrollService(
            employees_repo,
            salaries_repo,
            ledger_repo,
            calculator=StandardPayableCalculator(),
        ),
        inventory_service=InventoryService(
            categories_repo,
            products_repo,
            orders_repo,
            threshold=stock_threshold,
        ),
        adjustment_service=AdjustmentService(adjustments_repo, products_repo),
        main_product_service=MainProductService(main_products_repo, products_repo, orders_repo, branches_repo),
        sales_service=SalesService(orders_repo, invoice_prefix=invoice_prefix, max_export_rows=max_export_rows),
    )
