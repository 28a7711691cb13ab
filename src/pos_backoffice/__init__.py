"""POS back-office package.

This package is organized by feature modules (users, employees, payroll,
inventory, sales) with a thin Flask controller layer over service and
repository layers.
"""

__version__ = "0.1.0"
