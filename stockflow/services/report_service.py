"""Spreadsheet exports for the admin reports page."""
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from sqlalchemy import select

from stockflow.core.constants import REPORT_KINDS
from stockflow.core.errors import NotFound
from stockflow.models.category import Category
from stockflow.models.movement import Movement
from stockflow.models.product import Product
from stockflow.models.unit_type import UnitType
from stockflow.models.user import User

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_MAX_COLUMN_WIDTH = 60


def _users(db):
    header = ["ID", "Name", "Email", "Company", "Role", "Status", "Last Login", "Created"]
    rows = [
        [u.id, u.name, u.email, u.company, u.role, u.status, u.last_login, u.created_at]
        for u in db.execute(select(User).order_by(User.id)).scalars()
    ]
    return header, rows


def _products(db):
    header = [
        "ID",
        "Owner",
        "Name",
        "SKU",
        "Category",
        "Unit",
        "Quantity",
        "Cost Price",
        "Selling Price",
        "Min Stock Alert",
        "Supplier",
        "Status",
    ]
    rows = []
    for p in db.execute(select(Product).order_by(Product.id)).unique().scalars():
        rows.append(
            [
                p.id,
                p.user_id,
                p.name,
                p.sku,
                p.category.name if p.category else "",
                p.unit_type.abbreviation if p.unit_type else "",
                p.quantity,
                p.cost_price,
                p.selling_price,
                p.min_stock_alert,
                p.supplier,
                p.status,
            ]
        )
    return header, rows


def _categories(db):
    header = ["ID", "Owner", "Name", "Description", "Status", "Created"]
    rows = [
        [c.id, c.user_id, c.name, c.description, c.status, c.created_at]
        for c in db.execute(select(Category).order_by(Category.id)).scalars()
    ]
    return header, rows


def _unit_types(db):
    header = ["ID", "Owner", "Name", "Abbreviation", "Description", "Status"]
    rows = [
        [u.id, u.user_id, u.name, u.abbreviation, u.description, u.status]
        for u in db.execute(select(UnitType).order_by(UnitType.id)).scalars()
    ]
    return header, rows


def _movements(db):
    header = ["ID", "Date", "Event", "Title", "Description", "User", "Email", "Product ID"]
    stmt = select(Movement).order_by(Movement.created_at.desc(), Movement.id.desc())
    rows = [
        [
            m.id,
            m.created_at,
            m.event_type,
            m.event_title,
            m.description,
            m.user_name,
            m.user_email,
            m.related_product_id,
        ]
        for m in db.execute(stmt).scalars()
    ]
    return header, rows


_BUILDERS = {
    "users": _users,
    "products": _products,
    "categories": _categories,
    "unit-types": _unit_types,
    "movements": _movements,
}


def _cell_value(value):
    # Excel cannot store timezone-aware datetimes.
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def build_report(db, kind):
    """Return ``(filename, xlsx_bytes)`` for one report kind."""
    if kind not in REPORT_KINDS:
        raise NotFound("Unknown report: {}".format(kind))
    header, rows = _BUILDERS[kind](db)

    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = kind
    worksheet.append(header)
    for cell in worksheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        worksheet.append([_cell_value(value) for value in row])

    for index, title in enumerate(header, start=1):
        values = [title] + [row[index - 1] for row in rows]
        width = max(len(str(value)) for value in values if value is not None)
        worksheet.column_dimensions[get_column_letter(index)].width = min(width + 2, _MAX_COLUMN_WIDTH)
    worksheet.freeze_panes = "A2"

    buffer = BytesIO()
    workbook.save(buffer)
    return "{}-report.xlsx".format(kind), buffer.getvalue()


__all__ = ["XLSX_MEDIA_TYPE", "build_report"]
