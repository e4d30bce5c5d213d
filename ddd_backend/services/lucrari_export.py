"""
DDD Service Backend - Lucrari CSV Export
Version: 1.0.0

Changelog:
v1.0.0 (2026-10-05): Initial export of service records for spreadsheet use
"""

import csv
import io
import logging
from datetime import datetime
from typing import List, Optional, Dict

from ddd_backend.models.lucrare import row_slots
from ddd_backend.services.reception import display_order_number

logger = logging.getLogger(__name__)

BOM = "\ufeff"

EXPORT_HEADERS = [
    "Nr. Proces Verbal",
    "Data",
    "Beneficiar",
    "Locatie",
    "Suprafata",
    "Nume Angajat",
    "Proceduri (Deratizare, Dezinfectie, Dezinsectie)",
    "Denumire Produs",
    "Lot si cantitate",
]


def format_timestamp(value) -> str:
    """dd.mm.yyyy, HH:MM:SS as shown on the admin screens"""
    if not value:
        return ""
    if not isinstance(value, datetime):
        try:
            value = datetime.fromisoformat(str(value))
        except ValueError:
            return str(value)
    return value.strftime("%d.%m.%Y, %H:%M:%S")


def job_surface(customer: Optional[dict], procedure: str) -> str:
    """Contracted surface of the customer's job for a procedure, '0' if unknown"""
    if not customer:
        return "0"
    for job in customer.get("jobs") or []:
        if job.get("value") == procedure:
            try:
                return f"{float(job.get('surface') or 0):g}"
            except (TypeError, ValueError):
                return "0"
    return "0"


def export_row(lucrare: dict, customer: Optional[dict]) -> List[str]:
    procedures, products, surfaces, lots = [], [], [], []
    for _, slot in row_slots(lucrare):
        procedures.append(slot["procedure"])
        products.append(slot["product_name"] or "")
        surfaces.append(job_surface(customer, slot["procedure"]))
        lots.append(f"{slot['product_lot']} - {slot['product_quantity']}")

    return [
        display_order_number(lucrare["numar_ordine"]),
        format_timestamp(lucrare.get("created_at")),
        lucrare.get("client_name"),
        lucrare.get("client_location"),
        "; ".join(surfaces),
        lucrare.get("employee_name"),
        "; ".join(procedures),
        "; ".join(products),
        "; ".join(lots),
    ]


def build_csv(lucrari: List[dict], customers: Dict[int, dict],
              customers_by_name: Optional[Dict[str, dict]] = None) -> str:
    """
    CSV text with a UTF-8 BOM, every field quoted.

    Customers are matched by id, falling back to the client name for rows
    written before customer_id was recorded.
    """
    customers_by_name = customers_by_name or {}
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for lucrare in lucrari:
        customer = customers.get(lucrare.get("customer_id"))
        if customer is None:
            customer = customers_by_name.get(lucrare.get("client_name"))
        writer.writerow(["" if v is None else v for v in export_row(lucrare, customer)])
    logger.info(f"Exported {len(lucrari)} lucrari to CSV")
    return BOM + buffer.getvalue()


async def export_lucrari(store) -> str:
    lucrari = await store.select("lucrari", order_by="created_at DESC")
    customers = await store.select("customers")
    by_id = {c["id"]: c for c in customers}
    by_name = {c["name"]: c for c in customers}
    return build_csv(lucrari, by_id, by_name)
