"""CSV and XLSX rendering of record listings"""

import csv
import io
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from openpyxl import Workbook

from escompte_gateway.domain.exceptions import UnsupportedExportFormatError
from escompte_gateway.domain.models import Escompte, Refinancement
from escompte_gateway.domain.stores import RecordQuery
from escompte_gateway.utils.date_utils import utc_now

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_FORMAT_ALIASES = {"csv": "csv", "excel": "xlsx", "xlsx": "xlsx"}

ESCOMPTE_COLUMNS = [
    "ID",
    "Date de remise",
    "Libellé",
    "Montant",
    "Ordre de saisie",
    "Date de création",
    "Date de modification",
]

REFINANCEMENT_COLUMNS = [
    "ID",
    "Libellé",
    "Montant Refinancé",
    "Taux Intérêt (%)",
    "Durée (mois)",
    "Date Refinancement",
    "Encours Refinancé",
    "Frais de dossier",
    "Statut",
    "Total Intérêts",
    "Date Création",
]


@dataclass
class ExportFile:
    content: bytes
    media_type: str
    filename: str
    export_format: str


def normalize_format(export_format: str) -> str:
    """Map a requested format ("csv", "excel", "xlsx") to a file extension"""
    key = (export_format or "").strip().lower()
    if key not in _FORMAT_ALIASES:
        raise UnsupportedExportFormatError(f"Unsupported export format: {export_format!r}")
    return _FORMAT_ALIASES[key]


def render_csv(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> bytes:
    """CSV with a UTF-8 byte-order mark so Excel opens accented headers correctly"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8-sig")


def render_xlsx(sheet_title: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title
    sheet.append(list(headers))
    for row in rows:
        sheet.append(list(row))

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _escompte_row(record: Escompte) -> List[Any]:
    return [
        record.id,
        record.remittance_date.isoformat(),
        record.label,
        record.amount,
        record.entry_order,
        record.created_at.isoformat(),
        record.updated_at.isoformat(),
    ]


def _refinancement_row(record: Refinancement) -> List[Any]:
    return [
        record.id,
        record.label,
        record.amount,
        record.interest_rate,
        record.duration_months,
        record.refinancing_date.isoformat(),
        record.outstanding_amount,
        record.filing_fee,
        record.status.value,
        record.total_interest,
        record.created_at.isoformat(),
    ]


def _render(basename: str, sheet_title: str, headers: List[str], rows: List[List[Any]], export_format: str) -> ExportFile:
    extension = normalize_format(export_format)
    filename = f"{basename}_{utc_now().date().isoformat()}.{extension}"
    if extension == "csv":
        return ExportFile(render_csv(headers, rows), CSV_MEDIA_TYPE, filename, extension)
    return ExportFile(render_xlsx(sheet_title, headers, rows), XLSX_MEDIA_TYPE, filename, extension)


def export_escomptes(records: Sequence[Escompte], export_format: str) -> ExportFile:
    rows = [_escompte_row(r) for r in records]
    return _render("escomptes", "Escomptes", ESCOMPTE_COLUMNS, rows, export_format)


def export_refinancements(records: Sequence[Refinancement], export_format: str) -> ExportFile:
    rows = [_refinancement_row(r) for r in records]
    return _render("refinancements", "Refinancements", REFINANCEMENT_COLUMNS, rows, export_format)


def describe_filters(query: RecordQuery) -> Dict[str, Any]:
    """Filters actually applied to an export, for the audit trail"""
    skipped = {"page", "limit", "sort_direction"}
    return {
        key: value.isoformat() if hasattr(value, "isoformat") else value
        for key, value in asdict(query).items()
        if value is not None and key not in skipped
    }
