"""
Service for CSV/XLSX exports of orders and products.
"""
import io
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

from readymix.core.exceptions import ValidationError
from readymix.repositories.order_repository import OrderRepository
from readymix.repositories.product_repository import ProductRepository

EXPORT_FORMATS = {
    'csv': "text/csv",
    'xlsx': "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _cell_value(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None).isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return value


def rows_to_frame(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Flatten repository rows; nested values become JSON strings"""
    records = [{key: _cell_value(value) for key, value in dict(row).items()} for row in rows]
    return pd.DataFrame.from_records(records, columns=columns)


def frame_to_csv(df: pd.DataFrame) -> io.BytesIO:
    output = io.BytesIO()
    output.write(df.to_csv(index=False).encode('utf-8'))
    output.seek(0)
    return output


def frame_to_xlsx(df: pd.DataFrame, sheet_title: str) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title

    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(color="FFFFFF", bold=True, size=12)
    border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    for col_num, header in enumerate(df.columns, 1):
        cell = ws.cell(row=1, column=col_num, value=str(header))
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center')
        cell.border = border

    for row_num, row in enumerate(df.itertuples(index=False), 2):
        for col_num, value in enumerate(row, 1):
            if pd.isna(value):
                value = None
            cell = ws.cell(row=row_num, column=col_num, value=value)
            cell.border = border
            if isinstance(value, float):
                cell.number_format = '#,##0.00'

    for col_num, header in enumerate(df.columns, 1):
        longest = max([len(str(header))] + [len(str(v)) for v in df.iloc[:, col_num - 1].tolist()])
        ws.column_dimensions[get_column_letter(col_num)].width = min(max(longest + 2, 10), 60)

    ws.freeze_panes = 'A2'

    excel_file = io.BytesIO()
    wb.save(excel_file)
    excel_file.seek(0)

    return excel_file


class ExportService:
    """Builds downloadable order and product reports"""

    def __init__(
        self,
        order_repo: Optional[OrderRepository] = None,
        product_repo: Optional[ProductRepository] = None
    ):
        self.order_repo = order_repo or OrderRepository()
        self.product_repo = product_repo or ProductRepository()

    @staticmethod
    def _check_format(export_format: str) -> str:
        export_format = (export_format or "csv").lower()
        if export_format not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {export_format}. Use csv or xlsx")
        return export_format

    def _render(self, rows, export_format: str, name: str) -> Tuple[io.BytesIO, str, str]:
        df = rows_to_frame(rows)
        stamp = datetime.now().strftime('%Y%m%d')
        if export_format == "xlsx":
            content = frame_to_xlsx(df, name.capitalize())
        else:
            content = frame_to_csv(df)
        return content, EXPORT_FORMATS[export_format], f"{name}_{stamp}.{export_format}"

    def export_orders(
        self,
        export_format: str = "csv",
        status: Optional[str] = None,
        payment_status: Optional[str] = None
    ) -> Tuple[io.BytesIO, str, str]:
        """
        Returns:
            (content, media_type, filename)
        """
        export_format = self._check_format(export_format)
        rows = self.order_repo.get_export_rows(status=status, payment_status=payment_status)
        return self._render(rows, export_format, "orders")

    def export_products(
        self,
        export_format: str = "csv",
        status: Optional[str] = None
    ) -> Tuple[io.BytesIO, str, str]:
        export_format = self._check_format(export_format)
        rows = self.product_repo.get_export_rows(status=status)
        return self._render(rows, export_format, "products")
