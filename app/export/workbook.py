from io import BytesIO
from typing import Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from app.export.reconciler import Sheet

COLUMN_WIDTH = 30
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_workbook(sheets: Sequence[Sheet]) -> bytes:
    """시트 목록을 xlsx 바이트로 직렬화"""
    wb = Workbook()
    wb.remove(wb.active)

    for sheet in sheets:
        ws = wb.create_sheet(title=sheet.name)
        for row in sheet.rows:
            ws.append([None if cell == "" else cell for cell in row])
        width = len(sheet.rows[0]) if sheet.rows else 0
        for index in range(1, width + 1):
            ws.column_dimensions[get_column_letter(index)].width = COLUMN_WIDTH

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
