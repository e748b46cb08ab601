"""
File handling for order attachments and spreadsheet import/export.
"""

import hashlib
import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill

logger = logging.getLogger(__name__)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class FileManager:
    """Stores uploaded attachments under a fixed directory."""

    def __init__(self, upload_dir: str, url_prefix: str = "/Uploads"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    @staticmethod
    def calculate_checksum(content: bytes) -> str:
        """MD5 of the content, used to keep stored names unique."""
        return hashlib.md5(content).hexdigest()

    @staticmethod
    def safe_filename(filename: str) -> str:
        name = Path(filename or "attachment").name
        return "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in name) or "attachment"

    def save(self, content: bytes, filename: str) -> str:
        """Write the attachment and return the path clients reference it by."""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stored_name = f"{self.calculate_checksum(content)[:12]}_{self.safe_filename(filename)}"
        (self.upload_dir / stored_name).write_bytes(content)
        logger.info(f"Attachment stored: {filename} -> {stored_name} ({len(content)} bytes)")
        return f"{self.url_prefix}/{stored_name}"


class SpreadsheetReader:
    """Reads the first sheet of an uploaded workbook (or a CSV) into row dicts."""

    @staticmethod
    def read_rows(content: bytes, filename: str) -> List[Dict[str, Any]]:
        suffix = Path(filename or "").suffix.lower()
        buffer = io.BytesIO(content)
        if suffix == ".csv":
            df = pd.read_csv(buffer, dtype=str, encoding="utf-8-sig")
        else:
            df = pd.read_excel(buffer, sheet_name=0, dtype=str)

        df = SpreadsheetReader.clean_frame(df)
        logger.info(f"Spreadsheet {filename} loaded with {len(df)} rows")
        return df.to_dict(orient="records")

    @staticmethod
    def clean_frame(df: pd.DataFrame) -> pd.DataFrame:
        """Trim headers and cells, drop fully empty rows, turn NaN into None."""
        df.columns = [str(col).strip() for col in df.columns]
        df = df.dropna(how="all")
        df = df.apply(lambda col: col.str.strip() if col.dtype == object else col)
        df = df.astype(object).where(df.notna(), None)
        return df.replace({"": None})


class SpreadsheetWriter:
    """Builds a styled single-sheet workbook in memory."""

    HEADER_FILL = PatternFill(start_color='4472C4', end_color='4472C4', fill_type='solid')
    HEADER_FONT = Font(color='FFFFFF', bold=True)

    @staticmethod
    def to_xlsx_bytes(rows: List[Dict[str, Any]], columns: List[str], sheet_name: str = "Orders") -> bytes:
        """Rows are written in ``columns`` order; an empty list yields a header-only sheet."""
        df = pd.DataFrame(rows, columns=columns)
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]

            for cell in worksheet[1]:
                cell.fill = SpreadsheetWriter.HEADER_FILL
                cell.font = SpreadsheetWriter.HEADER_FONT
                cell.alignment = Alignment(horizontal='center')

            for column in worksheet.columns:
                max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
                worksheet.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

        return output.getvalue()


def get_extension(filename: Optional[str]) -> str:
    return Path(filename or "").suffix.lower()
