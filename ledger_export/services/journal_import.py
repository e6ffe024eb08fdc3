"""
Journal Import - Reads a bookkeeping workbook into raw store rows.

The workbook has one sheet per source:
  verifikationer  one row per journal line, grouped on verification_id
  foretag         a single row with the company profile
  saldon          closing balances per account and year (SIE sign)
"""
import io
from typing import Dict, List, Optional, Union
import logging

import pandas as pd

from ledger_export.svensk_ekonomi.errors import RowShapeError

logger = logging.getLogger(__name__)

VERIFICATION_SHEET = "verifikationer"
COMPANY_SHEET = "foretag"
BALANCE_SHEET = "saldon"


class JournalImporter:
    """Turns workbook sheets into the same row shapes a database store returns."""

    REQUIRED_COLUMNS = {
        VERIFICATION_SHEET: ['verification_id', 'date', 'number', 'account', 'debit', 'credit'],
        BALANCE_SHEET: ['account_number', 'balance', 'year'],
    }

    def read_workbook(self, source: Union[str, bytes]) -> Dict[str, pd.DataFrame]:
        """Read all sheets. Accepts a file path or the raw workbook bytes."""
        handle = io.BytesIO(source) if isinstance(source, bytes) else source
        sheets = pd.read_excel(handle, sheet_name=None)
        logger.info(f"Read workbook: sheets {list(sheets)}")
        return sheets

    def validate_sheet_structure(self, name: str, df: pd.DataFrame) -> None:
        """Validate that a sheet has the columns the row models need."""
        required = self.REQUIRED_COLUMNS.get(name, [])
        missing_cols = [col for col in required if col not in df.columns]

        if missing_cols:
            raise RowShapeError(
                name,
                f"Sheet '{name}' missing columns: {', '.join(missing_cols)}. "
                f"Required: {', '.join(required)}",
                {"missing": missing_cols},
            )

        logger.debug(f"Sheet {name} validation passed: {len(df)} rows")

    def verification_rows(self, df: pd.DataFrame) -> List[dict]:
        """One verification per verification_id, lines kept in sheet order."""
        self.validate_sheet_structure(VERIFICATION_SHEET, df)
        verifications: Dict[str, dict] = {}

        for record in _records(df):
            ver_id = str(record['verification_id'])
            if ver_id not in verifications:
                verifications[ver_id] = {
                    "id": ver_id,
                    "date": record.get('date'),
                    "series": record.get('series') or "A",
                    "number": record.get('number'),
                    "description": record.get('description') or "",
                    "created_at": record.get('created_at'),
                    "rows": [],
                }
            verifications[ver_id]["rows"].append({
                "account": record.get('account'),
                "accountName": record.get('account_name'),
                "debit": record.get('debit') or 0,
                "credit": record.get('credit') or 0,
                "description": record.get('row_description') or "",
            })

        logger.info(f"Imported {len(verifications)} verifications from {len(df)} journal lines")
        return list(verifications.values())

    def balance_rows(self, df: pd.DataFrame) -> List[dict]:
        self.validate_sheet_structure(BALANCE_SHEET, df)
        return _records(df)

    def company_row(self, df: Optional[pd.DataFrame]) -> Optional[dict]:
        if df is None or len(df) == 0:
            return None
        return _records(df)[0]


def _records(df: pd.DataFrame) -> List[dict]:
    """DataFrame rows as plain dicts: NaN becomes None, timestamps become ISO strings."""
    records = []
    for raw in df.to_dict(orient='records'):
        record = {}
        for key, value in raw.items():
            if isinstance(value, pd.Timestamp):
                value = value.isoformat() if key == 'created_at' else value.date().isoformat()
            elif pd.isna(value):
                value = None
            record[str(key)] = value
        records.append(record)
    return records
