"""
Ledger stores - where verifications, balances and the company profile come from.

All stores return raw rows shaped like the database tables
(verifications with nested rows, account_balances, company_settings).
Parsing into domain objects happens in services.rows.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Protocol
import asyncio
import json
import logging

from starlette.concurrency import run_in_threadpool

from ledger_export.services.journal_import import (
    BALANCE_SHEET,
    COMPANY_SHEET,
    VERIFICATION_SHEET,
    JournalImporter,
)
from ledger_export.svensk_ekonomi.errors import ExportError, UpstreamFetchError

logger = logging.getLogger(__name__)


class LedgerStore(Protocol):
    async def fetch_verifications(self, year: int) -> List[dict]: ...

    async def fetch_company_profile(self) -> Optional[dict]: ...

    async def fetch_account_balances(self, year: int) -> List[dict]: ...


def _row_year(row: dict, key: str) -> Optional[int]:
    value = row.get(key)
    if value is None:
        return None
    try:
        return int(str(value)[:4]) if key == "date" else int(value)
    except (TypeError, ValueError):
        return None


class InMemoryLedgerStore:
    """Rows held in memory. Used in tests and when no STORE_PATH is configured."""

    def __init__(self, verifications: Optional[List[dict]] = None,
                 company: Optional[dict] = None,
                 balances: Optional[List[dict]] = None):
        self.verifications = list(verifications or [])
        self.company = company
        self.balances = list(balances or [])

    async def fetch_verifications(self, year: int) -> List[dict]:
        # Rows with unreadable dates are passed on so the row parser reports them
        return [row for row in self.verifications if _row_year(row, "date") in (year, None)]

    async def fetch_company_profile(self) -> Optional[dict]:
        return self.company

    async def fetch_account_balances(self, year: int) -> List[dict]:
        return [row for row in self.balances if _row_year(row, "year") == year]


class _FileLedgerStore(ABC):
    """Loads a snapshot file once, then serves it like an InMemoryLedgerStore."""

    source = "file"

    def __init__(self, path: str):
        self.path = Path(path)
        self._snapshot: Optional[InMemoryLedgerStore] = None
        self._lock: Optional[asyncio.Lock] = None

    @abstractmethod
    def _load(self) -> InMemoryLedgerStore:
        ...

    async def _store(self) -> InMemoryLedgerStore:
        if self._snapshot is not None:
            return self._snapshot
        if self._lock is None:
            self._lock = asyncio.Lock()
        # Concurrent fetches share one load
        async with self._lock:
            if self._snapshot is not None:
                return self._snapshot
            try:
                self._snapshot = await run_in_threadpool(self._load)
            except ExportError:
                raise
            except Exception as e:
                logger.error(f"Failed to load {self.source} store {self.path}: {e}")
                raise UpstreamFetchError(
                    self.source,
                    f"Kunde inte läsa {self.path.name}: {e}",
                    {"path": str(self.path)},
                ) from e
            logger.info(
                f"Loaded {self.source} store {self.path.name}: "
                f"{len(self._snapshot.verifications)} verifications, "
                f"{len(self._snapshot.balances)} balances"
            )
        return self._snapshot

    async def fetch_verifications(self, year: int) -> List[dict]:
        return await (await self._store()).fetch_verifications(year)

    async def fetch_company_profile(self) -> Optional[dict]:
        return await (await self._store()).fetch_company_profile()

    async def fetch_account_balances(self, year: int) -> List[dict]:
        return await (await self._store()).fetch_account_balances(year)


class JsonLedgerStore(_FileLedgerStore):
    """
    JSON snapshot of the ledger:
    {"company": {...}, "verifications": [...], "balances": [...]}
    """

    source = "json"

    def _load(self) -> InMemoryLedgerStore:
        with self.path.open(encoding="utf-8") as f:
            data = json.load(f)
        return InMemoryLedgerStore(
            verifications=data.get("verifications"),
            company=data.get("company"),
            balances=data.get("balances"),
        )


class ExcelLedgerStore(_FileLedgerStore):
    """Workbook with the sheets verifikationer, foretag and saldon."""

    source = "excel"

    def __init__(self, path: str, importer: Optional[JournalImporter] = None):
        super().__init__(path)
        self.importer = importer or JournalImporter()

    def _load(self) -> InMemoryLedgerStore:
        sheets = self.importer.read_workbook(str(self.path))
        if VERIFICATION_SHEET not in sheets:
            raise UpstreamFetchError(
                self.source,
                f"Arbetsboken saknar bladet '{VERIFICATION_SHEET}'",
                {"path": str(self.path), "sheets": list(sheets)},
            )
        balances = sheets.get(BALANCE_SHEET)
        return InMemoryLedgerStore(
            verifications=self.importer.verification_rows(sheets[VERIFICATION_SHEET]),
            company=self.importer.company_row(sheets.get(COMPANY_SHEET)),
            balances=self.importer.balance_rows(balances) if balances is not None else [],
        )


def build_store(path: Optional[str]) -> LedgerStore:
    """Pick a store from the configured STORE_PATH suffix."""
    if not path:
        logger.warning("STORE_PATH not set, using an empty in-memory store")
        return InMemoryLedgerStore()

    suffix = Path(path).suffix.lower()
    if suffix == ".json":
        return JsonLedgerStore(path)
    if suffix in (".xlsx", ".xls"):
        return ExcelLedgerStore(path)
    raise ValueError(f"Unsupported STORE_PATH '{path}' (expected .json or .xlsx)")
