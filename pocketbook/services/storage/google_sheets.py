"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a durable backend because:
1. A household can inspect its ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for personal use)
- No multi-row transactions (the engine orders its writes instead)
- Limited query capabilities (we filter in Python)

Each record kind lives in its own worksheet, one record per row, with
the record id in column A. Saving a record replaces its row when the id
is already present and appends otherwise.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from pocketbook.config import get_settings
from pocketbook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pocketbook.models.ledger import (
    Frequency,
    Friend,
    RecurrenceStatus,
    RecurringDetails,
    Split,
    SplitLine,
    Transaction,
    TransactionType,
    User,
)
from pocketbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    StorageError,
)


USER_COLUMNS = [
    "id",
    "name",
    "email",
    "wallet_balance",
    "created_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "type",
    "amount",
    "category",
    "description",
    "date",
    "is_recurring",
    "frequency",
    "next_date",
    "recurrence_status",
    "created_at",
]

FRIEND_COLUMNS = [
    "id",
    "user_id",
    "name",
    "email",
    "balance",
    "created_at",
]

SPLIT_COLUMNS = [
    "id",
    "paid_by",
    "created_by",
    "total_amount",
    "category",
    "description",
    "date",
    "settled",
    "created_at",
    "splits_json",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def users_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.users_sheet_name, USER_COLUMNS)

    def transactions_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def friends_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.friends_sheet_name, FRIEND_COLUMNS)

    def splits_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.splits_sheet_name, SPLIT_COLUMNS)

    def audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self.get_sheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


# =============================================================================
# ROW CONVERSION
# =============================================================================

def user_to_row(user: User) -> list:
    return [
        str(user.id),
        user.name,
        user.email or "",
        str(user.wallet_balance),
        user.created_at.isoformat(),
    ]


def row_to_user(row: list) -> User:
    return User(
        id=UUID(_cell(row, 0)),
        name=_cell(row, 1),
        email=_cell(row, 2) or None,
        wallet_balance=Decimal(_cell(row, 3, "0")),
        created_at=datetime.fromisoformat(_cell(row, 4)),
    )


def transaction_to_row(transaction: Transaction) -> list:
    details = transaction.recurring_details
    return [
        str(transaction.id),
        str(transaction.user_id),
        transaction.type.value,
        str(transaction.amount),
        transaction.category,
        transaction.description,
        transaction.date.isoformat(),
        str(transaction.is_recurring),
        details.frequency.value if details else "",
        details.next_date.isoformat() if details else "",
        details.status.value if details else "",
        transaction.created_at.isoformat(),
    ]


def row_to_transaction(row: list) -> Transaction:
    is_recurring = _cell(row, 7).lower() == "true"
    details = None
    if is_recurring:
        details = RecurringDetails(
            frequency=Frequency(_cell(row, 8)),
            next_date=date.fromisoformat(_cell(row, 9)),
            status=RecurrenceStatus(_cell(row, 10, RecurrenceStatus.ACTIVE.value)),
        )
    return Transaction(
        id=UUID(_cell(row, 0)),
        user_id=UUID(_cell(row, 1)),
        type=TransactionType(_cell(row, 2)),
        amount=Decimal(_cell(row, 3)),
        category=_cell(row, 4),
        description=_cell(row, 5),
        date=date.fromisoformat(_cell(row, 6)),
        is_recurring=is_recurring,
        recurring_details=details,
        created_at=datetime.fromisoformat(_cell(row, 11)),
    )


def friend_to_row(friend: Friend) -> list:
    return [
        str(friend.id),
        str(friend.user_id),
        friend.name,
        friend.email,
        str(friend.balance),
        friend.created_at.isoformat(),
    ]


def row_to_friend(row: list) -> Friend:
    return Friend(
        id=UUID(_cell(row, 0)),
        user_id=UUID(_cell(row, 1)),
        name=_cell(row, 2),
        email=_cell(row, 3),
        balance=Decimal(_cell(row, 4, "0")),
        created_at=datetime.fromisoformat(_cell(row, 5)),
    )


def split_to_row(split: Split) -> list:
    return [
        str(split.id),
        str(split.paid_by),
        str(split.created_by),
        str(split.total_amount),
        split.category,
        split.description,
        split.date.isoformat(),
        str(split.settled),
        split.created_at.isoformat(),
        json.dumps([line.model_dump(mode="json") for line in split.splits]),
    ]


def row_to_split(row: list) -> Split:
    lines_json = _cell(row, 9)
    lines = [SplitLine(**item) for item in json.loads(lines_json)] if lines_json else []
    return Split(
        id=UUID(_cell(row, 0)),
        paid_by=UUID(_cell(row, 1)),
        created_by=UUID(_cell(row, 2)),
        total_amount=Decimal(_cell(row, 3)),
        category=_cell(row, 4),
        description=_cell(row, 5),
        date=date.fromisoformat(_cell(row, 6)),
        settled=_cell(row, 7).lower() == "true",
        created_at=datetime.fromisoformat(_cell(row, 8)),
        splits=lines,
    )


def row_to_event(row: list) -> AuditEvent:
    return AuditEvent(
        event_id=UUID(_cell(row, 0)),
        timestamp=datetime.fromisoformat(_cell(row, 1)),
        event_type=AuditEventType(_cell(row, 2)),
        severity=AuditSeverity(_cell(row, 3)),
        user_id=UUID(_cell(row, 4)) if _cell(row, 4) else None,
        entity_type=_cell(row, 5) or None,
        entity_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
        correlation_id=UUID(_cell(row, 7)) if _cell(row, 7) else None,
        description=_cell(row, 8),
        details=json.loads(_cell(row, 9)) if _cell(row, 9) else {},
        error_message=_cell(row, 10) or None,
    )


# =============================================================================
# LEDGER STORE
# =============================================================================

class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger store.

    Writes retry on transient API errors. Malformed rows are skipped
    when listing, as a hand-edited sheet is expected now and then.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _upsert(self, sheet: gspread.Worksheet, record_id: UUID, row: list) -> bool:
        """Replace the row whose column A holds record_id, or append one."""
        try:
            all_rows = sheet.get_all_values()
            for idx, existing in enumerate(all_rows[1:], start=2):  # row 1 is header
                if existing and existing[0] == str(record_id):
                    sheet.update(values=[row], range_name=f"A{idx}")
                    return True
            sheet.append_row(row, value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save record {record_id}: {e}")

    async def _delete(self, sheet: gspread.Worksheet, predicate: Callable[[list], bool]) -> bool:
        try:
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and predicate(row):
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete record: {e}")

    def _records(self, sheet: gspread.Worksheet, parse: Callable[[list], object]) -> list:
        try:
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read sheet {sheet.title}: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(parse(row))
            except Exception:
                continue  # Skip malformed rows
        return records

    # -- users ---------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> Optional[User]:
        for user in self._records(self._client.users_sheet(), row_to_user):
            if user.id == user_id:
                return user
        return None

    async def save_user(self, user: User) -> bool:
        return await self._upsert(self._client.users_sheet(), user.id, user_to_row(user))

    # -- transactions --------------------------------------------------------

    async def save_transaction(self, transaction: Transaction) -> bool:
        return await self._upsert(
            self._client.transactions_sheet(),
            transaction.id,
            transaction_to_row(transaction),
        )

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        for transaction in self._records(self._client.transactions_sheet(), row_to_transaction):
            if transaction.id == transaction_id and transaction.user_id == user_id:
                return transaction
        return None

    async def delete_transaction(self, transaction_id: UUID, user_id: UUID) -> bool:
        return await self._delete(
            self._client.transactions_sheet(),
            lambda row: row[0] == str(transaction_id) and _cell(row, 1) == str(user_id),
        )

    async def list_transactions(
        self,
        user_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        is_recurring: Optional[bool] = None,
    ) -> list[Transaction]:
        results = []
        for transaction in self._records(self._client.transactions_sheet(), row_to_transaction):
            if transaction.user_id != user_id:
                continue
            if transaction_type and transaction.type != transaction_type:
                continue
            if date_from and transaction.date < date_from:
                continue
            if date_to and transaction.date > date_to:
                continue
            if is_recurring is not None and transaction.is_recurring != is_recurring:
                continue
            results.append(transaction)
        return results

    # -- friends -------------------------------------------------------------

    async def save_friend(self, friend: Friend) -> bool:
        return await self._upsert(self._client.friends_sheet(), friend.id, friend_to_row(friend))

    async def get_friend(self, friend_id: UUID, user_id: UUID) -> Optional[Friend]:
        for friend in await self.list_friends(user_id):
            if friend.id == friend_id:
                return friend
        return None

    async def find_friend_by_email(self, user_id: UUID, email: str) -> Optional[Friend]:
        email = email.strip().lower()
        for friend in await self.list_friends(user_id):
            if friend.email == email:
                return friend
        return None

    async def list_friends(self, user_id: UUID) -> list[Friend]:
        return [
            friend
            for friend in self._records(self._client.friends_sheet(), row_to_friend)
            if friend.user_id == user_id
        ]

    async def delete_friend(self, friend_id: UUID, user_id: UUID) -> bool:
        return await self._delete(
            self._client.friends_sheet(),
            lambda row: row[0] == str(friend_id) and _cell(row, 1) == str(user_id),
        )

    # -- splits --------------------------------------------------------------

    async def save_split(self, split: Split) -> bool:
        return await self._upsert(self._client.splits_sheet(), split.id, split_to_row(split))

    async def list_splits(self, user_id: UUID) -> list[Split]:
        return [
            split
            for split in self._records(self._client.splits_sheet(), row_to_split)
            if split.involves(user_id)
        ]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def _all_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._client.audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(row_to_event(row))
                except Exception:
                    continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self._all_events() if e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
