"""Domain models — bills, sessions, cursors, events, and search outcomes."""

from legindex.models.bill import Bill, BillAmendment, BillId, BillIndexEntry
from legindex.models.cursor import PageCursor
from legindex.models.session import SessionYear

__all__ = ["Bill", "BillAmendment", "BillId", "BillIndexEntry", "PageCursor", "SessionYear"]
