"""Index eligibility rule."""

from __future__ import annotations

from legindex.models.bill import Bill


def is_bill_indexable(bill: Bill | None) -> bool:
    """Returns True if the bill meets the criteria for being in the search index.

    A bill is indexable once its base version has been published. The check is
    pure and cheap; it runs for every synced bill and every rebuilt bill.
    """
    return bill is not None and bill.is_base_version_published()
