"""Bill models — canonical records and their search index projection."""

from __future__ import annotations

import re
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

from legindex.models.session import SessionYear

_PRINT_NO_RE = re.compile(r"^([A-Z]+)(\d+)([A-Z]?)$")


class BillId(BaseModel):
    """Identifier of a base bill (amendment version stripped).

    All amendments of a bill share one base id, and therefore one index entry.
    The string form is ``<printNo>-<sessionYear>``, e.g. ``S1234-2021``.
    """

    model_config = ConfigDict(frozen=True)

    print_no: str = Field(description="Base print number, e.g. 'S1234'")
    session: SessionYear = Field(description="Session the bill belongs to")

    @field_validator("print_no", mode="before")
    @classmethod
    def _base_print_no(cls, v: str) -> str:
        v = str(v).strip().upper()
        match = _PRINT_NO_RE.match(v)
        if match is None:
            raise ValueError(f"Invalid print number: {v!r}")
        return f"{match.group(1)}{int(match.group(2))}"

    @classmethod
    def parse(cls, value: str) -> BillId:
        """Parse ``'S1234-2021'`` into a BillId."""
        print_no, sep, year = value.strip().rpartition("-")
        if not sep or not year.isdigit():
            raise ValueError(f"Invalid bill id: {value!r}")
        return cls(print_no=print_no, session=SessionYear(year=int(year)))

    def __str__(self) -> str:
        return f"{self.print_no}-{self.session.year}"


class BillAmendment(BaseModel):
    """One printed version of a bill. The base print has version ``''``."""

    version: str = Field(default="", description="Amendment letter, '' for the base print")
    published: bool = Field(default=False, description="Whether this version has been published")
    full_text: str = Field(default="", description="Full text of this version")
    memo: str = Field(default="", description="Sponsor's memo for this version")


class Bill(BaseModel):
    """Canonical bill record as held by the bill store."""

    bill_id: BillId
    title: str = Field(default="", description="Bill title")
    summary: str = Field(default="", description="Bill summary")
    sponsor: str | None = Field(default=None, description="Primary sponsor")
    law_section: str | None = Field(default=None, description="Law section affected")
    status: str | None = Field(default=None, description="Current milestone status")
    published_date: date | None = Field(default=None, description="Date the base version was published")
    active_version: str = Field(default="", description="Currently active amendment version")
    amendments: list[BillAmendment] = Field(default_factory=list, description="Printed versions")

    @property
    def session(self) -> SessionYear:
        return self.bill_id.session

    def amendment(self, version: str) -> BillAmendment | None:
        return next((a for a in self.amendments if a.version == version), None)

    def is_base_version_published(self) -> bool:
        """True when the base print exists and has been published."""
        base = self.amendment("")
        return base is not None and base.published


class BillIndexEntry(BaseModel):
    """Projection of a ``Bill`` held by the search index, keyed by ``bill_id``."""

    bill_id: str
    print_no: str
    session: int
    title: str = ""
    summary: str = ""
    sponsor: str | None = None
    law_section: str | None = None
    status: str | None = None
    published_date: date | None = None
    active_version: str = ""
    full_text: str = ""
    memo: str = ""

    @classmethod
    def from_bill(cls, bill: Bill) -> BillIndexEntry:
        active = bill.amendment(bill.active_version) or bill.amendment("")
        return cls(
            bill_id=str(bill.bill_id),
            print_no=bill.bill_id.print_no,
            session=bill.session.year,
            title=bill.title,
            summary=bill.summary,
            sponsor=bill.sponsor,
            law_section=bill.law_section,
            status=bill.status,
            published_date=bill.published_date,
            active_version=bill.active_version,
            full_text=active.full_text if active else "",
            memo=active.memo if active else "",
        )

    def to_document(self) -> dict:
        """JSON-compatible document body for the index backend."""
        return self.model_dump(mode="json")
