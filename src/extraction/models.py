"""Typed records for the entities extracted from credit report text."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class Address:
    """A postal address captured as one free-form line."""

    full_address: str


@dataclass
class PersonalInfo:
    """Identifying information about the consumer on the report."""

    full_name: str | None = None
    ssn_partial: str | None = None
    date_of_birth: str | None = None
    current_address: Address | None = None

    def field_count(self) -> int:
        """Number of fields that were found."""
        return sum(
            value is not None
            for value in (
                self.full_name,
                self.ssn_partial,
                self.date_of_birth,
                self.current_address,
            )
        )


@dataclass
class CreditAccount:
    """A tradeline parsed from one creditor block."""

    creditor_name: str
    account_number: str | None = None
    current_balance: float | None = None
    account_status: str | None = None
    is_negative: bool = False


@dataclass
class CreditInquiry:
    """A credit inquiry made by a third party."""

    inquirer_name: str
    inquiry_date: str | None = None
    inquiry_type: str = "hard"


@dataclass
class NegativeItem:
    """A derogatory mark found in the report text."""

    item_type: str
    description: str
    severity_score: int
    dispute_eligible: bool = True


@dataclass
class CanonicalEntities:
    """All entities extracted from a single text."""

    personal_info: PersonalInfo | None = None
    accounts: list[CreditAccount] = field(default_factory=list)
    inquiries: list[CreditInquiry] = field(default_factory=list)
    negative_items: list[NegativeItem] = field(default_factory=list)

    def is_empty(self) -> bool:
        """True when no extractor produced any structured field."""
        has_personal = (
            self.personal_info is not None and self.personal_info.field_count() > 0
        )
        return not (
            has_personal or self.accounts or self.inquiries or self.negative_items
        )

    def counts(self) -> dict[str, int]:
        """Record counts per entity table."""
        return {
            "personal_information": 1 if self.personal_info else 0,
            "credit_accounts": len(self.accounts),
            "credit_inquiries": len(self.inquiries),
            "negative_items": len(self.negative_items),
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
