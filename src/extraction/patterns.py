"""Ordered fuzzy pattern tables for credit report entity extraction.

Every field has an ordered tuple of compiled patterns, from the most
specific (labeled fields) to the least specific (positional heuristics).
Extractors take the first pattern that produces an acceptable match. The
tables are frozen so one instance can be shared across threads.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field

SECTION_TOKENS: tuple[str, ...] = (
    "PERSONAL_INFO",
    "ACCOUNTS",
    "INQUIRIES",
    "PUBLIC_RECORDS",
    "COLLECTIONS",
)

_LABEL_WORDS = r"(?i:ssn|social|dob|date|birth|born|address|residence|phone)\b"
_NAME_TOKEN = rf"(?!{_LABEL_WORDS})[A-Z][A-Za-z'\-]*\.?"


@dataclass(frozen=True)
class PersonalInfoPatterns:
    """Patterns for the consumer's identifying fields."""

    name: tuple[re.Pattern[str], ...]
    ssn: tuple[re.Pattern[str], ...]
    date_of_birth: tuple[re.Pattern[str], ...]
    address: tuple[re.Pattern[str], ...]


@dataclass(frozen=True)
class StatusRule:
    """Keyword rule mapping block text to an account status."""

    status: str
    pattern: re.Pattern[str]
    is_negative: bool = False


@dataclass(frozen=True)
class AccountPatterns:
    """Patterns for splitting and parsing creditor blocks."""

    header: re.Pattern[str]
    creditor: tuple[re.Pattern[str], ...]
    account_number: tuple[re.Pattern[str], ...]
    balance: tuple[re.Pattern[str], ...]
    status: tuple[StatusRule, ...]
    min_block_length: int = 20
    max_creditor_length: int = 40


@dataclass(frozen=True)
class InquiryPatterns:
    """Patterns for the two inquiry families."""

    name_date: re.Pattern[str]
    labeled: re.Pattern[str]
    date: re.Pattern[str]
    section_start: re.Pattern[str]
    section_end: re.Pattern[str]
    min_name_length: int = 3
    max_name_length: int = 30


@dataclass(frozen=True)
class NegativeCategory:
    """A category of derogatory mark with its fixed severity."""

    item_type: str
    pattern: re.Pattern[str]
    severity: int


@dataclass(frozen=True)
class NegativeItemPatterns:
    categories: tuple[NegativeCategory, ...]
    context_radius: int = 100


@dataclass(frozen=True)
class ExtractorPatterns:
    """The complete pattern configuration injected into the extractors."""

    personal_info: PersonalInfoPatterns
    accounts: AccountPatterns
    inquiries: InquiryPatterns
    negative_items: NegativeItemPatterns
    reserved_words: frozenset[str] = field(
        default_factory=lambda: frozenset(SECTION_TOKENS)
    )


def first_match(
    patterns: tuple[re.Pattern[str], ...],
    text: str,
    accept: Callable[[str], bool] | None = None,
) -> str | None:
    """Return the group of the first pattern whose match is accepted.

    Patterns are tried in order; within a pattern, matches are tried left
    to right. The first capturing group is returned, or the whole match
    when the pattern has no groups.

    Args:
        patterns: Ordered patterns for one field.
        text: Text to search.
        accept: Optional validator for candidate values.
    """
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = match.group(1) if pattern.groups else match.group(0)
            if value is None:
                continue
            value = " ".join(value.split())
            if not value:
                continue
            if accept is None or accept(value):
                return value
    return None


_DATE = r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}"

DEFAULT_PERSONAL_INFO_PATTERNS = PersonalInfoPatterns(
    name=(
        re.compile(
            rf"(?i:\b(?:full\s+)?name|\bconsumer)\s*[:\-]?\s*"
            rf"({_NAME_TOKEN}(?:\s{_NAME_TOKEN}){{1,3}})"
        ),
        re.compile(r"PERSONAL_INFO\s+([A-Z]{2,}(?:\s[A-Z]\.?)?\s[A-Z]{2,})\b"),
        re.compile(r"^([A-Z]{2,}\s[A-Z]{2,}(?:\s[A-Z]{2,})?)\b"),
    ),
    ssn=(
        re.compile(
            r"(?i:\bssn|\bsocial(?:\s+security)?(?:\s+(?:number|no\.?))?)\s*[:#]?\s*"
            r"((?:\*{3}|[Xx]{3}|#{3})-?(?:\*{2}|[Xx]{2}|#{2})-?\d{4})"
        ),
        re.compile(r"(?i:\bssn|\bsocial)[^\d]{0,20}?(?:\*+|[Xx]+|#+)-?(\d{4})\b"),
        re.compile(r"(\*{3}-\*{2}-\d{4})\b"),
        re.compile(r"\b(XXX-XX-\d{4})\b"),
    ),
    date_of_birth=(
        re.compile(rf"(?i:\b(?:date\s+of\s+birth|birth|born|dob))\D{{0,15}}?({_DATE})\b"),
        re.compile(r"\b(\d{1,2}[-/]\d{1,2}[-/]\d{4})\b"),
    ),
    address=(
        re.compile(
            r"(?i:\b(?:current\s+)?(?:address|residence))\s*[:\-]?\s*"
            r"(\d+\s[A-Za-z0-9 ,.#'\-]{5,80}?\b[A-Z]{2}\s\d{5}(?:-\d{4})?)\b"
        ),
        re.compile(r"\b(\d+\s[A-Z][A-Za-z0-9 ,.#'\-]{5,80}?\b[A-Z]{2}\s\d{5}(?:-\d{4})?)\b"),
        re.compile(r"(?i:\b(?:address|residence))\s*[:\-]?\s*([^:]{20,100}?)(?=\s+\w+\s*:|$)"),
    ),
)

_CREDITOR_SUFFIX = r"(?:BANK|CARD|CREDIT|LOAN|MORTGAGE)"
_CREDITOR_WORD = r"(?!(?:ACCOUNTS|INQUIRIES|COLLECTIONS)\b)[A-Z][A-Z&]*"

DEFAULT_ACCOUNT_PATTERNS = AccountPatterns(
    header=re.compile(
        rf"\b{_CREDITOR_WORD}(?:\s{_CREDITOR_WORD})*?\s?{_CREDITOR_SUFFIX}\b"
    ),
    creditor=(
        re.compile(rf"^({_CREDITOR_WORD}(?:\s{_CREDITOR_WORD})*?\s?{_CREDITOR_SUFFIX})\b"),
        re.compile(r"^([A-Z][A-Z&]{2,}(?:\s[A-Z&]+){0,4})"),
    ),
    account_number=(
        re.compile(
            r"(?i:\b(?:account|acct)\.?(?:\s*(?:number|num|no\.?))?)\s*[#:]?\s*"
            r"([*Xx\d][*Xx\d\-]{3,19})"
        ),
        re.compile(r"(\*+\d{4})\b"),
        re.compile(r"\b([Xx]{4,}\d{4})\b"),
    ),
    balance=(
        re.compile(
            r"(?i:\b(?:balance|amount\s+owed))\s*[:\-]?\s*\$?\s*(\d[\d,]*(?:\.\d{2})?)"
        ),
        re.compile(r"\$\s?(\d{1,3}(?:,\d{3})*(?:\.\d{2})?)\b"),
    ),
    status=(
        StatusRule("paid", re.compile(r"\b(?:paid|closed|satisfied)\b", re.IGNORECASE)),
        StatusRule(
            "current",
            re.compile(
                r"\b(?:current|pays\s+as\s+agreed|good\s+standing|ok)\b(?!\s+balance)",
                re.IGNORECASE,
            ),
        ),
        StatusRule(
            "late",
            re.compile(r"\b(?:late|past\s+due|delinquent)\b", re.IGNORECASE),
            is_negative=True,
        ),
        StatusRule(
            "charge off",
            re.compile(r"\bcharge(?:d)?[\s\-]*off\b|\bchargeoff\b", re.IGNORECASE),
            is_negative=True,
        ),
        StatusRule(
            "collection",
            re.compile(r"\bcollect(?:ion|ions|ed)\b", re.IGNORECASE),
            is_negative=True,
        ),
    ),
)

DEFAULT_INQUIRY_PATTERNS = InquiryPatterns(
    name_date=re.compile(
        r"\b([A-Z][A-Z&.'\-]*(?:\s[A-Z][A-Z&.'\-]*){0,4})\s+(\d{1,2}/\d{1,2}/\d{2,4})\b"
    ),
    labeled=re.compile(r"(?i:\binquiry\b)\s*:\s*([^:]{10,50})"),
    date=re.compile(rf"\b({_DATE})\b"),
    section_start=re.compile(r"\bINQUIRIES\b"),
    section_end=re.compile(r"\b(?:PERSONAL_INFO|ACCOUNTS|PUBLIC_RECORDS|COLLECTIONS)\b"),
)

DEFAULT_NEGATIVE_ITEM_PATTERNS = NegativeItemPatterns(
    categories=(
        NegativeCategory(
            "collection",
            re.compile(r"\bcollect(?:ion|ions|or|ors|ed)?\b", re.IGNORECASE),
            6,
        ),
        NegativeCategory(
            "charge_off",
            re.compile(r"\bcharge(?:d)?[\s\-]*off\b|\bchargeoff\b", re.IGNORECASE),
            8,
        ),
        NegativeCategory(
            "late_payment",
            re.compile(r"\blate\b|\bpast\s+due\b|\bdelinquen(?:t|cy)\b", re.IGNORECASE),
            3,
        ),
        NegativeCategory(
            "bankruptcy",
            re.compile(r"\bbankrupt(?:cy)?\b", re.IGNORECASE),
            10,
        ),
        NegativeCategory(
            "foreclosure",
            re.compile(r"\bforeclos(?:ure|ed|e)\b", re.IGNORECASE),
            9,
        ),
    ),
)

DEFAULT_PATTERNS = ExtractorPatterns(
    personal_info=DEFAULT_PERSONAL_INFO_PATTERNS,
    accounts=DEFAULT_ACCOUNT_PATTERNS,
    inquiries=DEFAULT_INQUIRY_PATTERNS,
    negative_items=DEFAULT_NEGATIVE_ITEM_PATTERNS,
)
