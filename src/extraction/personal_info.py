"""Fuzzy extraction of the consumer's identifying information."""

from datetime import datetime

from src.utils.logger import get_logger

from .models import Address, PersonalInfo
from .patterns import DEFAULT_PERSONAL_INFO_PATTERNS, PersonalInfoPatterns, first_match

logger = get_logger(__name__)

DOB_FORMATS: list[str] = ["%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y", "%m-%d-%y"]


def is_valid_birth_date(value: str) -> bool:
    """Check that a string is a real calendar date after 1900."""
    for fmt in DOB_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed.year > 1900
    return False


class PersonalInfoExtractor:
    """Extracts name, partial SSN, date of birth, and current address.

    Args:
        patterns: Ordered pattern table for each field.
    """

    def __init__(
        self, patterns: PersonalInfoPatterns = DEFAULT_PERSONAL_INFO_PATTERNS
    ) -> None:
        self.patterns = patterns

    def extract(self, text: str) -> PersonalInfo | None:
        """Extract personal information from normalized text.

        Args:
            text: Normalized report text.

        Returns:
            The fields found, or ``None`` when no field matched.
        """
        if not text:
            return None

        address = first_match(self.patterns.address, text)
        info = PersonalInfo(
            full_name=first_match(self.patterns.name, text),
            ssn_partial=first_match(self.patterns.ssn, text),
            date_of_birth=first_match(
                self.patterns.date_of_birth, text, is_valid_birth_date
            ),
            current_address=Address(full_address=address) if address else None,
        )

        if info.field_count() == 0:
            return None

        logger.debug("Personal info: %d fields found", info.field_count())
        return info
