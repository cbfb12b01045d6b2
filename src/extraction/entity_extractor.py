"""Runs the four entity extractors over one normalized text.

The extractors share no state, so they can run in a thread pool against the
same text when the pipeline is configured for it.
"""

from concurrent.futures import ThreadPoolExecutor

from src.utils.logger import get_logger

from .accounts import AccountExtractor
from .inquiries import InquiryExtractor
from .models import CanonicalEntities
from .negative_items import NegativeItemExtractor
from .patterns import DEFAULT_PATTERNS, ExtractorPatterns
from .personal_info import PersonalInfoExtractor

logger = get_logger(__name__)


class EntityExtractor:
    """Facade over the personal info, account, inquiry and negative extractors.

    Args:
        patterns: Complete pattern configuration shared by all extractors.
        parallel: Run the four extractors concurrently.
    """

    def __init__(
        self, patterns: ExtractorPatterns = DEFAULT_PATTERNS, parallel: bool = False
    ) -> None:
        self.patterns = patterns
        self.parallel = parallel
        self.personal_info = PersonalInfoExtractor(patterns.personal_info)
        self.accounts = AccountExtractor(patterns.accounts)
        self.inquiries = InquiryExtractor(patterns.inquiries, patterns.reserved_words)
        self.negative_items = NegativeItemExtractor(
            patterns.negative_items, patterns.reserved_words
        )

    def extract(self, text: str) -> CanonicalEntities:
        """Extract every entity type from normalized text.

        Args:
            text: Normalized report text.

        Returns:
            Bundle of all extracted entities.
        """
        if self.parallel:
            with ThreadPoolExecutor(max_workers=4) as pool:
                personal = pool.submit(self.personal_info.extract, text)
                accounts = pool.submit(self.accounts.extract, text)
                inquiries = pool.submit(self.inquiries.extract, text)
                negatives = pool.submit(self.negative_items.extract, text)
                entities = CanonicalEntities(
                    personal_info=personal.result(),
                    accounts=accounts.result(),
                    inquiries=inquiries.result(),
                    negative_items=negatives.result(),
                )
        else:
            entities = CanonicalEntities(
                personal_info=self.personal_info.extract(text),
                accounts=self.accounts.extract(text),
                inquiries=self.inquiries.extract(text),
                negative_items=self.negative_items.extract(text),
            )

        logger.info("Entity extraction: %s", entities.counts())
        return entities
