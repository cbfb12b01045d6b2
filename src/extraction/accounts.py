"""Fuzzy extraction of credit accounts from creditor blocks.

The text is split into blocks at every creditor-like header (a run of
capitalized words ending in BANK, CARD, CREDIT, LOAN or MORTGAGE). Each
block is parsed on its own so that one garbled block never aborts the rest.
"""

import re

from src.utils.logger import get_logger

from .models import CreditAccount
from .patterns import DEFAULT_ACCOUNT_PATTERNS, AccountPatterns, first_match

logger = get_logger(__name__)


class AccountExtractor:
    """Splits text into creditor blocks and parses each one.

    Args:
        patterns: Header, field, and status patterns for accounts.
    """

    def __init__(self, patterns: AccountPatterns = DEFAULT_ACCOUNT_PATTERNS) -> None:
        self.patterns = patterns

    def split_blocks(self, text: str) -> list[str]:
        """Split text into candidate blocks, one per creditor header.

        Text before the first header belongs to no creditor and is dropped.
        """
        starts = [m.start() for m in self.patterns.header.finditer(text)]
        blocks: list[str] = []
        for i, start in enumerate(starts):
            end = starts[i + 1] if i + 1 < len(starts) else len(text)
            blocks.append(text[start:end].strip())
        return blocks

    def extract(self, text: str) -> list[CreditAccount]:
        """Extract all accounts from normalized text.

        Args:
            text: Normalized report text.

        Returns:
            Accounts in document order. Blocks that fail to parse are skipped.
        """
        accounts: list[CreditAccount] = []
        if not text:
            return accounts

        for block in self.split_blocks(text):
            if len(block) < self.patterns.min_block_length:
                continue
            try:
                account = self.parse_block(block)
            except (ValueError, IndexError, re.error) as exc:
                logger.warning("Skipping unparseable account block: %s", exc)
                continue
            if account is not None:
                accounts.append(account)

        logger.debug("Account extraction found %d accounts", len(accounts))
        return accounts

    def parse_block(self, block: str) -> CreditAccount | None:
        """Parse one creditor block into an account.

        Args:
            block: Text starting at a creditor header.

        Returns:
            The parsed account, or ``None`` without a usable creditor name.
        """
        creditor = first_match(self.patterns.creditor, block)
        if not creditor or len(creditor) <= 2:
            return None
        creditor = creditor[: self.patterns.max_creditor_length].strip()

        account = CreditAccount(creditor_name=creditor)
        account.account_number = first_match(self.patterns.account_number, block)

        balance = first_match(self.patterns.balance, block)
        if balance is not None:
            account.current_balance = float(balance.replace(",", ""))

        for rule in self.patterns.status:
            if rule.pattern.search(block):
                account.account_status = rule.status
                account.is_negative = rule.is_negative
                break

        return account
