"""
Automatic matching engine.
Runs a matching strategy over a session's unmatched pools.
"""

from datetime import datetime
from typing import Optional
import logging

from ..config import ReconConfig
from ..models.reconciliation import Match
from ..models.statement import LedgerEntry, StatementTransaction
from ..reconciliation.session import ReconciliationSession
from .strategies import MatchingStrategy, build_strategy

logger = logging.getLogger(__name__)


class AutoMatcher:
    """
    Greedy single-pass auto-matcher.

    Statement lines are visited in order; each one claims at most one ledger
    entry, which then leaves the available pool for the rest of the run.
    Only currently unmatched records are considered, so a second run over
    unchanged data commits nothing new.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the matcher.

        Args:
            config: Application configuration
        """
        self.config = config
        self.settings = config.matching.settings

    def strategy(self, name: Optional[str] = None) -> MatchingStrategy:
        """Strategy by name, defaulting to the configured one."""
        return build_strategy(name or self.settings.default_strategy, self.settings)

    def run(
        self,
        session: ReconciliationSession,
        strategy: Optional[MatchingStrategy] = None,
        reconciled_by: Optional[str] = None,
    ) -> list[Match]:
        """
        Auto-match every unmatched statement line in the session.

        Args:
            session: Session to update
            strategy: Matching strategy (configured default when omitted)
            reconciled_by: User recorded on new matches

        Returns:
            Matches committed by this run
        """
        strategy = strategy or self.strategy()
        start_time = datetime.now()

        pending = session.unmatched_statement_transactions
        available = session.unmatched_ledger_entries
        logger.info(
            f"Auto-matching ({strategy.name}): {len(pending)} statement lines, "
            f"{len(available)} ledger entries"
        )

        committed: list[Match] = []
        for txn in pending:
            match = self.match_transaction(session, txn, available, strategy, reconciled_by)
            if match:
                committed.append(match)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Auto-match complete in {elapsed:.2f}s: {len(committed)} matches, "
            f"{len(pending) - len(committed)} statement lines left"
        )
        return committed

    def match_transaction(
        self,
        session: ReconciliationSession,
        txn: StatementTransaction,
        available: list[LedgerEntry],
        strategy: MatchingStrategy,
        reconciled_by: Optional[str] = None,
    ) -> Optional[Match]:
        """
        Try to match one statement line and commit the result.

        The chosen entry is removed from ``available`` in the same step the
        match is committed, so later calls cannot claim it.

        Args:
            session: Session receiving the match
            txn: Statement line to match
            available: Unused ledger entries; updated in place
            strategy: Matching strategy
            reconciled_by: User recorded on the match

        Returns:
            The committed match, or None
        """
        entry = strategy.find_match(txn, available)
        if entry is None:
            return None

        score, match_type, reason = strategy.calculate_match_score(txn, entry)
        match = session.add_match(
            Match(
                statement_transaction_id=txn.id,
                ledger_entry_id=entry.id,
                match_type=match_type,
                match_score=score,
                reconciled_by=reconciled_by or self.settings.auto_match_user,
            )
        )
        available.remove(entry)

        logger.debug(f"{txn.id} -> {entry.id}: {match_type.value} ({score}) {reason}")
        return match
