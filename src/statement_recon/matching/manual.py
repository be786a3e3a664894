"""
Manual matching: suggestions, suggestion acceptance, user-selected groups
and unmatching.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import logging

from ..config import ReconConfig
from ..models.reconciliation import Match, MatchType
from ..models.statement import LedgerEntry, StatementTransaction
from ..reconciliation.session import ReconciliationSession
from ..utils.exceptions import ValidationError
from .scorer import ScoreBreakdown, score_breakdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchSuggestion:
    """A ledger entry proposed for review, with its score."""

    entry: LedgerEntry
    score: int
    breakdown: ScoreBreakdown


class ManualMatchCoordinator:
    """
    Applies user decisions to a session's match set.

    Every operation validates the whole request before committing anything,
    so a rejected request leaves the session untouched.
    """

    def __init__(
        self,
        session: ReconciliationSession,
        config: Optional[ReconConfig] = None,
        reconciled_by: str = "user",
    ):
        """
        Initialize the coordinator.

        Args:
            session: Session to update
            config: Application configuration (defaults when omitted)
            reconciled_by: User recorded on new matches
        """
        self.session = session
        self.config = config or ReconConfig()
        self.settings = self.config.matching.settings
        self.reconciled_by = reconciled_by

    def top_suggestions(
        self, statement_id: str, limit: Optional[int] = None
    ) -> list[MatchSuggestion]:
        """
        Rank unused ledger entries for one statement line.

        Entries scoring below the suggestion threshold are left out. Equal
        scores keep ledger order.

        Args:
            statement_id: Statement line to suggest for
            limit: Maximum suggestions (configured default when omitted)

        Returns:
            Suggestions, best first
        """
        txn = self._statement(statement_id)
        if limit is None:
            limit = self.settings.suggestion_limit

        suggestions: list[MatchSuggestion] = []
        for entry in self.session.unmatched_ledger_entries:
            breakdown = score_breakdown(txn, entry)
            if breakdown.total >= self.settings.suggestion_threshold:
                suggestions.append(MatchSuggestion(entry, breakdown.total, breakdown))

        suggestions.sort(key=lambda s: s.score, reverse=True)
        return suggestions[:limit]

    def accept_suggestion(self, statement_id: str, ledger_entry_id: str) -> Match:
        """Commit a reviewed suggestion as a ``suggested`` match."""
        txn = self._statement(statement_id)
        entry = self._entry(ledger_entry_id)
        self._ensure_unused([statement_id], [ledger_entry_id])

        match = self.session.add_match(
            Match(
                statement_transaction_id=txn.id,
                ledger_entry_id=entry.id,
                match_type=MatchType.SUGGESTED,
                match_score=score_breakdown(txn, entry).total,
                reconciled_by=self.reconciled_by,
            )
        )
        logger.info(f"Accepted suggestion {txn.id} -> {entry.id} ({match.match_score})")
        return match

    def match_selected(
        self, statement_ids: Sequence[str], ledger_entry_ids: Sequence[str]
    ) -> list[Match]:
        """
        Match a user selection of statement lines and ledger entries.

        Supported shapes: one and one, one and many, many and one, and equal
        counts on both sides (paired by position).

        Args:
            statement_ids: Selected statement lines, in selection order
            ledger_entry_ids: Selected ledger entries, in selection order

        Returns:
            The committed matches

        Raises:
            ValidationError: On an empty, duplicated, unknown, already matched
                or unsupported selection
        """
        statement_ids = list(statement_ids)
        ledger_entry_ids = list(ledger_entry_ids)

        if not statement_ids or not ledger_entry_ids:
            raise ValidationError(
                "Select at least one bank transaction and one ledger entry"
            )
        if len(set(statement_ids)) != len(statement_ids) or len(set(ledger_entry_ids)) != len(
            ledger_entry_ids
        ):
            raise ValidationError("Selection contains the same record twice")

        for txn_id in statement_ids:
            self._statement(txn_id)
        for entry_id in ledger_entry_ids:
            self._entry(entry_id)
        self._ensure_unused(statement_ids, ledger_entry_ids)

        n_statement, n_ledger = len(statement_ids), len(ledger_entry_ids)

        if n_statement == 1 and n_ledger == 1:
            planned = [self._new_match(statement_ids[0], ledger_entry_ids[0], MatchType.MANUAL)]
        elif n_statement == 1:
            planned = [
                self._new_match(
                    statement_ids[0],
                    ledger_entry_ids[0],
                    MatchType.MANUAL_ONE_TO_MANY,
                    related_ledger=ledger_entry_ids[1:],
                )
            ]
        elif n_ledger == 1:
            planned = [
                self._new_match(
                    statement_ids[0],
                    ledger_entry_ids[0],
                    MatchType.MANUAL_MANY_TO_ONE,
                    related_statement=statement_ids[1:],
                )
            ]
        elif n_statement == n_ledger:
            planned = [
                self._new_match(txn_id, entry_id, MatchType.MANUAL)
                for txn_id, entry_id in zip(statement_ids, ledger_entry_ids)
            ]
        else:
            raise ValidationError(
                f"Cannot match {n_statement} bank transactions with {n_ledger} ledger entries; "
                "select one on either side or equal counts"
            )

        committed = [self.session.add_match(match) for match in planned]
        logger.info(
            f"Manually matched {n_statement} bank transaction(s) with "
            f"{n_ledger} ledger entr{'y' if n_ledger == 1 else 'ies'}"
        )
        return committed

    def unmatch(self, record_id: str) -> Match:
        """
        Remove the match whose primary statement line or ledger entry is ``record_id``.

        Raises:
            ValidationError: If no match has that primary id
        """
        match = self.session.remove_match(record_id)
        if match is None:
            raise ValidationError(f"No match found for {record_id}")
        logger.info(f"Unmatched {match.statement_transaction_id} -> {match.ledger_entry_id}")
        return match

    def _new_match(
        self,
        statement_id: str,
        ledger_entry_id: str,
        match_type: MatchType,
        related_ledger: Sequence[str] = (),
        related_statement: Sequence[str] = (),
    ) -> Match:
        return Match(
            statement_transaction_id=statement_id,
            ledger_entry_id=ledger_entry_id,
            match_type=match_type,
            related_ledger_entry_ids=list(related_ledger),
            related_statement_transaction_ids=list(related_statement),
            reconciled_by=self.reconciled_by,
        )

    def _statement(self, statement_id: str) -> StatementTransaction:
        txn = self.session.statement_transaction(statement_id)
        if txn is None:
            raise ValidationError(f"Unknown bank transaction: {statement_id}")
        return txn

    def _entry(self, ledger_entry_id: str) -> LedgerEntry:
        entry = self.session.ledger_entry(ledger_entry_id)
        if entry is None:
            raise ValidationError(f"Unknown ledger entry: {ledger_entry_id}")
        return entry

    def _ensure_unused(self, statement_ids: Sequence[str], ledger_entry_ids: Sequence[str]) -> None:
        used = (set(statement_ids) & self.session.used_statement_ids()) | (
            set(ledger_entry_ids) & self.session.used_ledger_entry_ids()
        )
        if used:
            raise ValidationError(f"Already matched: {', '.join(sorted(used))}")
