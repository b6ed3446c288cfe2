"""
Result of a single waiver run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from .waiver_models import BidStatus, ProcessedClaim


@dataclass
class TeamResult:
    """Per-team budget/roster delta produced by a run."""

    team_id: str
    starting_budget: int
    final_budget: int
    added: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    committed: bool = True
    failure: Optional[str] = None

    @property
    def spent(self) -> int:
        return self.starting_budget - self.final_budget

    def to_dict(self) -> dict:
        return {
            'team_id': self.team_id,
            'starting_budget': self.starting_budget,
            'final_budget': self.final_budget,
            'spent': self.spent,
            'added': list(self.added),
            'dropped': list(self.dropped),
            'committed': self.committed,
            'failure': self.failure,
        }


@dataclass
class BatchResult:
    """Every claim's final outcome for one ProcessWaivers invocation."""

    league_id: str
    run_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    claims: List[ProcessedClaim] = field(default_factory=list)
    teams: Dict[str, TeamResult] = field(default_factory=dict)
    settlement_failures: Dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.claims

    def outcome_for(self, bid_id: str) -> Optional[ProcessedClaim]:
        for claim in self.claims:
            if claim.bid.bid_id == bid_id:
                return claim
        return None

    def claims_for_team(self, team_id: str) -> List[ProcessedClaim]:
        return [c for c in self.claims if c.team_id == team_id]

    def claims_with_status(self, status: BidStatus) -> List[ProcessedClaim]:
        return [c for c in self.claims if c.status == status]

    def summary(self) -> Dict[str, int]:
        """Counts of claims by final status."""
        counts = {status.value: 0 for status in BidStatus if status != BidStatus.PENDING}
        for claim in self.claims:
            counts[claim.status.value] += 1
        counts['settlement_failures'] = len(self.settlement_failures)
        return counts

    def to_dict(self) -> dict:
        return {
            'league_id': self.league_id,
            'run_id': self.run_id,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'summary': self.summary(),
            'claims': [c.to_dict() for c in self.claims],
            'teams': {tid: t.to_dict() for tid, t in sorted(self.teams.items())},
            'settlement_failures': dict(self.settlement_failures),
        }

    def to_dataframe(self) -> pd.DataFrame:
        """
        One row per claim, sorted by team and processing order.

        Returns:
            DataFrame with team_id, bid_id, player_id, amount, drop_player_id,
            processing_order, status, failure_reason, committed
        """
        columns = [
            'team_id', 'bid_id', 'player_id', 'amount', 'drop_player_id',
            'processing_order', 'status', 'failure_reason', 'committed'
        ]
        rows = []
        for claim in self.claims:
            row = claim.to_dict()
            row['committed'] = claim.team_id not in self.settlement_failures
            rows.append(row)

        df = pd.DataFrame(rows, columns=columns)
        if len(df) > 0:
            df = df.sort_values(['team_id', 'processing_order']).reset_index(drop=True)
        return df
