"""
Tabular views of league waiver state for the CLI and API.
"""

import logging
from pathlib import Path

import pandas as pd

from .waiver_models import LeagueState

logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS = [
    'timestamp', 'transaction_id', 'team_id', 'player_id', 'player_name',
    'amount', 'outcome', 'failure_reason', 'dropped_player_id', 'faab_spent'
]


def team_summary(league_state: LeagueState) -> pd.DataFrame:
    """
    Get summary statistics for all teams.

    Returns:
        DataFrame with team_id, team_name, faab_budget, roster_size,
        open_slots, pending_bids, score
    """
    limit = league_state.settings.roster_limit
    summary_data = []
    for team_id, team in league_state.teams.items():
        summary_data.append({
            'team_id': team_id,
            'team_name': team.team_name,
            'faab_budget': team.faab_budget,
            'roster_size': len(team.roster),
            'open_slots': team.open_slots(limit),
            'pending_bids': sum(1 for b in team.pending_bids if b.is_pending),
            'score': team.total_score(),
        })

    columns = ['team_id', 'team_name', 'faab_budget', 'roster_size',
               'open_slots', 'pending_bids', 'score']
    return pd.DataFrame(summary_data, columns=columns).sort_values('team_id').reset_index(drop=True)


def transactions_to_dataframe(league_state: LeagueState) -> pd.DataFrame:
    """
    Flatten the league's waiver transaction log.

    Returns:
        DataFrame with one row per transaction in chronological order
    """
    rows = []
    for record in league_state.transactions:
        rows.append({
            'timestamp': record.timestamp.isoformat(),
            'transaction_id': record.transaction_id,
            'team_id': record.team_id,
            'player_id': record.player_id,
            'player_name': record.player_names.get(record.player_id, {}).get('name'),
            'amount': record.amount,
            'outcome': record.outcome.value,
            'failure_reason': record.failure_reason.value if record.failure_reason else None,
            'dropped_player_id': record.dropped_player_id,
            'faab_spent': record.faab_spent,
        })

    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)


def export_transactions_csv(league_state: LeagueState, output_path: Path) -> None:
    """
    Export the transaction log to CSV format for analysis.

    Args:
        league_state: League to export
        output_path: Path for CSV output file
    """
    df = transactions_to_dataframe(league_state)
    if len(df) == 0:
        logger.warning(f"No transactions to export for {league_state.league_id}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)

    logger.info(f"Exported {len(df)} transactions to {output_path}")
