"""Export functionality for CSV and JSON."""

import json
from dataclasses import asdict

import pandas as pd

from ..simulation.runner import SimulationResult


def snapshots_to_frame(result: SimulationResult) -> pd.DataFrame:
    """One row per (snapshot, participant)."""
    rows = []
    for step, snap in enumerate(result.snapshots):
        for name, participant in snap.participants.items():
            rows.append({
                'step': step,
                't': snap.t,
                'action': snap.action,
                'actor': snap.participant,
                'accepted': snap.accepted,
                # Fixed-point values exceed int64; keep them as strings.
                'reward_per_weight': str(snap.reward_per_weight),
                'total_weight': snap.total_weight,
                'participant': name,
                'weight': participant.weight,
                'accrued': participant.accrued,
                'claimed': participant.claimed,
            })
    return pd.DataFrame(rows)


def export_csv(result: SimulationResult, filepath: str):
    """Export simulation snapshots to CSV."""
    df = snapshots_to_frame(result)
    df.to_csv(filepath, index=False)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'snapshots': [asdict(snap) for snap in result.snapshots],
        'events': [
            {'type': type(event).__name__, **asdict(event)}
            for event in result.events
        ],
        'rejected_actions': result.rejected_actions,
        'final_metrics': result.final_metrics,
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
