"""Chart generation using Plotly."""

from typing import List

import plotly.graph_objects as go

from ..simulation.runner import StepSnapshot

THEME = {
    "text": "#e8eaed",
    "text_secondary": "#9aa0a6",
    "grid": "rgba(30, 33, 36, 0.8)",
    "cyan": "#00d4ff",
    "cyan_fill": "rgba(0, 212, 255, 0.12)",
    "amber": "#ffab00",
    "red": "#ff5252",
    "green": "#00e676",
}

PARTICIPANT_COLORS = [THEME["cyan"], THEME["amber"], THEME["green"], THEME["red"], "#b388ff", "#ff80ab"]


def apply_dark_layout(fig: go.Figure, title: str, x_title: str, y_title: str, showlegend: bool = True) -> None:
    """Apply the dark chart theme."""
    fig.update_layout(
        title={
            "text": title,
            "x": 0,
            "xanchor": "left",
            "font": {"size": 11, "color": THEME["text_secondary"]}
        },
        xaxis_title=x_title,
        yaxis_title=y_title,
        hovermode="x unified",
        template="plotly_dark",
        height=340,
        margin=dict(l=50, r=20, t=40, b=40),
        showlegend=showlegend,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
        plot_bgcolor="rgba(8, 9, 10, 1)",
        paper_bgcolor="rgba(8, 9, 10, 1)",
        font={"color": THEME["text"], "size": 11},
        xaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"]),
        yaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"]),
    )


def create_accumulator_chart(snapshots: List[StepSnapshot], precision_factor: int) -> go.Figure:
    """Reward per unit of weight (descaled) and total weight over time."""
    times = [s.t for s in snapshots]

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=times,
        y=[s.reward_per_weight / precision_factor for s in snapshots],
        name='Reward per weight',
        mode='lines',
        line=dict(color=THEME["cyan"], width=2, shape='hv'),
        fill='tozeroy',
        fillcolor=THEME["cyan_fill"]
    ))
    fig.add_trace(go.Scatter(
        x=times,
        y=[s.total_weight for s in snapshots],
        name='Total weight',
        mode='lines',
        line=dict(color=THEME["amber"], width=1, dash='dot', shape='hv'),
        yaxis='y2'
    ))

    apply_dark_layout(fig, "ACCUMULATOR", "Time", "Reward per weight")
    fig.update_layout(yaxis2=dict(title="Total weight", overlaying='y', side='right', showgrid=False))
    return fig


def create_participant_rewards_chart(snapshots: List[StepSnapshot]) -> go.Figure:
    """Accrued plus claimed rewards per participant over time."""
    times = [s.t for s in snapshots]
    names = sorted(snapshots[-1].participants) if snapshots else []

    fig = go.Figure()
    for i, name in enumerate(names):
        fig.add_trace(go.Scatter(
            x=times,
            y=[
                s.participants[name].accrued + s.participants[name].claimed
                if name in s.participants else 0
                for s in snapshots
            ],
            name=name,
            mode='lines',
            line=dict(color=PARTICIPANT_COLORS[i % len(PARTICIPANT_COLORS)], width=2)
        ))

    apply_dark_layout(fig, "EARNED REWARDS", "Time", "Accrued + claimed")
    return fig
