"""
Streamlit dashboard for the rewardstream accrual engine.

Replays the configured scenario and plots the accumulator and each
participant's earned rewards.

Run locally with: streamlit run streamlit_app.py
"""

from typing import Any, Dict

import pandas as pd
import streamlit as st

from rewardstream.config.loader import load_config
from rewardstream.config.schema import Config
from rewardstream.reporting.charts import create_accumulator_chart, create_participant_rewards_chart
from rewardstream.reporting.export import snapshots_to_frame
from rewardstream.simulation.monte_carlo import MonteCarloRunner, check_invariants
from rewardstream.simulation.runner import SimulationResult, SimulationRunner
from rewardstream.validation.sanity_checks import validate_simulation_results

st.set_page_config(
    page_title="rewardstream",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_data(show_spinner=False)
def _run_scenario_cached(config_dict: Dict[str, Any]):
    """Run the scripted scenario; the engine itself is not cached."""
    config = Config.from_dict(config_dict)
    result = SimulationRunner(config).run()
    warnings = validate_simulation_results(result)
    return result.snapshots, result.final_metrics, result.rejected_actions, warnings


@st.cache_data(show_spinner=False)
def _run_monte_carlo_cached(config_dict: Dict[str, Any], num_runs: int, seed: int):
    """Run random scenarios and collect invariant violations."""
    config = Config.from_dict(config_dict)
    results = MonteCarloRunner(config).run(num_runs=num_runs, random_seed=seed)
    return [check_invariants(result) for result in results]


def render_sidebar(config: Config) -> Config:
    """Program controls; returns the edited config."""
    st.sidebar.header("Program")
    program = config.program
    if program is None:
        st.sidebar.info("No initial program in this config")
        return config

    start = st.sidebar.number_input("Start", min_value=0, value=program.start, step=10)
    end = st.sidebar.number_input("End", min_value=start + 1, value=max(program.end, start + 1), step=10)
    budget = st.sidebar.number_input("Total budget", min_value=0, value=program.total_budget, step=1000)

    updated = program.model_copy(update={"start": int(start), "end": int(end), "total_budget": int(budget)})
    return config.model_copy(update={"program": updated})


def render_overview(config: Config):
    snapshots, metrics, rejected, warnings = _run_scenario_cached(config.to_dict())

    cols = st.columns(4)
    cols[0].metric("Budget", f"{metrics['total_budget']:,}")
    cols[1].metric("Claimed", f"{metrics['total_claimed']:,}")
    cols[2].metric("Accrued", f"{metrics['total_accrued']:,}")
    cols[3].metric("Undistributed", f"{metrics['undistributed']:,}")

    if snapshots:
        st.plotly_chart(
            create_accumulator_chart(snapshots, config.engine.precision_factor),
            width="stretch",
        )
        st.plotly_chart(create_participant_rewards_chart(snapshots), width="stretch")

    for warning in warnings:
        if warning.severity == "error":
            st.error(f"{warning.message} ({warning.details})")
        elif warning.message != "Scripted action rejected":
            st.warning(warning.message)

    if rejected:
        st.subheader("Rejected actions")
        st.dataframe(pd.DataFrame({"action": rejected}), hide_index=True, width="stretch")


def render_snapshots(config: Config):
    snapshots, _, _, _ = _run_scenario_cached(config.to_dict())
    frame = snapshots_to_frame(SimulationResult(config=config, snapshots=snapshots, final_metrics={}))
    st.dataframe(frame, hide_index=True, width="stretch")


def render_invariants(config: Config):
    runs = st.number_input("Runs", min_value=1, max_value=500, value=config.simulation.random_runs)
    seed = st.number_input("Seed", value=config.simulation.random_seed)
    if st.button("Run random scenarios"):
        with st.spinner("Running..."):
            violations = _run_monte_carlo_cached(config.to_dict(), int(runs), int(seed))
        failed = [v for v in violations if v]
        if failed:
            st.error(f"{len(failed)} of {len(violations)} runs violated an invariant")
            for v in failed:
                st.code("\n".join(v))
        else:
            st.success(f"All {len(violations)} runs hold monotonicity and conservation")


def main():
    """Main application entry point."""
    st.title("rewardstream")
    config = render_sidebar(load_config())

    tabs = st.tabs(["Overview", "Snapshots", "Invariants"])
    with tabs[0]:
        render_overview(config)
    with tabs[1]:
        render_snapshots(config)
    with tabs[2]:
        render_invariants(config)


if __name__ == "__main__":
    main()
