#!/usr/bin/env python3
"""
Run full experiment demo: create -> simulate -> summarize -> report.

Creates data/experiments/<id>/ (experiment, assignments, events) and
artifacts/experiments/<id>/analysis.json + summary.html.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

def main():
    from src.abtesting.schema import Experiment, SuccessMetric, SuccessMetricType, Variation
    from src.abtesting.store import FileStore

    experiment_id = "demo_checkout_button"
    data_dir = ROOT / "data" / "experiments"
    artifacts_dir = ROOT / "artifacts" / "experiments"

    data_dir.mkdir(parents=True, exist_ok=True)
    artifacts_dir.mkdir(parents=True, exist_ok=True)

    store = FileStore(str(data_dir))
    experiment = Experiment(
        experiment_id=experiment_id,
        name="Checkout button colour",
        description="Green vs orange checkout button",
        success_metric=SuccessMetric(type=SuccessMetricType.CONVERSION, target="purchase"),
        variations=[
            Variation(name="baseline", weight=0.5, is_baseline=True),
            Variation(name="orange", weight=0.5),
        ],
    )

    if store.get_experiment(experiment_id) is not None:
        print(f"ERROR: {data_dir / experiment_id} already exists. Remove it to rerun the demo.")
        sys.exit(1)
    store.save_experiment(experiment)

    print("1. Simulating traffic...")
    from src.abtesting.simulate import simulate_traffic
    sim = simulate_traffic(
        store,
        experiment,
        conversion_rates={"baseline": 0.10, "orange": 0.13},
        n_visitors=4000,
        event="purchase",
    )
    print(f"   Assigned: {sim['assigned']}, converted: {sim['converted']}")

    print("2. Summarizing experiment...")
    from src.abtesting.service import summarize_experiment
    summary = summarize_experiment(store, experiment_id)
    for c in summary.comparisons:
        print(f"   {c.candidate} vs {c.baseline}: z={c.result.z_score:.4f} p={c.result.p_value:.4f}")
        print(f"   {c.result.recommendation}")

    print("3. Writing reports...")
    from src.abtesting.report import save_analysis, render_summary_html
    save_analysis(summary, artifacts_dir=str(artifacts_dir))
    render_summary_html(summary, artifacts_dir=str(artifacts_dir))

    out_dir = artifacts_dir / experiment_id
    print(f"\n[OK] Demo complete. Artifacts in {out_dir}:")
    for f in sorted(out_dir.iterdir()):
        print(f"   - {f.name}")

if __name__ == "__main__":
    main()
