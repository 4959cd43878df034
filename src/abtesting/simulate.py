"""
Synthetic traffic simulator.

Sends visitors through assign_for_experiment and converts each one with the
true conversion rate of the variation it was shown, recording success events
through track_success. Useful for demos and for checking that observed
traffic tracks configured weights.
"""

import logging
from typing import Dict

import numpy as np

from .schema import Experiment
from .service import assign_for_experiment, track_success
from .store import ExperimentStore

logger = logging.getLogger(__name__)

SIMULATOR_SEED = 42


def simulate_traffic(
    store: ExperimentStore,
    experiment: Experiment,
    conversion_rates: Dict[str, float],
    n_visitors: int = 1000,
    fallback: str = "baseline",
    event: str = "conversion",
    visitor_prefix: str = "visitor",
    random_seed: int = SIMULATOR_SEED,
) -> Dict:
    """
    Simulate n_visitors visiting an experiment.

    Args:
        store: Store holding the experiment (it is saved if missing)
        experiment: Experiment to drive traffic through
        conversion_rates: True conversion probability per variation name
        n_visitors: Number of distinct visitors
        fallback: Variation served when the experiment is not running
        event: Event name recorded on conversion
        visitor_prefix: Prefix for generated visitor ids
        random_seed: Random seed for reproducibility

    Returns:
        Dict with n_visitors, per-variation assigned and converted counts
    """
    rng = np.random.default_rng(random_seed)

    if store.get_experiment(experiment.experiment_id) is None:
        store.save_experiment(experiment)

    assigned: Dict[str, int] = {}
    converted: Dict[str, int] = {}

    for i in range(n_visitors):
        visitor = f"{visitor_prefix}_{i}"
        variation = assign_for_experiment(
            store, experiment.experiment_id, fallback, user_id=visitor
        )
        assigned[variation] = assigned.get(variation, 0) + 1

        rate = float(np.clip(conversion_rates.get(variation, 0.0), 0, 1))
        # Fallback traffic is never recorded, so it cannot convert
        if store.get_assignment(experiment.experiment_id, visitor) is None:
            continue
        if rng.random() < rate:
            track_success(store, experiment.experiment_id, visitor, event)
            converted[variation] = converted.get(variation, 0) + 1

    summary = {
        "experiment_id": experiment.experiment_id,
        "n_visitors": n_visitors,
        "assigned": assigned,
        "converted": converted,
        "random_seed": random_seed,
    }
    logger.info(f"Simulation complete: {summary}")
    return summary
