"""Experiment statistics module."""

from .srm import srm_chi_square, check_srm
from .hypothesis_tests import proportions_z_test, rate_confidence_interval
from .significance import evaluate, CONFIDENCE_LEVEL, MIN_SAMPLE_SIZE

__all__ = [
    "srm_chi_square",
    "check_srm",
    "proportions_z_test",
    "rate_confidence_interval",
    "evaluate",
    "CONFIDENCE_LEVEL",
    "MIN_SAMPLE_SIZE",
]
