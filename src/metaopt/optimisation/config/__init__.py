"""
Configuration management for experiments.

Experiments are described in YAML (or an equivalent dict) and turned into
problems, algorithms, stop conditions, probes and experimental runs.
"""

from .config_manager import (
    AlgorithmConfig,
    ExperimentConfig,
    ExperimentConfigManager,
    MonitoringConfig,
    ProblemConfig,
    RunConfig,
    StopConditionConfig,
)

__all__ = [
    "AlgorithmConfig",
    "ExperimentConfig",
    "ExperimentConfigManager",
    "MonitoringConfig",
    "ProblemConfig",
    "RunConfig",
    "StopConditionConfig",
]
