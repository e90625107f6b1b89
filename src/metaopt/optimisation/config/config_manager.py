"""
Configuration data classes and management for experiments.

An experiment is one problem, one set of stop conditions and probes, and
several runs that each pair the problem with a configured algorithm. Every
run is repeated to collect a sample of probe observations for statistical
comparison.

Example YAML Configuration:
```yaml
experiment:
  name: "onemax_comparison"
  repeats: 30
  parallel: false
  statistic: "best_score"
  normality_test: "anderson_darling"

problem:
  type: "OneMax"
  params:
    length: 64

stop_conditions:
  - type: "evaluations"
    params:
      max_evaluations: 2000

probes: ["best_score", "total_evaluations", "run_time_ms"]

runs:
  - id: "hill_climber"
    algorithm:
      type: "MutationHillClimber"
      automatically_configure: true
  - id: "random_search"
    algorithm:
      type: "GenericRandomSearch"
      params:
        epoch_size: 50

monitoring:
  log_level: "INFO"
  log_dir: "output/logs"
```

Usage:
```python
config_manager = ExperimentConfigManager('experiment.yaml')
runner = ExperimentRunner(
    config_manager.create_stop_conditions(),
    config_manager.create_probes(),
)
results = runner.run_experiment(config_manager.create_runs())
```
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from metaopt.analysis import NORMALITY_TESTS

from ..algorithms import ALGORITHMS
from ..core.algorithm import Algorithm
from ..core.probes import PROBES, RunProbe, default_probes
from ..core.problem import Problem
from ..core.stop_conditions import STOP_CONDITIONS, StopCondition
from ..problems import PROBLEMS
from ..runners.experiment_runner import ExperimentalRun

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _check_type(kind: str, type_name: Any, registry: dict) -> None:
    if type_name not in registry:
        raise ValueError(f"Unknown {kind} type '{type_name}'. Available: {sorted(registry)}")


def _check_params(kind: str, params: Any) -> None:
    if not isinstance(params, dict):
        raise ValueError(f"{kind} params must be a mapping, got {type(params).__name__}")


@dataclass
class ProblemConfig:
    """Problem type from the problem registry plus its parameters."""

    type: str
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        _check_type("problem", self.type, PROBLEMS)
        _check_params("Problem", self.params)


@dataclass
class AlgorithmConfig:
    """
    Algorithm type from the algorithm registry plus its parameters.

    Attributes:
        automatically_configure: Derive rates and sizes from the problem
            before ``params`` are applied, so explicit params win.
    """

    type: str
    params: dict[str, Any] = field(default_factory=dict)
    automatically_configure: bool = False

    def __post_init__(self):
        _check_type("algorithm", self.type, ALGORITHMS)
        _check_params("Algorithm", self.params)


@dataclass
class RunConfig:
    id: str
    algorithm: AlgorithmConfig
    repeats: int | None = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Run id must be a non-empty string")
        if self.repeats is not None and self.repeats < 1:
            raise ValueError(f"Run '{self.id}': repeats must be at least 1")


@dataclass
class StopConditionConfig:
    type: str
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        _check_type("stop condition", self.type, STOP_CONDITIONS)
        _check_params("Stop condition", self.params)


@dataclass
class ExperimentConfig:
    """
    Experiment-wide settings.

    Attributes:
        repeats: Default repeats per run, overridable per run.
        parallel: Execute repeats on a process pool.
        max_workers: Pool size, ``None`` lets the pool decide.
        statistic: Probe key analysed after the runs.
        normality_test: Registry key of the normality test used for test selection.
    """

    name: str = "experiment"
    repeats: int = 30
    parallel: bool = False
    max_workers: int | None = None
    statistic: str = "best_score"
    normality_test: str = "anderson_darling"

    def __post_init__(self):
        if self.repeats < 1:
            raise ValueError("Repeats must be at least 1")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.normality_test not in NORMALITY_TESTS:
            raise ValueError(f"normality_test must be one of {sorted(NORMALITY_TESTS)}")


@dataclass
class MonitoringConfig:
    log_level: str = "INFO"
    log_dir: str | None = None
    log_file: str = "run.log"

    def __post_init__(self):
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of {list(VALID_LOG_LEVELS)}")


class ExperimentConfigManager:
    """
    Loads, validates and materialises experiment configurations.

    Configuration Structure:
        ```yaml
        experiment: {...}         # optional, ExperimentConfig fields
        problem: {type, params}   # required
        stop_conditions: [...]    # required, list of {type, params}
        probes: [...]             # optional, probe keys; default probes otherwise
        runs: [...]               # required, list of {id, algorithm, repeats}
        monitoring: {...}         # optional, MonitoringConfig fields
        ```

    The ``create_*`` factories return fresh, unvalidated components on every
    call; validation happens when the executor runs them.
    """

    REQUIRED_SECTIONS = ("problem", "runs", "stop_conditions")

    def __init__(self, config_path: str | None = None, config_dict: dict | None = None):
        """
        Args:
            config_path: Path to YAML configuration file
            config_dict: Configuration dictionary (alternative to file)

        Raises:
            FileNotFoundError: If config_path doesn't exist
            ValueError: If both or neither sources are given, or validation fails
            yaml.YAMLError: If the YAML file is malformed
        """
        if config_path and config_dict:
            raise ValueError("Provide either config_path or config_dict, not both")
        if not config_path and not config_dict:
            raise ValueError(
                "Configuration is required. Provide either:\n"
                "  - config_path: Path to YAML configuration file\n"
                "  - config_dict: Configuration dictionary\n"
                "Example: ExperimentConfigManager('experiment.yaml')"
            )

        if config_path:
            self.config = self._load_yaml_config(config_path)
        else:
            if not isinstance(config_dict, dict):
                raise ValueError(f"Configuration must be a dictionary, got {type(config_dict)}")
            self.config = config_dict
            print("📋 Using provided configuration dictionary")

        self._validate_config()
        self._setup_structured_configs()

    def _load_yaml_config(self, config_path: str) -> dict[str, Any]:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Configuration must be a dictionary, got {type(config)}")

        print(f"📂 Loaded configuration from {config_path}")
        return config

    def _validate_config(self):
        for section in self.REQUIRED_SECTIONS:
            if section not in self.config:
                raise ValueError(f"Missing required configuration section: '{section}'")

        if not isinstance(self.config["problem"], dict) or "type" not in self.config["problem"]:
            raise ValueError("Missing 'type' in problem configuration")
        if not isinstance(self.config["runs"], list) or not self.config["runs"]:
            raise ValueError("'runs' must be a non-empty list")
        if not isinstance(self.config["stop_conditions"], list) or not self.config["stop_conditions"]:
            raise ValueError("'stop_conditions' must be a non-empty list")

    def _setup_structured_configs(self):
        problem = self.config["problem"]
        self.problem_config = ProblemConfig(type=problem["type"], params=problem.get("params") or {})

        self.stop_condition_configs = [
            StopConditionConfig(type=entry["type"], params=entry.get("params") or {})
            for entry in self._entries("stop_conditions")
        ]

        self.run_configs = []
        for entry in self._entries("runs"):
            algorithm = entry.get("algorithm")
            if not isinstance(algorithm, dict) or "type" not in algorithm:
                raise ValueError(f"Run '{entry.get('id')}' is missing 'algorithm.type'")
            self.run_configs.append(RunConfig(
                id=entry.get("id"),
                algorithm=AlgorithmConfig(
                    type=algorithm["type"],
                    params=algorithm.get("params") or {},
                    automatically_configure=bool(algorithm.get("automatically_configure", False)),
                ),
                repeats=entry.get("repeats"),
            ))
        ids = [run.id for run in self.run_configs]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Run ids must be unique, repeated: {duplicates}")

        probes = self.config.get("probes")
        if probes is not None:
            if not isinstance(probes, list) or not probes:
                raise ValueError("'probes' must be a non-empty list of probe keys")
            for key in probes:
                _check_type("probe", key, PROBES)
        self.probe_keys: list[str] | None = probes

        self.experiment_config = ExperimentConfig(**(self.config.get("experiment") or {}))
        self.monitoring_config = MonitoringConfig(**(self.config.get("monitoring") or {}))

        if self.experiment_config.statistic not in self._observed_keys():
            raise ValueError(
                f"Statistic '{self.experiment_config.statistic}' is not recorded by any configured probe"
            )
        if not PROBES[self.experiment_config.statistic].numeric:
            raise ValueError(
                f"Statistic '{self.experiment_config.statistic}' is not numeric and cannot be analysed"
            )

    def _entries(self, section: str) -> list[dict]:
        entries = self.config[section]
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"Every entry in '{section}' must be a mapping")
            if section == "stop_conditions" and "type" not in entry:
                raise ValueError("Every stop condition needs a 'type'")
        return entries

    def _observed_keys(self) -> list[str]:
        if self.probe_keys is None:
            return [probe.key for probe in default_probes()]
        return list(self.probe_keys)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_problem_config(self) -> ProblemConfig:
        return self.problem_config

    def get_run_configs(self) -> list[RunConfig]:
        return self.run_configs

    def get_stop_condition_configs(self) -> list[StopConditionConfig]:
        return self.stop_condition_configs

    def get_experiment_config(self) -> ExperimentConfig:
        return self.experiment_config

    def get_monitoring_config(self) -> MonitoringConfig:
        return self.monitoring_config

    def get_full_config(self) -> dict[str, Any]:
        return self.config.copy()

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def create_problem(self) -> Problem:
        problem = PROBLEMS[self.problem_config.type]()
        problem.configure(**self.problem_config.params)
        return problem

    def create_algorithm(self, run: RunConfig, problem: Problem | None = None) -> Algorithm:
        algorithm = ALGORITHMS[run.algorithm.type]()
        if run.algorithm.automatically_configure:
            algorithm.automatically_configure(problem if problem is not None else self.create_problem())
        algorithm.configure(**run.algorithm.params)
        return algorithm

    def create_stop_conditions(self) -> list[StopCondition]:
        conditions = []
        for entry in self.stop_condition_configs:
            condition = STOP_CONDITIONS[entry.type]()
            condition.configure(**entry.params)
            conditions.append(condition)
        return conditions

    def create_probes(self) -> list[RunProbe]:
        if self.probe_keys is None:
            return default_probes()
        return [PROBES[key]() for key in self.probe_keys]

    def create_runs(self) -> list[ExperimentalRun]:
        runs = []
        for run in self.run_configs:
            problem = self.create_problem()
            runs.append(ExperimentalRun(
                id=run.id,
                problem=problem,
                algorithm=self.create_algorithm(run, problem),
                repeats=run.repeats if run.repeats is not None else self.experiment_config.repeats,
            ))
        return runs

    def print_summary(self):
        experiment = self.experiment_config
        print("\n📋 EXPERIMENT CONFIGURATION SUMMARY:")
        print(f"   🧪 Experiment: {experiment.name}")
        print(f"      Default repeats: {experiment.repeats}")
        print(f"      Parallel: {'Enabled' if experiment.parallel else 'Disabled'}")
        print(f"      Statistic: {experiment.statistic} (normality: {experiment.normality_test})")
        print("   🎯 Problem Configuration:")
        print(f"      Type: {self.problem_config.type} {self.problem_config.params or ''}")
        print("   ⏰ Stop Conditions:")
        for entry in self.stop_condition_configs:
            print(f"      {entry.type}: {entry.params or 'defaults'}")
        print("   🔄 Runs:")
        for run in self.run_configs:
            auto = " (auto-configured)" if run.algorithm.automatically_configure else ""
            repeats = run.repeats if run.repeats is not None else experiment.repeats
            print(f"      {run.id}: {run.algorithm.type}{auto} x{repeats} {run.algorithm.params or ''}")
        print("   📊 Monitoring Configuration:")
        print(f"      Log level: {self.monitoring_config.log_level}")
        print(f"      Log dir: {self.monitoring_config.log_dir or 'console only'}")
