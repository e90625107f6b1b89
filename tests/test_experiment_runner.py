"""
Tests for repeated experimental runs and the command line entry point.
"""

import logging

import numpy as np
import pandas as pd
import pytest
import yaml
from typer.testing import CliRunner

from metaopt.analysis import analyse_experiment
from metaopt.cli import app
from metaopt.exceptions import AlgorithmRunError, AnalysisError, InitialisationError, InvalidConfigurationError
from metaopt.optimisation.algorithms import GenericRandomSearch, MutationHillClimber
from metaopt.optimisation.core import (
    BestScoreProbe,
    BestSolutionProbe,
    EvaluationsStopCondition,
    TotalEvaluationsProbe,
)
from metaopt.optimisation.problems import OneMax
from metaopt.optimisation.runners import (
    ExperimentalRun,
    ExperimentRunner,
    RepeatedRunResult,
    RunResult,
    execute_repeat,
)


class FailsOnSeed(GenericRandomSearch):
    """Random search that refuses to start for one seed."""

    def __init__(self, seed=1, epoch_size=10, failing_seed=2):
        super().__init__(seed, epoch_size)
        self.failing_seed = failing_seed

    def initialise_before_run(self, problem):
        if self.seed == self.failing_seed or self.failing_seed == "all":
            raise InitialisationError(f"seed {self.seed} rejected")
        super().initialise_before_run(problem)


def make_runner(max_evaluations=100, **kwargs):
    return ExperimentRunner(
        stop_conditions=[EvaluationsStopCondition(max_evaluations)],
        probes=[BestScoreProbe(), BestSolutionProbe(), TotalEvaluationsProbe()],
        **kwargs,
    )


class TestExperimentalRun:
    def test_validation(self):
        with pytest.raises(InvalidConfigurationError) as excinfo:
            ExperimentalRun("", OneMax(8), GenericRandomSearch())
        assert excinfo.value.field == "id"

        with pytest.raises(InvalidConfigurationError) as excinfo:
            ExperimentalRun("r", OneMax(8), GenericRandomSearch(), repeats=0)
        assert excinfo.value.field == "repeats"

    def test_runner_validation(self):
        with pytest.raises(InvalidConfigurationError):
            ExperimentRunner(stop_conditions=[])
        with pytest.raises(InvalidConfigurationError):
            ExperimentRunner(probes=[])
        with pytest.raises(InvalidConfigurationError):
            ExperimentRunner(max_workers=0)


class TestExecuteRepeat:
    def test_repeat_number_is_seed(self):
        run = ExperimentalRun("rs", OneMax(16), GenericRandomSearch(seed=99), repeats=1)
        result = execute_repeat(run, 4, [EvaluationsStopCondition(50)], [TotalEvaluationsProbe()])

        assert result.seed == 4
        assert result.repeat == 4
        assert result.observations == {"total_evaluations": 50}
        assert not result.failed
        # prototypes are never touched
        assert run.algorithm.seed == 99
        assert run.problem.evaluations == 0

    def test_failure_captured(self):
        run = ExperimentalRun("bad", OneMax(16), FailsOnSeed(failing_seed=3), repeats=1)
        result = execute_repeat(run, 3, [EvaluationsStopCondition(50)], [TotalEvaluationsProbe()])

        assert result.failed
        assert result.error == "InitialisationError: seed 3 rejected"
        assert result.observations == {}


class TestExperimentRunner:
    def test_repeats_use_seeds_one_to_n(self, onemax):
        results = make_runner().run_repeats(ExperimentalRun("rs", onemax, GenericRandomSearch(), repeats=5))

        assert isinstance(results, RepeatedRunResult)
        assert [r.seed for r in results.results] == [1, 2, 3, 4, 5]
        assert np.all(results.values("total_evaluations") == 100)

        print(f"✅ 5 repeats, best scores {results.values('best_score')}")

    def test_repeats_are_reproducible(self):
        run = ExperimentalRun("hc", OneMax(24), MutationHillClimber(mutation_rate=1 / 24), repeats=4)
        first = make_runner().run_repeats(run)
        second = make_runner().run_repeats(run)
        assert np.array_equal(first.values("best_score"), second.values("best_score"))

    def test_failed_repeat_does_not_stop_the_run(self, onemax):
        run = ExperimentalRun("flaky", onemax, FailsOnSeed(failing_seed=2), repeats=4)
        results = make_runner().run_repeats(run)

        assert [r.repeat for r in results.failures] == [2]
        assert len(results.successful) == 3
        assert results.values("best_score").shape == (3,)

        print("✅ One failed repeat recorded, the others completed")

    def test_all_repeats_failing_raises(self, onemax):
        run = ExperimentalRun("broken", onemax, FailsOnSeed(failing_seed="all"), repeats=3)
        with pytest.raises(AlgorithmRunError, match="All repeats of run 'broken' failed"):
            make_runner().run_repeats(run)

    def test_values_of_unobserved_probe(self, onemax):
        results = make_runner().run_repeats(ExperimentalRun("rs", onemax, GenericRandomSearch(), repeats=2))
        with pytest.raises(KeyError, match="run_time_ms"):
            results.values("run_time_ms")

    def test_values_of_non_numeric_probe(self, onemax):
        results = make_runner().run_repeats(ExperimentalRun("rs", onemax, GenericRandomSearch(), repeats=2))
        with pytest.raises(AnalysisError, match="best_solution.*not numeric"):
            results.values("best_solution")

    def test_analysis_of_non_numeric_statistic_is_recorded(self):
        runs = [
            ExperimentalRun("hc", OneMax(16), MutationHillClimber(mutation_rate=1 / 16), repeats=3),
            ExperimentalRun("rs", OneMax(16), GenericRandomSearch(), repeats=3),
        ]
        results = make_runner(max_evaluations=40).run_experiment(runs)

        analysis = analyse_experiment(results, statistic="best_solution")

        assert analysis.comparison is None
        assert "not numeric" in analysis.error
        assert analysis.summaries == {}

        print("✅ Non-numeric statistic reported as an analysis error")

    def test_to_frame(self, onemax):
        run = ExperimentalRun("flaky", onemax, FailsOnSeed(failing_seed=2), repeats=3)
        frame = make_runner().run_repeats(run).to_frame()

        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 3
        assert list(frame["repeat"]) == [1, 2, 3]
        assert frame["error"].notna().tolist() == [False, True, False]
        for column in ("run_id", "seed", "duration_seconds", "best_score", "best_solution", "total_evaluations"):
            assert column in frame.columns
        assert isinstance(frame.loc[0, "best_solution"], str)

    def test_run_experiment(self):
        runs = [
            ExperimentalRun("hc", OneMax(16), MutationHillClimber(mutation_rate=1 / 16), repeats=3),
            ExperimentalRun("rs", OneMax(16), GenericRandomSearch(), repeats=2),
        ]
        results = make_runner(max_evaluations=80).run_experiment(runs)
        assert list(results) == ["hc", "rs"]
        assert len(results["hc"].results) == 3
        assert len(results["rs"].results) == 2

    def test_duplicate_run_ids_rejected(self):
        runs = [
            ExperimentalRun("same", OneMax(8), GenericRandomSearch(), repeats=1),
            ExperimentalRun("same", OneMax(8), MutationHillClimber(), repeats=1),
        ]
        with pytest.raises(InvalidConfigurationError, match="unique") as excinfo:
            make_runner().run_experiment(runs)
        assert excinfo.value.field == "id"

    def test_parallel_matches_sequential(self):
        run = ExperimentalRun("rs", OneMax(16), GenericRandomSearch(epoch_size=10), repeats=4)
        sequential = make_runner(max_evaluations=60).run_repeats(run)
        parallel = make_runner(max_evaluations=60, parallel=True, max_workers=2).run_repeats(run)

        assert [r.repeat for r in parallel.results] == [1, 2, 3, 4]
        assert np.array_equal(sequential.values("best_score"), parallel.values("best_score"))


def test_run_result_failed_flag():
    assert not RunResult("r", 1, 1).failed
    assert RunResult("r", 1, 1, error="ValueError: x").failed


class TestCommandLine:
    @pytest.fixture(autouse=True)
    def detach_cli_logging(self):
        yield
        logger = logging.getLogger("metaopt")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

    def write_config(self, path, problem_type="OneMax"):
        config = {
            "experiment": {"name": "cli", "repeats": 8},
            "problem": {"type": problem_type, "params": {"length": 12}},
            "stop_conditions": [{"type": "evaluations", "params": {"max_evaluations": 60}}],
            "probes": ["best_score", "total_evaluations"],
            "runs": [
                {"id": "hc", "algorithm": {"type": "MutationHillClimber", "automatically_configure": True}},
                {"id": "rs", "algorithm": {"type": "GenericRandomSearch", "params": {"epoch_size": 20}}},
            ],
            "monitoring": {"log_level": "WARNING"},
        }
        path.write_text(yaml.dump(config))
        return path

    def test_run_writes_observations(self, tmp_path):
        config = self.write_config(tmp_path / "experiment.yaml")
        output = tmp_path / "out" / "observations.csv"

        result = CliRunner().invoke(app, ["run", str(config), "--output", str(output)])

        assert result.exit_code == 0, result.output
        frame = pd.read_csv(output)
        assert len(frame) == 16
        assert set(frame["run_id"]) == {"hc", "rs"}
        assert (frame["total_evaluations"] == 60).all()

        print("✅ CLI run wrote 16 observations")

    def test_invalid_config_exits_with_error(self, tmp_path):
        config = self.write_config(tmp_path / "bad.yaml", problem_type="Knapsack")
        result = CliRunner().invoke(app, ["run", str(config)])
        assert result.exit_code == 1

    def test_auto_configuration_on_continuous_problem_exits_with_error(self, tmp_path):
        config = self.write_config(tmp_path / "sphere.yaml")
        data = yaml.safe_load(config.read_text())
        data["problem"] = {"type": "Sphere", "params": {"dimensions": 2}}
        config.write_text(yaml.dump(data))

        result = CliRunner().invoke(app, ["run", str(config)])

        assert result.exit_code == 1
        # a clean exit, not a traceback from the algorithm
        assert isinstance(result.exception, SystemExit)

    def test_list_components(self):
        result = CliRunner().invoke(app, ["list"])
        assert result.exit_code == 0
        assert "OneMax" in result.output
        assert "anova" in result.output
