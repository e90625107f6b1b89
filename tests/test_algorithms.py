"""
Tests for the shipped algorithms: random search, mutation hill climber,
genetic algorithm and particle swarm.
"""

import numpy as np
import pytest

from metaopt.exceptions import InitialisationError, InvalidConfigurationError
from metaopt.optimisation.algorithms import (
    ALGORITHMS,
    GeneticAlgorithm,
    GenericRandomSearch,
    MutationHillClimber,
    ParticleSwarm,
)
from metaopt.optimisation.algorithms.genetic import one_point_crossover, tournament_select
from metaopt.optimisation.algorithms.hill_climber import bit_flip_mutation
from metaopt.optimisation.core import (
    AlgorithmExecutor,
    BestScoreProbe,
    BestSolutionProbe,
    BitStringSolution,
    EvaluationsStopCondition,
    TotalEvaluationsProbe,
)
from metaopt.optimisation.problems import OneMax


def run(problem, algorithm, max_evaluations):
    probes = [BestScoreProbe(), BestSolutionProbe(), TotalEvaluationsProbe()]
    executor = AlgorithmExecutor(problem, algorithm, [EvaluationsStopCondition(max_evaluations)], probes)
    executor.execute_and_wait()
    return {probe.key: probe.observation for probe in probes}


class TestOperators:
    def test_bit_flip_extremes(self):
        rng = np.random.default_rng(0)
        bits = np.array([True, False, True, False])
        assert np.array_equal(bit_flip_mutation(bits, rng, 0.0), bits)
        assert np.array_equal(bit_flip_mutation(bits, rng, 1.0), ~bits)
        # input untouched
        assert np.array_equal(bits, [True, False, True, False])

    def test_crossover_preserves_genes(self):
        rng = np.random.default_rng(1)
        a = np.zeros(10, dtype=bool)
        b = np.ones(10, dtype=bool)
        c, d = one_point_crossover(a, b, rng, 1.0)
        assert np.array_equal(c, ~d)
        assert 0 < c.sum() < 10
        assert not c[0] and c[-1]

    def test_no_crossover_copies_parents(self):
        rng = np.random.default_rng(1)
        a = np.zeros(6, dtype=bool)
        b = np.ones(6, dtype=bool)
        c, d = one_point_crossover(a, b, rng, 0.0)
        assert np.array_equal(c, a) and c is not a
        assert np.array_equal(d, b)

    def test_tournament_returns_indices_of_winners(self):
        problem = OneMax(length=4)
        population = [BitStringSolution([0, 0, 0, 0]), BitStringSolution([1, 1, 1, 1])]
        for s in population:
            s.mark_evaluated(float(s.bitstring.sum()))
        winners = tournament_select(problem, population, 6, 2, np.random.default_rng(0))
        # bouts of two distinct competitors from two solutions always include the best
        assert winners == [1] * 6


class TestGenericRandomSearch:
    def test_spends_exact_budget(self, onemax):
        result = run(onemax, GenericRandomSearch(epoch_size=30), 100)
        assert result["total_evaluations"] == 100
        assert 0 < result["best_score"] <= 32

        print(f"✅ Random search best on OneMax(32): {result['best_score']}")

    def test_works_on_continuous_problems(self, sphere):
        result = run(sphere, GenericRandomSearch(epoch_size=20), 200)
        assert result["total_evaluations"] == 200
        assert result["best_score"] >= 0.0

    def test_epoch_size_validation(self):
        with pytest.raises(InvalidConfigurationError):
            GenericRandomSearch(epoch_size=0).validate()


class TestMutationHillClimber:
    def test_climbs_onemax(self, onemax):
        random_best = run(OneMax(length=32), GenericRandomSearch(), 2000)["best_score"]
        climber = MutationHillClimber()
        climber.automatically_configure(onemax)
        result = run(onemax, climber, 2000)

        assert climber.mutation_rate == pytest.approx(1 / 32)
        assert result["total_evaluations"] == 2000
        assert result["best_score"] >= random_best
        assert result["best_score"] >= 28

    def test_requires_binary_problem(self, sphere):
        with pytest.raises(InitialisationError, match="binary"):
            run(sphere, MutationHillClimber(), 10)

    def test_mutation_rate_validation(self):
        with pytest.raises(InvalidConfigurationError) as excinfo:
            MutationHillClimber(mutation_rate=1.5).validate()
        assert excinfo.value.field == "mutation_rate"


class TestGeneticAlgorithm:
    def test_automatic_configuration(self, onemax):
        ga = GeneticAlgorithm()
        ga.automatically_configure(onemax)
        assert ga.parameters() == {
            "seed": 1,
            "population_size": 32,
            "crossover_rate": 0.98,
            "mutation_rate": 1 / 32,
            "bout_size": 2,
            "elitism": 0,
        }

    def test_improves_on_onemax(self, onemax):
        ga = GeneticAlgorithm(population_size=20, mutation_rate=1 / 32, elitism=2)
        result = run(onemax, ga, 2000)
        assert result["total_evaluations"] == 2000
        assert result["best_score"] >= 24
        assert result["best_solution"].score == result["best_score"]

    def test_same_seed_same_result(self, onemax):
        first = run(OneMax(length=32), GeneticAlgorithm(seed=5, population_size=16), 500)
        second = run(OneMax(length=32), GeneticAlgorithm(seed=5, population_size=16), 500)
        assert first["best_score"] == second["best_score"]
        assert np.array_equal(first["best_solution"].bitstring, second["best_solution"].bitstring)

    @pytest.mark.parametrize("params, field", [
        ({"population_size": 1}, "population_size"),
        ({"crossover_rate": -0.1}, "crossover_rate"),
        ({"bout_size": 50, "population_size": 10}, "bout_size"),
        ({"elitism": 10, "population_size": 10}, "elitism"),
    ])
    def test_validation(self, params, field):
        with pytest.raises(InvalidConfigurationError) as excinfo:
            GeneticAlgorithm().configure(**params).validate()
        assert excinfo.value.field == field


class TestParticleSwarm:
    def test_minimises_sphere_within_budget(self, sphere):
        result = run(sphere, ParticleSwarm(pop_size=20), 1000)
        assert result["total_evaluations"] == 1000
        coords = result["best_solution"].coordinates
        assert coords.shape == (3,)
        assert np.all(np.abs(coords) <= 10.0)
        # a uniformly random point in [-10, 10]^3 scores 100 on average
        assert result["best_score"] < 10.0

        print(f"✅ PSO best on Sphere(3): {result['best_score']:.4g}")

    def test_requires_continuous_problem(self, onemax):
        with pytest.raises(InitialisationError, match="continuous"):
            run(onemax, ParticleSwarm(), 10)

    def test_validation(self):
        with pytest.raises(InvalidConfigurationError) as excinfo:
            ParticleSwarm(pop_size=2).validate()
        assert excinfo.value.field == "pop_size"


def test_registry_instantiates_every_algorithm():
    for key, cls in ALGORITHMS.items():
        algorithm = cls()
        algorithm.validate()
        assert algorithm.get_name()
