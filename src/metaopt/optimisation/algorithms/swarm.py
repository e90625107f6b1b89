"""
Particle swarm optimisation backed by pymoo's PSO.

pymoo owns the swarm dynamics (velocity update, adaptive w/c1/c2); the
problem owns evaluation. The swarm is driven through pymoo's ask/tell
interface so every particle is costed through ``Problem.cost`` and the
evaluation budget and stop conditions apply exactly as for any other
algorithm.
"""

import numpy as np
from pymoo.algorithms.soo.nonconvex.pso import PSO
from pymoo.core.evaluator import Evaluator
from pymoo.core.problem import Problem as SearchSpace
from pymoo.core.termination import NoTermination
from pymoo.problems.static import StaticProblem

from metaopt.exceptions import InitialisationError, InvalidConfigurationError

from ..core.algorithm import Algorithm
from ..core.problem import ContinuousProblem, Problem
from ..core.solution import CoordinateSolution


class ParticleSwarm(Algorithm):
    """
    PSO on continuous problems.

    With ``adaptive=True`` pymoo adjusts w, c1 and c2 from the swarm spread and
    the configured values are starting points; otherwise they stay fixed.
    """

    name = "Particle Swarm Optimization (PSO)"
    PARAMETERS = ("seed", "pop_size", "inertia_weight", "cognitive_coeff", "social_coeff", "adaptive")

    def __init__(self, seed: int = 1, pop_size: int = 25, inertia_weight: float = 0.9,
                 cognitive_coeff: float = 2.0, social_coeff: float = 2.0, adaptive: bool = True):
        super().__init__(seed)
        self.pop_size = pop_size
        self.inertia_weight = inertia_weight
        self.cognitive_coeff = cognitive_coeff
        self.social_coeff = social_coeff
        self.adaptive = adaptive

    def validate_configuration(self) -> None:
        super().validate_configuration()
        if not 5 <= self.pop_size <= 1000:
            raise InvalidConfigurationError("Population size must be in [5, 1000]",
                                            field="pop_size", value=self.pop_size)
        if not 0.0 <= self.inertia_weight <= 2.0:
            raise InvalidConfigurationError("Inertia weight should be in range [0.0, 2.0]",
                                            field="inertia_weight", value=self.inertia_weight)
        if not 0.0 <= self.cognitive_coeff <= 5.0:
            raise InvalidConfigurationError("Cognitive coefficient should be in range [0.0, 5.0]",
                                            field="cognitive_coeff", value=self.cognitive_coeff)
        if not 0.0 <= self.social_coeff <= 5.0:
            raise InvalidConfigurationError("Social coefficient should be in range [0.0, 5.0]",
                                            field="social_coeff", value=self.social_coeff)

    def initialise_before_run(self, problem: Problem) -> None:
        super().initialise_before_run(problem)
        if not isinstance(problem, ContinuousProblem):
            raise InitialisationError(f"{self.get_name()} requires a continuous problem, got {problem.get_name()}")

    def _create_swarm(self) -> PSO:
        return PSO(
            pop_size=self.pop_size,
            w=self.inertia_weight,
            c1=self.cognitive_coeff,
            c2=self.social_coeff,
            adaptive=self.adaptive,
        )

    def internal_execute_algorithm(self, problem: Problem) -> None:
        lower, upper = problem.bounds
        search_space = SearchSpace(n_var=problem.dimensions, n_obj=1, xl=lower, xu=upper)
        swarm = self._create_swarm()
        swarm.setup(search_space, termination=NoTermination(), seed=int(self.seed), verbose=False)

        # pymoo minimises
        direction = 1.0 if problem.is_minimization else -1.0

        while problem.can_evaluate():
            infills = swarm.ask()
            particles = [CoordinateSolution(np.clip(x, lower, upper)) for x in infills.get("X")]
            problem.cost(particles)
            if not problem.can_evaluate():
                self.trigger_epoch_complete_event(problem, [p for p in particles if p.evaluated])
                break

            self.trigger_epoch_complete_event(problem, particles)
            F = np.array([[direction * p.score] for p in particles])
            Evaluator().eval(StaticProblem(search_space, F=F), infills)
            swarm.tell(infills=infills)
