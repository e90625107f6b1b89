from .genetic import GeneticAlgorithm
from .hill_climber import MutationHillClimber
from .random_search import GenericRandomSearch
from .swarm import ParticleSwarm

ALGORITHMS = {
    "GenericRandomSearch": GenericRandomSearch,
    "MutationHillClimber": MutationHillClimber,
    "GeneticAlgorithm": GeneticAlgorithm,
    "ParticleSwarm": ParticleSwarm,
}

__all__ = ["GenericRandomSearch", "MutationHillClimber", "GeneticAlgorithm", "ParticleSwarm", "ALGORITHMS"]
