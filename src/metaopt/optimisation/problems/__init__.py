from .binary import BasicTrapFunction, OneMax
from .continuous import Rastrigin, Sphere

PROBLEMS = {
    "OneMax": OneMax,
    "BasicTrapFunction": BasicTrapFunction,
    "Sphere": Sphere,
    "Rastrigin": Rastrigin,
}

__all__ = ["OneMax", "BasicTrapFunction", "Sphere", "Rastrigin", "PROBLEMS"]
