"""
Flat named-parameter configuration shared by algorithms, problems,
stop conditions and probes.

A component lists its tunable attributes in ``PARAMETERS``. Configuration
UIs, YAML loaders and the experiment runner only ever read and write those
attributes through ``parameters()`` and ``configure()``, so a component's
configuration is always expressible as a ``dict`` of scalars.
"""

from abc import ABC
from typing import Any

from metaopt.exceptions import InvalidConfigurationError


class Configurable(ABC):
    """Mixin giving a component a flat set of named scalar parameters."""

    PARAMETERS: tuple[str, ...] = ()
    name: str = ""

    def parameters(self) -> dict[str, Any]:
        """Current parameter values, in declaration order."""
        return {param: getattr(self, param) for param in self.PARAMETERS}

    def configure(self, **params: Any) -> "Configurable":
        """Set parameters by name. Unknown names are rejected; ranges are checked
        later by ``validate_configuration``."""
        for param, value in params.items():
            if param not in self.PARAMETERS:
                raise InvalidConfigurationError(
                    f"Unknown parameter for {self.get_name()}, expected one of {list(self.PARAMETERS)}",
                    field=param,
                    value=value,
                )
            setattr(self, param, value)
        return self

    def validate_configuration(self) -> None:
        """Raise InvalidConfigurationError if any parameter is out of range."""

    def get_name(self) -> str:
        return self.name or type(self).__name__

    def configuration_details(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in self.parameters().items())

    def __str__(self) -> str:
        return self.get_name()
