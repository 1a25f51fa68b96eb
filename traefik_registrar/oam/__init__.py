from .loader import load_definition_paths
from .register import (
    CapabilityRegistrar,
    register_traits,
    register_workloads,
    register_workloads_dynamically,
)

__all__ = [
    "CapabilityRegistrar",
    "load_definition_paths",
    "register_traits",
    "register_workloads",
    "register_workloads_dynamically",
]
