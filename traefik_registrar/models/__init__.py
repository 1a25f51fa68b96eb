from .registration import (
    ADAPTER_NAME_METADATA_KEY,
    COMPONENT_CATEGORY_METADATA_KEY,
    ChartComponents,
    DefinitionPathSet,
    GitHubRelease,
    RegistrantDefinitionPath,
    RegistrantEntry,
    RegistrationReport,
    ReleaseVersion,
)

__all__ = [
    "ADAPTER_NAME_METADATA_KEY",
    "COMPONENT_CATEGORY_METADATA_KEY",
    "ChartComponents",
    "DefinitionPathSet",
    "GitHubRelease",
    "RegistrantDefinitionPath",
    "RegistrantEntry",
    "RegistrationReport",
    "ReleaseVersion",
]
