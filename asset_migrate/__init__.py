"""Asset Migration Tool.

A Python CLI & library for migrating domain object instances between asset service instances.
"""

__version__ = "0.1.0"

from asset_migrate.config import Config, MigrationConfig, TenantConfig
from asset_migrate.orchestration import MigrationOrchestrator, MigrationResults

__all__ = [
    "Config",
    "MigrationConfig",
    "MigrationOrchestrator",
    "MigrationResults",
    "TenantConfig",
    "__version__",
]
