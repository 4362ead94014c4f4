"""
Provisioning framework.

This package resolves component versions, guards service starts during
package installs, removes conflicting packages and sequences the
per-component installers of a provisioning run.
"""

from provisioning.base_installer import BaseInstaller
from provisioning.orchestrator import ProvisioningOrchestrator
from provisioning.registry import InstallerRegistry
from provisioning.run_context import RunContext

__all__ = [
    "BaseInstaller",
    "InstallerRegistry",
    "ProvisioningOrchestrator",
    "RunContext",
]
