# provisioning/exceptions.py
# -*- coding: utf-8 -*-
"""Exceptions raised by the provisioning core."""

from typing import Sequence


class ProvisioningError(Exception):
    """Base class for provisioning failures."""


class CandidateNotFoundError(ProvisioningError):
    """The version resolver found nothing installable for a component."""

    def __init__(self, component: str, reason: str):
        super().__init__(f"No candidate found for {component}: {reason}")
        self.component = component
        self.reason = reason


class ReleaseDownloadError(ProvisioningError):
    """Every URL of a release download chain failed."""

    def __init__(self, component: str, attempted: Sequence[str]):
        super().__init__(
            f"All downloads failed for {component}: {', '.join(attempted) or 'no URL available'}"
        )
        self.component = component
        self.attempted = tuple(attempted)


class ConflictRemediationError(ProvisioningError):
    """Conflicting packages are still installed after remediation."""

    def __init__(self, target: str, remaining: Sequence[str]):
        super().__init__(
            f"Conflicting packages still installed before {target} installation: {', '.join(remaining)}"
        )
        self.target = target
        self.remaining = tuple(remaining)


class GuardAlreadyHeldError(ProvisioningError):
    """The service-start guard was acquired while already held."""


class FatalStepError(ProvisioningError):
    """A mandatory step failed; the run cannot continue."""
