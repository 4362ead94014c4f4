# provisioning/service_guard.py
# -*- coding: utf-8 -*-
"""
Service-start guard.

While held, the guard installs a policy-rc.d override that refuses every
service start, so packages installed in the guarded window do not launch
their daemons. Releasing it restores exactly what was there before: the
previous override (content, permissions and timestamps) or no file at all.
"""

import logging
import os
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from provisioning.exceptions import GuardAlreadyHeldError
from stack_setup.config_models import ServiceGuardSettings

module_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AbsentToken:
    """No override existed before the guard was acquired."""

    policy_path: str


@dataclass(frozen=True)
class PresentToken:
    """An override existed and was copied to ``backup_path``."""

    policy_path: str
    backup_path: str


GuardToken = Union[AbsentToken, PresentToken]


class ServiceStartGuard:
    """
    Scoped owner of the host-wide service-start policy file.

    Use :meth:`suppressed` as a context manager, or pair :meth:`acquire`
    with exactly one :meth:`release` in a ``finally`` block.
    """

    def __init__(
        self,
        guard_settings: ServiceGuardSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.settings = guard_settings
        self.logger = logger or module_logger
        self._held: Optional[GuardToken] = None

    @property
    def policy_path(self) -> Path:
        return Path(self.settings.policy_path)

    @property
    def backup_path(self) -> Path:
        return self.policy_path.with_name(
            self.policy_path.name + self.settings.backup_suffix
        )

    @property
    def is_held(self) -> bool:
        return self._held is not None

    def acquire(self) -> GuardToken:
        """
        Save any existing override and install the blocking one.

        A backup or a blocking override left behind by a run that died while
        holding the guard is recovered first, so the saved state is always
        the site's own policy.

        Raises:
            GuardAlreadyHeldError: If this guard is already held.
            OSError: If the override cannot be written. The previous state
                is restored before the error propagates.
        """
        if self._held is not None:
            raise GuardAlreadyHeldError(
                f"Service-start guard on {self.policy_path} is already held"
            )

        self._recover_stale_state()
        policy = self.policy_path
        token: GuardToken
        if policy.exists() or policy.is_symlink():
            shutil.copy2(policy, self.backup_path, follow_symlinks=False)
            token = PresentToken(str(policy), str(self.backup_path))
            self.logger.debug(f"Saved existing {policy} to {self.backup_path}")
        else:
            token = AbsentToken(str(policy))

        self._held = token
        try:
            if policy.is_symlink():
                policy.unlink()
            policy.write_text(self.settings.content, encoding="utf-8")
            os.chmod(policy, self.settings.mode)
        except OSError:
            self.release(token)
            raise

        self.logger.info(f"Service auto-start disabled via {policy}")
        return token

    def _recover_stale_state(self) -> None:
        policy = self.policy_path
        backup = self.backup_path
        if backup.exists() or backup.is_symlink():
            self.logger.warning(
                f"Found {backup} from an interrupted run; restoring it to {policy}"
            )
            if policy.exists() or policy.is_symlink():
                policy.unlink()
            os.replace(backup, policy)
        elif self._is_blocking_override(policy):
            self.logger.warning(
                f"Removing blocking override {policy} left by an interrupted run"
            )
            policy.unlink()

    def _is_blocking_override(self, path: Path) -> bool:
        if path.is_symlink() or not path.is_file():
            return False
        return path.read_bytes() == self.settings.content.encode("utf-8")

    def release(self, token: Optional[GuardToken]) -> None:
        """
        Restore the state recorded in ``token``.

        Releasing ``None``, a token that was already released, or a token
        from an earlier acquisition does nothing.
        """
        if token is None or token is not self._held:
            return

        policy = Path(token.policy_path)
        if isinstance(token, PresentToken):
            backup = Path(token.backup_path)
            if policy.exists() or policy.is_symlink():
                policy.unlink()
            os.replace(backup, policy)
            self.logger.debug(f"Restored {policy} from {backup}")
        else:
            policy.unlink(missing_ok=True)
            self.backup_path.unlink(missing_ok=True)

        self._held = None
        self.logger.info(f"Service auto-start policy restored at {policy}")

    @contextmanager
    def suppressed(self) -> Iterator[GuardToken]:
        """Hold the guard for the duration of a ``with`` block."""
        token = self.acquire()
        try:
            yield token
        finally:
            self.release(token)
