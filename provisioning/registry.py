"""
Registry for component installers.

Installer modules register their classes with the ``register`` decorator;
the orchestrator looks them up by the names listed in
``app_settings.components`` and runs them in that order.
"""

from typing import TYPE_CHECKING, Dict, List, Type

if TYPE_CHECKING:
    from provisioning.base_installer import BaseInstaller


class InstallerRegistry:
    """Component name -> installer class, shared by the whole process."""

    _registry: Dict[str, Type["BaseInstaller"]] = {}

    @classmethod
    def register(cls, name: str, label: str, description: str = ""):
        """
        Decorator for registering installer classes.

        Args:
            name: Component name; also the AppSettings attribute holding
                its configuration.
            label: Name shown in prompts and in the run summary.
            description: Phrase used in the install prompt.
        """

        def decorator(
            installer_class: Type["BaseInstaller"],
        ) -> Type["BaseInstaller"]:
            if name in cls._registry:
                raise ValueError(
                    f"Installer with name '{name}' already registered"
                )
            installer_class.name = name
            installer_class.label = label
            installer_class.description = description
            cls._registry[name] = installer_class
            return installer_class

        return decorator

    @classmethod
    def get_installer(cls, name: str) -> Type["BaseInstaller"]:
        """
        Raises:
            KeyError: If no installer is registered under ``name``.
        """
        if name not in cls._registry:
            raise KeyError(f"No installer registered with name '{name}'")
        return cls._registry[name]

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._registry)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._registry
