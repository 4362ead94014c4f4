# stack_setup/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the provisioning run,
including the component specifications consumed by the version resolver,
the repository definitions, the conflict families used by conflict
remediation and the service-start guard location.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Default Static Values (can be overridden by config file/env/cli) ---
LOG_PREFIX_DEFAULT: str = "[STACK-SETUP]"
HTTP_TIMEOUT_DEFAULT: int = 30
OS_RELEASE_PATH_DEFAULT: str = "/etc/os-release"
KEYRING_DIR_DEFAULT: str = "/etc/apt/keyrings"

BASE_PACKAGES_DEFAULT: List[str] = [
    "apt-transport-https",
    "ca-certificates",
    "curl",
    "gnupg",
    "lsb-release",
    "software-properties-common",
]

POLICY_RC_PATH_DEFAULT: str = "/usr/sbin/policy-rc.d"
POLICY_RC_CONTENT_DEFAULT: str = """\
#!/bin/sh
# Written by stack-setup while packages are being installed.
exit 101
"""

PHP_FALLBACK_VERSION_DEFAULT: str = "8.3"

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}


class ResolutionMode(str, Enum):
    """Where the version resolver looks for candidates."""

    PACKAGE_INDEX = "package_index"
    RELEASE_FEED = "release_feed"
    LISTING_PAGE = "listing_page"


class ComponentSpec(BaseModel):
    """
    Static description of one provisionable unit whose installable identifier
    must be discovered at run time.

    Only the fields relevant to ``mode`` need to be set:

    - package_index: ``search_pattern`` (coarse regex handed to apt-cache) and
      ``candidate_pattern`` (strict regex, optionally with a ``version`` group).
    - release_feed: ``feed_url``, ``asset_pattern``, ``latest_url``, ``stable_url``.
    - listing_page: ``index_url``, ``series_pattern`` (with a ``series`` group)
      and ``archive_pattern`` (with a ``version`` group and an optional
      ``pre`` group marking pre-releases).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(description="Human readable component name.")
    mode: ResolutionMode = Field(default=ResolutionMode.PACKAGE_INDEX)

    search_pattern: Optional[str] = Field(default=None)
    candidate_pattern: Optional[str] = Field(default=None)
    exclusions: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Exact package names never considered as candidates.",
    )
    excluded_suffixes: Tuple[str, ...] = Field(default=("-dbgsym",))

    feed_url: Optional[str] = Field(default=None)
    asset_pattern: Optional[str] = Field(default=None)
    latest_url: Optional[str] = Field(default=None)
    stable_url: Optional[str] = Field(default=None)

    index_url: Optional[str] = Field(default=None)
    series_pattern: str = Field(default=r"(?P<series>\d+\.\d+)/")
    archive_pattern: Optional[str] = Field(default=None)


class RepositorySpec(BaseModel):
    """
    An apt repository. Either a PPA (``ppa``) or a deb822 source signed by a
    key downloaded from ``key_url``. String fields may contain the
    placeholders {codename}, {distro}, {version_id} and {arch}.
    """

    name: str
    description: str = ""
    ppa: Optional[str] = None
    key_url: Optional[str] = None
    keyring_path: Optional[str] = None
    types: str = "deb"
    uris: Optional[str] = None
    suites: str = "{codename}"
    components: str = "main"
    architectures: Optional[str] = None


class ConflictFamily(BaseModel):
    """Packages that must not be installed alongside a target component."""

    name: str
    exact_names: List[str] = Field(default_factory=list)
    globs: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    residual_paths: List[str] = Field(default_factory=list)


class ServiceGuardSettings(BaseModel):
    """Location and content of the service-start policy override."""

    policy_path: str = Field(default=POLICY_RC_PATH_DEFAULT)
    backup_suffix: str = Field(default=".stack-setup.bak")
    mode: int = Field(default=0o755)
    content: str = Field(default=POLICY_RC_CONTENT_DEFAULT)


class NginxSettings(BaseModel):
    enabled: bool = True
    packages: List[str] = Field(default_factory=lambda: ["nginx"])
    service: str = "nginx"
    repository: Optional[RepositorySpec] = Field(
        default_factory=lambda: RepositorySpec(
            name="nginx-official",
            description="the official NGINX repository from nginx.org",
            key_url="https://nginx.org/keys/nginx_signing.key",
            keyring_path=f"{KEYRING_DIR_DEFAULT}/nginx-archive-keyring.gpg",
            types="deb deb-src",
            uris="http://nginx.org/packages/{distro}/",
            components="nginx",
        )
    )


class MysqlSettings(BaseModel):
    enabled: bool = True
    packages: List[str] = Field(
        default_factory=lambda: ["mysql-server", "mysql-client", "mysql-shell"]
    )
    service: str = "mysql"
    repository: Optional[RepositorySpec] = Field(
        default_factory=lambda: RepositorySpec(
            name="mysql-community",
            description="the official MySQL Community repository from repo.mysql.com",
            key_url="https://repo.mysql.com/RPM-GPG-KEY-mysql-2022",
            keyring_path=f"{KEYRING_DIR_DEFAULT}/mysql-apt-keyring.gpg",
            uris="http://repo.mysql.com/apt/{distro}/",
            components="mysql-apt-config mysql-8.4-lts mysql-tools",
        )
    )


class PhpSettings(BaseModel):
    enabled: bool = True
    version_spec: ComponentSpec = Field(
        default_factory=lambda: ComponentSpec(
            name="php",
            search_pattern=r"^php[0-9]+\.[0-9]+-",
            candidate_pattern=r"^php(?P<version>\d+\.\d+)-",
        )
    )
    fallback_version: str = Field(
        default=PHP_FALLBACK_VERSION_DEFAULT,
        description="Minor version retried when the resolved one fails to install.",
    )
    # Appended to "php<minor>"; the empty suffix is the metapackage itself.
    base_suffixes: List[str] = Field(
        default_factory=lambda: [
            "", "-cli", "-fpm", "-common", "-mysql", "-dev", "-curl",
            "-zip", "-gd", "-mbstring", "-xml", "-bcmath", "-intl", "-soap",
            "-ldap", "-imagick", "-opcache", "-redis", "-pspell", "-snmp",
            "-tidy", "-xsl", "-pgsql", "-sqlite3", "-enchant",
        ]
    )
    extra_packages: List[str] = Field(default_factory=lambda: ["php-pear"])
    install_all_extensions: bool = True
    # Extension names (without the "php<minor>-" prefix) left out of the sweep.
    extension_exclusions: List[str] = Field(
        default_factory=lambda: ["gmagick", "yac"]
    )
    fpm_service_template: str = "php{version}-fpm"
    binary_template: str = "/usr/bin/php{version}"
    repository: Optional[RepositorySpec] = Field(
        default_factory=lambda: RepositorySpec(
            name="ondrej-php",
            description="the Ondřej Surý PHP repository (ppa:ondrej/php)",
            ppa="ppa:ondrej/php",
        )
    )


class GitSettings(BaseModel):
    enabled: bool = True
    packages: List[str] = Field(default_factory=lambda: ["git", "git-lfs"])
    repository: Optional[RepositorySpec] = Field(
        default_factory=lambda: RepositorySpec(
            name="git-core",
            description="the Git Core PPA (ppa:git-core/ppa) for the latest Git",
            ppa="ppa:git-core/ppa",
        )
    )


class DockerSettings(BaseModel):
    enabled: bool = True
    packages: List[str] = Field(
        default_factory=lambda: [
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-buildx-plugin",
            "docker-compose-plugin",
        ]
    )
    service: str = "docker"
    repository: Optional[RepositorySpec] = Field(
        default_factory=lambda: RepositorySpec(
            name="docker-official",
            description="the official Docker Engine repository from download.docker.com",
            key_url="https://download.docker.com/linux/{distro}/gpg",
            keyring_path=f"{KEYRING_DIR_DEFAULT}/docker-official.gpg",
            uris="https://download.docker.com/linux/{distro}",
            components="stable",
            architectures="{arch}",
        )
    )


class PostgresSettings(BaseModel):
    enabled: bool = True
    version_spec: ComponentSpec = Field(
        default_factory=lambda: ComponentSpec(
            name="PostgreSQL server",
            search_pattern=r"^postgresql-[0-9]+$",
            candidate_pattern=r"^postgresql-(?P<version>\d+)$",
        )
    )
    client_template: str = "postgresql-client-{version}"
    service: str = "postgresql"
    repository: Optional[RepositorySpec] = Field(
        default_factory=lambda: RepositorySpec(
            name="pgdg",
            description="the PostgreSQL Global Development Group repository",
            key_url="https://www.postgresql.org/media/keys/ACCC4CF8.asc",
            keyring_path=f"{KEYRING_DIR_DEFAULT}/postgresql.gpg",
            uris="https://apt.postgresql.org/pub/repos/apt",
            suites="{codename}-pgdg",
        )
    )


class DotnetSettings(BaseModel):
    enabled: bool = True
    version_spec: ComponentSpec = Field(
        default_factory=lambda: ComponentSpec(
            name=".NET SDK",
            search_pattern=r"^dotnet-sdk-[0-9]+\.[0-9]+$",
            candidate_pattern=r"^dotnet-sdk-(?P<version>\d+\.\d+)$",
        )
    )
    repository: Optional[RepositorySpec] = Field(
        default_factory=lambda: RepositorySpec(
            name="microsoft-prod",
            description="the Microsoft package repository for the .NET SDK",
            key_url="https://packages.microsoft.com/keys/microsoft.asc",
            keyring_path=f"{KEYRING_DIR_DEFAULT}/microsoft.gpg",
            uris="https://packages.microsoft.com/{distro}/{version_id}/prod",
            architectures="{arch}",
        )
    )


class NeovimSettings(BaseModel):
    enabled: bool = True
    version_spec: ComponentSpec = Field(
        default_factory=lambda: ComponentSpec(
            name="Neovim",
            mode=ResolutionMode.RELEASE_FEED,
            feed_url="https://api.github.com/repos/neovim/neovim/releases/latest",
            asset_pattern=r"nvim-linux-{arch}\.tar\.gz",
            latest_url="https://github.com/neovim/neovim/releases/latest/download/nvim-linux-{arch}.tar.gz",
            stable_url="https://github.com/neovim/neovim/releases/download/stable/nvim-linux-{arch}.tar.gz",
        )
    )
    # dpkg architecture -> architecture name used in the release asset names
    release_architectures: Dict[str, str] = Field(
        default_factory=lambda: {"amd64": "x86_64", "arm64": "arm64"}
    )
    install_dir: str = "/opt/nvim"
    binary_path: str = "bin/nvim"
    link_path: str = "/usr/local/bin/nvim"
    repository: Optional[RepositorySpec] = None

    def release_spec(self, architecture: str) -> Optional[ComponentSpec]:
        """
        ``version_spec`` with ``{arch}`` filled in for a dpkg architecture,
        or None when no release build exists for it.
        """
        release_arch = self.release_architectures.get(architecture)
        if release_arch is None:
            return None
        spec = self.version_spec
        return spec.model_copy(
            update={
                field: getattr(spec, field).format(arch=release_arch)
                for field in ("asset_pattern", "latest_url", "stable_url")
                if getattr(spec, field)
            }
        )


class RubySettings(BaseModel):
    enabled: bool = True
    version_spec: ComponentSpec = Field(
        default_factory=lambda: ComponentSpec(
            name="Ruby",
            mode=ResolutionMode.LISTING_PAGE,
            index_url="https://cache.ruby-lang.org/pub/ruby/",
            series_pattern=r"(?P<series>\d+\.\d+)/",
            archive_pattern=r"ruby-(?P<version>\d+\.\d+\.\d+(?:-(?P<pre>preview\d+|rc\d+))?)\.tar\.gz",
        )
    )
    build_packages: List[str] = Field(
        default_factory=lambda: [
            "build-essential",
            "autoconf",
            "bison",
            "libssl-dev",
            "libyaml-dev",
            "libreadline-dev",
            "zlib1g-dev",
            "libffi-dev",
            "libgdbm-dev",
        ]
    )
    source_dir: str = "/usr/local/src"
    prefix: str = "/usr/local"
    repository: Optional[RepositorySpec] = None


def _default_conflicts() -> Dict[str, List[ConflictFamily]]:
    return {
        "nginx": [
            ConflictFamily(
                name="apache2",
                exact_names=[
                    "apache2",
                    "apache2-bin",
                    "apache2-data",
                    "apache2-utils",
                ],
                globs=["apache2*", "libapache2-mod-*"],
                services=["apache2"],
                residual_paths=["/etc/apache2", "/var/lib/apache2"],
            )
        ],
        "docker": [
            ConflictFamily(
                name="distribution docker",
                exact_names=[
                    "docker.io",
                    "docker-doc",
                    "docker-compose",
                    "docker-compose-v2",
                    "podman-docker",
                    "containerd",
                    "runc",
                ],
                services=["docker", "containerd"],
            )
        ],
    }


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="STACK_", env_nested_delimiter="__", extra="ignore"
    )

    assume_yes: bool = Field(default=False, description="Answer every prompt with its default.")
    allow_non_root: bool = Field(default=False, description="Do not refuse to run as an unprivileged user.")
    http_timeout: int = Field(default=HTTP_TIMEOUT_DEFAULT, description="Timeout in seconds for HTTP fetches.")
    os_release_path: str = Field(default=OS_RELEASE_PATH_DEFAULT)
    base_packages: List[str] = Field(default_factory=lambda: list(BASE_PACKAGES_DEFAULT))
    components: List[str] = Field(
        default_factory=lambda: [
            "nginx", "mysql", "php", "git", "docker",
            "postgres", "dotnet", "neovim", "ruby",
        ],
        description="Components offered during the run, in order.",
    )

    log_prefix: str = Field(default=LOG_PREFIX_DEFAULT)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    guard: ServiceGuardSettings = Field(default_factory=ServiceGuardSettings)
    conflicts: Dict[str, List[ConflictFamily]] = Field(default_factory=_default_conflicts)

    nginx: NginxSettings = Field(default_factory=NginxSettings)
    mysql: MysqlSettings = Field(default_factory=MysqlSettings)
    php: PhpSettings = Field(default_factory=PhpSettings)
    git: GitSettings = Field(default_factory=GitSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    dotnet: DotnetSettings = Field(default_factory=DotnetSettings)
    neovim: NeovimSettings = Field(default_factory=NeovimSettings)
    ruby: RubySettings = Field(default_factory=RubySettings)

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))
