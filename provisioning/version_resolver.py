# provisioning/version_resolver.py
# -*- coding: utf-8 -*-
"""
Version resolution for components without a single canonical package name.

Three sources are supported, selected by ``ComponentSpec.mode``:

- the apt package index (PHP minor version, PostgreSQL major version,
  .NET SDK version),
- a release-metadata feed such as the GitHub releases API, with static
  "latest" and "stable" download URLs as fallbacks,
- a listing page with one directory per ``<major>.<minor>`` series holding
  source archives.

Ordering is version-aware ("8.10" sorts after "8.3"). Among entries that
compare equal, the one appearing last in the source's own ordering wins.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union
from urllib.parse import urljoin

import requests

from common import http_utils
from common.command_utils import log_step, symbols_for
from common.debian.apt_manager import AptManager
from provisioning.exceptions import CandidateNotFoundError, ReleaseDownloadError
from stack_setup.config_models import AppSettings, ComponentSpec, ResolutionMode

module_logger = logging.getLogger(__name__)

_VERSION_TOKEN = re.compile(r"\d+|\D+")
_HREF = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)

VersionKey = Tuple[Tuple[int, Union[int, str]], ...]


def version_key(value: str) -> VersionKey:
    """
    Natural sort key: runs of digits compare numerically, everything else
    compares as text. Digit runs sort before text at the same position.
    """
    return tuple(
        (0, int(token)) if token.isdigit() else (1, token)
        for token in _VERSION_TOKEN.findall(value)
    )


def select_newest(
    entries: Sequence[Any], key: Callable[[Any], str] = str
) -> Any:
    """
    Return the entry with the greatest version.

    ``sorted`` is stable, so ties keep their source order and the last of
    them is returned.

    Raises:
        ValueError: If ``entries`` is empty.
    """
    if not entries:
        raise ValueError("select_newest() requires at least one entry")
    return sorted(entries, key=lambda entry: version_key(key(entry)))[-1]


def extract_hrefs(html: str) -> List[str]:
    """Link targets of an HTML directory listing, in page order."""
    hrefs: List[str] = []
    for href in _HREF.findall(html):
        if href not in hrefs:
            hrefs.append(href)
    return hrefs


@dataclass(frozen=True)
class ResolvedCandidate:
    """
    Concrete installable identifier chosen for a component.

    ``identifier`` is a package name or a download URL. ``evidence`` holds
    the raw candidates the choice was made from. ``fallbacks`` lists further
    URLs to try, in order, when downloading ``identifier`` fails.
    """

    component: str
    identifier: str
    version: Optional[str]
    evidence: Tuple[str, ...]
    fallbacks: Tuple[str, ...] = ()
    prerelease: bool = False


class VersionResolver:
    """Resolves a ComponentSpec to a ResolvedCandidate."""

    def __init__(
        self,
        apt_manager: AptManager,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.apt_manager = apt_manager
        self.app_settings = app_settings
        self.logger = logger or module_logger

    def resolve(self, spec: ComponentSpec) -> ResolvedCandidate:
        """
        Resolve ``spec`` using the source its mode names.

        Raises:
            CandidateNotFoundError: If no candidate matches.
        """
        if spec.mode == ResolutionMode.PACKAGE_INDEX:
            candidate = self._resolve_from_package_index(spec)
        elif spec.mode == ResolutionMode.RELEASE_FEED:
            candidate = self._resolve_from_release_feed(spec)
        elif spec.mode == ResolutionMode.LISTING_PAGE:
            candidate = self._resolve_from_listing_page(spec)
        else:
            raise CandidateNotFoundError(spec.name, f"unsupported mode {spec.mode!r}")

        self.logger.info(
            f"Resolved {spec.name} to {candidate.identifier}"
            + (f" (version {candidate.version})" if candidate.version else "")
        )
        return candidate

    # --- package index -------------------------------------------------

    def filter_package_names(
        self, spec: ComponentSpec, names: Sequence[str]
    ) -> List[Tuple[str, str]]:
        """
        Keep the names matching ``spec.candidate_pattern`` that are neither
        excluded nor debug-symbol packages.

        Returns:
            (name, version) pairs in input order. ``version`` is the
            pattern's ``version`` group, or the whole name without one.
        """
        pattern = re.compile(spec.candidate_pattern or spec.search_pattern or "")
        kept: List[Tuple[str, str]] = []
        for name in names:
            if name in spec.exclusions or name.endswith(spec.excluded_suffixes):
                continue
            match = pattern.match(name)
            if not match:
                continue
            version = match.groupdict().get("version") or name
            kept.append((name, version))
        return kept

    def _resolve_from_package_index(self, spec: ComponentSpec) -> ResolvedCandidate:
        if not (spec.search_pattern or spec.candidate_pattern):
            raise CandidateNotFoundError(spec.name, "no package pattern configured")

        names = self.apt_manager.search_names(
            spec.search_pattern or spec.candidate_pattern, self.app_settings
        )
        candidates = self.filter_package_names(spec, names)
        if not candidates:
            raise CandidateNotFoundError(
                spec.name,
                f"no package in the index matches {spec.candidate_pattern or spec.search_pattern}",
            )

        name, version = select_newest(candidates, key=lambda pair: pair[1])
        return ResolvedCandidate(
            component=spec.name,
            identifier=name,
            version=version,
            evidence=tuple(n for n, _ in candidates),
        )

    # --- release feed --------------------------------------------------

    def _static_urls(self, spec: ComponentSpec) -> List[str]:
        urls: List[str] = []
        for url in (spec.latest_url, spec.stable_url):
            if url and url not in urls:
                urls.append(url)
        return urls

    def _resolve_from_release_feed(self, spec: ComponentSpec) -> ResolvedCandidate:
        symbols = symbols_for(self.app_settings)
        static_urls = self._static_urls(spec)
        asset_names: Tuple[str, ...] = ()
        failure_reason: Optional[str] = None

        if not spec.feed_url:
            failure_reason = "no release feed configured"
        else:
            try:
                metadata = http_utils.fetch_json(
                    spec.feed_url, timeout=self.app_settings.http_timeout
                )
                assets = metadata.get("assets", []) if isinstance(metadata, dict) else []
                asset_names = tuple(
                    a.get("name", "") for a in assets if isinstance(a, dict)
                )
                pattern = re.compile(spec.asset_pattern or "")
                matching = [
                    a
                    for a in assets
                    if isinstance(a, dict)
                    and pattern.fullmatch(a.get("name", ""))
                    and a.get("browser_download_url")
                ]
                if matching:
                    asset = select_newest(matching, key=lambda a: a["name"])
                    url = asset["browser_download_url"]
                    return ResolvedCandidate(
                        component=spec.name,
                        identifier=url,
                        version=metadata.get("tag_name"),
                        evidence=asset_names,
                        fallbacks=tuple(u for u in static_urls if u != url),
                    )
                failure_reason = (
                    f"no release asset matches {spec.asset_pattern}"
                )
            except requests.exceptions.RequestException as e:
                failure_reason = f"release metadata query failed: {e}"

        if not static_urls:
            raise CandidateNotFoundError(spec.name, failure_reason)

        log_step(
            f"{symbols.get('warning', '!')} {spec.name}: {failure_reason}; falling back to {static_urls[0]}",
            "warning",
            self.logger,
            self.app_settings,
        )
        return ResolvedCandidate(
            component=spec.name,
            identifier=static_urls[0],
            version=None,
            evidence=asset_names,
            fallbacks=tuple(static_urls[1:]),
        )

    def download_release(
        self, candidate: ResolvedCandidate, destination: Union[str, Path]
    ) -> str:
        """
        Download ``candidate`` to ``destination``, walking its fallback URLs.

        Returns:
            The URL that was downloaded.

        Raises:
            ReleaseDownloadError: If every URL fails.
        """
        symbols = symbols_for(self.app_settings)
        urls = (candidate.identifier,) + candidate.fallbacks
        attempted: List[str] = []
        for index, url in enumerate(urls):
            attempted.append(url)
            try:
                http_utils.download_file(
                    url, destination, timeout=self.app_settings.http_timeout
                )
                return url
            except (requests.exceptions.RequestException, OSError) as e:
                if index + 1 < len(urls):
                    log_step(
                        f"{symbols.get('warning', '!')} Download of {url} failed ({e}); falling back to {urls[index + 1]}",
                        "warning",
                        self.logger,
                        self.app_settings,
                    )
                else:
                    log_step(
                        f"{symbols.get('error', '❌')} Download of {url} failed ({e}); no fallback left.",
                        "error",
                        self.logger,
                        self.app_settings,
                    )
        raise ReleaseDownloadError(candidate.component, attempted)

    # --- listing page --------------------------------------------------

    def _fetch_listing(self, spec: ComponentSpec, url: str) -> List[str]:
        try:
            return extract_hrefs(
                http_utils.fetch_text(url, timeout=self.app_settings.http_timeout)
            )
        except requests.exceptions.RequestException as e:
            raise CandidateNotFoundError(
                spec.name, f"could not fetch listing {url}: {e}"
            ) from e

    def _resolve_from_listing_page(self, spec: ComponentSpec) -> ResolvedCandidate:
        if not spec.index_url or not spec.archive_pattern:
            raise CandidateNotFoundError(spec.name, "no listing page configured")

        series_pattern = re.compile(spec.series_pattern)
        series: List[Tuple[str, str]] = []
        for href in self._fetch_listing(spec, spec.index_url):
            match = series_pattern.fullmatch(href)
            if match:
                series.append((href, match.groupdict().get("series") or href))
        if not series:
            raise CandidateNotFoundError(
                spec.name, f"no release series found at {spec.index_url}"
            )

        series_href, series_name = select_newest(series, key=lambda pair: pair[1])
        series_url = urljoin(spec.index_url, series_href)
        self.logger.debug(f"Newest {spec.name} series is {series_name} ({series_url})")

        archive_pattern = re.compile(spec.archive_pattern)
        stable: List[Tuple[str, str]] = []
        prerelease: List[Tuple[str, str]] = []
        filenames: List[str] = []
        for href in self._fetch_listing(spec, series_url):
            filename = href.rsplit("/", 1)[-1]
            match = archive_pattern.fullmatch(filename)
            if not match or filename in filenames:
                continue
            filenames.append(filename)
            groups = match.groupdict()
            entry = (filename, groups.get("version") or filename)
            (prerelease if groups.get("pre") else stable).append(entry)

        if stable:
            filename, version = select_newest(stable, key=lambda pair: pair[1])
            is_prerelease = False
        elif prerelease:
            filename, version = select_newest(prerelease, key=lambda pair: pair[1])
            is_prerelease = True
            log_step(
                f"{symbols_for(self.app_settings).get('warning', '!')} No stable {spec.name} release in series {series_name}; using pre-release {filename}",
                "warning",
                self.logger,
                self.app_settings,
            )
        else:
            raise CandidateNotFoundError(
                spec.name, f"no archive matching {spec.archive_pattern} at {series_url}"
            )

        return ResolvedCandidate(
            component=spec.name,
            identifier=urljoin(series_url, filename),
            version=version,
            evidence=tuple(filenames),
            prerelease=is_prerelease,
        )
