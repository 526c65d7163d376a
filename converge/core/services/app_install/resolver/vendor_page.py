"""
L2 Resolver — Vendor pages that embed their download list as JSON.

Some vendor pages ship the download table inside an escaped script
string rather than as links, e.g.::

    ...\\"mac\\":[{\\"arch\\":\\"Arm64\\",\\"fileName\\":\\"app-arm64.dmg\\"},...]...

The fragment is cut out with a regex, un-escaped and wrapped into a
JSON object before parsing.  When it is not well-formed JSON after the
repair, ``"arch"``/``"fileName"`` pairs are scanned out by regex
instead.  Callers only ever see ``resolve()``.

The download base path is fixed per vendor (``VendorProfile``) and is
not discovered from the page.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from converge.core.errors import NoCandidateFound
from converge.core.models.artifact import Arch, ResolvedArtifact
from converge.core.models.directive import InstallDirective
from converge.core.services.app_install.execution.download import HttpClient
from converge.core.services.app_install.resolver.base import Resolver

logger = logging.getLogger(__name__)

_PAIR_RE = re.compile(r'"arch":"([^"]*)"[^}]*"fileName":"([^"]+)"')
_FILENAME_RE = re.compile(r'"fileName":"([^"]+)"')


def is_plain_filename(name: str) -> bool:
    """A bare file name: no directory parts, not ``.`` or ``..``."""
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name


@dataclass(frozen=True)
class VendorProfile:
    """Where a vendor hides its downloads and how it names architectures."""

    name: str
    key: str
    base_url: str
    arch_tags: dict[Arch, str] = field(default_factory=dict)
    universal_tag: str = "Universal"

    @property
    def fragment_re(self) -> re.Pattern[str]:
        return re.compile(r'\\"' + re.escape(self.key) + r'\\":\[\{[^\]]+\}')


SYNERGY = VendorProfile(
    name="synergy",
    key="mac",
    base_url="https://symless.com/synergy/download/package/synergy-personal-v3/macos-12.0/",
    arch_tags={Arch.ARM64: "Arm64", Arch.X86_64: "X64"},
)


def extract_entries(page: str, profile: VendorProfile) -> list[dict[str, str]]:
    """Pull the ``[{arch, fileName}, ...]`` list out of the page.

    Returns:
        Entries in page order; empty when the fragment is missing.
        Entries whose ``fileName`` is not a bare file name are dropped.
    """
    plain = []
    for entry in _scan_entries(page, profile):
        if is_plain_filename(entry["fileName"]):
            plain.append(entry)
        else:
            logger.warning("Ignoring download entry with unsafe file name: %s", entry["fileName"])
    return plain


def _scan_entries(page: str, profile: VendorProfile) -> list[dict[str, str]]:
    match = profile.fragment_re.search(page)
    if match is None:
        return []

    fragment = match.group(0).replace('\\"', '"')
    logger.debug("Cleaned JSON data: %s", fragment)

    try:
        data = json.loads("{" + fragment + "]}")
        entries = data.get(profile.key, [])
        if isinstance(entries, list):
            return [
                {"arch": str(e.get("arch", "")), "fileName": str(e["fileName"])}
                for e in entries
                if isinstance(e, dict) and e.get("fileName")
            ]
    except (json.JSONDecodeError, AttributeError):
        logger.debug("Fragment is not valid JSON — scanning fields by regex")

    entries = [{"arch": a, "fileName": f} for a, f in _PAIR_RE.findall(fragment)]
    if not entries:
        entries = [{"arch": "", "fileName": f} for f in _FILENAME_RE.findall(fragment)]
    return entries


def choose_filename(entries: list[dict[str, str]], arch: Arch,
                    profile: VendorProfile) -> tuple[str, str] | None:
    """Exact arch tag, then the universal tag, then the first entry."""
    wanted = profile.arch_tags.get(arch)
    for tag, reason in ((wanted, "arch"), (profile.universal_tag, "universal")):
        if not tag:
            continue
        for entry in entries:
            if entry["arch"] == tag:
                return entry["fileName"], reason
    if entries:
        return entries[0]["fileName"], "first"
    return None


class VendorPageResolver(Resolver):
    """Resolve ``dmg_synergy_release`` directives."""

    def __init__(self, http: HttpClient, profile: VendorProfile = SYNERGY):
        self.http = http
        self.profile = profile

    @property
    def name(self) -> str:
        return f"vendor-page:{self.profile.name}"

    def resolve(self, directive: InstallDirective, arch: Arch) -> ResolvedArtifact:
        page_url = directive.payload.strip()
        logger.debug("Fetching %s release page: %s", self.profile.name, page_url)
        page = self.http.fetch_text(page_url)

        entries = extract_entries(page, self.profile)
        if not entries:
            raise NoCandidateFound(f"No JSON download data found on {page_url}")

        chosen = choose_filename(entries, arch, self.profile)
        if chosen is None:
            raise NoCandidateFound(
                f"No DMG filename found for architecture {arch.value} on {page_url}"
            )

        filename, reason = chosen
        url = self.profile.base_url + filename
        logger.debug("Found DMG URL (%s): %s", reason, url)
        return ResolvedArtifact(url=url, filename=filename, reason=reason)
