"""Artifact fetcher for the mtags presentation compiler module.

The module for Scala version ``S`` built by runtime version ``R`` is published
as ``org.scalameta:mtags_S:R``. The fetcher locates its POM in the configured
Maven repositories, downloads the main jar together with its direct runtime
dependencies into a local artifact cache and returns the jar paths.
"""
from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from constants import Constants
from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, redact, Timer, safe_url
from versioning.models import Artifacts

from .errors import ResolutionError

logger = logging.getLogger(__name__)

_PROPERTY_RE = re.compile(r"\$\{([^}]+)\}")
_RUNTIME_SCOPES = {"compile", "runtime"}


class ArtifactFetcher(ABC):
    """Port used by the resolver to obtain artifacts for a version."""

    @abstractmethod
    def fetch(self, version: str, runtime_version: str) -> Artifacts:
        """Return the artifacts of ``version`` built by ``runtime_version``.

        Raises:
            ResolutionError: when the artifacts do not exist.
            Exception: any other failure (network, I/O).
        """


@dataclass(frozen=True)
class Coordinate:
    """Maven coordinate of a single jar."""
    group_id: str
    artifact_id: str
    version: str

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    def base_path(self) -> str:
        group_path = self.group_id.replace(".", "/")
        return f"{group_path}/{self.artifact_id}/{self.version}"

    def file_name(self, extension: str, file_version: Optional[str] = None) -> str:
        return f"{self.artifact_id}-{file_version or self.version}.{extension}"


def mtags_coordinate(version: str, runtime_version: str) -> Coordinate:
    return Coordinate(
        Constants.MTAGS_GROUP_ID,
        f"{Constants.MTAGS_ARTIFACT_PREFIX}{version}",
        runtime_version,
    )


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]
    return root


def _child_text(elem: ET.Element, name: str) -> Optional[str]:
    node = elem.find(name)
    if node is None or node.text is None:
        return None
    return node.text.strip()


def _interpolate(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    """Substitute ``${...}`` references; None when one cannot be resolved."""
    if value is None:
        return None
    unresolved = False

    def _sub(m: "re.Match[str]") -> str:
        nonlocal unresolved
        key = m.group(1)
        if key in properties:
            return properties[key]
        unresolved = True
        return m.group(0)

    result = _PROPERTY_RE.sub(_sub, value)
    return None if unresolved else result


def parse_pom_dependencies(pom_text: str, coordinate: Coordinate) -> List[Coordinate]:
    """Direct runtime dependencies declared by a POM.

    Test/provided/system scoped and optional dependencies are skipped, as are
    dependencies whose version cannot be resolved from the POM properties.

    Raises:
        ResolutionError: when the POM is not well-formed XML.
    """
    try:
        root = _strip_namespaces(ET.fromstring(pom_text))
    except ET.ParseError as e:
        raise ResolutionError(f"Invalid POM for {coordinate}: {e}") from e

    properties: Dict[str, str] = {
        "project.groupId": coordinate.group_id,
        "project.artifactId": coordinate.artifact_id,
        "project.version": coordinate.version,
        "version": coordinate.version,
    }
    props = root.find("properties")
    if props is not None:
        for prop in props:
            if isinstance(prop.tag, str) and prop.text is not None:
                properties[prop.tag] = prop.text.strip()

    deps: List[Coordinate] = []
    dependencies = root.find("dependencies")
    if dependencies is None:
        return deps
    for dependency in dependencies.findall("dependency"):
        scope = (_child_text(dependency, "scope") or "compile").lower()
        if scope not in _RUNTIME_SCOPES:
            continue
        if (_child_text(dependency, "optional") or "").lower() == "true":
            continue
        group = _interpolate(_child_text(dependency, "groupId"), properties)
        artifact = _interpolate(_child_text(dependency, "artifactId"), properties)
        version = _interpolate(_child_text(dependency, "version"), properties)
        if not group or not artifact or not version:
            if is_debug_enabled(logger):
                logger.debug("Skipping unresolvable dependency", extra=extra_context(
                    event="decision", component="mtags_fetcher", action="parse_pom",
                    outcome="skipped", target=str(coordinate)
                ))
            continue
        deps.append(Coordinate(group, artifact, version))
    return deps


def _snapshot_file_version(metadata_text: str, coordinate: Coordinate) -> Optional[str]:
    """Timestamped file version of a -SNAPSHOT from its maven-metadata.xml."""
    try:
        root = _strip_namespaces(ET.fromstring(metadata_text))
    except ET.ParseError:
        return None
    snapshot = root.find("versioning/snapshot")
    if snapshot is None:
        return None
    timestamp = _child_text(snapshot, "timestamp")
    build_number = _child_text(snapshot, "buildNumber")
    if not timestamp or not build_number:
        return None
    base = coordinate.version[: -len("-SNAPSHOT")]
    return f"{base}-{timestamp}-{build_number}"


class MavenArtifactFetcher(ArtifactFetcher):
    """Fetch mtags jars from Maven repositories into a local cache directory."""

    def __init__(
        self,
        repositories: Optional[Sequence[str]] = None,
        cache_dir: Optional[str] = None,
    ):
        repos = repositories if repositories is not None else Constants.REPOSITORIES
        self.repositories = [r if r.endswith("/") else r + "/" for r in repos]
        self.cache_dir = cache_dir or Constants.ARTIFACT_CACHE_DIR

    def _file_url(self, repo: str, coordinate: Coordinate, extension: str) -> Optional[str]:
        file_version = None
        if coordinate.version.endswith("-SNAPSHOT"):
            status, _, text = http_client.get_text(
                f"{repo}{coordinate.base_path()}/maven-metadata.xml"
            )
            if status != 200:
                return None
            file_version = _snapshot_file_version(text, coordinate)
            if file_version is None:
                return None
        return f"{repo}{coordinate.base_path()}/{coordinate.file_name(extension, file_version)}"

    def _find_pom(self, coordinate: Coordinate) -> Tuple[str, str]:
        """Return (repository, pom_text) of the first repository hosting ``coordinate``."""
        errors: List[str] = []
        for repo in self.repositories:
            url = self._file_url(repo, coordinate, "pom")
            if url is None:
                continue
            status, _, text = http_client.get_text(url)
            if status == 200:
                return repo, text
            if status == 0:
                errors.append(f"{safe_url(url)}: {redact(text)}")
            elif status != 404 and is_debug_enabled(logger):
                logger.debug("Unexpected POM status", extra=extra_context(
                    event="http_response", component="mtags_fetcher", action="find_pom",
                    outcome="handled_non_2xx", status_code=status, target=safe_url(url)
                ))
        if errors and len(errors) == len(self.repositories):
            raise http_client.NetworkError(
                f"Could not reach any repository for {coordinate}: " + "; ".join(errors)
            )
        searched = "\n".join(f"  - {r}" for r in self.repositories)
        raise ResolutionError(f"Could not find {coordinate} in repositories:\n{searched}")

    def _local_path(self, coordinate: Coordinate) -> str:
        return os.path.join(
            self.cache_dir, *coordinate.base_path().split("/"), coordinate.file_name("jar")
        )

    def _download_jar(self, coordinate: Coordinate, preferred_repo: Optional[str] = None) -> str:
        dest = self._local_path(coordinate)
        if os.path.isfile(dest):
            return dest
        repos = list(self.repositories)
        if preferred_repo in repos:
            repos.remove(preferred_repo)
            repos.insert(0, preferred_repo)
        for repo in repos:
            url = self._file_url(repo, coordinate, "jar")
            if url is None:
                continue
            if http_client.download_file(url, dest, context="maven"):
                return dest
        raise ResolutionError(f"Could not download jar for {coordinate}")

    def fetch(self, version: str, runtime_version: str) -> Artifacts:
        coordinate = mtags_coordinate(version, runtime_version)
        with Timer() as t:
            repo, pom_text = self._find_pom(coordinate)
            dependencies = parse_pom_dependencies(pom_text, coordinate)
            locations = [self._download_jar(coordinate, repo)]
            for dep in dependencies:
                locations.append(self._download_jar(dep, repo))
        if is_debug_enabled(logger):
            logger.debug("Fetched mtags artifacts", extra=extra_context(
                event="function_exit", component="mtags_fetcher", action="fetch",
                outcome="success", target=str(coordinate), count=len(locations),
                duration_ms=t.duration_ms()
            ))
        return Artifacts(version=version, locations=tuple(locations))
