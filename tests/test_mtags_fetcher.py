"""Tests for the Maven mtags artifact fetcher."""

import os
from unittest.mock import MagicMock, patch

import pytest

from common import http_client
from common.http_client import NetworkError
from common.logging_utils import REDACTED
from registry.errors import ResolutionError
from registry.mtags import (
    Coordinate,
    MavenArtifactFetcher,
    mtags_coordinate,
    parse_pom_dependencies,
)
from versioning.aliases import VersionAliases
from versioning.resolver import DefaultMtagsResolver
from versioning.retry import RetryPolicy

CENTRAL = "https://central.example.org/maven2/"
SNAPSHOTS = "https://snapshots.example.org/snapshots/"

MTAGS_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.scalameta</groupId>
  <artifactId>mtags_3.3.1</artifactId>
  <version>1.3.5</version>
  <properties>
    <scala.version>3.3.1</scala.version>
  </properties>
  <dependencies>
    <dependency>
      <groupId>org.scalameta</groupId>
      <artifactId>mtags-interfaces</artifactId>
      <version>${project.version}</version>
    </dependency>
    <dependency>
      <groupId>org.scala-lang</groupId>
      <artifactId>scala3-compiler_3</artifactId>
      <version>${scala.version}</version>
      <scope>runtime</scope>
    </dependency>
    <dependency>
      <groupId>org.scalameta</groupId>
      <artifactId>munit_3</artifactId>
      <version>1.0.0</version>
      <scope>test</scope>
    </dependency>
    <dependency>
      <groupId>com.example</groupId>
      <artifactId>optional-dep</artifactId>
      <version>2.0.0</version>
      <optional>true</optional>
    </dependency>
    <dependency>
      <groupId>com.example</groupId>
      <artifactId>unresolved</artifactId>
      <version>${missing.version}</version>
    </dependency>
  </dependencies>
</project>
"""


class TestParsePomDependencies:
    """POM dependency extraction."""

    def test_runtime_dependencies_with_interpolation(self):
        """Test runtime dependencies are kept with properties interpolated."""
        coordinate = mtags_coordinate("3.3.1", "1.3.5")

        deps = parse_pom_dependencies(MTAGS_POM, coordinate)

        assert deps == [
            Coordinate("org.scalameta", "mtags-interfaces", "1.3.5"),
            Coordinate("org.scala-lang", "scala3-compiler_3", "3.3.1"),
        ]

    def test_pom_without_dependencies(self):
        """Test a POM without dependencies yields none."""
        pom = "<project><artifactId>x</artifactId></project>"

        assert parse_pom_dependencies(pom, Coordinate("g", "x", "1")) == []

    def test_invalid_pom_raises_resolution_error(self):
        """Test malformed POM XML raises ResolutionError."""
        with pytest.raises(ResolutionError):
            parse_pom_dependencies("<project>", Coordinate("g", "x", "1"))


def test_coordinate_paths():
    """Test repository path and file name of a coordinate."""
    coordinate = mtags_coordinate("2.13.12", "1.3.5")

    assert str(coordinate) == "org.scalameta:mtags_2.13.12:1.3.5"
    assert coordinate.base_path() == "org/scalameta/mtags_2.13.12/1.3.5"
    assert coordinate.file_name("jar") == "mtags_2.13.12-1.3.5.jar"


class TestMavenArtifactFetcher:
    """End-to-end fetch over patched HTTP helpers."""

    @patch("registry.mtags.http_client.download_file")
    @patch("registry.mtags.http_client.get_text")
    def test_fetch_downloads_main_and_dependencies(self, mock_get_text, mock_download, tmp_path):
        """Test the main jar and its dependencies are downloaded from the hosting repository."""
        def get_text(url):
            if url.startswith(SNAPSHOTS) and url.endswith("mtags_3.3.1-1.3.5.pom"):
                return 200, {}, MTAGS_POM
            return 404, {}, ""

        mock_get_text.side_effect = get_text
        mock_download.return_value = True
        fetcher = MavenArtifactFetcher(repositories=[CENTRAL, SNAPSHOTS.rstrip("/")], cache_dir=str(tmp_path))

        artifacts = fetcher.fetch("3.3.1", "1.3.5")

        assert artifacts.version == "3.3.1"
        assert not artifacts.builtin
        assert artifacts.locations == (
            os.path.join(str(tmp_path), "org", "scalameta", "mtags_3.3.1", "1.3.5", "mtags_3.3.1-1.3.5.jar"),
            os.path.join(str(tmp_path), "org", "scalameta", "mtags-interfaces", "1.3.5", "mtags-interfaces-1.3.5.jar"),
            os.path.join(str(tmp_path), "org", "scala-lang", "scala3-compiler_3", "3.3.1", "scala3-compiler_3-3.3.1.jar"),
        )
        first_download = mock_download.call_args_list[0]
        assert first_download.args[0] == SNAPSHOTS + "org/scalameta/mtags_3.3.1/1.3.5/mtags_3.3.1-1.3.5.jar"

    @patch("registry.mtags.http_client.download_file")
    @patch("registry.mtags.http_client.get_text")
    def test_existing_jars_are_not_downloaded_again(self, mock_get_text, mock_download, tmp_path):
        """Test jars already on disk are reused."""
        mock_get_text.return_value = (200, {}, "<project/>")
        fetcher = MavenArtifactFetcher(repositories=[CENTRAL], cache_dir=str(tmp_path))
        jar = tmp_path / "org" / "scalameta" / "mtags_2.13.12" / "1.3.5" / "mtags_2.13.12-1.3.5.jar"
        jar.parent.mkdir(parents=True)
        jar.write_bytes(b"jar")

        artifacts = fetcher.fetch("2.13.12", "1.3.5")

        assert artifacts.locations == (str(jar),)
        mock_download.assert_not_called()

    @patch("registry.mtags.http_client.get_text")
    def test_missing_artifact_raises_resolution_error(self, mock_get_text, tmp_path):
        """Test a POM missing everywhere raises ResolutionError naming the repositories."""
        mock_get_text.return_value = (404, {}, "")
        fetcher = MavenArtifactFetcher(repositories=[CENTRAL, SNAPSHOTS], cache_dir=str(tmp_path))

        with pytest.raises(ResolutionError) as excinfo:
            fetcher.fetch("2.12.9", "1.3.5")

        message = str(excinfo.value)
        assert "org.scalameta:mtags_2.12.9:1.3.5" in message
        assert CENTRAL in message and SNAPSHOTS in message

    @patch("registry.mtags.http_client.get_text")
    def test_unreachable_repositories_raise_network_error(self, mock_get_text, tmp_path):
        """Test unreachable repositories raise NetworkError."""
        mock_get_text.return_value = (0, {}, "Request failed after 3 attempts: timeout")
        fetcher = MavenArtifactFetcher(repositories=[CENTRAL], cache_dir=str(tmp_path))

        with pytest.raises(NetworkError):
            fetcher.fetch("3.3.1", "1.3.5")

    @patch("registry.mtags.http_client.download_file")
    @patch("registry.mtags.http_client.get_text")
    def test_missing_jar_raises_resolution_error(self, mock_get_text, mock_download, tmp_path):
        """Test a missing jar raises ResolutionError."""
        mock_get_text.return_value = (200, {}, "<project/>")
        mock_download.return_value = False
        fetcher = MavenArtifactFetcher(repositories=[CENTRAL], cache_dir=str(tmp_path))

        with pytest.raises(ResolutionError):
            fetcher.fetch("3.3.1", "1.3.5")

    @patch("registry.mtags.http_client.download_file")
    @patch("registry.mtags.http_client.get_text")
    def test_snapshot_runtime_uses_timestamped_files(self, mock_get_text, mock_download, tmp_path):
        metadata = """<metadata><versioning><snapshot>
            <timestamp>20240101.120000</timestamp><buildNumber>7</buildNumber>
        </snapshot></versioning></metadata>"""
        base = SNAPSHOTS + "org/scalameta/mtags_3.3.1/1.4.0-SNAPSHOT/"

        def get_text(url):
            if url == base + "maven-metadata.xml":
                return 200, {}, metadata
            if url == base + "mtags_3.3.1-1.4.0-20240101.120000-7.pom":
                return 200, {}, "<project/>"
            return 404, {}, ""

        mock_get_text.side_effect = get_text
        mock_download.return_value = True
        fetcher = MavenArtifactFetcher(repositories=[SNAPSHOTS], cache_dir=str(tmp_path))

        fetcher.fetch("3.3.1", "1.4.0-SNAPSHOT")

        assert mock_download.call_args.args[0] == base + "mtags_3.3.1-1.4.0-20240101.120000-7.jar"

    @patch("registry.mtags.http_client.get_text")
    def test_unreachable_error_message_is_redacted(self, mock_get_text, tmp_path):
        """Test secrets in transport errors are masked in the raised message."""
        mock_get_text.return_value = (0, {}, "Request failed: token=abc123")
        fetcher = MavenArtifactFetcher(repositories=[CENTRAL], cache_dir=str(tmp_path))

        with pytest.raises(NetworkError) as excinfo:
            fetcher.fetch("3.3.1", "1.3.5")

        assert "abc123" not in str(excinfo.value)
        assert REDACTED in str(excinfo.value)


class TestResolverRetriesReachNetwork:
    """Retries made by the resolver are real requests, not cached misses."""

    @pytest.fixture(autouse=True)
    def fresh_http_cache(self):
        http_client.clear_cache()
        yield
        http_client.clear_cache()

    @staticmethod
    def _response(status_code, text=""):
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        response.headers = {}
        return response

    @patch("registry.mtags.http_client.download_file")
    @patch("common.http_client.requests.get")
    def test_each_attempt_requests_the_pom(self, mock_get, mock_download, tmp_path):
        """Test two failed attempts make two GETs and a post-cooldown retry sees a new POM."""
        now = [1_000_000.0]
        mock_get.return_value = self._response(404)
        mock_download.return_value = True
        fetcher = MavenArtifactFetcher(repositories=[CENTRAL], cache_dir=str(tmp_path))
        resolver = DefaultMtagsResolver(
            fetcher,
            MagicMock(),
            runtime_version="1.3.5",
            is_builtin=lambda version: False,
            aliases=VersionAliases({}),
            retry_policy=RetryPolicy(2, 60, clock=lambda: now[0]),
        )

        assert resolver.resolve("3.3.1") is None
        assert resolver.resolve("3.3.1") is None
        assert mock_get.call_count == 2
        assert resolver.resolve("3.3.1") is None
        assert mock_get.call_count == 2

        mock_get.return_value = self._response(200, "<project/>")
        now[0] += 61

        artifacts = resolver.resolve("3.3.1")

        assert artifacts is not None
        assert mock_get.call_count == 3
        pom_url = CENTRAL + "org/scalameta/mtags_3.3.1/1.3.5/mtags_3.3.1-1.3.5.pom"
        assert all(c.args[0] == pom_url for c in mock_get.call_args_list)
