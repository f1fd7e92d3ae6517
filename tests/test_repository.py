"""Tests for the local repository layout and the version range heuristic."""

from pathlib import Path

from pomtree.models import Coordinate
from pomtree.repository import LocalRepository, UPDATE_MARKER, default_repository_root
from pomtree.versions import VersionParser


class TestVersionParser:
    """Tests for version range syntax."""

    def test_parse_closed_range(self):
        version_range = VersionParser.parse_range("[1.0,2.0)")

        assert version_range.lower == "1.0"
        assert version_range.upper == "2.0"
        assert version_range.lower_inclusive is True
        assert version_range.upper_inclusive is False
        assert str(version_range) == "[1.0,2.0)"

    def test_parse_open_bounds(self):
        version_range = VersionParser.parse_range("(,1.5]")

        assert version_range.lower is None
        assert version_range.upper == "1.5"
        assert version_range.upper_inclusive is True

    def test_plain_version_is_not_a_range(self):
        assert VersionParser.parse_range("1.0") is None
        assert VersionParser.is_range("5.3.39.RELEASE") is False

    def test_pick_latest_is_lexicographic(self):
        """Bounds are not evaluated; '9.0' beats '10.0'."""
        assert VersionParser.pick_latest(["1.0", "10.0", "9.0"]) == "9.0"

    def test_pick_latest_of_nothing(self):
        assert VersionParser.pick_latest([]) is None


class TestLocalRepository:
    """Tests for LocalRepository path layout."""

    def test_descriptor_path_layout(self, tmp_path):
        repository = LocalRepository(tmp_path)
        coordinate = Coordinate.parse("org.apache.commons:commons-lang3:3.14.0")

        path = repository.descriptor_path(coordinate)

        assert path == tmp_path / "org" / "apache" / "commons" / "commons-lang3" / "3.14.0" / "commons-lang3-3.14.0.pom"

    def test_package_path_uses_type(self, tmp_path):
        repository = LocalRepository(tmp_path)
        coordinate = Coordinate.parse("org.example:webapp:war:1.0")

        assert repository.package_path(coordinate).name == "webapp-1.0.war"

    def test_has_descriptor(self, tmp_path):
        repository = LocalRepository(tmp_path)
        coordinate = Coordinate.parse("g:n:1")
        assert repository.has_descriptor(coordinate) is False

        path = repository.descriptor_path(coordinate)
        path.parent.mkdir(parents=True)
        path.write_text("<project/>")

        assert repository.has_descriptor(coordinate) is True

    def test_default_root_from_m2_repo(self, monkeypatch, tmp_path):
        monkeypatch.setenv("M2_REPO", str(tmp_path))
        assert default_repository_root() == tmp_path
        assert LocalRepository().root == tmp_path

    def test_default_root_in_home(self, monkeypatch):
        monkeypatch.delenv("M2_REPO", raising=False)
        assert default_repository_root() == Path("~").expanduser() / ".m2" / "repository"


class TestVersionSelection:
    """Tests for resolving ranges against cached version directories."""

    def _make_versions(self, repository, versions, marked=()):
        root = repository.artifact_root("g", "n")
        for version in versions:
            (root / version).mkdir(parents=True)
        for version in marked:
            (root / version / UPDATE_MARKER).write_text("")

    def test_picks_greatest_directory(self, tmp_path):
        repository = LocalRepository(tmp_path)
        self._make_versions(repository, ["1.0", "1.2", "1.1"])

        assert repository.select_version(Coordinate.parse("g:n:[1.0,)")) == "1.2"

    def test_skips_directories_with_update_marker(self, tmp_path):
        """An in-progress download is not a usable version."""
        repository = LocalRepository(tmp_path)
        self._make_versions(repository, ["1.0", "1.2"], marked=["1.2"])

        assert repository.cached_versions("g", "n") == ["1.0"]
        assert repository.select_version(Coordinate.parse("g:n:[1.0,)")) == "1.0"

    def test_ignores_plain_files(self, tmp_path):
        repository = LocalRepository(tmp_path)
        self._make_versions(repository, ["1.0"])
        (repository.artifact_root("g", "n") / "maven-metadata-local.xml").write_text("")

        assert repository.cached_versions("g", "n") == ["1.0"]

    def test_nothing_cached(self, tmp_path):
        repository = LocalRepository(tmp_path)
        assert repository.select_version(Coordinate.parse("g:n:[1.0,)")) is None

    def test_plain_version_passes_through(self, tmp_path):
        repository = LocalRepository(tmp_path)
        assert repository.select_version(Coordinate.parse("g:n:1.0")) == "1.0"
