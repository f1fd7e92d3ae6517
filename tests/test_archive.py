"""Tests for jar/war payload access."""

import io
import zipfile

import pytest

from pomtree.archive import list_entries, open_package, read_entry
from pomtree.errors import PackageUnavailable
from pomtree.fetchers import InMemoryFetcher
from pomtree.models import Artifact, Coordinate


def _jar_bytes(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def _artifact(text):
    return Artifact(Coordinate.parse(text), complete=True)


class TestArchive:
    """Tests for open_package and friends."""

    def test_fetches_missing_package(self, repository):
        jar = _jar_bytes({"META-INF/MANIFEST.MF": "Manifest-Version: 1.0\n"})
        fetcher = InMemoryFetcher(repository, {}, packages={"g:lib:1": jar})

        with open_package(_artifact("g:lib:1"), repository, fetcher) as archive:
            assert archive.namelist() == ["META-INF/MANIFEST.MF"]

        assert fetcher.requests == [("g:lib:jar:1", False)]

    def test_cached_package_is_not_fetched(self, repository):
        coordinate = Coordinate.parse("g:lib:1")
        path = repository.package_path(coordinate)
        path.parent.mkdir(parents=True)
        path.write_bytes(_jar_bytes({"a.txt": "a"}))
        fetcher = InMemoryFetcher(repository, {})

        assert list_entries(_artifact("g:lib:1"), repository, fetcher) == ["a.txt"]
        assert fetcher.requests == []

    def test_read_entry(self, repository):
        fetcher = InMemoryFetcher(repository, {}, packages={"g:web:1": _jar_bytes({"WEB-INF/web.xml": "<web-app/>"})})

        data = read_entry(_artifact("g:web:war:1"), repository, fetcher, "WEB-INF/web.xml")

        assert data == b"<web-app/>"

    def test_read_missing_entry_raises_key_error(self, repository):
        fetcher = InMemoryFetcher(repository, {}, packages={"g:lib:1": _jar_bytes({"a.txt": "a"})})

        with pytest.raises(KeyError):
            read_entry(_artifact("g:lib:1"), repository, fetcher, "b.txt")

    def test_non_archive_type(self, repository):
        with pytest.raises(PackageUnavailable, match="pom"):
            open_package(_artifact("g:parent:pom:1"), repository, InMemoryFetcher(repository, {}))

    def test_unavailable_package(self, repository):
        with pytest.raises(PackageUnavailable):
            open_package(_artifact("g:lib:1"), repository, InMemoryFetcher(repository, {}))

    def test_corrupt_package(self, repository):
        fetcher = InMemoryFetcher(repository, {}, packages={"g:lib:1": b"not a zip"})

        with pytest.raises(PackageUnavailable, match="not a valid archive"):
            open_package(_artifact("g:lib:1"), repository, fetcher)

    def test_list_entries_of_unavailable_package_is_empty(self, repository):
        assert list_entries(_artifact("g:lib:1"), repository, InMemoryFetcher(repository, {})) == []
