"""Tests for the shared driver policy, using a minimal in-memory driver."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

import pytest

from filedrivers.core.storage.driver import (
    DangerousDriver,
    Driver,
    DriverState,
    as_dangerous,
    clean_relative_path,
)
from filedrivers.core.storage.errors import (
    AlreadyExistsError,
    CapabilityNotSupportedError,
    DriverNotOpenError,
    InvalidExtensionError,
    InvalidPathError,
    NotFoundError,
)
from filedrivers.core.storage.query import parse_accept, parse_query
from filedrivers.core.storage.testing import check_driver


@dataclass(frozen=True)
class MemoryConfig:
    prefix: str
    accept: frozenset[str]


class MemoryDriver(Driver):
    """Keeps files in a dict; no dangerous capability."""

    scheme = "mem"

    @classmethod
    def parse_url(cls, url):
        base, _, query = url.partition("?")
        return MemoryConfig(prefix=base[len("mem://") :], accept=parse_accept(parse_query(query)))

    def _base_path(self):
        return f"mem://{self._config.prefix}"

    def _connect(self):
        self.files = {}
        self.connected = True

    def _disconnect(self):
        self.connected = False

    def _resolve_key(self, relative):
        return relative

    def _exists(self, key):
        return key in self.files

    def _write(self, key, stream, content_type):
        self.files[key] = (stream.read(), content_type)

    def _read(self, key):
        if key not in self.files:
            raise NotFoundError(f"mem: file not found: {key}", key=key)
        return BytesIO(self.files[key][0])

    def _delete(self, key):
        self.files.pop(key, None)


@pytest.fixture
def driver():
    drv = MemoryDriver.open("mem://bucket/assets?accept=.txt,.json")
    yield drv
    drv.close()


class TestCleanRelativePath:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("a/b.txt", "a/b.txt"),
            ("/a/b.txt", "a/b.txt"),
            ("a//b.txt", "a/b.txt"),
            ("a/./b.txt", "a/b.txt"),
            ("../../etc/passwd", "etc/passwd"),
            ("a/../../b.txt", "b.txt"),
            ("a\\b.txt", "a/b.txt"),
        ],
    )
    def test_cleaning(self, path, expected):
        assert clean_relative_path(path) == expected

    @pytest.mark.parametrize("path", ["", "/", ".", "..", "a/.."])
    def test_empty_after_cleaning(self, path):
        with pytest.raises(InvalidPathError):
            clean_relative_path(path)


class TestLifecycle:
    def test_open_returns_open_driver(self, driver):
        assert driver.state is DriverState.OPEN
        assert driver.connected

    def test_operations_before_open(self):
        drv = MemoryDriver(MemoryConfig(prefix="x", accept=frozenset({".txt"})))

        assert drv.state is DriverState.UNOPENED
        with pytest.raises(DriverNotOpenError, match="unopened"):
            drv.add_file(b"data", "a.txt")
        with pytest.raises(DriverNotOpenError):
            drv.path()

    def test_operations_after_close(self, driver):
        driver.close()

        assert driver.state is DriverState.CLOSED
        assert not driver.connected
        with pytest.raises(DriverNotOpenError, match="closed"):
            driver.get_file("a.txt")
        with pytest.raises(DriverNotOpenError):
            driver.accepts(".txt")

    def test_close_is_idempotent(self, driver):
        driver.close()
        driver.close()

        assert driver.state is DriverState.CLOSED

    def test_context_manager_closes(self):
        with MemoryDriver.open("mem://bucket?accept=.txt") as drv:
            drv.add_file(b"data", "a.txt")

        assert drv.state is DriverState.CLOSED

    def test_open_builds_independent_instances(self):
        first = MemoryDriver.open("mem://one?accept=.txt")
        second = MemoryDriver.open("mem://two?accept=.txt")

        first.add_file(b"data", "a.txt")

        assert first is not second
        assert "a.txt" not in second.files


class TestAddFile:
    def test_returns_external_path(self, driver):
        assert driver.add_file(b"{}", "/data/x.json") == "mem://bucket/assets/data/x.json"

    def test_stores_content_type(self, driver):
        driver.add_file(b"{}", "x.json")

        assert driver.files["x.json"][1] == "application/json; charset=UTF-8"

    def test_accepts_stream(self, driver):
        driver.add_file(BytesIO(b"streamed"), "s.txt")

        with driver.get_file("s.txt") as handle:
            assert handle.read() == b"streamed"

    def test_extension_checked_before_existence(self, driver):
        driver.files["a.png"] = (b"x", "image/png")

        with pytest.raises(InvalidExtensionError) as exc_info:
            driver.add_file(b"data", "a.png")

        assert exc_info.value.extension == ".png"
        assert exc_info.value.path == "a.png"

    def test_extension_match_ignores_case(self, driver):
        driver.add_file(b"data", "UPPER.TXT")

        assert "UPPER.TXT" in driver.files

    def test_mixed_case_extension_gets_matching_content_type(self, driver):
        driver.add_file(b"{}", "DATA.JSON")

        assert driver.files["DATA.JSON"][1] == "application/json; charset=UTF-8"

    def test_dotfile_name_is_its_extension(self, driver):
        driver.add_file(b"data", "dir/.txt")

        assert driver.files["dir/.txt"] == (b"data", "text/plain; charset=UTF-8")

    def test_no_extension_rejected(self, driver):
        with pytest.raises(InvalidExtensionError, match="none"):
            driver.add_file(b"data", "README")

    def test_duplicate_rejected(self, driver):
        driver.add_file(b"first", "a.txt")

        with pytest.raises(AlreadyExistsError) as exc_info:
            driver.add_file(b"second", "a.txt")

        assert exc_info.value.key == "a.txt"
        assert driver.files["a.txt"][0] == b"first"

    def test_invalid_path(self, driver):
        with pytest.raises(InvalidPathError):
            driver.add_file(b"data", "/")


class TestPaths:
    def test_accepts(self, driver):
        assert driver.accepts(".txt")
        assert driver.accepts("json")
        assert not driver.accepts(".png")
        assert not driver.accepts("")

    def test_normalize_path(self, driver):
        assert driver.normalize_path() == "mem://bucket/assets"
        assert driver.normalize_path("a", "/b/", "c.txt") == "mem://bucket/assets/a/b/c.txt"
        assert driver.normalize_path("..", "..", "c.txt") == "mem://bucket/assets/c.txt"


class TestDangerousCapability:
    def test_as_dangerous_rejects_plain_driver(self, driver):
        with pytest.raises(CapabilityNotSupportedError, match="MemoryDriver"):
            as_dangerous(driver)

    def test_delete_container_stops_when_emptying_fails(self):
        calls = []

        class Failing(DangerousDriver):
            def empty_container(self):
                calls.append("empty")
                raise OSError("boom")

            def _remove_container(self):
                calls.append("remove")

        with pytest.raises(OSError):
            Failing().delete_container()

        assert calls == ["empty"]


class TestConformance:
    def test_memory_driver_conforms(self, driver):
        check_driver(driver)

        assert driver.files == {}
