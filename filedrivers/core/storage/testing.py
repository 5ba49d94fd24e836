"""Conformance checks runnable against any opened driver.

Driver test suites call ``check_driver`` with a driver opened with
``accept=.txt``:

    def test_conformance(tmp_path):
        with registry.open(f"fs://localhost/assets?accept=.txt&root={tmp_path}") as driver:
            check_driver(driver)

Every check leaves the container as it found it.
"""

from __future__ import annotations

from io import BytesIO

from filedrivers.core.storage.driver import Driver
from filedrivers.core.storage.errors import (
    AlreadyExistsError,
    InvalidExtensionError,
    NotFoundError,
)

DEFAULT_CONTENTS = ("hello world",)


def _read_all(driver: Driver, path: str) -> bytes:
    with driver.get_file(path) as handle:
        return handle.read()


def _expect_not_found(driver: Driver, path: str) -> None:
    try:
        handle = driver.get_file(path)
    except NotFoundError:
        return
    handle.close()
    raise AssertionError(f"expected NotFoundError for {path!r}")


def check_round_trip(driver: Driver, contents: tuple[str, ...] = DEFAULT_CONTENTS) -> None:
    """Add each content under tests/test-<i>.txt, read it back, remove it."""
    for i, content in enumerate(contents):
        path = f"tests/test-{i}.txt"

        url = driver.add_file(BytesIO(content.encode()), path)
        assert url == driver.normalize_path(path), f"unexpected external path {url!r}"

        got = _read_all(driver, path)
        assert got == content.encode(), f"expected {content!r} got {got!r}"

        driver.remove_file(path)
        _expect_not_found(driver, path)


def check_duplicate_rejected(driver: Driver) -> None:
    """A second add to the same path fails and leaves the first content intact."""
    path = "tests/duplicate.txt"
    driver.add_file(b"first", path)
    try:
        try:
            driver.add_file(b"second", path)
        except AlreadyExistsError:
            pass
        else:
            raise AssertionError(f"expected AlreadyExistsError for {path!r}")
        got = _read_all(driver, path)
        assert got == b"first", f"content changed to {got!r}"
    finally:
        driver.remove_file(path)


def check_extension_enforced(driver: Driver, rejected_ext: str = ".exe") -> None:
    """Adding a file with an unaccepted extension fails and creates nothing."""
    assert not driver.accepts(rejected_ext), f"{rejected_ext} unexpectedly accepted"
    path = f"tests/rejected{rejected_ext}"
    try:
        driver.add_file(b"data", path)
    except InvalidExtensionError as e:
        assert e.extension == rejected_ext
    else:
        raise AssertionError(f"expected InvalidExtensionError for {path!r}")
    _expect_not_found(driver, path)


def check_driver(driver: Driver) -> None:
    """Run all conformance checks."""
    check_round_trip(driver)
    check_duplicate_rejected(driver)
    check_extension_enforced(driver)
