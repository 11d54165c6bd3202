from __future__ import annotations

from datetime import datetime

import pytest

from bindle_release.invoice.versioning import SystemClock, Versioning, mangle_version

from .helpers import FixedClock


@pytest.mark.parametrize(
    "text, expected",
    [
        ("production", Versioning.PRODUCTION),
        ("dev", Versioning.DEV),
        ("Production", Versioning.DEV),
        ("", Versioning.DEV),
        ("staging", Versioning.DEV),
    ],
)
def test_parse_versioning(text: str, expected: Versioning) -> None:
    assert Versioning.parse(text) is expected


def test_production_version_is_unchanged(clock: FixedClock) -> None:
    assert mangle_version("1.2.4", versioning=Versioning.PRODUCTION, clock=clock, identifier="ivan") == "1.2.4"


def test_dev_version_appends_identifier_and_timestamp(clock: FixedClock) -> None:
    assert (
        mangle_version("1.2.4", versioning=Versioning.DEV, clock=clock, identifier="ivan")
        == "1.2.4-ivan-2021.06.15.09.30.05.123"
    )


def test_dev_version_without_identifier(clock: FixedClock) -> None:
    assert mangle_version("1.2.4", versioning=Versioning.DEV, clock=clock) == "1.2.4-2021.06.15.09.30.05.123"


def test_identifier_is_sanitised(clock: FixedClock) -> None:
    mangled = mangle_version("0.1.0", versioning=Versioning.DEV, clock=clock, identifier="DOMAIN\\ivan.p@host")
    assert mangled == "0.1.0-DOMAIN-ivan-p-host-2021.06.15.09.30.05.123"


def test_identifier_of_only_symbols_is_omitted(clock: FixedClock) -> None:
    assert mangle_version("0.1.0", versioning=Versioning.DEV, clock=clock, identifier="@@@") == (
        "0.1.0-2021.06.15.09.30.05.123"
    )


def test_distinct_instants_give_distinct_versions() -> None:
    first = mangle_version("1.0.0", versioning=Versioning.DEV, clock=FixedClock(datetime(2022, 1, 1, 0, 0, 0, 1000)))
    second = mangle_version("1.0.0", versioning=Versioning.DEV, clock=FixedClock(datetime(2022, 1, 1, 0, 0, 0, 2000)))
    assert first == "1.0.0-2022.01.01.00.00.00.001"
    assert second == "1.0.0-2022.01.01.00.00.00.002"


def test_system_clock_returns_current_time() -> None:
    before = datetime.now()
    now = SystemClock().now()
    assert before <= now <= datetime.now()
