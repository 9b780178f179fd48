from __future__ import annotations

import pytest

from shiplane.core.result import Err, Ok
from shiplane.lanes.params import (
    ReleaseParams,
    require_param,
    resolve_tester_groups,
    validate_release_params,
)

_VALID: dict[str, object] = {
    "product_name": "Acme",
    "version": "1.2.0",
    "build_number": "42",
    "account": "acme-inc",
    "tester_groups": ["qa"],
}


def _validate(**overrides: object):
    kwargs = {**_VALID, **overrides}
    return validate_release_params(**kwargs)  # type: ignore[arg-type]


def test_valid_params() -> None:
    result = _validate(review=True)
    assert result == Ok(
        ReleaseParams(
            product_name="Acme",
            version="1.2.0",
            build_number="42",
            account="acme-inc",
            tester_groups=("qa",),
            review=True,
        )
    )
    assert result.value.repo_slug == "acme-inc/Acme"


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("product_name", None),
        ("product_name", "  "),
        ("build_number", ""),
        ("account", None),
        ("tester_groups", []),
        ("tester_groups", [" ", ""]),
        ("version", None),
    ],
)
def test_missing_parameter(field: str, value: object) -> None:
    result = _validate(**{field: value})
    assert isinstance(result, Err)
    assert result.error.kind == "missing_parameter"
    assert result.error.stage == "validate"
    assert field in result.error.message


def test_first_missing_parameter_wins() -> None:
    result = _validate(product_name=None, build_number=None, account=None, tester_groups=[])
    assert isinstance(result, Err)
    assert result.error.message == "missing required parameter: product_name"

    result = _validate(account=None, tester_groups=[])
    assert isinstance(result, Err)
    assert result.error.message == "missing required parameter: account"


def test_values_are_stripped() -> None:
    result = _validate(product_name=" Acme ", tester_groups=[" qa ", "beta"])
    assert isinstance(result, Ok)
    assert result.value.product_name == "Acme"
    assert result.value.tester_groups == ("qa", "beta")


class TestResolveTesterGroups:
    def test_caller_groups_win(self) -> None:
        assert resolve_tester_groups(["qa"], default=["beta"]) == ("qa",)

    def test_default_when_none_given(self) -> None:
        assert resolve_tester_groups(None, default=["beta"]) == ("beta",)
        assert resolve_tester_groups([" "], default=["beta"]) == ("beta",)

    def test_empty_everywhere(self) -> None:
        assert resolve_tester_groups([], default=()) == ()


def test_require_param() -> None:
    assert require_param(" 7 ", name="build_number", flag="--build-number") == Ok("7")
    missing = require_param(None, name="version", flag="--version")
    assert isinstance(missing, Err)
    assert missing.error.hint == "pass --version"
