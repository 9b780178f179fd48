from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.errors import LaneError


@dataclass(frozen=True, slots=True)
class ReleaseParams:
    product_name: str
    version: str
    build_number: str
    account: str
    tester_groups: tuple[str, ...]
    review: bool = False

    @property
    def repo_slug(self) -> str:
        return f"{self.account}/{self.product_name}"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s or None


def resolve_tester_groups(
    groups: Sequence[str] | None, *, default: Sequence[str]
) -> tuple[str, ...]:
    """Caller groups win; the configured default applies only when none are given."""
    cleaned = tuple(g.strip() for g in (groups or ()) if g.strip())
    if cleaned:
        return cleaned
    return tuple(g.strip() for g in default if g.strip())


def _missing(name: str, flag: str) -> Err[LaneError]:
    return Err(
        LaneError(
            kind="missing_parameter",
            message=f"missing required parameter: {name}",
            hint=f"pass {flag}",
            stage="validate",
        )
    )


def require_param(value: str | None, *, name: str, flag: str) -> Result[str, LaneError]:
    cleaned = _clean(value)
    if cleaned is None:
        return _missing(name, flag)
    return Ok(cleaned)


def validate_release_params(
    *,
    product_name: str | None,
    version: str | None,
    build_number: str | None,
    account: str | None,
    tester_groups: Sequence[str],
    review: bool = False,
) -> Result[ReleaseParams, LaneError]:
    """Check presence of every required parameter.

    Stops at the first missing one, in the order product name, build number,
    account, tester groups, version. Values are not checked beyond being
    non-blank.
    """
    name = _clean(product_name)
    if name is None:
        return _missing("product_name", "--product-name")

    build = _clean(build_number)
    if build is None:
        return _missing("build_number", "--build-number")

    acct = _clean(account)
    if acct is None:
        return _missing("account", "--account")

    groups = tuple(g.strip() for g in tester_groups if g.strip())
    if not groups:
        return _missing("tester_groups", "--groups (or set release.default_tester_groups)")

    ver = _clean(version)
    if ver is None:
        return _missing("version", "--version")

    return Ok(
        ReleaseParams(
            product_name=name,
            version=ver,
            build_number=build,
            account=acct,
            tester_groups=groups,
            review=review,
        )
    )
