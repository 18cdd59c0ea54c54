"""Utilities for validating rate tables and surfacing structural issues."""

from __future__ import annotations

import argparse
from collections import Counter
from pathlib import Path
from typing import Sequence

from .schema import CITConfig, LevyConfig, PITBand, RateTable


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_pit_bands(bands: Sequence[PITBand]) -> list[str]:
    errors: list[str] = []

    if not bands:
        errors.append(_format_scope("pitBands", "at least one band must be defined"))
        return errors

    if bands[0].lower_bound != 0:
        errors.append(
            _format_scope("pitBands[0].lowerBound", "the first band must start at 0")
        )

    for index, band in enumerate(bands):
        scope = f"pitBands[{index}]"
        if band.rate < 0 or band.rate > 1:
            errors.append(_format_scope(f"{scope}.rate", "rate must be between 0 and 1"))

        is_last = index == len(bands) - 1
        if band.upper_bound is None:
            if not is_last:
                errors.append(
                    _format_scope(
                        f"{scope}.upperBound",
                        "only the final band may be open-ended",
                    )
                )
            continue

        if band.upper_bound <= band.lower_bound:
            errors.append(
                _format_scope(
                    f"{scope}.upperBound",
                    (
                        f"upper bound {band.upper_bound} must exceed "
                        f"lower bound {band.lower_bound}"
                    ),
                )
            )

        if is_last:
            errors.append(
                _format_scope(f"{scope}.upperBound", "the final band must be open-ended")
            )
            continue

        following = bands[index + 1]
        if following.lower_bound != band.upper_bound:
            kind = "gap" if following.lower_bound > band.upper_bound else "overlap"
            errors.append(
                _format_scope(
                    f"pitBands[{index + 1}].lowerBound",
                    (
                        f"{kind} detected: expected {band.upper_bound}, "
                        f"found {following.lower_bound}"
                    ),
                )
            )

    return errors


def _validate_cit(cit: CITConfig) -> list[str]:
    errors: list[str] = []

    if cit.small_company_threshold > cit.medium_company_threshold:
        errors.append(
            _format_scope(
                "cit.smallCompanyThreshold",
                "small company threshold cannot exceed the medium company threshold",
            )
        )

    for label, value in {
        "smallCompanyRate": cit.small_company_rate,
        "mediumCompanyRate": cit.medium_company_rate,
        "largeCompanyRate": cit.large_company_rate,
        "minimumTaxRate": cit.minimum_tax_rate,
    }.items():
        if value < 0 or value > 1:
            errors.append(_format_scope(f"cit.{label}", "rate must be between 0 and 1"))

    return errors


def _validate_levies(levies: LevyConfig) -> list[str]:
    errors: list[str] = []

    for label, levy in {
        "police": levies.police,
        "naseni": levies.naseni,
        "nsitf": levies.nsitf,
        "itf": levies.itf,
        "tertiaryEducation": levies.tertiary_education,
    }.items():
        if levy.rate < 0 or levy.rate > 1:
            errors.append(
                _format_scope(f"levies.{label}.rate", "rate must be between 0 and 1")
            )

    industries = levies.naseni.industries
    if any(not industry for industry in industries):
        errors.append(
            _format_scope(
                "levies.naseni.industries",
                "industry identifiers must be non-empty strings",
            )
        )

    duplicates = [value for value, count in Counter(industries).items() if count > 1]
    if duplicates:
        errors.append(
            _format_scope(
                "levies.naseni.industries",
                f"duplicate industry identifiers detected: {sorted(duplicates)}",
            )
        )

    return errors


def validate_rate_table(table: RateTable) -> list[str]:
    """Return a list of structural issues for the provided rate table."""

    errors: list[str] = []

    errors.extend(_validate_pit_bands(table.pit_bands))
    errors.extend(_validate_cit(table.cit))
    errors.extend(_validate_levies(table.levies))

    return errors


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate the compiled-in base rate table and report issues."
    )
    parser.add_argument(
        "--path",
        help="Validate an alternative YAML rate table instead of the packaged one",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    from .rate_table import BASE_RATES_FILE, ConfigurationError, read_rate_table

    parser = _build_argument_parser()
    args = parser.parse_args(argv)

    try:
        table = read_rate_table(Path(args.path) if args.path else BASE_RATES_FILE)
    except (ConfigurationError, FileNotFoundError) as error:
        print(f"failed to load rate table: {error}")
        return 1

    issues = validate_rate_table(table)
    if issues:
        print(f"{len(issues)} issue(s) detected:")
        for issue in issues:
            print(f"  - {issue}")
        return 1

    print("OK")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
