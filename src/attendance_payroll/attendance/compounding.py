"""Compounding-rule lookup for (IN status, OUT status) pairs."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from attendance_payroll.attendance.types import CompoundingRule, StatusCode, status_value


class DuplicateCompoundingRuleError(Exception):
    """Raised when a rule set maps the same (IN, OUT) pair more than once."""

    def __init__(self, pairs: list[tuple[str, str]]):
        self.pairs = pairs
        formatted = ", ".join(f"{i}/{o}" for i, o in pairs)
        super().__init__(f"Duplicate compounding rules for pair(s): {formatted}")


def find_duplicate_pairs(rules: Iterable[CompoundingRule]) -> list[tuple[str, str]]:
    """Return every (IN, OUT) pair matched by more than one rule, in first-seen order."""
    seen: set[tuple[str, str]] = set()
    duplicates: list[tuple[str, str]] = []
    for rule in rules:
        if rule.pair in seen and rule.pair not in duplicates:
            duplicates.append(rule.pair)
        seen.add(rule.pair)
    return duplicates


def validate_compounding_rules(rules: Iterable[CompoundingRule]) -> None:
    """Reject rule sets with ambiguous pairs (used on explicit save)."""
    duplicates = find_duplicate_pairs(rules)
    if duplicates:
        raise DuplicateCompoundingRuleError(duplicates)


class CompoundingResolver:
    """Exact-match lookup over the configured rule list.

    The first matching rule wins. Duplicate pairs are not detected here;
    they are rejected when the rule set is saved.
    """

    def __init__(self, rules: Sequence[CompoundingRule]):
        self.rules = tuple(rules)

    def resolve(self, in_status: str | StatusCode, out_status: str | StatusCode) -> str | None:
        """Return the overriding status for the pair, or None if no rule matches."""
        key = (status_value(in_status), status_value(out_status))
        for rule in self.rules:
            if rule.pair == key:
                return rule.result_status
        return None
