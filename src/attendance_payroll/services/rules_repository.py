"""Persistence of the attendance threshold configuration."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.attendance.compounding import validate_compounding_rules
from attendance_payroll.attendance.types import CompoundingRule, ThresholdRuleSet
from attendance_payroll.models import AttendanceRuleSetRecord
from attendance_payroll.models.rules import RULE_SET_ID

logger = logging.getLogger(__name__)


def rules_from_record(record: AttendanceRuleSetRecord) -> ThresholdRuleSet:
    """Build a rule set from the stored row; bad compounding entries are dropped."""
    compounding = []
    for entry in record.compounding_rules or []:
        try:
            compounding.append(
                CompoundingRule(
                    in_status=entry["in_status"],
                    out_status=entry["out_status"],
                    result_status=entry["result_status"],
                )
            )
        except (KeyError, TypeError, AttributeError):
            logger.warning("Ignoring malformed compounding rule %r", entry)
    values = {name: getattr(record, name) for name in ThresholdRuleSet.THRESHOLD_FIELDS}
    return ThresholdRuleSet(**values, compounding_rules=tuple(compounding))


class RuleSetRepository:
    """Loads and saves the single threshold configuration row.

    Reads tolerate a missing row (defaults apply) and duplicate compounding
    pairs (first match wins at evaluation). Saves reject duplicates.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get(self) -> AttendanceRuleSetRecord | None:
        result = await self.session.execute(
            select(AttendanceRuleSetRecord)
            .where(AttendanceRuleSetRecord.id == RULE_SET_ID)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def load(self) -> ThresholdRuleSet:
        record = await self._get()
        if record is None:
            return ThresholdRuleSet()
        return rules_from_record(record)

    async def save(self, rules: ThresholdRuleSet) -> ThresholdRuleSet:
        """Validate and store the rule set (insert or update)."""
        validate_compounding_rules(rules.compounding_rules)

        record = await self._get()
        if record is None:
            record = AttendanceRuleSetRecord(id=RULE_SET_ID)
            self.session.add(record)
        for name in ThresholdRuleSet.THRESHOLD_FIELDS:
            setattr(record, name, getattr(rules, name))
        record.compounding_rules = [rule.to_dict() for rule in rules.compounding_rules]
        await self.session.flush()

        logger.info(
            "Saved attendance rule set with %d compounding rule(s)", len(rules.compounding_rules)
        )
        return rules
