"""Auto-approval rules for reported absences.

Rules live in a table rather than per-type branches so tenants can override them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from ..core.enums import AbsenceType


@dataclass(frozen=True)
class AutoApprovalRule:
    name: str
    absence_type: AbsenceType
    auto_approve: bool = False
    requires_documentation: bool = False
    single_day_only: bool = False
    full_day_only: bool = False

    def matches(self, *, absence_type: AbsenceType, is_single_day: bool, is_full_day: bool) -> bool:
        if absence_type != self.absence_type:
            return False
        if self.single_day_only and not is_single_day:
            return False
        if self.full_day_only and not is_full_day:
            return False
        return True


@dataclass(frozen=True)
class RuleDecision:
    auto_approve: bool
    requires_documentation: bool
    rule_name: Optional[str] = None


class AutoApprovalRuleTable:
    """Ordered rules; the first match for a type decides."""

    def __init__(self, rules: Iterable[AutoApprovalRule]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[AutoApprovalRule, ...]:
        return self._rules

    def evaluate(self, *, absence_type: AbsenceType, is_single_day: bool, is_full_day: bool) -> RuleDecision:
        requires_documentation = False
        for rule in self._rules:
            if rule.absence_type != absence_type:
                continue
            requires_documentation = requires_documentation or rule.requires_documentation
            if rule.matches(absence_type=absence_type, is_single_day=is_single_day, is_full_day=is_full_day):
                return RuleDecision(
                    auto_approve=rule.auto_approve,
                    requires_documentation=requires_documentation,
                    rule_name=rule.name if rule.auto_approve else None,
                )
        return RuleDecision(auto_approve=False, requires_documentation=requires_documentation)

    def with_overrides(self, overrides: Iterable[AutoApprovalRule]) -> "AutoApprovalRuleTable":
        """Tenant rules take precedence over the ones in this table."""
        return AutoApprovalRuleTable(tuple(overrides) + self._rules)


DEFAULT_RULES = AutoApprovalRuleTable(
    [
        AutoApprovalRule(name="holiday_auto_approval", absence_type=AbsenceType.HOLIDAY, auto_approve=True),
        AutoApprovalRule(
            name="single_sick_day_auto_approval",
            absence_type=AbsenceType.SICK,
            auto_approve=True,
            single_day_only=True,
            full_day_only=True,
        ),
        AutoApprovalRule(
            name="bereavement_documentation",
            absence_type=AbsenceType.BEREAVEMENT,
            requires_documentation=True,
        ),
        AutoApprovalRule(
            name="jury_duty_documentation",
            absence_type=AbsenceType.JURY_DUTY,
            requires_documentation=True,
        ),
    ]
)


def rules_for_tenant(
    tenant_id: int,
    *,
    default: AutoApprovalRuleTable = DEFAULT_RULES,
    tenant_overrides: Optional[Mapping[int, Iterable[AutoApprovalRule]]] = None,
) -> AutoApprovalRuleTable:
    overrides = (tenant_overrides or {}).get(tenant_id)
    return default.with_overrides(overrides) if overrides else default
