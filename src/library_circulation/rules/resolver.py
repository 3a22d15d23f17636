"""
Loan rule resolution.

Picks the loan policy for an item from the rules defined for a member
type. First match wins:

1. collection type and material designation both match
2. collection type matches, rule has no material designation
3. material designation matches, rule has no collection type
4. the member type's baseline policy (rule id 0)

Within a level the lowest rule id wins. Resolution never fails.
"""

import logging
from collections.abc import Iterable

from ..models.member import LoanPolicy, LoanRule

logger = logging.getLogger(__name__)


class LoanRuleResolver:
    """Resolves loan policies for one member type."""

    def __init__(self, rules: Iterable[LoanRule], baseline: LoanPolicy):
        self.rules = sorted(rules, key=lambda rule: rule.rule_id)
        self.baseline = baseline

    def _first(self, coll_type_id: int | None, gmd_id: int | None) -> LoanRule | None:
        for rule in self.rules:
            if rule.coll_type_id == coll_type_id and rule.gmd_id == gmd_id:
                return rule
        return None

    def resolve(self, coll_type_id: int | None = None, gmd_id: int | None = None) -> LoanPolicy:
        """
        Resolve the policy for an item's collection type and material designation.

        Returns:
            The matching rule's policy, or the baseline with ``rule_id == 0``
        """
        candidates: list[tuple[int | None, int | None]] = []
        if coll_type_id is not None and gmd_id is not None:
            candidates.append((coll_type_id, gmd_id))
        if coll_type_id is not None:
            candidates.append((coll_type_id, None))
        if gmd_id is not None:
            candidates.append((None, gmd_id))

        for coll, gmd in candidates:
            rule = self._first(coll, gmd)
            if rule is not None:
                logger.debug(
                    "Resolved loan rule %s for coll_type=%s gmd=%s",
                    rule.rule_id,
                    coll_type_id,
                    gmd_id,
                )
                return rule.to_policy()

        logger.debug("No loan rule for coll_type=%s gmd=%s, using baseline", coll_type_id, gmd_id)
        return self.baseline.model_copy(update={"rule_id": 0})
