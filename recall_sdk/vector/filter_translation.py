# recall_sdk/vector/filter_translation.py
# SPDX-License-Identifier: Apache-2.0
"""
Metadata filter translation: generic predicate map -> Elasticsearch bool query.

Input shape
-----------
A flat mapping from metadata field name to one of:

    {"role": "user"}                       implicit equality
    {"thread": ["t-1", "t-2"]}             implicit membership
    {"role": {"$ne": "system"}}            operator mapping
    {"turn": {"$gte": 3, "$lt": 10}}       several operators, ANDed

Operator keys are accepted in Mongo style or spelled out:

    $eq  / equals            $gt  / greaterThan
    $in  / memberOf          $gte / greaterOrEqual
    $ne  / notEquals         $lt  / lessThan
                             $lte / lessOrEqual

All leaves are ANDed; there is no OR and no negation of composites.

Output
------
``{"bool": {"must": [...]}}`` or ``None`` when nothing survives translation
("no filter", not "match nothing").

Equality, membership and negation on string operands target the
``metadata.<field>.keyword`` sub-field so text analysis cannot change their
meaning; numbers and booleans, and all range comparisons, target
``metadata.<field>`` directly.

Leaves that cannot be translated are reported as `UnsupportedFilterOperator`
warnings and skipped. A bad leaf never takes down the query path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from recall_sdk.vector.vector_base import (
    METADATA_FIELD,
    BadRequest,
    LoggingReporter,
    Reporter,
    UnsupportedFilterOperator,
)

logger = logging.getLogger(__name__)

KEYWORD_SUFFIX = "keyword"


class FilterOp(str, Enum):
    """One tag per supported predicate operator."""

    EQUALS = "$eq"
    MEMBER_OF = "$in"
    NOT_EQUALS = "$ne"
    GREATER_THAN = "$gt"
    GREATER_OR_EQUAL = "$gte"
    LESS_THAN = "$lt"
    LESS_OR_EQUAL = "$lte"


OPERATOR_ALIASES: Dict[str, FilterOp] = {
    "$eq": FilterOp.EQUALS,
    "equals": FilterOp.EQUALS,
    "$in": FilterOp.MEMBER_OF,
    "memberOf": FilterOp.MEMBER_OF,
    "$ne": FilterOp.NOT_EQUALS,
    "notEquals": FilterOp.NOT_EQUALS,
    "$gt": FilterOp.GREATER_THAN,
    "greaterThan": FilterOp.GREATER_THAN,
    "$gte": FilterOp.GREATER_OR_EQUAL,
    "greaterOrEqual": FilterOp.GREATER_OR_EQUAL,
    "$lt": FilterOp.LESS_THAN,
    "lessThan": FilterOp.LESS_THAN,
    "$lte": FilterOp.LESS_OR_EQUAL,
    "lessOrEqual": FilterOp.LESS_OR_EQUAL,
}

_RANGE_KEYS: Dict[FilterOp, str] = {
    FilterOp.GREATER_THAN: "gt",
    FilterOp.GREATER_OR_EQUAL: "gte",
    FilterOp.LESS_THAN: "lt",
    FilterOp.LESS_OR_EQUAL: "lte",
}


@dataclass(frozen=True)
class Predicate:
    """A single validated filter leaf."""

    field: str
    op: FilterOp
    value: Any

    @property
    def is_range(self) -> bool:
        return self.op in _RANGE_KEYS


def _is_composite(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple, set))


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


class FilterTranslator:
    """
    Validates generic filters into `Predicate` leaves and compiles them to
    Elasticsearch query DSL.
    """

    def __init__(
        self,
        *,
        reporter: Optional[Reporter] = None,
        metadata_field: str = METADATA_FIELD,
    ) -> None:
        self._reporter: Reporter = reporter or LoggingReporter(logger)
        self._metadata_field = metadata_field

    # ------------------------------------------------------------------ #
    # Boundary validation
    # ------------------------------------------------------------------ #

    def parse(self, raw: Optional[Mapping[str, Any]]) -> List[Predicate]:
        """
        Validate a generic filter into predicate leaves.

        Raises:
            BadRequest: if `raw` is not a mapping. Everything else is skipped
                with a warning.
        """
        if raw is None:
            return []
        if not isinstance(raw, Mapping):
            raise BadRequest(
                "filter must be a mapping (dict) when provided",
                details={"type": type(raw).__name__},
            )

        predicates: List[Predicate] = []
        for key, value in raw.items():
            if not isinstance(key, str) or not key.strip():
                self._skip(UnsupportedFilterOperator(
                    f"filter field name must be a non-empty string, got {key!r}",
                ))
                continue
            if value is None:
                continue

            if isinstance(value, Mapping):
                predicates.extend(self._parse_operators(key, value))
            elif _is_list(value):
                predicates.append(Predicate(key, FilterOp.MEMBER_OF, list(value)))
            elif _is_composite(value):
                self._skip(UnsupportedFilterOperator(
                    f"unsupported filter value for field {key!r}",
                    details={"field": key, "type": type(value).__name__},
                ))
            else:
                predicates.append(Predicate(key, FilterOp.EQUALS, value))
        return predicates

    def _parse_operators(self, key: str, operators: Mapping[str, Any]) -> List[Predicate]:
        if not operators:
            self._skip(UnsupportedFilterOperator(
                f"empty operator mapping for field {key!r}",
                details={"field": key},
            ))
            return []

        leaves: List[Predicate] = []
        for op_key, operand in operators.items():
            op = OPERATOR_ALIASES.get(op_key) if isinstance(op_key, str) else None
            if op is None:
                self._skip(UnsupportedFilterOperator(
                    f"unsupported filter operator {op_key!r} for field {key!r}",
                    details={"field": key, "operator": str(op_key)},
                ))
                continue

            if op is FilterOp.MEMBER_OF:
                if not _is_list(operand):
                    self._skip(UnsupportedFilterOperator(
                        f"{op_key!r} on field {key!r} requires a list operand",
                        details={"field": key, "operator": op_key},
                    ))
                    continue
                leaves.append(Predicate(key, op, list(operand)))
                continue

            if operand is None or _is_composite(operand):
                self._skip(UnsupportedFilterOperator(
                    f"{op_key!r} on field {key!r} requires a scalar operand",
                    details={"field": key, "operator": op_key},
                ))
                continue
            leaves.append(Predicate(key, op, operand))
        return leaves

    def _skip(self, err: UnsupportedFilterOperator) -> None:
        self._reporter.warning(f"Skipping filter leaf: {err.message}", code=err.code, **err.details)

    # ------------------------------------------------------------------ #
    # Compilation
    # ------------------------------------------------------------------ #

    def _raw_path(self, field_name: str) -> str:
        return f"{self._metadata_field}.{field_name}"

    def _exact_path(self, field_name: str, value: Any) -> str:
        values = value if _is_list(value) else [value]
        if values and all(isinstance(v, str) for v in values):
            return f"{self._metadata_field}.{field_name}.{KEYWORD_SUFFIX}"
        return self._raw_path(field_name)

    def _compile_membership(self, field_name: str, values: List[Any]) -> Dict[str, Any]:
        strings = [v for v in values if isinstance(v, str)]
        others = [v for v in values if not isinstance(v, str)]
        if not strings or not others:
            return {"terms": {self._exact_path(field_name, values): values}}
        # Mixed operands: strings match the keyword sub-field, the rest the raw field.
        return {
            "bool": {
                "should": [
                    {"terms": {self._exact_path(field_name, strings): strings}},
                    {"terms": {self._raw_path(field_name): others}},
                ],
                "minimum_should_match": 1,
            }
        }

    def compile_predicate(self, predicate: Predicate) -> Dict[str, Any]:
        if predicate.is_range:
            return {
                "range": {
                    self._raw_path(predicate.field): {
                        _RANGE_KEYS[predicate.op]: predicate.value,
                    }
                }
            }

        if predicate.op is FilterOp.MEMBER_OF:
            return self._compile_membership(predicate.field, list(predicate.value))

        path = self._exact_path(predicate.field, predicate.value)
        if predicate.op is FilterOp.NOT_EQUALS:
            return {"bool": {"must_not": {"term": {path: predicate.value}}}}
        return {"term": {path: predicate.value}}

    def compile(self, predicates: List[Predicate]) -> Optional[Dict[str, Any]]:
        must = [self.compile_predicate(p) for p in predicates]
        if not must:
            return None
        return {"bool": {"must": must}}

    def translate(self, raw: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        """Validate and compile in one step."""
        return self.compile(self.parse(raw))


__all__ = [
    "FilterOp",
    "OPERATOR_ALIASES",
    "Predicate",
    "FilterTranslator",
]
