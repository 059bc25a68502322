"""minerql schema models: criteria, statement state, operator enums."""
from minerql.schema.criteria import (
    CloseBracket,
    ComparisonCriterion,
    Criteria,
    Criterion,
    CriteriaNode,
    KeywordCriterion,
    MembershipCriterion,
    OpenBracket,
    RangeCriterion,
    make_criterion,
)
from minerql.schema.expressions import Connector, JoinType, Operator, OrderDirection
from minerql.schema.statement import (
    FromClause,
    GroupByItem,
    JoinSpec,
    LimitClause,
    OrderByItem,
    SelectItem,
    SetAssignment,
    StatementState,
    Verb,
)
from minerql.schema.values import BoundValue

__all__ = [
    "CloseBracket",
    "ComparisonCriterion",
    "Criteria",
    "Criterion",
    "CriteriaNode",
    "KeywordCriterion",
    "MembershipCriterion",
    "OpenBracket",
    "RangeCriterion",
    "make_criterion",
    "Connector",
    "JoinType",
    "Operator",
    "OrderDirection",
    "FromClause",
    "GroupByItem",
    "JoinSpec",
    "LimitClause",
    "OrderByItem",
    "SelectItem",
    "SetAssignment",
    "StatementState",
    "Verb",
    "BoundValue",
]
