from crossql.packages.federation.planner.classifier import classify, default_source_for_unprefixed
from crossql.packages.federation.planner.parser import parse_cross_source_join
from crossql.packages.federation.planner.predicates import SplitPredicates, split_where_clause
from crossql.packages.federation.planner.rewriter import rewrite, rewrite_for_transactional, rewrite_for_warehouse

__all__ = [
    "classify",
    "default_source_for_unprefixed",
    "parse_cross_source_join",
    "SplitPredicates",
    "split_where_clause",
    "rewrite",
    "rewrite_for_transactional",
    "rewrite_for_warehouse",
]
