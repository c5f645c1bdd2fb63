"""
Parser for the one cross-source query shape the federation layer executes:

    SELECT <cols> FROM rs.<schema>.<table> [AS] [alias]
      [INNER | LEFT [OUTER] | RIGHT [OUTER] | FULL [OUTER]] JOIN
      ss.([<schema>] | <schema>).<table> [AS] [alias]
      ON <alias>.<col> = <alias>.<col>
      [WHERE <cond> (AND <cond>)*] [ORDER BY <items>] [LIMIT <n>] [;]

Anything outside that grammar is rejected rather than partially understood.
The select list, WHERE and ORDER BY text are kept verbatim, sliced from the
whitespace-normalised input by token spans.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from crossql.packages.common.crossql_common.errors.federation_errors import QueryParsingError
from crossql.packages.federation.models.plans import (
    JoinPredicate,
    JoinSpec,
    JoinType,
    QuerySource,
    SourcePrefix,
    TableRef,
)
from crossql.packages.federation.planner.predicates import split_where_clause

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<string>'(?:[^']|'')*')
  | (?P<bracket>\[[^\]]*\])
  | (?P<quoted>"[^"]*")
  | (?P<ident>\d*[A-Za-z_][A-Za-z0-9_$#@]*)
  | (?P<number>\d+(?:\.\d+)?)
  | (?P<op><>|!=|<=|>=|\|\||[=<>*,().;+\-/%])
  | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)

# Words that end an optional table alias.
_CLAUSE_WORDS = frozenset(
    {"JOIN", "INNER", "LEFT", "RIGHT", "FULL", "OUTER", "CROSS", "ON", "WHERE", "ORDER", "LIMIT", "GROUP"}
)


@dataclass(slots=True, frozen=True)
class Token:
    kind: str
    text: str
    start: int
    end: int

    @property
    def upper(self) -> str:
        return self.text.upper()

    def is_word(self, *words: str) -> bool:
        return self.kind == "ident" and self.upper in words


def normalize_whitespace(sql: str) -> str:
    return re.sub(r"\s+", " ", sql).strip()


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    for match in _TOKEN_RE.finditer(text):
        kind = match.lastgroup or "other"
        if kind == "ws":
            continue
        tokens.append(Token(kind=kind, text=match.group(), start=match.start(), end=match.end()))
    return tokens


class _JoinParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    # -- token helpers -----------------------------------------------------

    def peek(self, offset: int = 0) -> Optional[Token]:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise QueryParsingError(detail="unexpected end of query")
        self.pos += 1
        return token

    def accept_word(self, *words: str) -> Optional[Token]:
        token = self.peek()
        if token is not None and token.is_word(*words):
            self.pos += 1
            return token
        return None

    def expect_word(self, word: str) -> Token:
        token = self.accept_word(word)
        if token is None:
            raise QueryParsingError(detail=f"expected {word} {self._found()}")
        return token

    def accept_op(self, op: str) -> Optional[Token]:
        token = self.peek()
        if token is not None and token.kind == "op" and token.text == op:
            self.pos += 1
            return token
        return None

    def expect_op(self, op: str) -> Token:
        token = self.accept_op(op)
        if token is None:
            raise QueryParsingError(detail=f"expected '{op}' {self._found()}")
        return token

    def expect_ident(self, what: str) -> Token:
        token = self.peek()
        if token is None or token.kind != "ident":
            raise QueryParsingError(detail=f"expected {what} {self._found()}")
        self.pos += 1
        return token

    def _found(self) -> str:
        token = self.peek()
        return "at end of query" if token is None else f"but found '{token.text}'"

    def scan_to(self, stop) -> int:
        """Advance past tokens until `stop(self)` is true at paren depth 0; return the stop offset."""
        depth = 0
        while True:
            token = self.peek()
            if token is None:
                return len(self.text)
            if depth == 0 and stop(self):
                return token.start
            if token.kind == "op" and token.text == "(":
                depth += 1
            elif token.kind == "op" and token.text == ")":
                depth = max(depth - 1, 0)
            self.pos += 1

    # -- grammar -------------------------------------------------------------

    def parse(self) -> JoinSpec:
        select_token = self.expect_word("SELECT")
        columns_end = self.scan_to(lambda p: p.peek().is_word("FROM"))
        select_columns = self.text[select_token.end:columns_end].strip()
        if not select_columns:
            raise QueryParsingError(detail="empty select list")
        self.expect_word("FROM")

        left = self.parse_table(SourcePrefix.WAREHOUSE)
        join_type = self.parse_join_type()
        right = self.parse_table(SourcePrefix.TRANSACTIONAL)

        if left.alias.lower() == right.alias.lower():
            raise QueryParsingError(detail=f"both tables use the alias '{left.alias}'")

        self.expect_word("ON")
        predicate = self.parse_join_predicate(left.alias, right.alias)

        where_clause = None
        if self.accept_word("WHERE"):
            start = self.tokens[self.pos - 1].end
            end = self.scan_to(_at_where_terminator)
            where_clause = self.text[start:end].strip() or None
            if where_clause is None:
                raise QueryParsingError(detail="empty WHERE clause")

        order_by = None
        if self.peek() is not None and self.peek().is_word("ORDER"):
            self.advance()
            by_token = self.expect_word("BY")
            end = self.scan_to(_at_order_terminator)
            order_by = self.text[by_token.end:end].strip() or None

        limit = None
        if self.accept_word("LIMIT"):
            token = self.advance()
            if token.kind != "number" or not token.text.isdigit():
                raise QueryParsingError(detail=f"LIMIT expects a whole number but found '{token.text}'")
            limit = int(token.text)

        self.accept_op(";")
        if self.peek() is not None:
            raise QueryParsingError(detail=f"unexpected '{self.peek().text}'")

        return JoinSpec(
            left=left,
            right=right,
            join_type=join_type,
            predicate=predicate,
            select_columns=select_columns,
            where_clause=where_clause,
            order_by=order_by,
            limit=limit,
        )

    def parse_table(self, prefix: SourcePrefix) -> TableRef:
        side = "warehouse" if prefix == SourcePrefix.WAREHOUSE else "transactional"
        prefix_token = self.peek()
        if prefix_token is None or not prefix_token.is_word(prefix.value.upper()):
            raise QueryParsingError(detail=f"expected {side} table {prefix.value}.<schema>.<table> {self._found()}")
        self.advance()
        self.expect_op(".")

        schema_token = self.peek()
        if prefix == SourcePrefix.TRANSACTIONAL and schema_token is not None and schema_token.kind == "bracket":
            self.advance()
            schema = schema_token.text[1:-1]
        else:
            schema = self.expect_ident(f"{side} schema name").text
        self.expect_op(".")
        table = self.expect_ident(f"{side} table name").text

        alias = table
        if self.accept_word("AS"):
            alias = self.expect_ident("table alias").text
        else:
            token = self.peek()
            if token is not None and token.kind == "ident" and token.upper not in _CLAUSE_WORDS:
                alias = self.advance().text

        source = QuerySource.WAREHOUSE if prefix == SourcePrefix.WAREHOUSE else QuerySource.TRANSACTIONAL
        return TableRef(source=source, schema=schema, table=table, alias=alias)

    def parse_join_type(self) -> JoinType:
        join_type = JoinType.INNER
        keyword = self.accept_word("INNER", "LEFT", "RIGHT", "FULL")
        if keyword is not None:
            join_type = JoinType(keyword.upper)
            if join_type != JoinType.INNER:
                self.accept_word("OUTER")
        self.expect_word("JOIN")
        return join_type

    def parse_column_ref(self) -> tuple[str, str]:
        alias = self.expect_ident("alias-qualified column").text
        self.expect_op(".")
        column = self.expect_ident("column name").text
        return alias, column

    def parse_join_predicate(self, left_alias: str, right_alias: str) -> JoinPredicate:
        first_alias, first_column = self.parse_column_ref()
        self.expect_op("=")
        second_alias, second_column = self.parse_column_ref()

        aliases = (first_alias.lower(), second_alias.lower())
        if aliases == (left_alias.lower(), right_alias.lower()):
            return JoinPredicate(left_column=first_column, right_column=second_column)
        if aliases == (right_alias.lower(), left_alias.lower()):
            return JoinPredicate(left_column=second_column, right_column=first_column)
        raise QueryParsingError(
            detail=f"ON must compare a column of '{left_alias}' with a column of '{right_alias}'"
        )


def _at_where_terminator(parser: _JoinParser) -> bool:
    token = parser.peek()
    if token.is_word("LIMIT"):
        return True
    if token.is_word("ORDER"):
        following = parser.peek(1)
        return following is not None and following.is_word("BY")
    return token.kind == "op" and token.text == ";" and parser.peek(1) is None


def _at_order_terminator(parser: _JoinParser) -> bool:
    token = parser.peek()
    if token.is_word("LIMIT"):
        return True
    return token.kind == "op" and token.text == ";" and parser.peek(1) is None


def parse_cross_source_join(sql: str, *, strict_predicates: bool = False) -> JoinSpec:
    """Parse a cross-source join and split its WHERE clause between the two sides."""
    spec = _JoinParser(normalize_whitespace(sql)).parse()

    if spec.order_by:
        logger.info("ORDER BY is not applied to cross-source results: %s", spec.order_by)

    split = split_where_clause(
        spec.where_clause,
        spec.left.alias,
        spec.right.alias,
        strict=strict_predicates,
    )
    spec.left_conjuncts = split.left
    spec.right_conjuncts = split.right
    return spec
