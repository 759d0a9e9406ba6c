"""
Predicate expression tree for trail queries, plus one renderer per backend.

The query builder never concatenates user input into query text. It builds
a small tree of predicates in which every user-supplied value is a named
``Param``; a renderer then turns the tree into query text for a specific
document store:

- ``CosmosSqlRenderer``: Cosmos-style SQL over JSON documents
  (``SELECT * FROM c WHERE c.isActive = true AND ...``, ``@name`` parameters)
- ``PostgresJsonRenderer``: PostgreSQL over a table with a JSONB ``doc``
  column (``:name`` parameters, executed with SQLAlchemy ``text()``)

Example:
    >>> where = And((Compare(Field(("isActive",), "bool"), "=", Constant(True)),))
    >>> CosmosSqlRenderer().render(where).query_text
    'SELECT * FROM c WHERE c.isActive = true'
"""

import json
from dataclasses import dataclass
from typing import Any, Iterator, Union

FIELD_KINDS = ("number", "text", "bool", "array")
COMPARISON_OPERATORS = ("=", ">=", "<=", ">")
SORT_DIRECTIONS = ("ASC", "DESC")


@dataclass(frozen=True)
class Field:
    """A dotted path into a trail document, e.g. ``characteristics.distance``."""

    path: tuple[str, ...]
    kind: str = "number"

    def __post_init__(self):
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Unknown field kind: {self.kind}")

    @classmethod
    def of(cls, dotted: str, kind: str = "number") -> "Field":
        return cls(tuple(dotted.split(".")), kind)

    @property
    def dotted(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True)
class Param:
    """A named value bound at execution time."""

    name: str
    value: Any


@dataclass(frozen=True)
class Constant:
    """A fixed boolean or integer chosen by code, never by the caller."""

    value: bool | int


@dataclass(frozen=True)
class Compare:
    field: Field
    op: str
    operand: Param | Constant

    def __post_init__(self):
        if self.op not in COMPARISON_OPERATORS:
            raise ValueError(f"Unsupported comparison operator: {self.op}")


@dataclass(frozen=True)
class In:
    """Set membership against an array-valued parameter."""

    field: Field
    param: Param


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match."""

    field: Field
    param: Param


@dataclass(frozen=True)
class ArrayContains:
    field: Field
    param: Param


@dataclass(frozen=True)
class ArrayNotEmpty:
    field: Field


@dataclass(frozen=True)
class Or:
    items: tuple["Predicate", ...]


@dataclass(frozen=True)
class And:
    items: tuple["Predicate", ...]


Predicate = Union[Compare, In, Contains, ArrayContains, ArrayNotEmpty, Or, And]


@dataclass(frozen=True)
class OrderBy:
    field: Field
    direction: str = "DESC"

    def __post_init__(self):
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unsupported sort direction: {self.direction}")


@dataclass(frozen=True)
class OrdinalOrderBy:
    """
    Order a string enum field by explicit ranks instead of alphabetically.

    Values missing from ``ranks`` sort as ``default``.
    """

    field: Field
    ranks: tuple[tuple[str, int], ...]
    default: int
    direction: str = "DESC"

    def __post_init__(self):
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unsupported sort direction: {self.direction}")


Ordering = Union[OrderBy, OrdinalOrderBy]


@dataclass(frozen=True)
class Page:
    offset: int
    limit: int


@dataclass(frozen=True)
class QueryParameter:
    name: str
    value: Any


@dataclass(frozen=True)
class QueryDescriptor:
    """Rendered query text with its ordered parameter list."""

    query_text: str
    parameters: tuple[QueryParameter, ...] = ()

    def to_cosmos(self) -> dict[str, Any]:
        """Return the query dict shape accepted by the Cosmos DB SDK."""
        return {
            "query": self.query_text,
            "parameters": [{"name": p.name, "value": p.value} for p in self.parameters],
        }

    def params(self) -> dict[str, Any]:
        """Return parameters as a mapping without any name prefix."""
        return {p.name.lstrip("@:"): p.value for p in self.parameters}


def iter_params(predicate: Predicate) -> Iterator[Param]:
    """Yield every parameter in the tree, depth first, in insertion order."""
    if isinstance(predicate, (And, Or)):
        for item in predicate.items:
            yield from iter_params(item)
    elif isinstance(predicate, Compare):
        if isinstance(predicate.operand, Param):
            yield predicate.operand
    elif isinstance(predicate, (In, Contains, ArrayContains)):
        yield predicate.param


def collect_params(predicate: Predicate) -> list[Param]:
    """
    Return the distinct parameters of a predicate tree in first-use order.

    A parameter may be referenced more than once (the text search term is
    shared by four fields) but a name may never be bound to two values.

    Raises:
        ValueError: If two different values share a parameter name
    """
    seen: dict[str, Param] = {}
    for param in iter_params(predicate):
        existing = seen.get(param.name)
        if existing is None:
            seen[param.name] = param
        elif existing.value != param.value:
            raise ValueError(f"Duplicate parameter name: {param.name}")
    return list(seen.values())


class QueryRenderer:
    """Shared traversal for backend renderers; subclasses supply the dialect."""

    param_prefix = "@"

    def render(
        self,
        where: And,
        order: Ordering | None = None,
        page: Page | None = None,
    ) -> QueryDescriptor:
        """Render the paginated data query."""
        parts = [self.select_clause(), "WHERE", self.predicate(where)]
        if order is not None:
            parts.append(self.order_clause(order))
        if page is not None:
            parts.append(self.page_clause(page))
        return QueryDescriptor(" ".join(parts), self.parameters(where))

    def render_count(self, where: And) -> QueryDescriptor:
        """Render a count over the same WHERE clause, without order or pagination."""
        parts = [self.count_clause(), "WHERE", self.predicate(where)]
        return QueryDescriptor(" ".join(parts), self.parameters(where))

    def parameters(self, where: And) -> tuple[QueryParameter, ...]:
        return tuple(
            QueryParameter(f"{self.param_prefix}{p.name}", self.encode_value(p, where))
            for p in collect_params(where)
        )

    def encode_value(self, param: Param, where: And) -> Any:
        return param.value

    def placeholder(self, param: Param) -> str:
        return f"{self.param_prefix}{param.name}"

    def operand(self, operand: Param | Constant) -> str:
        if isinstance(operand, Param):
            return self.placeholder(operand)
        if isinstance(operand.value, bool):
            return "true" if operand.value else "false"
        return str(int(operand.value))

    def predicate(self, predicate: Predicate, nested: bool = False) -> str:
        if isinstance(predicate, And):
            text = " AND ".join(self.predicate(item, nested=True) for item in predicate.items)
            return f"({text})" if nested and len(predicate.items) > 1 else text
        if isinstance(predicate, Or):
            text = " OR ".join(self.predicate(item, nested=True) for item in predicate.items)
            return f"({text})" if len(predicate.items) > 1 else text
        if isinstance(predicate, Compare):
            return self.compare(predicate)
        if isinstance(predicate, In):
            return self.in_(predicate)
        if isinstance(predicate, Contains):
            return self.contains(predicate)
        if isinstance(predicate, ArrayContains):
            return self.array_contains(predicate)
        if isinstance(predicate, ArrayNotEmpty):
            return self.array_not_empty(predicate)
        raise TypeError(f"Cannot render predicate of type {type(predicate).__name__}")

    def order_clause(self, order: Ordering) -> str:
        if isinstance(order, OrdinalOrderBy):
            whens = " ".join(
                f"WHEN {self.quote(value)} THEN {int(rank)}" for value, rank in order.ranks
            )
            expression = (
                f"(CASE {self.field(order.field)} {whens} ELSE {int(order.default)} END)"
            )
            return f"ORDER BY {expression} {order.direction}"
        return f"ORDER BY {self.field(order.field)} {order.direction}"

    @staticmethod
    def quote(value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def select_clause(self) -> str:
        raise NotImplementedError

    def count_clause(self) -> str:
        raise NotImplementedError

    def page_clause(self, page: Page) -> str:
        raise NotImplementedError

    def field(self, field: Field) -> str:
        raise NotImplementedError

    def compare(self, predicate: Compare) -> str:
        return f"{self.field(predicate.field)} {predicate.op} {self.operand(predicate.operand)}"

    def in_(self, predicate: In) -> str:
        raise NotImplementedError

    def contains(self, predicate: Contains) -> str:
        raise NotImplementedError

    def array_contains(self, predicate: ArrayContains) -> str:
        raise NotImplementedError

    def array_not_empty(self, predicate: ArrayNotEmpty) -> str:
        raise NotImplementedError


class CosmosSqlRenderer(QueryRenderer):
    """Render for a Cosmos-style SQL dialect over JSON documents aliased ``c``."""

    param_prefix = "@"

    def select_clause(self) -> str:
        return "SELECT * FROM c"

    def count_clause(self) -> str:
        return "SELECT VALUE COUNT(1) FROM c"

    def page_clause(self, page: Page) -> str:
        return f"OFFSET {int(page.offset)} LIMIT {int(page.limit)}"

    def field(self, field: Field) -> str:
        return f"c.{field.dotted}"

    def in_(self, predicate: In) -> str:
        return f"{self.field(predicate.field)} IN ({self.placeholder(predicate.param)})"

    def contains(self, predicate: Contains) -> str:
        return (
            f"CONTAINS(LOWER({self.field(predicate.field)}), "
            f"LOWER({self.placeholder(predicate.param)}))"
        )

    def array_contains(self, predicate: ArrayContains) -> str:
        return (
            f"ARRAY_CONTAINS({self.field(predicate.field)}, "
            f"{self.placeholder(predicate.param)})"
        )

    def array_not_empty(self, predicate: ArrayNotEmpty) -> str:
        return f"ARRAY_LENGTH({self.field(predicate.field)}) > 0"


class PostgresJsonRenderer(QueryRenderer):
    """
    Render for PostgreSQL, where each document lives in a JSONB ``doc`` column.

    Parameters use the ``:name`` style understood by SQLAlchemy ``text()``.
    Array membership values are sent as a one-element JSON array so the
    ``@>`` containment operator can compare them.
    """

    param_prefix = ":"

    def __init__(self, table: str = "trails"):
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self.table = table

    def select_clause(self) -> str:
        return f"SELECT doc FROM {self.table}"

    def count_clause(self) -> str:
        return f"SELECT COUNT(*) FROM {self.table}"

    def page_clause(self, page: Page) -> str:
        return f"LIMIT {int(page.limit)} OFFSET {int(page.offset)}"

    def parameters(self, where: And) -> tuple[QueryParameter, ...]:
        # SQLAlchemy binds by bare name
        return tuple(
            QueryParameter(p.name, self.encode_value(p, where)) for p in collect_params(where)
        )

    def encode_value(self, param: Param, where: And) -> Any:
        if param.name in self._array_param_names(where):
            return json.dumps([param.value])
        if isinstance(param.value, (set, frozenset, tuple)):
            return list(param.value)
        return param.value

    def _array_param_names(self, predicate: Predicate) -> set[str]:
        if isinstance(predicate, (And, Or)):
            names: set[str] = set()
            for item in predicate.items:
                names |= self._array_param_names(item)
            return names
        if isinstance(predicate, ArrayContains):
            return {predicate.param.name}
        return set()

    def _path(self, field: Field) -> str:
        return "'{" + ",".join(field.path) + "}'"

    def field(self, field: Field) -> str:
        if field.kind == "array":
            return f"doc #> {self._path(field)}"
        text = f"doc #>> {self._path(field)}"
        if field.kind == "number":
            return f"CAST({text} AS double precision)"
        if field.kind == "bool":
            return f"CAST({text} AS boolean)"
        return text

    def _text(self, field: Field) -> str:
        return f"doc #>> {self._path(field)}"

    def in_(self, predicate: In) -> str:
        return f"{self._text(predicate.field)} = ANY({self.placeholder(predicate.param)})"

    def contains(self, predicate: Contains) -> str:
        return (
            f"strpos(lower({self._text(predicate.field)}), "
            f"lower({self.placeholder(predicate.param)})) > 0"
        )

    def array_contains(self, predicate: ArrayContains) -> str:
        return (
            f"doc #> {self._path(predicate.field)} @> "
            f"CAST({self.placeholder(predicate.param)} AS jsonb)"
        )

    def array_not_empty(self, predicate: ArrayNotEmpty) -> str:
        return (
            f"jsonb_array_length(COALESCE(doc #> {self._path(predicate.field)}, "
            f"CAST('[]' AS jsonb))) > 0"
        )
