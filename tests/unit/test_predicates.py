"""
Unit tests for the predicate tree and its renderers.
"""

import pytest

from api.predicates import (
    And,
    ArrayContains,
    ArrayNotEmpty,
    Compare,
    Constant,
    Contains,
    CosmosSqlRenderer,
    Field,
    In,
    Or,
    OrderBy,
    OrdinalOrderBy,
    Page,
    Param,
    PostgresJsonRenderer,
    QueryDescriptor,
    QueryParameter,
    collect_params,
)
from api.query_builder import TrailQueryBuilder

ACTIVE = Compare(Field.of("isActive", "bool"), "=", Constant(True))


class TestTreeNodes:
    """Tests for node construction and validation."""

    def test_field_of_splits_dotted_path(self):
        field = Field.of("characteristics.duration.min")

        assert field.path == ("characteristics", "duration", "min")
        assert field.dotted == "characteristics.duration.min"
        assert field.kind == "number"

    def test_unknown_field_kind_raises(self):
        with pytest.raises(ValueError, match="Unknown field kind"):
            Field.of("name", "blob")

    def test_unknown_operator_raises(self):
        with pytest.raises(ValueError, match="Unsupported comparison operator"):
            Compare(Field.of("ratings.average"), "!=", Param("minRating", 3))

    def test_unknown_direction_raises(self):
        with pytest.raises(ValueError, match="Unsupported sort direction"):
            OrderBy(Field.of("name", "text"), "SIDEWAYS")

    def test_nodes_are_hashable_and_comparable(self):
        first = Compare(Field.of("amenities.parking", "bool"), "=", Constant(True))
        second = Compare(Field.of("amenities.parking", "bool"), "=", Constant(True))

        assert first == second
        assert len({first, second}) == 1


class TestCollectParams:
    """Tests for parameter collection."""

    def test_shared_parameter_is_listed_once(self):
        term = Param("searchTerm", "lake")
        where = And(
            (
                ACTIVE,
                Or((Contains(Field.of("name", "text"), term), Contains(Field.of("description", "text"), term))),
            )
        )

        assert collect_params(where) == [term]

    def test_conflicting_values_raise(self):
        where = And(
            (
                Compare(Field.of("location.region", "text"), "=", Param("region", "Cascades")),
                Compare(Field.of("location.park", "text"), "=", Param("region", "Olympic")),
            )
        )

        with pytest.raises(ValueError, match="Duplicate parameter name: region"):
            collect_params(where)

    def test_constants_are_not_parameters(self):
        assert collect_params(And((ACTIVE,))) == []


class TestQueryDescriptor:
    """Tests for QueryDescriptor helpers."""

    def test_to_cosmos(self):
        descriptor = QueryDescriptor(
            "SELECT * FROM c WHERE c.location.region = @region",
            (QueryParameter("@region", "Cascades"),),
        )

        assert descriptor.to_cosmos() == {
            "query": "SELECT * FROM c WHERE c.location.region = @region",
            "parameters": [{"name": "@region", "value": "Cascades"}],
        }

    def test_params_strips_prefixes(self):
        descriptor = QueryDescriptor(
            "q", (QueryParameter("@month", 7), QueryParameter(":region", "Cascades"))
        )

        assert descriptor.params() == {"month": 7, "region": "Cascades"}


class TestCosmosSqlRenderer:
    """Tests for the Cosmos-style SQL dialect."""

    def test_single_item_or_has_no_parentheses(self):
        where = And((ACTIVE, Or((ArrayNotEmpty(Field.of("features.wildlife", "array")),))))

        assert CosmosSqlRenderer().render(where).query_text == (
            "SELECT * FROM c WHERE c.isActive = true AND ARRAY_LENGTH(c.features.wildlife) > 0"
        )

    def test_nested_and_is_parenthesized(self):
        inner = And(
            (
                Compare(Field.of("safety.riskLevel"), "<=", Param("maxRiskLevel", 2)),
                Compare(Field.of("safety.requiresPermit", "bool"), "=", Constant(False)),
            )
        )
        where = And((ACTIVE, Or((inner, ArrayNotEmpty(Field.of("features.wildlife", "array"))))))

        assert CosmosSqlRenderer().predicate(where) == (
            "c.isActive = true AND ((c.safety.riskLevel <= @maxRiskLevel"
            " AND c.safety.requiresPermit = false) OR ARRAY_LENGTH(c.features.wildlife) > 0)"
        )

    def test_in_and_array_contains(self):
        renderer = CosmosSqlRenderer()

        assert renderer.predicate(
            In(Field.of("characteristics.trailType", "text"), Param("trailTypes", ["loop"]))
        ) == "c.characteristics.trailType IN (@trailTypes)"
        assert renderer.predicate(
            ArrayContains(Field.of("features.wildlife", "array"), Param("feature0", "elk"))
        ) == "ARRAY_CONTAINS(c.features.wildlife, @feature0)"

    def test_ordinal_order_quotes_values(self):
        order = OrdinalOrderBy(
            Field.of("characteristics.difficulty", "text"), (("o'brien", 1),), 9, "ASC"
        )

        assert CosmosSqlRenderer().order_clause(order) == (
            "ORDER BY (CASE c.characteristics.difficulty WHEN 'o''brien' THEN 1 ELSE 9 END) ASC"
        )

    def test_render_with_order_and_page(self):
        descriptor = CosmosSqlRenderer().render(
            And((ACTIVE,)), OrderBy(Field.of("name", "text"), "ASC"), Page(5, 10)
        )

        assert descriptor.query_text == (
            "SELECT * FROM c WHERE c.isActive = true ORDER BY c.name ASC OFFSET 5 LIMIT 10"
        )

    def test_unknown_predicate_type_raises(self):
        with pytest.raises(TypeError, match="Cannot render predicate"):
            CosmosSqlRenderer().predicate("c.isActive = true")


class TestPostgresJsonRenderer:
    """Tests for the PostgreSQL JSONB dialect."""

    def test_baseline_query(self):
        descriptor = TrailQueryBuilder().build(PostgresJsonRenderer())

        assert descriptor.query_text == (
            "SELECT doc FROM trails WHERE CAST(doc #>> '{isActive}' AS boolean) = true"
        )
        assert descriptor.parameters == ()

    def test_count_query(self):
        descriptor = TrailQueryBuilder().with_region("Cascades").build_count_query(
            PostgresJsonRenderer("hike_trails")
        )

        assert descriptor.query_text == (
            "SELECT COUNT(*) FROM hike_trails WHERE CAST(doc #>> '{isActive}' AS boolean) = true"
            " AND doc #>> '{location,region}' = :region"
        )
        assert descriptor.parameters == (QueryParameter("region", "Cascades"),)

    def test_full_query(self):
        descriptor = (
            TrailQueryBuilder()
            .with_features(["elk", "wildlife"])
            .with_trail_types(["loop"])
            .with_text_search("Ridge")
            .with_distance_range(max_distance=12)
            .sort_by("distance", "asc")
            .with_pagination(20, 10)
            .build(PostgresJsonRenderer())
        )

        assert descriptor.query_text == (
            "SELECT doc FROM trails WHERE CAST(doc #>> '{isActive}' AS boolean) = true"
            " AND (doc #> '{features,wildlife}' @> CAST(:feature0 AS jsonb)"
            " OR jsonb_array_length(COALESCE(doc #> '{features,wildlife}', CAST('[]' AS jsonb))) > 0)"
            " AND doc #>> '{characteristics,trailType}' = ANY(:trailTypes)"
            " AND (strpos(lower(doc #>> '{name}'), lower(:searchTerm)) > 0"
            " OR strpos(lower(doc #>> '{description}'), lower(:searchTerm)) > 0"
            " OR strpos(lower(doc #>> '{location,park}'), lower(:searchTerm)) > 0"
            " OR strpos(lower(doc #>> '{location,region}'), lower(:searchTerm)) > 0)"
            " AND CAST(doc #>> '{characteristics,distance}' AS double precision) <= :maxDistance"
            " ORDER BY CAST(doc #>> '{characteristics,distance}' AS double precision) ASC"
            " LIMIT 10 OFFSET 20"
        )
        assert descriptor.params() == {
            "feature0": '["elk"]',
            "trailTypes": ["loop"],
            "searchTerm": "ridge",
            "maxDistance": 12,
        }

    def test_month_is_json_encoded_for_containment(self):
        descriptor = TrailQueryBuilder().with_seasonal_availability(7).build(PostgresJsonRenderer())

        assert descriptor.params() == {"month": "[7]"}
        assert "doc #> '{features,seasonality,accessibleMonths}' @> CAST(:month AS jsonb)" in (
            descriptor.query_text
        )

    def test_query_text_has_no_percent_or_double_colon(self):
        descriptor = (
            TrailQueryBuilder()
            .with_text_search("100% fun")
            .with_features(["elk"])
            .sort_by("difficulty")
            .build(PostgresJsonRenderer())
        )

        assert "%" not in descriptor.query_text
        assert "::" not in descriptor.query_text

    def test_invalid_table_name_raises(self):
        with pytest.raises(ValueError, match="Invalid table name"):
            PostgresJsonRenderer("trails; DROP TABLE trails")
