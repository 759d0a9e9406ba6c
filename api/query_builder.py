"""
Trail search query builder.

Translates a structured trail search (free text, typed filters, sort and
pagination) into a parameterized query for a document store. The builder
accumulates predicates in call order; ``build()`` renders the paginated data
query and ``build_count_query()`` renders the matching count query used to
compute ``has_more``.

A builder is a cheap, request-scoped object: create one per search (or call
``reset()`` before reusing it). It must not be shared between concurrent
requests.

Example:
    >>> descriptor = (
    ...     TrailQueryBuilder()
    ...     .with_text_search("Mountain")
    ...     .with_difficulty(["intermediate", "advanced"])
    ...     .with_distance_range(5, 20)
    ...     .sort_by("rating", "desc")
    ...     .with_pagination(0, 10)
    ...     .build()
    ... )
    >>> len(descriptor.parameters)
    5
"""

import logging
import math
from enum import Enum
from typing import Any, Iterable

from api.errors import InvalidFilterError
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
    Ordering,
    Page,
    Param,
    Predicate,
    QueryDescriptor,
    QueryRenderer,
)

logger = logging.getLogger(__name__)

DEFAULT_OFFSET = 0
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_RATING = 5

ACTIVE_ONLY = Compare(Field.of("isActive", "bool"), "=", Constant(True))

TEXT_SEARCH_FIELDS = (
    Field.of("name", "text"),
    Field.of("description", "text"),
    Field.of("location.park", "text"),
    Field.of("location.region", "text"),
)

DIFFICULTY = Field.of("characteristics.difficulty", "text")
DISTANCE = Field.of("characteristics.distance")
DURATION_MIN = Field.of("characteristics.duration.min")
DURATION_MAX = Field.of("characteristics.duration.max")
ELEVATION_GAIN = Field.of("characteristics.elevationGain")
TRAIL_TYPE = Field.of("characteristics.trailType", "text")
REGION = Field.of("location.region", "text")
PARK = Field.of("location.park", "text")
RATING_AVERAGE = Field.of("ratings.average")
RATING_COUNT = Field.of("ratings.count")
WILDLIFE = Field.of("features.wildlife", "array")
ACCESSIBLE_MONTHS = Field.of("features.seasonality.accessibleMonths", "array")
RISK_LEVEL = Field.of("safety.riskLevel")
REQUIRES_PERMIT = Field.of("safety.requiresPermit", "bool")


def _flag(dotted: str) -> Compare:
    return Compare(Field.of(dotted, "bool"), "=", Constant(True))


# Feature tokens matched case-insensitively; anything else is looked up
# in the wildlife list.
FEATURE_PREDICATES: dict[str, Predicate] = {
    "scenic views": _flag("features.scenicViews"),
    "scenicviews": _flag("features.scenicViews"),
    "water features": _flag("features.waterFeatures"),
    "waterfeatures": _flag("features.waterFeatures"),
    "wildlife": ArrayNotEmpty(WILDLIFE),
}

AMENITY_PREDICATES: dict[str, Predicate] = {
    "parking": _flag("amenities.parking"),
    "restrooms": _flag("amenities.restrooms"),
    "camping": _flag("amenities.camping"),
    "drinking water": _flag("amenities.drinkingWater"),
    "drinkingwater": _flag("amenities.drinkingWater"),
}

SORT_FIELDS: dict[str, Field] = {
    "rating": RATING_AVERAGE,
    "distance": DISTANCE,
    "popularity": RATING_COUNT,
    "elevation": ELEVATION_GAIN,
    "name": Field.of("name", "text"),
    "created": Field.of("createdAt", "text"),
}
DEFAULT_SORT_FIELD = "rating"

DIFFICULTY_RANKS = (
    ("beginner", 1),
    ("intermediate", 2),
    ("advanced", 3),
    ("expert", 4),
)
UNRANKED_DIFFICULTY = 5


def _plain(value: Any) -> Any:
    """Unwrap enum members so parameters carry plain strings."""
    return value.value if isinstance(value, Enum) else value


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_whole_number(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


def _as_list(values: Any) -> list[Any]:
    """A bare string is one value, not a sequence of characters."""
    if values is None:
        return []
    if isinstance(values, (str, Enum)):
        return [values]
    return list(values)


class TrailQueryBuilder:
    """
    Fluent, request-scoped builder for trail search queries.

    Every ``with_*`` method returns the builder itself. Absent values (None,
    empty collections, blank strings) are silent no-ops. Values that are
    present but invalid (a negative distance, month 13) are skipped and
    recorded on ``rejected``; with ``strict=True`` they raise
    ``InvalidFilterError`` instead.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.reset()

    # Lifecycle

    def reset(self) -> "TrailQueryBuilder":
        """Return the builder to its initial, active-only state."""
        self._predicates: list[Predicate] = [ACTIVE_ONLY]
        self._param_names: set[str] = set()
        self._order: Ordering | None = None
        self._page: Page | None = None
        self.rejected: list[InvalidFilterError] = []
        return self

    def _bind(self, name: str, value: Any) -> Param:
        """Create a parameter whose name is unique within this builder."""
        unique = name
        suffix = 1
        while unique in self._param_names:
            unique = f"{name}_{suffix}"
            suffix += 1
        self._param_names.add(unique)
        return Param(unique, value)

    def _reject(self, filter_name: str, value: Any, reason: str) -> None:
        error = InvalidFilterError(filter_name, value, reason)
        if self.strict:
            raise error
        logger.warning(f"Ignoring filter: {error}")
        self.rejected.append(error)

    def _add(self, predicate: Predicate) -> None:
        self._predicates.append(predicate)

    # Text and categorical filters

    def with_text_search(self, term: str | None) -> "TrailQueryBuilder":
        """Match the term against name, description, park and region."""
        if term is None or not str(term).strip():
            return self
        param = self._bind("searchTerm", str(term).strip().lower())
        self._add(Or(tuple(Contains(field, param) for field in TEXT_SEARCH_FIELDS)))
        return self

    def with_difficulty(self, values: Iterable[Any] | None) -> "TrailQueryBuilder":
        difficulties = [_plain(v) for v in _as_list(values)]
        if not difficulties:
            return self
        if len(difficulties) == 1:
            self._add(Compare(DIFFICULTY, "=", self._bind("difficulty", difficulties[0])))
            return self
        self._add(
            Or(
                tuple(
                    Compare(DIFFICULTY, "=", self._bind(f"difficulty{index}", value))
                    for index, value in enumerate(difficulties)
                )
            )
        )
        return self

    def with_trail_types(self, values: Iterable[Any] | None) -> "TrailQueryBuilder":
        trail_types = [_plain(v) for v in _as_list(values)]
        if trail_types:
            self._add(In(TRAIL_TYPE, self._bind("trailTypes", trail_types)))
        return self

    def _with_exact_text(self, filter_name: str, field: Field, value: Any) -> "TrailQueryBuilder":
        if value is None:
            return self
        if not isinstance(value, str):
            self._reject(filter_name, value, "must be a string")
        elif value.strip():
            self._add(Compare(field, "=", self._bind(filter_name, value.strip())))
        return self

    def with_region(self, region: str | None) -> "TrailQueryBuilder":
        return self._with_exact_text("region", REGION, region)

    def with_park(self, park: str | None) -> "TrailQueryBuilder":
        return self._with_exact_text("park", PARK, park)

    # Numeric ranges

    def _with_bounds(
        self,
        filter_name: str,
        min_field: Field,
        max_field: Field,
        min_value: float | None,
        max_value: float | None,
        allow_zero: bool,
    ) -> "TrailQueryBuilder":
        bounds = (
            ("min", min_field, ">=", min_value),
            ("max", max_field, "<=", max_value),
        )
        for bound, field, op, value in bounds:
            if value is None:
                continue
            name = f"{bound}{filter_name[0].upper()}{filter_name[1:]}"
            if not _is_number(value):
                self._reject(name, value, "must be a finite number")
            elif value < 0 or (value == 0 and not allow_zero):
                domain = ">= 0" if allow_zero else "> 0"
                self._reject(name, value, f"must be {domain}")
            else:
                self._add(Compare(field, op, self._bind(name, value)))
        return self

    def with_distance_range(
        self, min_distance: float | None = None, max_distance: float | None = None
    ) -> "TrailQueryBuilder":
        """Inclusive bounds on trail length in kilometres."""
        return self._with_bounds(
            "distance", DISTANCE, DISTANCE, min_distance, max_distance, allow_zero=False
        )

    def with_duration_range(
        self, min_duration: float | None = None, max_duration: float | None = None
    ) -> "TrailQueryBuilder":
        """Inclusive bounds in hours; min applies to duration.min, max to duration.max."""
        return self._with_bounds(
            "duration", DURATION_MIN, DURATION_MAX, min_duration, max_duration, allow_zero=True
        )

    def with_elevation_range(
        self, min_elevation: float | None = None, max_elevation: float | None = None
    ) -> "TrailQueryBuilder":
        """Inclusive bounds on elevation gain in metres."""
        return self._with_bounds(
            "elevation",
            ELEVATION_GAIN,
            ELEVATION_GAIN,
            min_elevation,
            max_elevation,
            allow_zero=True,
        )

    def with_minimum_rating(self, min_rating: float | None) -> "TrailQueryBuilder":
        if min_rating is None:
            return self
        if not _is_number(min_rating) or min_rating < 0 or min_rating > MAX_RATING:
            self._reject("minRating", min_rating, f"must be between 0 and {MAX_RATING}")
        elif min_rating > 0:
            self._add(Compare(RATING_AVERAGE, ">=", self._bind("minRating", min_rating)))
        return self

    def with_rating_range(
        self, min_rating: float | None = None, max_rating: float | None = None
    ) -> "TrailQueryBuilder":
        self.with_minimum_rating(min_rating)
        if max_rating is None:
            return self
        if not _is_number(max_rating) or max_rating <= 0 or max_rating > MAX_RATING:
            self._reject("maxRating", max_rating, f"must be in (0, {MAX_RATING}]")
        else:
            self._add(Compare(RATING_AVERAGE, "<=", self._bind("maxRating", max_rating)))
        return self

    def with_review_count_above(self, count: int | None) -> "TrailQueryBuilder":
        """Keep trails with strictly more than ``count`` ratings."""
        if count is None:
            return self
        if not _is_whole_number(count) or count < 0:
            self._reject("minReviewCount", count, "must be a non-negative integer")
        else:
            self._add(Compare(RATING_COUNT, ">", self._bind("minReviewCount", int(count))))
        return self

    # Flag-style filters

    def with_features(self, values: Iterable[str] | None) -> "TrailQueryBuilder":
        """
        OR together the requested features.

        Known tokens map to fixed boolean flags; anything else is matched
        against the trail's wildlife list with its own indexed parameter.
        This is a loose match: a trail qualifies if any one feature matches.
        """
        conditions: list[Predicate] = []
        for index, feature in enumerate(_as_list(values)):
            if not isinstance(feature, str) or not feature.strip():
                continue
            predicate = FEATURE_PREDICATES.get(feature.strip().lower())
            if predicate is None:
                predicate = ArrayContains(WILDLIFE, self._bind(f"feature{index}", feature))
            conditions.append(predicate)
        if conditions:
            self._add(Or(tuple(conditions)))
        return self

    def with_amenities(self, values: Iterable[str] | None) -> "TrailQueryBuilder":
        conditions: list[Predicate] = []
        for amenity in _as_list(values):
            if not isinstance(amenity, str) or not amenity.strip():
                continue
            predicate = AMENITY_PREDICATES.get(amenity.strip().lower())
            if predicate is None:
                self._reject("amenities", amenity, "unknown amenity")
            elif predicate not in conditions:
                conditions.append(predicate)
        if conditions:
            self._add(Or(tuple(conditions)))
        return self

    def with_seasonal_availability(self, month: int | None) -> "TrailQueryBuilder":
        if month is None:
            return self
        if not _is_whole_number(month) or not 1 <= month <= 12:
            self._reject("month", month, "must be an integer between 1 and 12")
        else:
            self._add(ArrayContains(ACCESSIBLE_MONTHS, self._bind("month", int(month))))
        return self

    def with_max_risk_level(self, level: int | None) -> "TrailQueryBuilder":
        if level is None:
            return self
        if not _is_number(level) or not 1 <= level <= 5:
            self._reject("maxRiskLevel", level, "must be between 1 and 5")
        else:
            self._add(Compare(RISK_LEVEL, "<=", self._bind("maxRiskLevel", level)))
        return self

    def without_permit_required(self) -> "TrailQueryBuilder":
        self._add(Compare(REQUIRES_PERMIT, "=", Constant(False)))
        return self

    # Sorting and pagination

    def sort_by(self, field: Any = DEFAULT_SORT_FIELD, order: Any = "desc") -> "TrailQueryBuilder":
        """
        Order results by a named field.

        Unknown fields fall back to rating and unknown orders to descending.
        Difficulty is ordered by rank (beginner first ascending), not alphabetically.
        """
        field_name = str(_plain(field) or "").lower()
        direction = "ASC" if str(_plain(order) or "").lower() == "asc" else "DESC"

        if field_name == "difficulty":
            self._order = OrdinalOrderBy(
                DIFFICULTY, DIFFICULTY_RANKS, UNRANKED_DIFFICULTY, direction
            )
            return self

        if field_name not in SORT_FIELDS:
            logger.debug(f"Unknown sort field '{field}', sorting by {DEFAULT_SORT_FIELD}")
            field_name = DEFAULT_SORT_FIELD
        self._order = OrderBy(SORT_FIELDS[field_name], direction)
        return self

    def with_pagination(
        self, offset: int = DEFAULT_OFFSET, limit: int = DEFAULT_LIMIT
    ) -> "TrailQueryBuilder":
        """
        Clamp offset to >= 0 and limit to [1, MAX_LIMIT].

        A value that is not a finite number is rejected and replaced by its
        default.
        """
        if offset is None:
            offset = DEFAULT_OFFSET
        elif not _is_number(offset):
            self._reject("offset", offset, "must be a finite number")
            offset = DEFAULT_OFFSET
        if limit is None:
            limit = DEFAULT_LIMIT
        elif not _is_number(limit):
            self._reject("limit", limit, "must be a finite number")
            limit = DEFAULT_LIMIT
        self._page = Page(max(0, int(offset)), min(MAX_LIMIT, max(1, int(limit))))
        return self

    # Composite

    def with_filters(self, filters: Any) -> "TrailQueryBuilder":
        """
        Apply every populated field of a ``FilterSet`` in a fixed order.

        Order: difficulty, distance, duration, elevation, trail types,
        rating, features, amenities, region, seasonal month. Geospatial
        ``location`` filters are not supported and are ignored.
        """
        from api.models import FilterSet

        if filters is None:
            return self
        if isinstance(filters, dict):
            filters = FilterSet.model_validate(filters)

        if filters.difficulty:
            self.with_difficulty(filters.difficulty)
        if filters.distance:
            self.with_distance_range(filters.distance.min, filters.distance.max)
        if filters.duration:
            self.with_duration_range(filters.duration.min, filters.duration.max)
        if filters.elevation_gain:
            self.with_elevation_range(filters.elevation_gain.min, filters.elevation_gain.max)
        if filters.trail_type:
            self.with_trail_types(filters.trail_type)
        if filters.rating:
            self.with_rating_range(filters.rating.min, filters.rating.max)
        if filters.features:
            self.with_features(filters.features)
        if filters.amenities:
            self.with_amenities(filters.amenities)
        if filters.region:
            self.with_region(filters.region)
        if filters.seasonal_month is not None:
            self.with_seasonal_availability(filters.seasonal_month)
        if filters.location is not None:
            logger.debug("Location filter is not supported and was ignored")
        return self

    # Terminal operations

    def where(self) -> And:
        return And(tuple(self._predicates))

    @property
    def order(self) -> Ordering | None:
        return self._order

    @property
    def page(self) -> Page | None:
        return self._page

    def build(self, renderer: QueryRenderer | None = None) -> QueryDescriptor:
        """Render the data query: WHERE, then ORDER BY and pagination if set."""
        renderer = renderer or CosmosSqlRenderer()
        return renderer.render(self.where(), self._order, self._page)

    def build_count_query(self, renderer: QueryRenderer | None = None) -> QueryDescriptor:
        """Render the count query: same WHERE clause, no ordering or pagination."""
        renderer = renderer or CosmosSqlRenderer()
        return renderer.render_count(self.where())

    def filter_summary(self) -> dict[str, Any]:
        """Describe the accumulated state, for debug logging."""
        renderer = CosmosSqlRenderer()
        return {
            "where_conditions": [renderer.predicate(p, nested=True) for p in self._predicates],
            "parameter_count": len(renderer.parameters(self.where())),
            "order_by": renderer.order_clause(self._order) if self._order else "",
            "pagination": renderer.page_clause(self._page) if self._page else "",
            "rejected": [str(error) for error in self.rejected],
        }
