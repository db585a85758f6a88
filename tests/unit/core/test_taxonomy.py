"""Unit tests for tag normalization, coercion and authoring validation."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from inbox_targeting.core.taxonomy import (
    coerce_tags,
    context_tags,
    is_municipal,
    is_urgent,
    municipality_from_tags,
    normalize_tags,
    validate_single_municipality,
    validate_tags_canonical,
    validate_urgent_rules,
)

FROM = datetime(2026, 7, 1, tzinfo=UTC)
TO = datetime(2026, 7, 31, tzinfo=UTC)


@pytest.mark.unit
class TestNormalizeTags:
    """Test deprecated alias mapping and de-duplication."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ([], []),
            (["hitno", "promet"], ["hitno", "promet"]),
            (["cestovni_promet"], ["promet"]),
            (["pomorski_promet"], ["promet"]),
            # both aliases collapse into a single canonical tag
            (["hitno", "cestovni_promet", "pomorski_promet"], ["hitno", "promet"]),
            # alias next to the canonical tag adds nothing
            (["promet", "cestovni_promet"], ["promet"]),
            (["kultura", "kultura", "vis"], ["kultura", "vis"]),
            # first occurrence decides position
            (["pomorski_promet", "hitno", "promet"], ["promet", "hitno"]),
        ],
    )
    def test_normalize(self, raw: list[str], expected: list[str]) -> None:
        """Test normalization output for representative inputs."""
        assert normalize_tags(raw) == expected

    def test_normalize_does_not_mutate_input(self) -> None:
        """Test that the caller's list is left untouched."""
        raw = ["cestovni_promet", "hitno"]
        _ = normalize_tags(raw)
        assert raw == ["cestovni_promet", "hitno"]


@pytest.mark.unit
class TestCoerceTags:
    """Test the ingestion boundary for untyped tag fields."""

    @pytest.mark.parametrize("raw", [None, "hitno", 42, {"tags": ["hitno"]}])
    def test_non_list_becomes_empty(self, raw: object) -> None:
        """Test that anything but a list or tuple yields no tags."""
        assert coerce_tags(raw) == []

    def test_unknown_and_non_string_entries_dropped(self) -> None:
        """Test that only known tag strings survive coercion."""
        assert coerce_tags(["hitno", "nepoznato", 7, None, "vis"]) == ["hitno", "vis"]

    def test_deprecated_aliases_normalized(self) -> None:
        """Test that coercion also normalizes."""
        assert coerce_tags(("cestovni_promet", "pomorski_promet")) == ["promet"]


@pytest.mark.unit
class TestTagPredicates:
    """Test small tag predicates."""

    def test_is_urgent(self) -> None:
        assert is_urgent(["hitno", "promet"]) is True
        assert is_urgent(["promet"]) is False

    def test_is_municipal(self) -> None:
        assert is_municipal(["kultura", "komiza"]) is True
        assert is_municipal(["opcenito"]) is False

    def test_municipality_from_tags(self) -> None:
        assert municipality_from_tags(["hitno", "vis"]) == "vis"
        assert municipality_from_tags(["komiza"]) == "komiza"
        assert municipality_from_tags(["promet"]) is None

    def test_context_tags_excludes_emergency(self) -> None:
        assert context_tags(["hitno", "cestovni_promet"]) == ["promet"]


@pytest.mark.unit
class TestValidateTagsCanonical:
    """Test authoring-side canonical tag validation."""

    @pytest.mark.parametrize(
        ("tags", "code"),
        [
            ("hitno", "TAG_INVALID"),
            ([], "TAGS_EMPTY"),
            (["hitno", "promet", "vis"], "TAGS_TOO_MANY"),
            (["vis", "vis"], "TAGS_DUPLICATE"),
            (["hitno", "cestovni_promet"], "TAG_DEPRECATED"),
            (["pomorski_promet"], "TAG_DEPRECATED"),
            (["nepoznato"], "TAG_INVALID"),
            ([["hitno"]], "TAG_INVALID"),
            ([{"tag": "hitno"}, "promet"], "TAG_INVALID"),
            ([1], "TAG_INVALID"),
        ],
    )
    def test_rejections(self, tags: object, code: str) -> None:
        """Test each rejection carries its error code."""
        result = validate_tags_canonical(tags)
        assert result.valid is False
        assert result.code == code
        assert result.error

    @pytest.mark.parametrize("tags", [["opcenito"], ["hitno", "promet"], ("kultura", "vis")])
    def test_accepts_canonical(self, tags: object) -> None:
        """Test that one or two canonical tags pass."""
        assert validate_tags_canonical(tags).valid is True


@pytest.mark.unit
class TestValidateUrgentRules:
    """Test extra rules applying to emergency messages."""

    def test_non_urgent_always_ok(self) -> None:
        """Test that rules only apply with the emergency tag."""
        assert validate_urgent_rules(["kultura"], None, None).valid is True

    def test_missing_context(self) -> None:
        result = validate_urgent_rules(["hitno"], FROM, TO)
        assert result.code == "HITNO_MISSING_CONTEXT"

    def test_multiple_context(self) -> None:
        result = validate_urgent_rules(["hitno", "promet", "kultura"], FROM, TO)
        assert result.code == "HITNO_MULTIPLE_CONTEXT"

    @pytest.mark.parametrize(("active_from", "active_to"), [(None, TO), (FROM, None), (None, None)])
    def test_missing_dates(self, active_from: datetime | None, active_to: datetime | None) -> None:
        result = validate_urgent_rules(["hitno", "promet"], active_from, active_to)
        assert result.code == "HITNO_MISSING_DATES"

    def test_deprecated_aliases_count_as_one_context(self) -> None:
        """Test that both transport aliases normalize to one context tag."""
        result = validate_urgent_rules(["hitno", "cestovni_promet", "pomorski_promet"], FROM, TO)
        assert result.valid is True


@pytest.mark.unit
def test_validate_single_municipality() -> None:
    """Test that a message cannot target both municipalities."""
    assert validate_single_municipality(["vis", "komiza"]).code == "DUAL_MUNICIPAL_TAGS"
    assert validate_single_municipality(["hitno", "vis"]).valid is True
