"""Tests for the customer list filter/sort engine."""
import pytest

from app.crm.modules.customers.filtering import (
    DateRange,
    FilterSpec,
    SortSpec,
    apply_filters,
    collation_key,
    to_millis,
)


def _rec(id, name, email, nationality="WNI", created_at="2024-01-10T09:00:00"):
    return {"id": id, "name": name, "email": email, "nationality": nationality, "created_at": created_at}


@pytest.fixture()
def records():
    return [
        _rec(1, "charlie", "c@zeta.com", "WNI", "2024-01-05T10:00:00"),
        _rec(2, "Alice", "alice@example.com", "WNA", "2024-01-20T08:30:00"),
        _rec(3, "Bob", "bob@mail.com", "WNI", "2024-02-01T00:00:00"),
        _rec(4, "Élodie", "elodie@example.com", "WNA", "2023-12-31T23:59:59"),
        _rec(5, "dave", "DAVE@Example.com", "WNI", "2024-01-31T00:00:00"),
    ]


def _ids(rows):
    return [r["id"] for r in rows]


class TestSortSpec:
    def test_parse_default(self):
        assert SortSpec.parse(None) == SortSpec("name", "asc")
        assert SortSpec.parse("") == SortSpec("name", "asc")

    def test_parse_field_and_direction(self):
        spec = SortSpec.parse("date-desc")
        assert spec.field == "date"
        assert spec.descending is True
        assert str(spec) == "date-desc"

    def test_anything_but_asc_is_descending(self):
        assert SortSpec.parse("name-sideways").descending is True
        assert SortSpec.parse("name").descending is True


class TestFilterSpecFromArgs:
    def test_empty_args(self):
        spec = FilterSpec.from_args({})
        assert spec.search_query == ""
        assert spec.nationality is None
        assert spec.date_range is None
        assert spec.sort_by == SortSpec("name", "asc")

    def test_lone_date_bound_is_ignored(self):
        assert FilterSpec.from_args({"startDate": "2024-01-01"}).date_range is None
        assert FilterSpec.from_args({"endDate": "2024-01-31"}).date_range is None

    def test_invalid_date_raises(self):
        with pytest.raises(ValueError):
            FilterSpec.from_args({"startDate": "yesterday", "endDate": "2024-01-31"})


def test_no_filters_only_reorders(records):
    out = apply_filters(records, FilterSpec(sort_by=SortSpec("name", "asc")))
    assert sorted(_ids(out)) == sorted(_ids(records))
    assert _ids(out) == [2, 3, 1, 5, 4]


def test_name_sort_ignores_case_and_accents():
    assert collation_key("Élodie") < collation_key("frank")
    assert collation_key("alice") < collation_key("Bob")


def test_name_asc_and_desc_are_reversed(records):
    asc = apply_filters(records, FilterSpec(sort_by=SortSpec.parse("name-asc")))
    desc = apply_filters(records, FilterSpec(sort_by=SortSpec.parse("name-desc")))
    assert _ids(desc) == list(reversed(_ids(asc)))


def test_email_sort(records):
    out = apply_filters(records, FilterSpec(sort_by=SortSpec.parse("email-asc")))
    assert _ids(out) == [2, 3, 1, 5, 4]


def test_date_sort_newest_first(records):
    out = apply_filters(records, FilterSpec(sort_by=SortSpec.parse("date-desc")))
    assert _ids(out) == [3, 5, 2, 1, 4]


def test_unknown_sort_field_keeps_input_order(records):
    out = apply_filters(records, FilterSpec(sort_by=SortSpec.parse("phone-asc")))
    assert _ids(out) == _ids(records)


def test_ties_keep_input_order_in_both_directions():
    rows = [_rec(1, "Sam", "a@x.com"), _rec(2, "sam", "b@x.com"), _rec(3, "Sam", "c@x.com")]
    asc = apply_filters(rows, FilterSpec(sort_by=SortSpec.parse("name-asc")))
    desc = apply_filters(rows, FilterSpec(sort_by=SortSpec.parse("name-desc")))
    # "Sam" < "sam" on the raw-text tie-break; equal keys keep input order
    assert _ids(asc) == [1, 3, 2]
    assert _ids(desc) == [2, 1, 3]


def test_search_matches_name_or_email_case_insensitive(records):
    out = apply_filters(records, FilterSpec(search_query="EXAMPLE"))
    assert sorted(_ids(out)) == [2, 4, 5]
    for r in out:
        assert "example" in r["name"].lower() or "example" in r["email"].lower()

    out = apply_filters(records, FilterSpec(search_query="bo"))
    assert _ids(out) == [3]


def test_search_handles_missing_fields():
    rows = [{"id": 1, "name": None, "email": "x@y.com"}, {"id": 2}]
    assert _ids(apply_filters(rows, FilterSpec(search_query="x@"))) == [1]


def test_nationality_exact_match(records):
    out = apply_filters(records, FilterSpec(nationality="WNA"))
    assert sorted(_ids(out)) == [2, 4]


def test_date_range_inclusive_millis(records):
    spec = FilterSpec(date_range=DateRange.parse("2024-01-01", "2024-01-31"))
    out = apply_filters(records, spec)
    # 2024-01-31T00:00:00 sits exactly on the end bound; 2024-02-01 is outside.
    assert sorted(_ids(out)) == [1, 2, 5]


def test_date_range_drops_unparseable_created_at():
    rows = [_rec(1, "a", "a@x.com", created_at="not a date"), _rec(2, "b", "b@x.com", created_at=None)]
    spec = FilterSpec(date_range=DateRange.parse("2000-01-01", "2100-01-01"))
    assert apply_filters(rows, spec) == []


def test_filters_combine_with_and(records):
    spec = FilterSpec(
        search_query="example",
        nationality="WNA",
        date_range=DateRange.parse("2024-01-01", "2024-01-31"),
        sort_by=SortSpec.parse("name-asc"),
    )
    assert _ids(apply_filters(records, spec)) == [2]


@pytest.mark.parametrize(
    "spec",
    [
        FilterSpec(),
        FilterSpec(search_query="a", sort_by=SortSpec.parse("date-desc")),
        FilterSpec(nationality="WNI", sort_by=SortSpec.parse("email-desc")),
        FilterSpec(date_range=DateRange.parse("2024-01-01", "2024-12-31"), sort_by=SortSpec.parse("x-y")),
    ],
)
def test_filtering_is_idempotent(records, spec):
    once = apply_filters(records, spec)
    assert apply_filters(once, spec) == once


def test_input_is_not_mutated(records):
    before = list(records)
    apply_filters(records, FilterSpec(sort_by=SortSpec.parse("name-desc")))
    assert records == before


def test_to_millis_variants():
    assert to_millis("1970-01-01T00:00:01") == 1000
    assert to_millis("1970-01-01T00:00:01Z") == 1000
    assert to_millis("1970-01-01T07:00:01+07:00") == 1000
    assert to_millis("1970-01-02") == 86_400_000
    assert to_millis("") is None
    assert to_millis("garbage") is None


def test_search_keeps_surrounding_whitespace():
    rows = [_rec(1, "Ada Lovelace", "ada@x.com"), _rec(2, "Adam", "adam@x.com")]

    spec = FilterSpec.from_args({"search": "ada "})
    assert spec.search_query == "ada "
    assert _ids(apply_filters(rows, spec)) == [1]

    # a lone space is still a filter, not "no search"
    assert _ids(apply_filters(rows, FilterSpec.from_args({"search": " "}))) == [1]


def test_sort_fields_are_name_email_date(records):
    for sort_field in ("name", "email", "date"):
        out = apply_filters(records, FilterSpec(sort_by=SortSpec(sort_field, "asc")))
        assert _ids(out) != _ids(records)
    out = apply_filters(records, FilterSpec(sort_by=SortSpec("nationality", "desc")))
    assert _ids(out) == _ids(records)
