import pandas as pd
import pytest
from django.http import QueryDict

from dashboard.table import ASC, DATE, DESC, NUMBER, STRING, Column, SortState, Table, sort_rows, use_system_collation


def columns():
    return [
        Column("name", "Name", sort_type=STRING),
        Column("score", "Score", sort_type=NUMBER, render=lambda v, row: f"{v:.1f}"),
        Column("when", "When", sort_type=DATE),
        Column("note", "Note", sortable=False),
    ]


ROWS = [
    {"name": "b", "score": 2, "when": "2024-01-03", "note": "first"},
    {"name": "a", "score": 1, "when": "2024-01-01", "note": "second"},
    {"name": "c", "score": 2, "when": "bogus", "note": "third"},
]


def notes(rows):
    return [r["note"] for r in rows]


def test_unsorted_keeps_input_order():
    assert notes(Table(ROWS, columns()).sorted_rows()) == ["first", "second", "third"]


def test_numeric_click_toggles_and_stays_stable():
    table = Table(ROWS, columns())
    assert table.click("score") == SortState("score", ASC)
    assert notes(table.sorted_rows()) == ["second", "first", "third"]

    assert table.click("score") == SortState("score", DESC)
    # the tied rows keep their pre-sort order
    assert notes(table.sorted_rows()) == ["first", "third", "second"]


def test_click_other_column_starts_ascending():
    table = Table(ROWS, columns(), default_sort=SortState("score", DESC))
    assert table.click("name") == SortState("name", ASC)
    assert [r["name"] for r in table.sorted_rows()] == ["a", "b", "c"]


def test_click_non_sortable_column_is_ignored():
    table = Table(ROWS, columns(), default_sort=SortState("score", DESC))
    assert table.click("note") == SortState("score", DESC)


def test_date_sort_puts_invalid_dates_first_ascending():
    rows = sort_rows(ROWS, columns()[2], ASC)
    assert notes(rows) == ["third", "second", "first"]


def test_number_sort_treats_missing_as_zero():
    rows = [{"score": None, "note": "x"}, {"score": -1, "note": "y"}, {"score": 3, "note": "z"}]
    assert notes(sort_rows(rows, columns()[1], ASC)) == ["y", "x", "z"]


def test_unknown_sort_type_rejected():
    with pytest.raises(ValueError):
        Column("x", "X", sort_type="colour")


def test_column_set_change_resets_sort_state():
    table = Table(ROWS, columns(), default_sort=SortState("name", ASC))
    table.click("score")
    table.set_columns(columns())
    assert table.sort_state == SortState("score", ASC)

    table.set_columns(columns()[:2])
    assert table.sort_state == SortState("name", ASC)


def test_default_sort_on_missing_column_falls_back_to_unsorted():
    table = Table(ROWS, columns(), default_sort=SortState("missing", DESC))
    assert table.sort_state == SortState()


def test_empty_rows_render_message_only():
    view = Table([], columns(), empty_message="Nothing here").render()
    assert view.empty
    assert view.empty_message == "Nothing here"
    assert view.rows == []
    assert view.headers == []


def test_render_uses_column_renderers_and_index():
    view = Table(ROWS, columns(), default_sort=SortState("score", DESC)).render()
    assert [h.label for h in view.headers] == ["Name", "Score", "When", "Note"]
    assert [r.index for r in view.rows] == [1, 2, 3]
    assert view.rows[0].cells[1].text == "2.0"
    active = [h for h in view.headers if h.active]
    assert len(active) == 1 and active[0].key == "score" and active[0].direction == DESC


def test_apply_query_reads_prefixed_params():
    table = Table(ROWS, columns(), prefix="t1")
    table.apply_query(QueryDict("t1-sort=name&t1-dir=desc&t2-sort=score"))
    assert table.sort_state == SortState("name", DESC)


def test_apply_query_ignores_unknown_column():
    table = Table(ROWS, columns(), default_sort=SortState("score", DESC), prefix="t1")
    table.apply_query(QueryDict("t1-sort=note&t1-dir=asc"))
    assert table.sort_state == SortState("score", DESC)


def test_header_links_toggle_and_keep_other_tables_params():
    table = Table(ROWS, columns(), default_sort=SortState("score", ASC), prefix="t1")
    view = table.render(QueryDict("t2-sort=name"))
    score = next(h for h in view.headers if h.key == "score")
    name = next(h for h in view.headers if h.key == "name")
    params = QueryDict(score.query)
    assert params["t1-sort"] == "score" and params["t1-dir"] == "desc"
    assert params["t2-sort"] == "name"
    assert QueryDict(name.query)["t1-dir"] == "asc"


def test_dataframe_rows_are_accepted():
    df = pd.DataFrame(ROWS)
    table = Table(df, columns(), default_sort=SortState("name", DESC))
    assert [r["name"] for r in table.sorted_rows()] == ["c", "b", "a"]


def test_string_sort_ignores_case():
    rows = [{"name": n} for n in ["banana", "Apple", "apple", "Cherry"]]
    ordered = [r["name"] for r in sort_rows(rows, columns()[0], ASC)]
    assert [n.casefold() for n in ordered] == ["apple", "apple", "banana", "cherry"]

    table = Table(rows, columns(), default_sort=SortState("name", DESC))
    assert [r["name"].casefold() for r in table.sorted_rows()] == ["cherry", "banana", "apple", "apple"]


def test_string_sort_after_switching_to_system_collation():
    use_system_collation()
    rows = [{"name": n} for n in ["delta", "Bravo", "alpha", "Charlie"]]
    assert [r["name"] for r in sort_rows(rows, columns()[0], ASC)] == ["alpha", "Bravo", "Charlie", "delta"]
