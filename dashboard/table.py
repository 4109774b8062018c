from __future__ import annotations

from dataclasses import dataclass, field
import locale
import logging
import math
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, Sequence, TypeVar

import pandas as pd
from django.http import QueryDict

from .data_processing_io import parse_instant
from .forms import TableSortForm


logger = logging.getLogger(__name__)

T = TypeVar("T")

STRING = "string"
NUMBER = "number"
DATE = "date"
SORT_TYPES = (STRING, NUMBER, DATE)

ASC = "asc"
DESC = "desc"

_EARLIEST = -(2 ** 63)


# ------------------------
# Column + sort state
# ------------------------

def field_value(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


@dataclass(frozen=True)
class Column(Generic[T]):
    '''
    One table column. ``render(value, row)`` turns the raw field value
    (typed ``T``) into display text; it must not mutate ``row``.
    '''
    key: str
    header: str
    sortable: bool = True
    sort_type: str = STRING
    render: Optional[Callable[[T, Any], str]] = None
    align: str = "left"
    width: Optional[str] = None

    def __post_init__(self) -> None:
        if self.sort_type not in SORT_TYPES:
            raise ValueError(f"Unknown sort type '{self.sort_type}' for column '{self.key}'")

    def cell(self, row: Any) -> str:
        value = field_value(row, self.key)
        if self.render is not None:
            return self.render(value, row)
        return "" if value is None else str(value)


@dataclass(frozen=True)
class SortState:
    key: Optional[str] = None
    direction: str = ASC

    def toggled(self, key: str) -> "SortState":
        if self.key == key:
            return SortState(key, DESC if self.direction == ASC else ASC)
        return SortState(key, ASC)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def use_system_collation() -> bool:
    '''
    Switch ``LC_COLLATE`` to the environment's locale so string sorting
    follows its collation rules. Returns False when that locale is unavailable.
    '''
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("System collation unavailable, sorting case-insensitively: %s", exc)
        return False
    return True


def collation_key(value: Any) -> tuple[str, str]:
    # case-insensitive first; case only breaks ties
    text = "" if _is_missing(value) else str(value)
    folded = text.casefold()
    try:
        return locale.strxfrm(folded), locale.strxfrm(text)
    except ValueError:
        return folded, text


def _number_key(value: Any) -> float:
    if _is_missing(value):
        return 0.0
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(v) else v


def _date_key(value: Any) -> int:
    ts = parse_instant(value)
    if pd.isna(ts):
        return _EARLIEST
    return int(ts.value)


_SORT_KEYS: dict[str, Callable[[Any], Any]] = {
    STRING: collation_key,
    NUMBER: _number_key,
    DATE: _date_key,
}


def sort_rows(rows: Sequence[T], column: Column, direction: str) -> list[T]:
    '''
    Stable, type-aware sort of ``rows`` by ``column``. Missing or
    unparsable values sort as the type's minimum; equal values keep
    their original relative order in both directions.
    '''
    key_fn = _SORT_KEYS[column.sort_type]
    return sorted(
        rows,
        key=lambda row: key_fn(field_value(row, column.key)),
        reverse=(direction == DESC),
    )


# ------------------------
# Rendered view
# ------------------------

@dataclass
class HeaderCell:
    key: str
    label: str
    sortable: bool
    align: str
    width: Optional[str] = None
    active: bool = False
    direction: Optional[str] = None
    query: str = ""


@dataclass
class CellView:
    text: str
    align: str = "left"


@dataclass
class RowView:
    index: int
    cells: list[CellView]


@dataclass
class TableView:
    title: str
    show_index: bool
    headers: list[HeaderCell] = field(default_factory=list)
    rows: list[RowView] = field(default_factory=list)
    empty: bool = False
    empty_message: str = ""


def _records(rows: Any) -> list:
    if rows is None:
        return []
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict("records")
    return list(rows)


class Table(Generic[T]):
    '''
    Sortable table over an ordered sequence of homogeneous records.

    Sort state belongs to the instance. It starts at ``default_sort`` (or
    unsorted, i.e. input order), ``click`` toggles it, and it resets when
    the column set changes. On a page it travels in the query string under
    ``<prefix>-sort`` / ``<prefix>-dir`` so several tables stay independent.
    '''

    def __init__(
        self,
        rows: Iterable[T],
        columns: Sequence[Column],
        *,
        default_sort: Optional[SortState] = None,
        empty_message: str = "No data available",
        title: str = "",
        show_index: bool = True,
        prefix: str = "",
    ):
        self.rows: list[T] = _records(rows)
        self.columns: list[Column] = list(columns)
        self.default_sort = default_sort
        self.empty_message = empty_message
        self.title = title
        self.show_index = show_index
        self.prefix = prefix
        self.sort_state = self._initial_state()

    def _initial_state(self) -> SortState:
        if self.default_sort and self._column(self.default_sort.key) is not None:
            return self.default_sort
        return SortState()

    def _column(self, key: Optional[str]) -> Optional[Column]:
        for col in self.columns:
            if col.key == key:
                return col
        return None

    @property
    def sortable_keys(self) -> list[str]:
        return [c.key for c in self.columns if c.sortable]

    def set_columns(self, columns: Sequence[Column]) -> None:
        new_columns = list(columns)
        changed = [c.key for c in new_columns] != [c.key for c in self.columns]
        self.columns = new_columns
        if changed:
            self.sort_state = self._initial_state()

    def click(self, key: str) -> SortState:
        col = self._column(key)
        if col is not None and col.sortable:
            self.sort_state = self.sort_state.toggled(key)
        return self.sort_state

    def apply_query(self, params: Optional[Mapping]) -> SortState:
        if not params:
            return self.sort_state
        form = TableSortForm(params, prefix=self.prefix or None, sortable_keys=self.sortable_keys)
        if not form.is_valid():
            logger.debug("Ignoring sort parameters for table '%s': %s", self.title, form.errors.as_json())
            return self.sort_state
        key = form.cleaned_data.get("sort")
        if key:
            self.sort_state = SortState(key, form.cleaned_data.get("dir") or ASC)
        return self.sort_state

    def sorted_rows(self) -> list[T]:
        col = self._column(self.sort_state.key)
        if col is None or not col.sortable:
            return list(self.rows)
        return sort_rows(self.rows, col, self.sort_state.direction)

    def _param(self, name: str) -> str:
        return f"{self.prefix}-{name}" if self.prefix else name

    def _header_query(self, key: str, params: Optional[Mapping]) -> str:
        nxt = self.sort_state.toggled(key)
        if isinstance(params, QueryDict):
            q = params.copy()
        else:
            q = QueryDict(mutable=True)
            q.update(params or {})
        q[self._param("sort")] = nxt.key
        q[self._param("dir")] = nxt.direction
        return q.urlencode()

    def render(self, params: Optional[Mapping] = None) -> TableView:
        view = TableView(title=self.title, show_index=self.show_index, empty_message=self.empty_message)
        if not self.rows:
            view.empty = True
            return view

        for col in self.columns:
            active = col.sortable and col.key == self.sort_state.key
            view.headers.append(
                HeaderCell(
                    key=col.key,
                    label=col.header,
                    sortable=col.sortable,
                    align=col.align,
                    width=col.width,
                    active=active,
                    direction=self.sort_state.direction if active else None,
                    query=self._header_query(col.key, params) if col.sortable else "",
                )
            )

        for i, row in enumerate(self.sorted_rows(), start=1):
            view.rows.append(RowView(index=i, cells=[CellView(c.cell(row), c.align) for c in self.columns]))
        return view
