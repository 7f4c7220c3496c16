from __future__ import annotations

from typing import Iterable, Iterator


class SelectionSet:
    """Ordered set of record ids chosen by the operator.

    Manual toggles survive page navigation; page-wide selection only ever
    touches the ids of the page it is given.
    """

    def __init__(self) -> None:
        self._ids: dict[str, None] = {}

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __bool__(self) -> bool:
        return bool(self._ids)

    def toggle(self, record_id: str) -> bool:
        """Flip one id and return whether it is now selected."""

        if record_id in self._ids:
            del self._ids[record_id]
            return False
        self._ids[record_id] = None
        return True

    def is_page_selected(self, page_ids: Iterable[str]) -> bool:
        page = list(page_ids)
        return bool(page) and all(record_id in self._ids for record_id in page)

    def select_all_on_page(self, page_ids: Iterable[str], checked: bool | None = None) -> bool:
        """Select or deselect every id of the loaded page.

        With ``checked=None`` a fully selected page is deselected and any
        other state selects the whole page. Returns the resulting page state.
        """

        page = list(dict.fromkeys(page_ids))
        if checked is None:
            checked = not self.is_page_selected(page)
        if checked:
            for record_id in page:
                self._ids.setdefault(record_id, None)
        else:
            for record_id in page:
                self._ids.pop(record_id, None)
        return checked

    def discard(self, record_id: str) -> None:
        self._ids.pop(record_id, None)

    def clear(self) -> None:
        self._ids.clear()
