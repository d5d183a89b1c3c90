"""In-memory view-models behind the canvas: personas and pages.

Stores are single-threaded and replace-on-write: each mutation rebuilds the
item list, and ``current`` always points at an object from that list.
"""

import time
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel

from coterate.adapters.store import DataAccessAdapter
from coterate.casing import to_camel
from coterate.errors import StoreError
from coterate.models.request import StoreRequest, WireModel

PLACEHOLDER_IMAGE = "https://via.placeholder.com/800x600?text=Paste+Your+UI+Design"
PAGES_TABLE = "pages"


class Persona(WireModel):
    id: str
    name: str
    image: str | None = None
    iterated_image: str | None = None


class Page(WireModel):
    id: str
    name: str
    base_image: str | None = None
    iterated_image: str | None = None
    user_id: str | None = None


ItemT = TypeVar("ItemT", bound=BaseModel)


class _IdClock:
    """Millisecond ids that stay unique when several are minted in the same millisecond."""

    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        self._last = max(int(time.time() * 1000), self._last + 1)
        return self._last


class ViewModelStore(Generic[ItemT]):
    prefix = "item"
    label = "Item"

    def __init__(self) -> None:
        self.items: list[ItemT] = []
        self.current: ItemT | None = None
        self._clock = _IdClock()

    def new_id(self) -> str:
        return f"{self.prefix}-{self._clock.next()}"

    def default_name(self) -> str:
        return f"{self.label} {len(self.items) + 1}"

    def get(self, item_id: str) -> ItemT | None:
        return next((item for item in self.items if item.id == item_id), None)

    def _append(self, item: ItemT) -> ItemT:
        self.items = [*self.items, item]
        self.current = item
        return item

    def _remove(self, item_id: str) -> None:
        self.items = [item for item in self.items if item.id != item_id]
        if self.current is not None and self.current.id == item_id:
            self.current = self.items[0] if self.items else None

    def _replace(self, item_id: str, fields: dict[str, Any]) -> ItemT | None:
        updated = None
        items = []
        for item in self.items:
            if item.id == item_id:
                item = item.model_copy(update=fields)
                updated = item
            items.append(item)
        self.items = items
        if updated is not None and self.current is not None and self.current.id == item_id:
            self.current = updated
        return updated

    def set_current(self, item_id: str) -> ItemT | None:
        self.current = self.get(item_id)
        return self.current


class PersonaStore(ViewModelStore[Persona]):
    prefix = "persona"
    label = "Persona"

    def add(self, name: str | None = None) -> Persona:
        return self._append(Persona(id=self.new_id(), name=name or self.default_name()))

    def delete(self, persona_id: str) -> None:
        self._remove(persona_id)

    def update(self, persona_id: str, **fields: Any) -> Persona | None:
        return self._replace(persona_id, fields)

    def update_image(self, persona_id: str, image: str) -> Persona | None:
        return self.update(persona_id, image=image)

    def update_iterated_image(self, persona_id: str, image: str) -> Persona | None:
        return self.update(persona_id, iterated_image=image)


class PageStore(ViewModelStore[Page]):
    """Pages for the canvas, optionally persisted to the ``pages`` table.

    With a DataAccessAdapter and a user id, every mutation is written to the
    store first and local state only changes once that write succeeds.
    Without them the store is purely local, like an anonymous session.
    """

    prefix = "page"
    label = "Page"

    def __init__(self, store: DataAccessAdapter | None = None, user_id: str | None = None) -> None:
        super().__init__()
        self.store = store
        self.user_id = user_id

    @property
    def persistent(self) -> bool:
        return self.store is not None and self.user_id is not None

    def _execute(self, operation: str, **params: Any) -> dict[str, Any]:
        return self.store.execute(StoreRequest(operation=operation, table=PAGES_TABLE, **params))

    def _created_page(self, result: dict[str, Any]) -> Page:
        rows = result.get("data") or []
        if not rows:
            raise StoreError("Store returned no row for the created page")
        return Page.model_validate(rows[0])

    def load(self) -> list[Page]:
        """Fetch the user's pages, creating a default page when there are none."""
        if not self.persistent:
            if not self.items:
                self.add("Default Page")
            return self.items

        rows = self._execute("getItems", user_id=self.user_id).get("data") or []
        self.items = [Page.model_validate(row) for row in rows]
        if self.items:
            self.current = self.items[0]
        else:
            logger.info("No pages for user {user_id}, creating default page", user_id=self.user_id)
            self.add("Default Page")
        return self.items

    def add(self, name: str | None = None) -> Page:
        name = name or self.default_name()
        if not self.persistent:
            return self._append(Page(id=self.new_id(), name=name, base_image=PLACEHOLDER_IMAGE))

        result = self._execute(
            "createItem",
            data={"name": name, "baseImage": PLACEHOLDER_IMAGE, "userId": self.user_id},
        )
        return self._append(self._created_page(result))

    def update(self, page_id: str, **fields: Any) -> Page | None:
        if self.persistent:
            self._execute("updateItem", id=page_id, data=to_camel(fields))
        return self._replace(page_id, fields)

    def rename(self, page_id: str, name: str) -> Page | None:
        return self.update(page_id, name=name)

    def delete(self, page_id: str) -> None:
        if self.persistent:
            self._execute("deleteItem", id=page_id)
        self._remove(page_id)
