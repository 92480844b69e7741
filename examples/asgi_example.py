"""
Example: Serving plain service objects with an ASGI server.

Every public method of ``ItemService`` becomes an operation: ``get_item``
is ``GET /items/item/{id}``, ``get_items`` is ``GET /items/items`` and
``create_item`` is ``POST /items/create-item``.

Run with:
    uvicorn examples.asgi_example:app --reload
"""

from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel

from servicemachine import (
    Documentation,
    ServiceApplication,
    ServiceConfiguration,
    ServiceRegistry,
    create_asgi_app,
)


class Item(BaseModel):
    """Item model for demonstration."""
    id: int
    name: str
    price: float
    description: str = ""


class NewItem(BaseModel):
    name: str
    price: float
    description: str = ""


ITEMS: Dict[int, Item] = {
    1: Item(id=1, name="Fake item", price=3.14, description="Pie is delicious"),
}

registry = ServiceRegistry()


@registry.service("/items")
class ItemService:
    """Items for sale."""

    def get_item(self, id: Annotated[int, Documentation("Item identifier")]) -> Item:
        """Get item by ID."""
        return ITEMS[id]

    def get_items(self, max_price: Optional[float] = None) -> List[Item]:
        """List items, optionally capped by price."""
        return [item for item in ITEMS.values() if max_price is None or item.price <= max_price]

    def create_item(self, item: NewItem) -> Item:
        """Create a new item."""
        created = Item(id=max(ITEMS) + 1, **item.model_dump())
        ITEMS[created.id] = created
        return created


# Build the dispatcher; the OpenAPI description is generated here as well
service_app = ServiceApplication(ServiceConfiguration(registry=registry, title="Items"))

# Create the ASGI application - this is what the ASGI server will use
app = create_asgi_app(service_app)
