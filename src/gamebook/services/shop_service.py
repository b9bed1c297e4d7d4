"""Market pages: stock tracking and purchases paid from a currency variable."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from gamebook.domain.defs import PageDef, ShopItemDef
from gamebook.domain.state import SessionState
from gamebook.domain.story import Story
from gamebook.services.events import StoryEvent


@dataclass(slots=True)
class ShopPurchaseEvent(StoryEvent):
    item_id: str
    item_name: str
    price: float
    remaining_funds: float


@dataclass(slots=True)
class ShopActionFailedEvent(StoryEvent):
    reason: str
    message: str


@dataclass(slots=True)
class ShopEntryView:
    item_id: str
    name: str
    description: str
    price: float
    stock: int | None
    owned: bool
    can_buy: bool


@dataclass(slots=True)
class ShopView:
    page_id: object
    currency: str
    funds: float
    entries: List[ShopEntryView] = field(default_factory=list)


@dataclass(slots=True)
class ShopTransaction:
    """Outcome of a purchase attempt; the engine merges it into the session."""

    events: List[StoryEvent]
    success: bool = False
    item_id: str | None = None
    currency: str | None = None
    funds: float | None = None
    stock_key: str | None = None
    stock: int | None = None


def shop_key(page: PageDef) -> str:
    return str(page.id)


class ShopService:
    """Deterministic shop stock and transaction logic."""

    def __init__(self, story: Story) -> None:
        self._story = story

    def build_shop_view(self, state: SessionState) -> ShopView | None:
        page = self._story.get_page(state.current_page_id)
        if page is None or page.shop is None:
            return None
        funds = self.funds(state, page.shop.currency)
        entries: List[ShopEntryView] = []
        for shop_item in page.shop.items:
            item = self._story.items.get(shop_item.item_id)
            price = self.price(shop_item)
            stock = self.remaining_stock(state, page, shop_item)
            owned = shop_item.item_id in state.inventory
            entries.append(
                ShopEntryView(
                    item_id=shop_item.item_id,
                    name=item.name if item else shop_item.item_id,
                    description=item.description if item else "",
                    price=price,
                    stock=stock,
                    owned=owned,
                    can_buy=funds >= price and (stock is None or stock > 0) and not owned,
                )
            )
        return ShopView(page_id=page.id, currency=page.shop.currency, funds=funds, entries=entries)

    def purchase(self, state: SessionState, item_id: str) -> ShopTransaction:
        page = self._story.get_page(state.current_page_id)
        if page is None or page.shop is None:
            return self._failed("no_shop", "There is no market here.")
        shop_item = next((entry for entry in page.shop.items if entry.item_id == item_id), None)
        if shop_item is None:
            return self._failed("not_sold", f"'{item_id}' is not sold here.")
        stock = self.remaining_stock(state, page, shop_item)
        if stock is not None and stock <= 0:
            return self._failed("out_of_stock", f"'{item_id}' is out of stock.")
        if item_id in state.inventory:
            return self._failed("already_owned", f"You already carry '{item_id}'.")
        funds = self.funds(state, page.shop.currency)
        price = self.price(shop_item)
        if funds < price:
            return self._failed("insufficient_funds", f"Not enough {page.shop.currency}.")

        remaining_funds = funds - price
        item = self._story.items.get(item_id)
        return ShopTransaction(
            events=[
                ShopPurchaseEvent(
                    item_id=item_id,
                    item_name=item.name if item else item_id,
                    price=price,
                    remaining_funds=remaining_funds,
                )
            ],
            success=True,
            item_id=item_id,
            currency=page.shop.currency,
            funds=remaining_funds,
            stock_key=shop_key(page),
            stock=stock - 1 if stock is not None else None,
        )

    def price(self, shop_item: ShopItemDef) -> float:
        if shop_item.price is not None:
            return shop_item.price
        item = self._story.items.get(shop_item.item_id)
        if item is not None and item.shop_price is not None:
            return item.shop_price
        return 0

    @staticmethod
    def funds(state: SessionState, currency: str) -> float:
        value = state.variables.get(currency, 0)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return value

    @staticmethod
    def remaining_stock(state: SessionState, page: PageDef, shop_item: ShopItemDef) -> int | None:
        """Return tracked stock, falling back to the declared quantity; None means unlimited."""
        if shop_item.quantity is None:
            return None
        stock: Dict[str, int] = state.shop_inventories.get(shop_key(page), {})
        return stock.get(shop_item.item_id, shop_item.quantity)

    @staticmethod
    def _failed(reason: str, message: str) -> ShopTransaction:
        return ShopTransaction(events=[ShopActionFailedEvent(reason=reason, message=message)])
