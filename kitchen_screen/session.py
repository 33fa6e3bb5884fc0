"""Per-user order composition: intents, replies, sessions and their registry."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from kitchen_screen.clock import Clock, SystemClock
from kitchen_screen.constant import MAX_PREP_MINUTES, MIN_PREP_MINUTES, TEXTS
from kitchen_screen.data import Catalog, Category
from kitchen_screen.models import Draft, Order, OrderItem, Rejected, RejectionReason, Step
from kitchen_screen.store import OrderStore

logger = logging.getLogger(__name__)

MS_PER_SECOND = 1000


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Text:
    payload: str


@dataclass(frozen=True)
class AddItem:
    name: str


@dataclass(frozen=True)
class RemoveItem:
    name: str


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Restart:
    pass


@dataclass(frozen=True)
class Submit:
    pass


@dataclass(frozen=True)
class ShowCategories:
    pass


@dataclass(frozen=True)
class OpenCategory:
    key: str


@dataclass(frozen=True)
class ShowCart:
    pass


Intent = Union[Start, Text, AddItem, RemoveItem, Clear, Restart, Submit, ShowCategories, OpenCategory, ShowCart]


class ViewKind(str, Enum):
    PROMPT = "prompt"
    CATEGORIES = "categories"
    ITEMS = "items"
    REMOVAL = "removal"


class ReplyStatus(str, Enum):
    OK = "ok"
    ERROR = "error"
    IGNORED = "ignored"
    DENIED = "denied"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class ComposerView:
    """Everything a transport needs to re-render the composer."""

    kind: ViewKind
    step: Step
    label: str
    prep_minutes: int
    cart: tuple[OrderItem, ...]
    category: Category | None
    categories: tuple[Category, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "step": self.step.value,
            "label": self.label,
            "prepDurationMinutes": self.prep_minutes,
            "cart": [{"name": item.name, "qty": item.qty} for item in self.cart],
            "category": None if self.category is None else self.category.key,
            "categories": [{"key": c.key, "label": c.label} for c in self.categories],
            "items": [] if self.category is None else list(self.category.items),
        }


@dataclass(frozen=True)
class Reply:
    """Outbound acknowledgment for one intent."""

    status: ReplyStatus
    text: str
    view: ComposerView | None = None
    order: Order | None = None
    reason: RejectionReason | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "text": self.text,
            "view": None if self.view is None else self.view.to_dict(),
            "order": None if self.order is None else self.order.to_dict(),
            "reason": None if self.reason is None else self.reason.value,
        }


REJECTION_TEXTS: dict[RejectionReason, str] = {
    RejectionReason.EMPTY_LABEL: TEXTS["empty_label"],
    RejectionReason.EMPTY_CART: TEXTS["empty_cart"],
    RejectionReason.INVALID_DURATION: TEXTS["invalid_duration"],
}


def parse_prep_minutes(text: str) -> int | None:
    """Parse operator input into whole minutes within the allowed range."""
    try:
        value = float(text.strip())
    except ValueError:
        return None
    if not math.isfinite(value) or not (MIN_PREP_MINUTES <= value <= MAX_PREP_MINUTES):
        return None
    return math.floor(value)


class CompositionSession:
    """State machine that builds one user's draft and hands it to the store."""

    def __init__(self, user_id: str, store: OrderStore, catalog: Catalog, public_url: str = "") -> None:
        self.user_id = user_id
        self.store = store
        self.catalog = catalog
        self.public_url = public_url
        self.draft = Draft()
        self.lock = threading.Lock()
        self._handlers: dict[type, Callable[..., Reply]] = {
            Start: self._on_start,
            Text: self._on_text,
            AddItem: self._on_add_item,
            RemoveItem: self._on_remove_item,
            Clear: self._on_clear,
            Restart: self._on_restart,
            Submit: self._on_submit,
            ShowCategories: self._on_show_categories,
            OpenCategory: self._on_open_category,
            ShowCart: self._on_show_cart,
        }

    @property
    def step(self) -> Step:
        return self.draft.step

    def handle(self, intent: Intent) -> Reply:
        handler = self._handlers.get(type(intent))
        if handler is None:
            raise TypeError(f"Unsupported intent: {intent!r}")
        return handler(intent)

    def view(self, kind: ViewKind | None = None) -> ComposerView:
        if kind is None:
            kind = self._current_kind()
        category = self.catalog.get(self.draft.active_category or "")
        return ComposerView(
            kind=kind,
            step=self.draft.step,
            label=self.draft.label,
            prep_minutes=self.draft.prep_minutes,
            cart=tuple(OrderItem(name=name, qty=qty) for name, qty in self.draft.cart.items()),
            category=category,
            categories=self.catalog.categories,
        )

    def _current_kind(self) -> ViewKind:
        if self.draft.step != Step.SELECTING_ITEMS:
            return ViewKind.PROMPT
        if self.draft.active_category is not None:
            return ViewKind.ITEMS
        return ViewKind.CATEGORIES

    def _reply(
        self,
        text: str,
        status: ReplyStatus = ReplyStatus.OK,
        kind: ViewKind | None = None,
        reason: RejectionReason | None = None,
    ) -> Reply:
        return Reply(status=status, text=text, view=self.view(kind), reason=reason)

    def _not_composing(self) -> Reply:
        return self._reply(TEXTS["press_new"], status=ReplyStatus.IGNORED)

    def _on_start(self, _: Start) -> Reply:
        self.draft.reset(Step.AWAITING_LABEL)
        return self._reply(TEXTS["ask_label"])

    def _on_text(self, intent: Text) -> Reply:
        text = (intent.payload or "").strip()

        if self.draft.step == Step.AWAITING_LABEL:
            if not text:
                return self._reply(TEXTS["ask_label"], ReplyStatus.ERROR, reason=RejectionReason.EMPTY_LABEL)
            self.draft.label = text
            self.draft.step = Step.AWAITING_DURATION
            return self._reply(TEXTS["ask_duration"])

        if self.draft.step == Step.AWAITING_DURATION:
            minutes = parse_prep_minutes(text)
            if minutes is None:
                return self._reply(TEXTS["bad_duration"], ReplyStatus.ERROR, reason=RejectionReason.INVALID_DURATION)
            self.draft.prep_minutes = minutes
            self.draft.step = Step.SELECTING_ITEMS
            return self._reply(TEXTS["pick_category"])

        return self._not_composing()

    def _on_add_item(self, intent: AddItem) -> Reply:
        if self.draft.step != Step.SELECTING_ITEMS:
            return self._not_composing()
        if not self.catalog.has_item(intent.name):
            return self._reply(TEXTS["unknown_item"], ReplyStatus.ERROR)
        self.draft.cart[intent.name] = self.draft.cart.get(intent.name, 0) + 1
        return self._reply(self._browse_text())

    def _on_remove_item(self, intent: RemoveItem) -> Reply:
        if self.draft.step != Step.SELECTING_ITEMS:
            return self._not_composing()
        remaining = self.draft.cart.get(intent.name, 0) - 1
        if remaining <= 0:
            self.draft.cart.pop(intent.name, None)
        else:
            self.draft.cart[intent.name] = remaining
        return self._reply(TEXTS["removed"].format(name=intent.name), kind=ViewKind.REMOVAL)

    def _on_clear(self, _: Clear) -> Reply:
        if self.draft.step != Step.SELECTING_ITEMS:
            return self._not_composing()
        self.draft.cart = {}
        return self._reply(self._browse_text())

    def _on_restart(self, _: Restart) -> Reply:
        if self.draft.step == Step.IDLE:
            return self._not_composing()
        self.draft.reset(Step.AWAITING_LABEL)
        return self._reply(TEXTS["ask_label_again"])

    def _on_submit(self, _: Submit) -> Reply:
        if self.draft.step != Step.SELECTING_ITEMS:
            return self._not_composing()

        result = self.store.submit(self.draft)
        if isinstance(result, Rejected):
            return self._reply(REJECTION_TEXTS[result.reason], ReplyStatus.ERROR, reason=result.reason)

        self.draft.reset(Step.IDLE)
        text = TEXTS["sent"].format(label=result.label, minutes=result.prep_minutes, url=self.public_url)
        return Reply(status=ReplyStatus.SUBMITTED, text=text, view=self.view(), order=result)

    def _on_show_categories(self, _: ShowCategories) -> Reply:
        if self.draft.step != Step.SELECTING_ITEMS:
            return self._not_composing()
        self.draft.active_category = None
        return self._reply(TEXTS["pick_category"])

    def _on_open_category(self, intent: OpenCategory) -> Reply:
        if self.draft.step != Step.SELECTING_ITEMS:
            return self._not_composing()
        if self.catalog.get(intent.key) is None:
            return self._reply(TEXTS["unknown_category"], ReplyStatus.ERROR)
        self.draft.active_category = intent.key
        return self._reply(TEXTS["pick_items"])

    def _on_show_cart(self, _: ShowCart) -> Reply:
        if self.draft.step != Step.SELECTING_ITEMS:
            return self._not_composing()
        if not self.draft.cart:
            return self._reply(TEXTS["cart_empty"], kind=ViewKind.REMOVAL)
        return self._reply(TEXTS["pick_removal"], kind=ViewKind.REMOVAL)

    def _browse_text(self) -> str:
        if self.draft.active_category is not None:
            return TEXTS["pick_items"]
        return TEXTS["pick_category"]


class SessionRegistry:
    """
    Sessions keyed by user identity with a sliding idle TTL.

    A session untouched for `ttl_seconds` is replaced by a blank one on the
    next access and removed by `sweep_idle()`.
    """

    def __init__(
        self,
        factory: Callable[[str], CompositionSession],
        ttl_seconds: float,
        clock: Clock | None = None,
    ) -> None:
        self.factory = factory
        self.ttl_seconds = ttl_seconds
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        # user_id -> (session, expires_at in epoch ms)
        self._items: dict[str, tuple[CompositionSession, int]] = {}

    def get_or_create(self, user_id: str) -> CompositionSession:
        now = self.clock.now_ms()
        with self._lock:
            item = self._items.get(user_id)
            if item is not None and item[1] > now:
                session = item[0]
            else:
                if item is not None:
                    logger.info("session expired user=%s", user_id)
                session = self.factory(user_id)
            self._items[user_id] = (session, now + int(self.ttl_seconds * MS_PER_SECOND))
            return session

    def get(self, user_id: str) -> CompositionSession | None:
        now = self.clock.now_ms()
        with self._lock:
            item = self._items.get(user_id)
            if item is None or item[1] <= now:
                return None
            return item[0]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def sweep_idle(self) -> int:
        now = self.clock.now_ms()
        with self._lock:
            expired = [user_id for user_id, (_, expires_at) in self._items.items() if expires_at <= now]
            for user_id in expired:
                del self._items[user_id]
        return len(expired)


class CompositionService:
    """Entry point for transports: access check, session lookup, dispatch."""

    def __init__(self, registry: SessionRegistry, is_allowed: Callable[[str], bool]) -> None:
        self.registry = registry
        self.is_allowed = is_allowed

    def handle(self, user_id: str, intent: Intent) -> Reply:
        if not self.is_allowed(user_id):
            logger.warning("access denied user=%s intent=%s", user_id, type(intent).__name__)
            return Reply(status=ReplyStatus.DENIED, text=TEXTS["denied"])

        session = self.registry.get_or_create(user_id)
        with session.lock:
            reply = session.handle(intent)
        logger.debug(
            "intent handled user=%s intent=%s status=%s step=%s",
            user_id,
            type(intent).__name__,
            reply.status.value,
            session.step.value,
        )
        return reply


def allow_listed(manager_ids: frozenset[int] | set[int]) -> Callable[[str], bool]:
    """Access predicate over numeric user ids; an empty list allows everyone."""

    def is_allowed(user_id: str) -> bool:
        if not manager_ids:
            return True
        try:
            return int(user_id) in manager_ids
        except (TypeError, ValueError):
            return False

    return is_allowed
