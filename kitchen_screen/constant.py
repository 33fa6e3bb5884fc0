"""Editable static menu, lifecycle limits and operator-facing texts."""

from __future__ import annotations

ORDER_CAPACITY = 10
GRACE_MINUTES = 5
MIN_PREP_MINUTES = 1
MAX_PREP_MINUTES = 240
DEFAULT_PREP_MINUTES = 25
MS_PER_MINUTE = 60_000

# Remaining minutes strictly above these values keep the higher tier.
NORMAL_ABOVE_MINUTES = 25
WARNING_ABOVE_MINUTES = 5

CATEGORY_LABELS: dict[str, str] = {
    "soups": "🍲 Супы",
    "mains": "🍛 Основные блюда",
    "sides": "🍟 Дополнительные блюда",
    "grill": "🔥 Гриль",
    "salads": "🥗 Салаты",
}

MENU_BY_CATEGORY: dict[str, list[str]] = {
    "soups": ["Борщ", "Солянка", "Щи", "Харчо", "Минестроне", "Грибной суп", "Куриный суп", "Гороховый суп"],
    "mains": ["Пельмени", "Болоньезе", "Макароны по-флотски", "Овощное рагу", "Гуляш", "Плов", "Тушёнка"],
    "sides": [
        "Пюре",
        "Рис",
        "Гречка",
        "Лапша",
        "Картошка тушёная",
        "Капуста тушёная",
        "Хлеб",
        "Соус BBQ",
        "Соус чесночный",
        "Соус острый",
    ],
    "grill": ["Рёбра BBQ", "Курица гриль", "Шашлык куриный", "Колбаски", "Сосиски"],
    "salads": ["Салат", "Огурец свежий", "Свекольник"],
}

TEXTS: dict[str, str] = {
    "denied": "⛔️ Нет доступа.",
    "ask_label": "Введите номер заказа (например: GF-254):",
    "ask_label_again": "Введите номер заказа заново:",
    "ask_duration": "Введите время приготовления (1–240 минут), например 20:",
    "bad_duration": "Введите число 1–240.",
    "empty_label": "❌ Нет номера заказа. Нажми «Новый заказ».",
    "empty_cart": "❌ Корзина пустая.",
    "invalid_duration": "❌ Время приготовления должно быть 1–240 минут.",
    "press_new": "Нажми «Новый заказ».",
    "unknown_item": "❌ Такого блюда нет в меню.",
    "unknown_category": "❌ Такой категории нет.",
    "cart_empty": "Корзина пустая.",
    "pick_removal": "Выбери позицию, чтобы уменьшить на 1:",
    "pick_category": "Выбери категорию или добавляй блюда.",
    "pick_items": "Нажимай блюда (➕)",
    "removed": "Ок: {name}",
    "sent": "✅ Отправлено на ТВ: {label} ({minutes} мин)\nОткрой: {url}/screen",
    "done_note": "Завершён (удалится через 5 минут)",
}
