"""Отображение окна доставки заказа в админке, письмах и на странице заказа.

Все функции читают только _delivery_display из метаданных заказа и
возвращают пустую строку, если доставка к заказу не привязана.
"""
from html import escape
from typing import Any, Mapping

from sameday_delivery.core.constants import (
    ADMIN_DELIVERY_LABEL,
    DELIVERY_WINDOW_LABEL,
    META_DISPLAY,
)
from sameday_delivery.utils.enums import DisplayView


def _display(meta: Mapping[str, Any]) -> str:
    return str(meta.get(META_DISPLAY) or '')


def render_admin_meta(meta: Mapping[str, Any]) -> str:
    """Строка для карточки заказа в админке."""
    display = _display(meta)
    if not display:
        return ''
    return (
        f'<p><strong>{escape(ADMIN_DELIVERY_LABEL)}:</strong> '
        f'{escape(display)}</p>'
    )


def render_email_meta(meta: Mapping[str, Any], plain_text: bool) -> str:
    """Блок окна доставки для письма покупателю."""
    display = _display(meta)
    if not display:
        return ''
    if plain_text:
        return f'\n{DELIVERY_WINDOW_LABEL}: {display}\n'
    return (
        f'<p><strong>{escape(DELIVERY_WINDOW_LABEL)}:</strong> '
        f'{escape(display)}</p>'
    )


def render_thank_you_meta(meta: Mapping[str, Any]) -> str:
    """Секция окна доставки на странице благодарности."""
    display = _display(meta)
    if not display:
        return ''
    return (
        '<section class="order-delivery-window">'
        f'<h2>{escape(DELIVERY_WINDOW_LABEL)}</h2>'
        f'<p>{escape(display)}</p>'
        '</section>'
    )


def render_for_view(meta: Mapping[str, Any], view: DisplayView) -> str:
    if view == DisplayView.ADMIN:
        return render_admin_meta(meta)
    if view == DisplayView.THANK_YOU:
        return render_thank_you_meta(meta)
    return render_email_meta(meta, plain_text=view == DisplayView.EMAIL_PLAIN)
