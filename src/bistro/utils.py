"""Utility functions for bistro."""

from decimal import Decimal

from .models import CartItem, MenuItem, Order


def format_money(amount: Decimal) -> str:
    """Format an amount as dollars, e.g. ``$12.50``."""
    return f"${amount:.2f}"


def parse_option_pairs(pairs: list[str] | None) -> dict[str, str]:
    """
    Parse option selections given as "Name=Choice".

    Raises:
        ValueError: If a pair has no "=" or an empty name.
    """
    options: dict[str, str] = {}
    for pair in pairs or []:
        name, sep, choice = pair.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid option '{pair}' (expected Name=Choice)")
        options[name.strip()] = choice.strip()
    return options


def format_options(options: dict[str, str]) -> str:
    return ", ".join(f"{name}: {choice}" for name, choice in options.items())


def format_menu_item(item: MenuItem, verbose: bool = False) -> str:
    """Format a menu item for display."""
    featured = " [featured]" if item.featured else ""
    result = f"{item.id:<8}  {item.name} - {format_money(item.price)}{featured}"

    if verbose:
        if item.description:
            result += f"\n          {item.description}"
        for option in item.options:
            choices = []
            for choice in option.choices:
                surcharge = f" (+{format_money(choice.price)})" if choice.price else ""
                choices.append(f"{choice.name}{surcharge}")
            result += f"\n          {option.name}: {', '.join(choices)}"
        if item.dietary:
            result += f"\n          Dietary: {', '.join(item.dietary)}"
        if item.allergens:
            result += f"\n          Allergens: {', '.join(item.allergens)}"

    return result


def format_cart_item(item: CartItem) -> str:
    result = (
        f"{item.id:<8}  {item.quantity} x {item.name} @ {format_money(item.price)}"
        f" = {format_money(item.line_total)}"
    )
    if item.options:
        result += f"\n          {format_options(item.options)}"
    return result


def format_order(order: Order, verbose: bool = False) -> str:
    """Format an order for display."""
    result = (
        f"{order.id}  {order.status.value:<10} {format_money(order.total)}"
        f"  {order.created_at}"
    )
    if verbose:
        result += f"\n  Customer: {order.customer_name} <{order.customer_email}> {order.customer_phone}"
        if order.delivery_address:
            result += f"\n  Deliver to: {order.delivery_address}"
        if order.special_instructions:
            result += f"\n  Instructions: {order.special_instructions}"
        result += f"\n  Payment: {order.payment_method.value} ({order.payment_status.value})"
        for item in order.items:
            result += f"\n    {item.quantity} x {item.name} @ {format_money(item.price)}"
            if item.options:
                result += f" ({format_options(item.options)})"
    return result
