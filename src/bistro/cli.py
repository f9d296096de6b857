"""Command-line interface for bistro."""

import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .catalog import ALL_CATEGORIES, CatalogReader, ConfigReader
from .document_store import DocumentStore, LocalDocumentStore
from .errors import BistroError, ValidationError
from .log import configure_logging
from .models import OrderDetails, PaymentMethod
from .settings import Settings
from .storefront import CheckoutFlow, Storefront
from .utils import (
    format_cart_item,
    format_menu_item,
    format_money,
    format_order,
    parse_option_pairs,
)

DEFAULT_SESSION = "cli"


def get_storefront(
    args: argparse.Namespace,
    settings: Settings,
    store: DocumentStore | None = None,
) -> Storefront:
    """Open the storefront for the session named on the command line."""
    remote = store if settings.remote_orders else None
    return Storefront.open(settings.data_dir, args.session, remote=remote)


def get_catalog_reader(settings: Settings, store: DocumentStore) -> CatalogReader:
    reader = CatalogReader(store, settings.restaurant_document)
    reader.refresh()
    return reader


def print_validation_errors(e: ValidationError) -> None:
    print("Error: please fix the following fields:", file=sys.stderr)
    for field_name, message in e.errors.items():
        print(f"  {field_name}: {message}", file=sys.stderr)


def cmd_info(args: argparse.Namespace) -> int:
    """Show the restaurant profile."""
    try:
        settings = Settings.from_env()
        with settings.create_document_store() as store:
            reader = ConfigReader(store, settings.restaurant_document)
            config = reader.refresh()

        if reader.error:
            print(f"Error: {reader.error}", file=sys.stderr)
            return 1
        if config is None:
            print("No restaurant configuration found.")
            return 0

        if args.json:
            print(json.dumps(config.to_dict(), indent=2))
            return 0

        print(config.name)
        if config.description:
            print(config.description)
        print()
        print(f"Address: {config.address}")
        print(f"Phone:   {config.phone}")
        print(f"Email:   {config.email}")
        if config.business_hours:
            print()
            print("Hours:")
            for hours in config.business_hours:
                when = "Closed" if hours.is_closed else f"{hours.open} - {hours.close}"
                print(f"  {hours.day:<10} {when}")
        return 0

    except (BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_menu(args: argparse.Namespace) -> int:
    """List the menu or show one item."""
    try:
        settings = Settings.from_env()
        with settings.create_document_store() as store:
            reader = get_catalog_reader(settings, store)
        if reader.error:
            print(f"Error: {reader.error}", file=sys.stderr)
            return 1

        if args.item_id:
            item = reader.get_item(args.item_id)
            if args.json:
                print(json.dumps(item.to_dict(), indent=2))
                return 0
            print(format_menu_item(item, verbose=True))
            defaults = item.default_options()
            if defaults:
                print(f"          Price with default options: {format_money(item.unit_price(defaults))}")
            related = reader.related_items(item)
            if related:
                print("          You might also like: " + ", ".join(r.name for r in related))
            return 0

        items = reader.items_in_category(args.category)
        if not items:
            print("No menu items found.")
            return 0

        if args.json:
            print(json.dumps([i.to_dict() for i in items], indent=2))
            return 0

        for category in reader.sorted_categories():
            if args.category not in (ALL_CATEGORIES, category.id):
                continue
            in_category = [i for i in items if i.category == category.id]
            if not in_category:
                continue
            print(f"{category.name}:")
            for item in in_category:
                print(f"  {format_menu_item(item, verbose=args.verbose)}")
            print()

        uncategorized = [
            i for i in items if i.category not in {c.id for c in reader.catalog.categories}
        ]
        for item in uncategorized:
            print(f"  {format_menu_item(item, verbose=args.verbose)}")
        return 0

    except (BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def print_cart(storefront: Storefront) -> None:
    cart = storefront.cart
    if cart.is_empty():
        print("Your cart is empty.")
        return
    print(f"Cart ({cart.total_items} item(s)):")
    for item in cart.items:
        print(f"  {format_cart_item(item)}")
    print(f"Subtotal: {format_money(cart.subtotal)}")


def cmd_cart(args: argparse.Namespace) -> int:
    """Show or change the session cart."""
    try:
        settings = Settings.from_env()
        storefront = get_storefront(args, settings)
        cart = storefront.cart
        action = args.cart_command or "show"

        if action == "add":
            with settings.create_document_store() as store:
                reader = get_catalog_reader(settings, store)
            item = reader.get_item(args.item_id)
            options = parse_option_pairs(args.option)
            cart.add_item(item.to_cart_item(args.quantity, options))
            print(f"Added {item.name} to cart.")
        elif action == "update":
            cart.update_quantity(args.item_id, args.quantity)
        elif action == "remove":
            cart.remove_item(args.item_id)
        elif action == "clear":
            cart.clear_cart()
            print("Cart cleared.")
            return 0

        if args.json:
            print(json.dumps([i.to_dict() for i in cart.items], indent=2))
        else:
            print_cart(storefront)
        return 0

    except ValidationError as e:
        print_validation_errors(e)
        return 1
    except (BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_checkout(args: argparse.Namespace) -> int:
    """Place an order for the session cart."""
    try:
        settings = Settings.from_env()
        details = OrderDetails(
            customer_name=args.name or "",
            customer_email=args.email or "",
            customer_phone=args.phone or "",
            delivery_address=args.address,
            table_number=args.table,
            special_instructions=args.notes,
            payment_method=PaymentMethod(args.payment),
        )

        with settings.create_document_store() as store:
            storefront = get_storefront(args, settings, store)
            flow = CheckoutFlow(storefront)
            flow.continue_to_details()
            flow.continue_to_payment(details)
            order_id = flow.place_order()

        order = storefront.orders.get_order(order_id)
        print(f"Order placed: {order_id}")
        print(f"  Total: {format_money(order.total)} (includes 8% tax)")
        print(f"  Status: {order.status.value}")
        return 0

    except ValidationError as e:
        print_validation_errors(e)
        return 1
    except (BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_list(args: argparse.Namespace) -> int:
    try:
        storefront = get_storefront(args, Settings.from_env())
        orders = storefront.orders.orders

        if not orders:
            print("No orders found.")
            return 0

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
            return 0

        current = storefront.orders.current_order
        print(f"Orders ({len(orders)}):")
        for order in orders:
            marker = "*" if current and current.id == order.id else " "
            print(f"{marker} {format_order(order)}")
        return 0

    except (BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_show(args: argparse.Namespace) -> int:
    try:
        storefront = get_storefront(args, Settings.from_env())
        order = storefront.orders.get_order(args.order_id)
        if args.json:
            print(json.dumps(order.to_dict(), indent=2))
        else:
            print(format_order(order, verbose=True))
        return 0

    except (BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_cancel(args: argparse.Namespace) -> int:
    try:
        storefront = get_storefront(args, Settings.from_env())
        order = storefront.orders.get_order(args.order_id)
        storefront.orders.cancel_order(order.id)
        print(f"Cancelled order: {order.id}")
        return 0

    except (BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_seed(args: argparse.Namespace) -> int:
    """Load a restaurant document into the local document store."""
    try:
        settings = Settings.from_env()
        with open(args.file, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            print("Error: seed file must contain a JSON object", file=sys.stderr)
            return 1

        store = LocalDocumentStore(settings.data_dir)
        path = args.path or settings.restaurant_document
        store.set_document(path, data)
        print(f"Seeded {path} from {args.file}")
        return 0

    except (OSError, json.JSONDecodeError, BistroError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        settings = Settings.from_env()
        print("Starting bistro API server...")
        print(f"Data directory: {settings.data_dir}")
        print(f"Document store: {settings.document_store}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "bistro.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=settings.log_level.lower(),
        )
        return 0

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bistro",
        description="Restaurant menu, cart and ordering",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--session", "-s", default=DEFAULT_SESSION,
        help=f"Visitor session whose cart and orders to use (default: {DEFAULT_SESSION})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # info
    info_parser = subparsers.add_parser("info", help="Show the restaurant profile")
    info_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # menu
    menu_parser = subparsers.add_parser("menu", help="Browse the menu")
    menu_parser.add_argument("item_id", nargs="?", help="Show one item in detail")
    menu_parser.add_argument(
        "--category", "-c", default=ALL_CATEGORIES, help="Category ID (default: all)"
    )
    menu_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show descriptions and options"
    )
    menu_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # cart (subcommand group)
    cart_parser = subparsers.add_parser("cart", help="Show or change the cart")
    cart_parser.add_argument("--json", action="store_true", help="Output as JSON")
    cart_subparsers = cart_parser.add_subparsers(dest="cart_command")

    cart_subparsers.add_parser("show", help="Show the cart")

    cart_add_parser = cart_subparsers.add_parser("add", help="Add a menu item")
    cart_add_parser.add_argument("item_id", help="Menu item ID")
    cart_add_parser.add_argument(
        "--quantity", "-q", type=int, default=1, help="Quantity, 1-10 (default: 1)"
    )
    cart_add_parser.add_argument(
        "--option", "-o", action="append", help="Option choice as Name=Choice (repeatable)"
    )

    cart_update_parser = cart_subparsers.add_parser("update", help="Change a quantity")
    cart_update_parser.add_argument("item_id", help="Menu item ID")
    cart_update_parser.add_argument("quantity", type=int, help="New quantity (>= 1)")

    cart_remove_parser = cart_subparsers.add_parser("remove", help="Remove an item")
    cart_remove_parser.add_argument("item_id", help="Menu item ID")

    cart_subparsers.add_parser("clear", help="Empty the cart")

    # checkout
    checkout_parser = subparsers.add_parser("checkout", help="Place an order for the cart")
    checkout_parser.add_argument("--name", help="Customer name")
    checkout_parser.add_argument("--email", help="Customer email")
    checkout_parser.add_argument("--phone", help="Customer phone number")
    checkout_parser.add_argument("--address", help="Delivery address")
    checkout_parser.add_argument("--table", help="Table number")
    checkout_parser.add_argument("--notes", help="Special instructions")
    checkout_parser.add_argument(
        "--payment",
        choices=[m.value for m in PaymentMethod],
        default=PaymentMethod.CASH.value,
        help="Payment method (default: cash)",
    )

    # orders (subcommand group)
    orders_parser = subparsers.add_parser("orders", help="Show or cancel orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    orders_show_parser = orders_subparsers.add_parser("show", help="Show an order")
    orders_show_parser.add_argument("order_id", help="Order ID")
    orders_show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    orders_cancel_parser = orders_subparsers.add_parser("cancel", help="Cancel an order")
    orders_cancel_parser.add_argument("order_id", help="Order ID")

    # seed
    seed_parser = subparsers.add_parser(
        "seed", help="Load a restaurant document into the local document store"
    )
    seed_parser.add_argument("file", type=Path, help="JSON file with the document")
    seed_parser.add_argument(
        "--path", help="Document path (default: the configured restaurant document)"
    )

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    try:
        configure_logging(Settings.from_env().log_level)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Handle orders subcommands
    if args.command == "orders":
        if not getattr(args, "orders_command", None):
            parser.parse_args(["orders", "--help"])
            return 0
        if args.orders_command == "list":
            return cmd_orders_list(args)
        elif args.orders_command == "show":
            return cmd_orders_show(args)
        elif args.orders_command == "cancel":
            return cmd_orders_cancel(args)

    commands = {
        "info": cmd_info,
        "menu": cmd_menu,
        "cart": cmd_cart,
        "checkout": cmd_checkout,
        "seed": cmd_seed,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
