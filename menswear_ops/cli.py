#!/usr/bin/env python3
"""
menswear-ops command line

Back-office commands for customers, orders, garments, sizes, the dashboard
and PIN administration. Every command except ``login`` needs a saved
session.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from . import notifications
from .config import Settings, describe_telemetry, get_settings, setup_logging
from .exceptions import MenswearOpsError, ValidationError, WizardError, WizardSubmissionError
from .models import MemberRole, MemberSizeCreate, OrderStatus, SizeType
from .services import (
    AdminService,
    AuthService,
    CustomerService,
    DashboardService,
    GarmentService,
    OrderService,
)
from .session import SessionContext, SessionStore
from .stores import (
    AuthStore,
    CustomerListStore,
    CustomerStore,
    DashboardStore,
    GarmentCategoryStore,
    GarmentListStore,
    MemberGarmentStore,
    MemberSizeStore,
    OrderListStore,
    OrderStore,
)
from .validation import (
    ensure_valid,
    validate_customer_form,
    validate_customer_update,
    validate_member_update,
    validate_size_entry,
)
from .wizards import MemberAdditionWizard, OrderCreationWizard, OutfitSelection
from .wizards.base import DEFAULT_SIZE_UNITS

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ("first_name", "last_name", "email", "phone", "address_line_1", "address_line_2",
                   "city", "county", "postcode", "country", "notes")
MEMBER_FIELDS = ("first_name", "last_name", "role", "email", "phone", "notes", "fitting_completed")


class CliContext:
    """Settings and session shared by every command in one run"""

    def __init__(self, settings: Settings, session: Optional[SessionContext] = None):
        self.settings = settings
        self.session = session or SessionContext.restore(SessionStore(settings.SESSION_FILE))

    def service(self, service_class):
        return service_class(session=self.session)


def _print_table(rows: Iterable[Sequence[Any]], headers: Sequence[str]) -> None:
    rows = [["" if value is None else str(value) for value in row] for row in rows]
    widths = [max([len(header)] + [len(row[i]) for row in rows]) for i, header in enumerate(headers)]
    print("  ".join(header.ljust(width) for header, width in zip(headers, widths)))
    print("  ".join("-" * width for width in widths))
    for row in rows:
        print("  ".join(value.ljust(width) for value, width in zip(row, widths)))


def _print_page(store) -> None:
    print(f"Page {store.page} of {max(store.total_pages, 1)} ({store.total} total)")


def _customer_data(args: argparse.Namespace) -> Dict[str, Any]:
    return {field: getattr(args, field) for field in CUSTOMER_FIELDS if getattr(args, field, None) is not None}


# ===== AUTH =====

async def cmd_login(args: argparse.Namespace, ctx: CliContext) -> int:
    store = AuthStore(ctx.service(AuthService))
    user = await store.login_with_pin(args.pin)
    notifications.show_success("Welcome", f"Logged in as {user.full_name} ({user.role.value})")
    return 0


async def cmd_logout(args: argparse.Namespace, ctx: CliContext) -> int:
    await AuthStore(ctx.service(AuthService)).logout()
    notifications.show_info("Logged Out", "Session cleared")
    return 0


async def cmd_whoami(args: argparse.Namespace, ctx: CliContext) -> int:
    user = ctx.session.user
    print(f"{user.full_name} <{user.email}> ({user.role.value})")
    telemetry = describe_telemetry(ctx.settings)
    print(f"Environment: {ctx.settings.APP_ENV}; "
          f"error reporting {'on' if telemetry['error_reporting'] else 'off'}, "
          f"analytics {'on' if telemetry['analytics'] else 'off'}")
    return 0


# ===== CUSTOMERS =====

async def cmd_customers_list(args: argparse.Namespace, ctx: CliContext) -> int:
    filters = {key: getattr(args, key) for key in ("search", "city", "postcode") if getattr(args, key)}
    store = CustomerListStore(ctx.service(CustomerService), page=args.page,
                              limit=args.limit or ctx.settings.DEFAULT_PAGE_SIZE, filters=filters)
    await store.mount()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    _print_table(
        [(c.id, c.full_name, c.email, c.phone, c.postcode) for c in store.items],
        ("ID", "Name", "Email", "Phone", "Postcode"),
    )
    _print_page(store)
    return 0


async def cmd_customers_show(args: argparse.Namespace, ctx: CliContext) -> int:
    store = CustomerStore(ctx.service(CustomerService), args.id)
    await store.fetch()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    for key, value in store.customer.model_dump(exclude_none=True).items():
        print(f"{key:>15}: {value}")
    return 0


async def cmd_customers_create(args: argparse.Namespace, ctx: CliContext) -> int:
    data = _customer_data(args)
    ensure_valid(validate_customer_form(data))
    store = CustomerListStore(ctx.service(CustomerService), auto_fetch=False)
    customer = await store.create(data)
    notifications.show_create_success("Customer", customer.full_name)
    print(customer.id)
    return 0


async def cmd_customers_update(args: argparse.Namespace, ctx: CliContext) -> int:
    data = _customer_data(args)
    if not data:
        notifications.show_warning("Nothing to Update", "Pass at least one field to change")
        return 1
    ensure_valid(validate_customer_update(data))
    store = CustomerStore(ctx.service(CustomerService), args.id)
    customer = await store.update(data)
    notifications.show_update_success("Customer", customer.full_name)
    return 0


async def cmd_customers_delete(args: argparse.Namespace, ctx: CliContext) -> int:
    store = CustomerStore(ctx.service(CustomerService), args.id)
    await store.delete()
    notifications.show_delete_success("Customer", args.id)
    return 0


async def cmd_customers_history(args: argparse.Namespace, ctx: CliContext) -> int:
    store = CustomerStore(ctx.service(CustomerService), args.id)
    await store.fetch_history()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    history = store.history
    print(f"Orders booked by {history['customer'].full_name}:")
    _print_table(
        [(o['order_number'], o.get('wedding_date'), o.get('wedding_venue'), o['status'])
         for o in history['own_orders']],
        ("Order", "Date", "Venue", "Status"),
    )
    print("\nWedding parties they are part of:")
    _print_table(
        [(m['order']['order_number'], m['order'].get('wedding_date'), m['role'], m['order']['status'])
         for m in history['member_orders'] if m.get('order')],
        ("Order", "Date", "Role", "Status"),
    )
    return 0


# ===== ORDERS =====

async def cmd_orders_list(args: argparse.Namespace, ctx: CliContext) -> int:
    filters = {
        'search': args.search,
        'status': args.status,
        'customer_id': args.customer_id,
        'wedding_date_from': args.date_from,
        'wedding_date_to': args.date_to,
    }
    store = OrderListStore(ctx.service(OrderService), page=args.page,
                           limit=args.limit or ctx.settings.ORDER_PAGE_SIZE,
                           filters={k: v for k, v in filters.items() if v})
    await store.mount()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    _print_table(
        [(o.order_number, o.customer_name, o.wedding_date, o.wedding_venue,
          o.display_status.value if o.display_status else "", f"{o.actual_members}/{o.total_members}")
         for o in store.items],
        ("Order", "Customer", "Date", "Venue", "Status", "Members"),
    )
    _print_page(store)
    return 0


async def cmd_orders_show(args: argparse.Namespace, ctx: CliContext) -> int:
    store = OrderStore(ctx.service(OrderService), args.id, include_members=True)
    await store.mount()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    order = store.order_with_members
    customer = order.customer.full_name if order.customer else order.customer_id
    print(f"{order.order_number}  {order.function_type.value}  {order.status.value}")
    print(f"Customer: {customer}")
    print(f"Date: {order.wedding_date or '-'}  Venue: {order.wedding_venue or '-'}")
    _print_table(
        [(m.full_name, m.role.value, "yes" if m.measurements_taken else "no",
          "yes" if m.outfit_assigned else "no", "yes" if m.fitting_completed else "no")
         for m in store.members],
        ("Member", "Role", "Measured", "Outfit", "Fitted"),
    )
    return 0


async def cmd_orders_status(args: argparse.Namespace, ctx: CliContext) -> int:
    store = OrderStore(ctx.service(OrderService), args.id)
    order = await store.update({'status': args.status})
    notifications.show_update_success("Order", f"{order.order_number} ({order.status.value})")
    return 0


async def cmd_orders_delete(args: argparse.Namespace, ctx: CliContext) -> int:
    store = OrderStore(ctx.service(OrderService), args.id)
    await store.delete()
    notifications.show_delete_success("Order", args.id)
    return 0


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        notifications.show_error("Error", f"Could not read {path}: {e}")
        return None


async def _fill_draft(draft, entry: Dict[str, Any], garments: GarmentService) -> None:
    """Apply the garments and sizes listed for one member"""
    for pick in entry.get('garments', []):
        garment = await garments.get_by_id(pick.get('garment_id'))
        draft.outfit.select(garment, pick.get('quantity', 1), pick.get('is_rental', True), pick.get('notes'))
    for size_type, value in entry.get('sizes', {}).items():
        draft.set_size(size_type, value)


async def cmd_orders_create(args: argparse.Namespace, ctx: CliContext) -> int:
    """Run the order creation wizard from a JSON description of the booking"""
    booking = _read_json(args.from_file)
    if booking is None:
        return 1
    customers = ctx.service(CustomerService)
    orders = ctx.service(OrderService)
    garments = ctx.service(GarmentService)

    wizard = OrderCreationWizard(
        customers, orders, garments,
        categories=await garments.list_categories(),
        measured_by=ctx.session.actor_name,
        rollback_on_failure=not args.no_rollback,
    )

    if booking.get('customer_id'):
        wizard.select_customer(await customers.get_by_id(booking['customer_id']))
    elif booking.get('customer'):
        customer = await wizard.create_customer(booking['customer'])
        notifications.show_create_success("Customer", customer.full_name)
    wizard.set_function_details(**booking.get('function', {}))
    wizard.next_step()

    for entry in booking.get('members', []):
        draft = wizard.add_member(entry.get('first_name', ''), entry.get('last_name', ''),
                                  entry.get('role'), entry.get('email'),
                                  entry.get('phone'), entry.get('notes'))
        await _fill_draft(draft, entry, garments)
    wizard.next_step()

    order = await wizard.submit()
    customer = wizard.customer
    notifications.show_success(
        "Order Created Successfully",
        f"Order {order.order_number} has been created for {customer.first_name} {customer.last_name}",
    )
    print(order.id)
    return 0


async def cmd_orders_add_member(args: argparse.Namespace, ctx: CliContext) -> int:
    """Run the member addition wizard from a JSON description of one member"""
    entry = _read_json(args.from_file)
    if entry is None:
        return 1
    orders = ctx.service(OrderService)
    garments = ctx.service(GarmentService)

    order = await orders.get_by_id(args.order_id)
    existing = await orders.get_order_members(order.id)
    wizard = MemberAdditionWizard(
        orders, garments, order.id,
        categories=await garments.list_categories(),
        sort_order=max((m.sort_order for m in existing), default=0) + 1,
        measured_by=ctx.session.actor_name,
        rollback_on_failure=not args.no_rollback,
    )

    wizard.set_details(entry.get('first_name', ''), entry.get('last_name', ''), entry.get('role'),
                       entry.get('email'), entry.get('phone'), entry.get('notes'))
    wizard.next_step()
    await _fill_draft(wizard.member, entry, garments)
    wizard.next_step()

    member = await wizard.submit()
    notifications.show_success("Member Added", f"{member.full_name} has been added to {order.order_number}")
    print(member.id)
    return 0


async def cmd_orders_update_member(args: argparse.Namespace, ctx: CliContext) -> int:
    data = {field: getattr(args, field) for field in MEMBER_FIELDS if getattr(args, field, None) is not None}
    if not data:
        notifications.show_warning("Nothing to Update", "Pass at least one field to change")
        return 1
    ensure_valid(validate_member_update(data))
    store = OrderStore(ctx.service(OrderService), args.order_id)
    member = await store.update_member(args.member_id, data)
    notifications.show_update_success("Member", member.full_name)
    return 0


async def cmd_orders_remove_member(args: argparse.Namespace, ctx: CliContext) -> int:
    store = OrderStore(ctx.service(OrderService), args.order_id)
    await store.delete_member(args.member_id)
    notifications.show_delete_success("Member", args.member_id)
    return 0


# ===== MEMBER OUTFITS =====

def _parse_pick(text: str) -> Tuple[str, int, bool]:
    """GARMENT_ID[:QUANTITY[:hire|buy]] -> (garment id, quantity, is_rental)"""
    garment_id, _, rest = text.partition(":")
    quantity_text, _, mode = rest.partition(":")
    try:
        quantity = int(quantity_text) if quantity_text else 1
    except ValueError:
        raise ValidationError({'pick': f"Quantity must be a whole number in {text}"}) from None
    if not garment_id or mode not in ("", "hire", "buy"):
        raise ValidationError({'pick': f"Expected GARMENT_ID[:QUANTITY[:hire|buy]], got {text}"})
    return garment_id, quantity, mode != "buy"


async def cmd_members_outfit(args: argparse.Namespace, ctx: CliContext) -> int:
    """Change a member's saved outfit; a quantity of 0 removes a garment"""
    picks = [_parse_pick(text) for text in args.pick]
    garments = ctx.service(GarmentService)
    categories = GarmentCategoryStore(garments)
    store = MemberGarmentStore(garments, args.member_id)
    await categories.fetch()
    await store.fetch()
    for loaded in (categories, store):
        if loaded.error:
            notifications.show_error("Error", loaded.error)
            return 1

    outfit = OutfitSelection.from_assignments(categories.categories, store.garments)
    for garment_id, quantity, is_rental in picks:
        outfit.select(await garments.get_by_id(garment_id), quantity, is_rental)
    missing = outfit.missing_required_categories()
    if missing:
        raise WizardError(
            "Outfit Selection Required",
            f"Please select garments for all required categories (missing: "
            f"{', '.join(category.name for category in missing)})",
        )

    await outfit.save(store)
    notifications.show_update_success("Outfit", f"{outfit.total_items} items")
    return 0


# ===== GARMENTS AND SIZES =====

async def cmd_garments_list(args: argparse.Namespace, ctx: CliContext) -> int:
    filters = {'search': args.search, 'category_id': args.category_id}
    if not args.include_inactive:
        filters['active'] = True
    store = GarmentListStore(ctx.service(GarmentService), page=args.page,
                             limit=args.limit or ctx.settings.DEFAULT_PAGE_SIZE,
                             filters={k: v for k, v in filters.items() if v is not None})
    await store.mount()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    _print_table(
        [(g.id, g.name, g.category.name if g.category else "", g.color, g.rental_price, g.purchase_price)
         for g in store.items],
        ("ID", "Name", "Category", "Colour", "Hire", "Buy"),
    )
    _print_page(store)
    return 0


async def cmd_garments_categories(args: argparse.Namespace, ctx: CliContext) -> int:
    store = GarmentCategoryStore(ctx.service(GarmentService))
    await store.fetch()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    _print_table([(c.id, c.name, c.description) for c in store.categories], ("ID", "Name", "Description"))
    return 0


async def cmd_sizes_latest(args: argparse.Namespace, ctx: CliContext) -> int:
    store = MemberSizeStore(ctx.service(GarmentService), args.member_id)
    await store.fetch()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    _print_table(
        [(size_type, size.measurement, size.measurement_unit, size.measured_at.date(), size.measured_by)
         for size_type, size in sorted(store.latest_sizes.items())],
        ("Size", "Measurement", "Unit", "Measured", "By"),
    )
    return 0


async def cmd_sizes_add(args: argparse.Namespace, ctx: CliContext) -> int:
    size_type = SizeType(args.size_type)
    measured_by = args.measured_by or ctx.session.actor_name
    ensure_valid(validate_size_entry({'measurement': args.measurement, 'measured_by': measured_by}))
    store = MemberSizeStore(ctx.service(GarmentService), args.member_id)
    size = await store.add(MemberSizeCreate(
        member_id=args.member_id,
        size_type=size_type,
        measurement=args.measurement.strip(),
        measurement_unit=args.unit or DEFAULT_SIZE_UNITS.get(size_type),
        notes=args.notes,
        measured_by=measured_by,
    ))
    notifications.show_create_success("Size", f"{size.size_type.value} {size.measurement}")
    return 0


async def cmd_sizes_update(args: argparse.Namespace, ctx: CliContext) -> int:
    measured_by = args.measured_by or ctx.session.actor_name
    ensure_valid(validate_size_entry({'measurement': args.measurement, 'measured_by': measured_by}))
    store = MemberSizeStore(ctx.service(GarmentService), args.member_id)
    await store.fetch()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    data = {'measurement': args.measurement.strip(), 'measured_by': measured_by}
    if args.unit:
        data['measurement_unit'] = args.unit
    if args.notes is not None:
        data['notes'] = args.notes
    size = await store.update(args.size_id, data)
    notifications.show_update_success("Size", f"{size.size_type.value} {size.measurement}")
    return 0


# ===== DASHBOARD =====

async def cmd_dashboard(args: argparse.Namespace, ctx: CliContext) -> int:
    store = DashboardStore(ctx.service(DashboardService), upcoming_days=args.days)
    await store.refresh()
    if store.error:
        notifications.show_error("Error", store.error)
        return 1
    kpis = store.kpis
    print(f"Total orders: {kpis.total_orders}    Active customers: {kpis.active_customers}")
    print(f"Today's functions: {kpis.todays_functions}    Pending fittings: {kpis.pending_fittings}")
    print(f"Completed this month: {kpis.completed_orders_this_month}    "
          f"Estimated revenue: £{kpis.revenue_this_month:,.0f}")
    print(f"\nUpcoming functions (next {args.days} days):")
    _print_table(
        [(f.wedding_date, f.order_number, f.customer_name, f.wedding_venue, f"{f.actual_members}/{f.total_members}")
         for f in store.upcoming_functions],
        ("Date", "Order", "Customer", "Venue", "Members"),
    )
    print("\nRecent activity:")
    _print_table(
        [(a.created_at, a.user_name, a.action.value, a.description) for a in store.recent_activity],
        ("When", "Who", "Action", "Description"),
    )
    return 0


# ===== ADMIN =====

async def cmd_admin_pin_attempts(args: argparse.Namespace, ctx: CliContext) -> int:
    attempts = await ctx.service(AdminService).list_pin_attempts()
    _print_table(
        [(a.pin_hash, a.attempts, a.lock_until, a.last_attempt_at) for a in attempts],
        ("PIN hash", "Attempts", "Locked until", "Last attempt"),
    )
    return 0


async def cmd_admin_reset_pin(args: argparse.Namespace, ctx: CliContext) -> int:
    await ctx.service(AdminService).reset_pin_attempts(args.pin_hash)
    notifications.show_success("PIN Attempts Reset", f"Lockout cleared for {args.pin_hash}")
    return 0


def _add_paging(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--page", type=int, default=1, help="Page number (1-based)")
    parser.add_argument("--limit", type=int, default=None, help="Rows per page")


def _add_customer_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    for field in CUSTOMER_FIELDS:
        flag = "--" + field.replace("_", "-")
        parser.add_argument(flag, dest=field, required=required and field in ("first_name", "last_name"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="menswear-ops", description="Menswear hire back office")
    parser.add_argument("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    commands = parser.add_subparsers(dest="command", required=True)

    def command(subparsers, name: str, handler: Callable, help_text: str, **kwargs) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.set_defaults(handler=handler, **kwargs)
        return sub

    login = command(commands, "login", cmd_login, "Log in with a staff PIN", public=True)
    login.add_argument("pin")
    command(commands, "logout", cmd_logout, "Forget the saved session", public=True)
    command(commands, "whoami", cmd_whoami, "Show the logged-in user")

    customers = commands.add_parser("customers", help="Customer records").add_subparsers(
        dest="action", required=True)
    listing = command(customers, "list", cmd_customers_list, "List customers")
    _add_paging(listing)
    listing.add_argument("--search")
    listing.add_argument("--city")
    listing.add_argument("--postcode")
    command(customers, "show", cmd_customers_show, "Show one customer").add_argument("id")
    _add_customer_fields(command(customers, "create", cmd_customers_create, "Create a customer"), required=True)
    update = command(customers, "update", cmd_customers_update, "Update a customer")
    update.add_argument("id")
    _add_customer_fields(update, required=False)
    command(customers, "delete", cmd_customers_delete, "Delete a customer").add_argument("id")
    command(customers, "history", cmd_customers_history, "Orders a customer booked or is part of").add_argument("id")

    orders = commands.add_parser("orders", help="Orders (functions)").add_subparsers(dest="action", required=True)
    listing = command(orders, "list", cmd_orders_list, "List orders by wedding date")
    _add_paging(listing)
    listing.add_argument("--search")
    listing.add_argument("--status", help="active, no_deposit, past or a raw order status")
    listing.add_argument("--customer-id")
    listing.add_argument("--from", dest="date_from", help="Earliest wedding date (YYYY-MM-DD)")
    listing.add_argument("--to", dest="date_to", help="Latest wedding date (YYYY-MM-DD)")
    command(orders, "show", cmd_orders_show, "Show an order with its members").add_argument("id")
    status = command(orders, "status", cmd_orders_status, "Set an order's status")
    status.add_argument("id")
    status.add_argument("status", choices=[s.value for s in OrderStatus])
    command(orders, "delete", cmd_orders_delete, "Delete an order").add_argument("id")
    create = command(orders, "create", cmd_orders_create, "Create an order with its wedding party")
    create.add_argument("--from-file", required=True, help="JSON file describing the order")
    create.add_argument("--no-rollback", action="store_true",
                        help="Keep whatever was saved if a later write fails")
    add_member = command(orders, "add-member", cmd_orders_add_member, "Add a member to an order's wedding party")
    add_member.add_argument("order_id")
    add_member.add_argument("--from-file", required=True, help="JSON file describing the member")
    add_member.add_argument("--no-rollback", action="store_true",
                            help="Keep the member if a garment or size write fails")
    update_member = command(orders, "update-member", cmd_orders_update_member, "Change a member's details")
    update_member.add_argument("order_id")
    update_member.add_argument("member_id")
    for field in ("first_name", "last_name", "email", "phone", "notes"):
        update_member.add_argument("--" + field.replace("_", "-"), dest=field)
    update_member.add_argument("--role", choices=[r.value for r in MemberRole])
    update_member.add_argument("--fitting-completed", dest="fitting_completed", action="store_true", default=None)
    update_member.add_argument("--fitting-pending", dest="fitting_completed", action="store_false", default=None)
    remove_member = command(orders, "remove-member", cmd_orders_remove_member, "Remove a member from an order")
    remove_member.add_argument("order_id")
    remove_member.add_argument("member_id")

    members = commands.add_parser("members", help="Wedding-party members").add_subparsers(
        dest="action", required=True)
    outfit = command(members, "outfit", cmd_members_outfit, "Change the garments assigned to a member")
    outfit.add_argument("member_id")
    outfit.add_argument("--pick", action="append", required=True, metavar="GARMENT_ID[:QTY[:hire|buy]]",
                        help="Garment to add or change; a quantity of 0 removes it")

    garments = commands.add_parser("garments", help="Garment catalog").add_subparsers(dest="action", required=True)
    listing = command(garments, "list", cmd_garments_list, "List garments")
    _add_paging(listing)
    listing.add_argument("--search")
    listing.add_argument("--category-id")
    listing.add_argument("--include-inactive", action="store_true")
    command(garments, "categories", cmd_garments_categories, "List active garment categories")

    sizes = commands.add_parser("sizes", help="Member measurements").add_subparsers(dest="action", required=True)
    command(sizes, "latest", cmd_sizes_latest, "Latest measurement per size type").add_argument("member_id")
    add_size = command(sizes, "add", cmd_sizes_add, "Record a measurement")
    add_size.add_argument("member_id")
    add_size.add_argument("size_type", choices=[s.value for s in SizeType])
    add_size.add_argument("measurement")
    update_size = command(sizes, "update", cmd_sizes_update, "Correct a recorded measurement")
    update_size.add_argument("member_id")
    update_size.add_argument("size_id")
    update_size.add_argument("measurement")
    for sub in (add_size, update_size):
        sub.add_argument("--unit")
        sub.add_argument("--notes")
        sub.add_argument("--measured-by", help="Defaults to the logged-in user")

    dashboard = command(commands, "dashboard", cmd_dashboard, "KPIs, upcoming functions and activity")
    dashboard.add_argument("--days", type=int, default=7, help="Days ahead for upcoming functions")

    admin = commands.add_parser("admin", help="Admin tools").add_subparsers(dest="action", required=True)
    command(admin, "pin-attempts", cmd_admin_pin_attempts, "List PIN lockout counters")
    command(admin, "reset-pin", cmd_admin_reset_pin, "Clear a PIN lockout").add_argument("pin_hash")

    return parser


async def run(args: argparse.Namespace, ctx: CliContext) -> int:
    if not getattr(args, "public", False) and not ctx.session.is_authenticated:
        notifications.show_warning("Login Required", "Run `menswear-ops login PIN` first")
        return 1
    try:
        return await args.handler(args, ctx)
    except WizardSubmissionError as e:
        suffix = " The partial write was removed." if e.rolled_back else ""
        notifications.show_error("Error", f"{e.message}{suffix}")
    except WizardError as e:
        notifications.show_warning(e.title, e.message)
    except ValidationError as e:
        for field, message in e.errors.items():
            notifications.show_warning("Validation Error", f"{field}: {message}")
    except MenswearOpsError as e:
        notifications.show_error("Error", e.message)
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.LOG_LEVEL)
    return asyncio.run(run(args, CliContext(settings)))


if __name__ == "__main__":
    sys.exit(main())
