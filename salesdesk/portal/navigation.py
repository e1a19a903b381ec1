from typing import NamedTuple

from portal.roles import Role, parse_role


class NavItem(NamedTuple):
    label: str
    icon: str
    path: str


NAV_ITEMS = {
    Role.SALES: (
        NavItem("Dashboard", "dashboard", "/sales/dashboard"),
        NavItem("Tickets", "ticket", "/ticketspage"),
        NavItem("Inventory", "inventory", "/inventory"),
    ),
    Role.PURCHASE: (
        NavItem("Dashboard", "dashboard", "/purchase/dashboard"),
        NavItem("Suppliers", "handshake", "/suppliers"),
        NavItem("Inventory", "inventory", "/inventory"),
    ),
    Role.ADMIN: (
        NavItem("Dashboard", "dashboard", "/admin/dashboard"),
        NavItem("Users", "people", "/admin/users"),
        NavItem("Tickets", "ticket", "/admin/tickets"),
        NavItem("Inventory", "inventory", "/inventory"),
    ),
}


def nav_items_for(role):
    return NAV_ITEMS.get(parse_role(role), ())


def active_nav(role, current_path):
    current = (current_path or "").rstrip("/") or "/"
    return [
        {"item": item, "active": item.path == current}
        for item in nav_items_for(role)
    ]
