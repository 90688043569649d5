from __future__ import annotations

from collections.abc import Callable
from getpass import getpass
from typing import Any

from .app import PosApp
from .models import EditState
from .validators import FieldKind

InputFunc = Callable[[str], str]


def format_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def print_table(title: str, rows: list[dict[str, Any]], columns: list[tuple[str, str]], empty: str = "(none)") -> None:
    print(f"\n{title}")
    if not rows:
        print(empty)
        return

    widths = []
    for key, header in columns:
        max_cell = max(len(format_value(row.get(key))) for row in rows)
        widths.append(max(len(header), max_cell))

    print(" | ".join(header.ljust(widths[idx]) for idx, (_, header) in enumerate(columns)))
    print("-+-".join("-" * width for width in widths))
    for row in rows:
        print(" | ".join(format_value(row.get(key)).ljust(widths[idx]) for idx, (key, _) in enumerate(columns)))


class KioskConsole:
    def __init__(self, app: PosApp, input_func: InputFunc = input, password_func: InputFunc = getpass) -> None:
        self.app = app
        self.input = input_func
        self.password = password_func

    @property
    def currency(self) -> str:
        return self.app.config.currency

    def run(self) -> None:
        self.app.start()
        while True:
            if not self.app.is_ready:
                if not self._auth_menu():
                    return
                continue
            if not self._main_menu():
                return

    def _auth_menu(self) -> bool:
        print("\nMerchandise Sales - sign in")
        print("1. Sign in")
        print("2. Sign up")
        print("q. Quit")
        option = self.input("Select an option: ").strip().lower()
        gate = self.app.gate
        if option == "1":
            email = self.input("Email: ")
            gate.sign_in(email, self.password("Password: "))
        elif option == "2":
            email = self.input("Email: ")
            gate.sign_up(email, self.password("Password: "))
        elif option == "q":
            return False
        else:
            print("Invalid option.")
        return True

    def _main_menu(self) -> bool:
        if not self.app.inventory.is_loaded:
            print("Loading...")
            self.app.refresh()
        self._print_inventory()
        self._print_cart()
        print("\n1. Set cart quantity     2. Complete sale      3. Clear cart")
        print("4. Add item              5. Edit price         6. Edit/Lock quantity")
        print("7. Type quantity         8. Delete item        9. Sales history")
        print("e. Export CSV            x. Clear sales history")
        if self.app.gate is not None:
            print("o. Sign out")
        print("q. Quit")
        option = self.input("Select an option: ").strip().lower()
        owner = self.app.owner
        inventory = self.app.inventory

        if option == "1":
            item = self._pick_item()
            if item and not self.app.cart.set_text(item, self.input("Qty (empty to remove): ").strip()):
                print("Ignored: quantity must be digits.")
        elif option == "2":
            if self.app.cart.is_empty:
                print("Cart is empty.")
            else:
                self.app.complete_sale()
        elif option == "3":
            self.app.cart.clear()
        elif option == "4":
            name = self.input("Item name: ").strip()
            price = self.input("Price: ").strip()
            quantity = self.input("Quantity: ").strip()
            if not inventory.add_item(name, price, quantity, owner):
                print("Item not added.")
        elif option == "5":
            item = self._pick_item()
            if item and not inventory.update_field(item, FieldKind.PRICE, self.input("New price: ").strip(), owner):
                print("Ignored: price must be a decimal number.")
        elif option == "6":
            item = self._pick_item()
            if item:
                state = inventory.toggle_edit(item, owner)
                print(f"{item}: {'editing' if state is EditState.EDITING else 'locked'}")
        elif option == "7":
            item = self._pick_item()
            if item and not inventory.update_field(item, FieldKind.QUANTITY, self.input("Available: ").strip(), owner):
                print("Ignored: unlock the quantity first and type digits only.")
        elif option == "8":
            item = self._pick_item()
            if item:
                inventory.delete_item(item, owner)
        elif option == "9":
            self._print_history()
        elif option == "e":
            if not self.app.history.records:
                print("No sales to export.")
            else:
                path = self.app.history.write_export(
                    self.input("Directory [.]: ").strip() or ".",
                    owner,
                    include_timestamp=self.app.config.export_timestamps,
                )
                if path:
                    print(f"Exported {path}")
        elif option == "x":
            self.app.history.clear(owner)
        elif option == "o" and self.app.gate is not None:
            self.app.gate.sign_out()
        elif option == "q":
            return False
        else:
            print("Invalid option.")
        return True

    def _pick_item(self) -> str | None:
        name = self.input("Item: ").strip()
        if self.app.inventory.get(name) is None:
            print(f"No item named {name!r}.")
            return None
        return name

    def _print_inventory(self) -> None:
        inventory = self.app.inventory
        rows = []
        for name, item in inventory.snapshot().items():
            editing = inventory.edit_state(name) is EditState.EDITING
            rows.append(
                {
                    "item": name,
                    "price": f"{self.currency}{item.price}",
                    "available": inventory.displayed_quantity(name),
                    "mode": "editing" if editing else "locked",
                    "cart": self.app.cart.get(name),
                }
            )
        print_table(
            "Merchandise Sales",
            rows,
            [("item", "Item"), ("price", "Price"), ("available", "Available"), ("mode", "Qty"), ("cart", "In cart")],
            empty="(no items)",
        )

    def _print_cart(self) -> None:
        items = self.app.inventory.snapshot()
        rows = [
            {
                "item": line.item_name,
                "line": f"{line.quantity} x {self.currency}{items[line.item_name].price}",
                "total": f"{self.currency}{self.app.cart.line_total(line.item_name, items)}",
            }
            for line in self.app.cart.lines()
            if line.item_name in items
        ]
        print_table("Cart", rows, [("item", "Item"), ("line", "Qty x Price"), ("total", "Total")], empty="No items in cart.")
        print(f"Total: {self.currency}{self.app.cart_total()}")

    def _print_history(self) -> None:
        rows = [
            {
                "item": record.item_name,
                "qty": record.quantity,
                "price": f"{self.currency}{record.unit_price}",
                "total": f"{self.currency}{record.line_total}",
                "timestamp": record.timestamp.isoformat(timespec="seconds"),
            }
            for record in self.app.history.records
        ]
        print_table(
            "Sales history",
            rows,
            [("item", "Item"), ("qty", "Quantity"), ("price", "Price"), ("total", "Total"), ("timestamp", "Timestamp")],
            empty="(no sales yet)",
        )
