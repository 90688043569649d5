from __future__ import annotations

import logging
import re

from .auth_store import AuthStore
from .cart import Cart
from .clients.auth import AuthClient
from .exceptions import StoreError
from .feedback import Notifier
from .history import SalesHistory
from .inventory import InventoryStore
from .logging import log_event
from .models import GateState, Identity, SessionData

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class SessionGate:
    """Keeps inventory, cart and history behind a signed-in identity."""

    def __init__(
        self,
        auth: AuthClient,
        inventory: InventoryStore,
        cart: Cart,
        history: SalesHistory,
        notifier: Notifier,
        auth_store: AuthStore | None = None,
    ) -> None:
        self.auth = auth
        self.inventory = inventory
        self.cart = cart
        self.history = history
        self.notifier = notifier
        self.auth_store = auth_store
        self.identity: Identity | None = None

    @property
    def state(self) -> GateState:
        return GateState.SIGNED_IN if self.identity else GateState.SIGNED_OUT

    @property
    def owner(self) -> str | None:
        return self.identity.id if self.identity else None

    @property
    def access_token(self) -> str | None:
        return self.auth.access_token if self.identity else None

    def sign_up(self, email: str, password: str) -> bool:
        if not self._credentials_look_valid(email, password):
            return False
        try:
            self.auth.sign_up(email.strip(), password)
        except StoreError as exc:
            self._log("sign_up", "error", error=str(exc))
            self.notifier.alert(f"Sign up failed: {exc.message}")
            return False
        self._log("sign_up", "success")
        self.notifier.alert("Check your email to confirm your account, then sign in.")
        return True

    def sign_in(self, email: str, password: str) -> bool:
        if not self._credentials_look_valid(email, password):
            return False
        try:
            token = self.auth.sign_in_with_password(email.strip(), password)
            identity = token.user or self.auth.get_current_user()
        except StoreError as exc:
            self._log("sign_in", "error", error=str(exc))
            self.notifier.alert(f"Sign in failed: {exc.message}")
            return False
        if identity is None:
            self._log("sign_in", "error", error="no identity")
            self.notifier.alert("Sign in failed: no user returned.")
            return False
        if self.auth_store is not None:
            self.auth_store.save(
                SessionData(access_token=token.access_token, refresh_token=token.refresh_token, user=identity)
            )
        self._enter(identity)
        self._log("sign_in", "success")
        return True

    def restore(self) -> bool:
        """Resume a persisted session if its token is still accepted."""
        if self.auth_store is None:
            return False
        stored = self.auth_store.load()
        if stored is None:
            return False
        self.auth.access_token = stored.access_token
        try:
            identity = self.auth.get_current_user()
        except StoreError as exc:
            self._log("restore", "error", error=str(exc))
            identity = None
        if identity is None:
            self.auth.access_token = None
            self.auth_store.clear()
            return False
        self._enter(identity)
        self._log("restore", "success")
        return True

    def sign_out(self) -> None:
        try:
            self.auth.sign_out()
        except StoreError as exc:
            # The local session is dropped regardless.
            self._log("sign_out", "error", error=str(exc))
        self.identity = None
        self.inventory.reset()
        self.cart.clear()
        self.history.reset()
        if self.auth_store is not None:
            self.auth_store.clear()
        self._log("sign_out", "success")

    def _enter(self, identity: Identity) -> None:
        self.identity = identity
        self.inventory.load(identity.id)
        self.history.load(identity.id)

    def _credentials_look_valid(self, email: str, password: str) -> bool:
        if not EMAIL_REGEX.match((email or "").strip()):
            self.notifier.alert("Enter a valid email address.")
            return False
        if not password:
            self.notifier.alert("Password is required.")
            return False
        return True

    def _log(self, action: str, outcome: str, **extra: object) -> None:
        # Never log email or password.
        log_event(
            logger,
            {"module": "session", "action": action, "outcome": outcome, "owner": self.owner, **extra},
            level=logging.ERROR if outcome == "error" else logging.INFO,
        )
