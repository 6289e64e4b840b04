"""Periodic network health polling exposed through an observable store."""

from __future__ import annotations

import logging
import threading
from copy import deepcopy
from typing import Any, Callable, Optional

import requests

from core.errors import NetworkStatusError

logger = logging.getLogger(__name__)

DEFAULT_STATUS_URL = "https://api.infura.io/v1/status/metamask"
POLLING_INTERVAL = 300.0  # seconds
NETWORK_STATUSES = ("ok", "degraded", "down")

Listener = Callable[[dict], None]


class ObservableStore:
    """Thread-safe key-value state that notifies subscribers on update."""

    def __init__(self, initial_state: Optional[dict] = None) -> None:
        self._state: dict = dict(initial_state or {})
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def get_state(self) -> dict:
        with self._lock:
            return deepcopy(self._state)

    def update_state(self, partial: dict) -> None:
        with self._lock:
            self._state.update(partial)
            snapshot = deepcopy(self._state)
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                # subscriber errors must not kill the poll thread
                logger.exception("network status listener %r failed", listener)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe


class NetworkStatusMonitor:
    """
    Polls a status endpoint answering ``{"status": "ok"|"degraded"|"down"}``.

    The latest response lives in ``store`` under ``networkStatus``. Callers
    consult ``is_network_healthy()`` before trusting live values such as the
    block gas limit.
    """

    def __init__(
        self,
        status_url: str = DEFAULT_STATUS_URL,
        poll_interval: float = POLLING_INTERVAL,
        store: Optional[ObservableStore] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._status_url = status_url
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._session = session or requests.Session()
        self.store = store or ObservableStore({"networkStatus": {}})
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    # ── public API ──────────────────────────────────────────────

    def check_network_status(self) -> dict:
        """Fetch the status once, store it, and return the parsed body."""
        resp = self._session.get(self._status_url, timeout=self._timeout)
        if resp.status_code >= 400:
            raise NetworkStatusError(
                f"HTTP {resp.status_code} from {self._status_url}"
            )
        try:
            data: Any = resp.json()
        except ValueError as exc:
            raise NetworkStatusError("Network status response is not JSON") from exc
        if not isinstance(data, dict) or data.get("status") not in NETWORK_STATUSES:
            raise NetworkStatusError(f"Unexpected network status payload: {data!r}")
        self.store.update_state({"networkStatus": data})
        return data

    def get_status(self) -> Optional[str]:
        return self.store.get_state().get("networkStatus", {}).get("status")

    def is_network_healthy(self) -> bool:
        return self.get_status() == "ok"

    # ── lifecycle ────────────────────────────────────────────────

    def schedule_network_check(self) -> None:
        """Start polling; an existing schedule is replaced."""
        self.stop()
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(stop_event,),
            daemon=True,
            name="network-status",
        )
        self._thread.start()
        logger.info(
            "network status polling every %.0fs from %s",
            self._poll_interval,
            self._status_url,
        )

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._stop_event = None
        self._thread = None

    # ── polling loop ─────────────────────────────────────────────

    def _poll_loop(self, stop_event: threading.Event) -> None:
        # first check fires after one interval, like setInterval
        while not stop_event.wait(self._poll_interval):
            try:
                status = self.check_network_status()
                logger.debug("network status: %s", status.get("status"))
            except (requests.RequestException, NetworkStatusError) as exc:
                logger.warning("network status check failed: %s", exc)
