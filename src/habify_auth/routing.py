"""Route guarding and login callback handling for the application shell."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

from .controller import AuthSessionController
from .errors import AuthError

LOGIN_PATH = "/login"
DEFAULT_CALLBACK_ERROR = "Login could not be completed. Please try again."


def _normalize_host(value: str | None) -> str | None:
    if not value:
        return None
    host = value.strip().lower()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix) :]
    return host.split("/", 1)[0]


def is_pwa_host(host: str, pwa_app_domain: str | None = None) -> bool:
    """True when the request host serves the installable mobile app."""
    current = host.lower()
    pwa_host = _normalize_host(pwa_app_domain)
    if pwa_host:
        return current == pwa_host
    return current.startswith("app.")


def default_home_path(host: str, pwa_app_domain: str | None = None) -> str:
    return "/pwa/activities" if is_pwa_host(host, pwa_app_domain) else "/activities"


def home_path_for_origin(origin: str | None, pwa_app_domain: str | None = None) -> str:
    """Home path for the origin the app is served from; no origin means the desktop app."""
    host = urlsplit(origin).hostname if origin else None
    return default_home_path(host or "", pwa_app_domain)


@dataclass(frozen=True)
class RouteDecision:
    """Outcome of guarding a protected route."""

    allow: bool
    loading: bool = False
    redirect_to: str | None = None
    from_path: str | None = None


def guard_route(controller: AuthSessionController, requested_path: str) -> RouteDecision:
    """Allow signed-in users; send everyone else to the login page.

    The requested path is preserved so the login can return to it.
    """
    if controller.is_loading:
        return RouteDecision(allow=False, loading=True)
    if controller.user is None:
        return RouteDecision(allow=False, redirect_to=LOGIN_PATH, from_path=requested_path)
    return RouteDecision(allow=True)


@dataclass(frozen=True)
class CallbackOutcome:
    """What the callback page should do next."""

    redirect_to: str | None = None
    error: str | None = None
    home_path: str | None = None


async def handle_callback(
    controller: AuthSessionController,
    params: Mapping[str, str],
    fallback_redirect: str,
) -> CallbackOutcome:
    """Process the provider redirect query parameters.

    ``fallback_redirect`` is the home path: it is used when the state carries
    no path, and is offered as the way back after an error.

    Integrity and exchange errors are returned for inline display rather than
    raised; the user retries by starting a new login.
    """
    provider_error = params.get("error_description") or params.get("error")
    code = params.get("code")
    if not code:
        if provider_error:
            return CallbackOutcome(error=provider_error, home_path=fallback_redirect)
        return CallbackOutcome()

    try:
        redirect_path = await controller.complete_login(code, params.get("state") or None)
    except AuthError as exc:
        return CallbackOutcome(
            error=exc.message or DEFAULT_CALLBACK_ERROR, home_path=fallback_redirect
        )
    return CallbackOutcome(redirect_to=redirect_path or fallback_redirect)
