"""Command line login for Habify.

The terminal stands in for the browser tab: the authorize URL is opened in the
default browser, and after signing in the user pastes the URL the provider
redirected to. PKCE state is kept in memory for the lifetime of the command.
"""

from __future__ import annotations

import argparse
import asyncio
from urllib.parse import parse_qsl, urlsplit

from .capabilities import BrowserNavigator, Navigator
from .config import load_settings
from .controller import AuthSessionController, create_controller
from .errors import AuthError
from .routing import handle_callback, home_path_for_origin


class PrintNavigator:
    """Navigator that only shows the URL."""

    def navigate(self, url: str) -> None:
        print("Open the following URL in your browser:")
        print(url)
        print()


def parse_redirect_url(redirect_url: str) -> dict[str, str]:
    """Extract query parameters from the URL the provider redirected to."""
    return dict(parse_qsl(urlsplit(redirect_url.strip()).query))


async def _login(
    controller: AuthSessionController, mode: str, redirect_path: str | None, home_path: str
) -> int:
    if mode == "register":
        await controller.register(redirect_path)
    else:
        await controller.login(redirect_path)

    print("After signing in you are redirected to a URL like:")
    print("  https://your-app/login?code=XYZ&state=...")
    print()
    redirect_url = input("Paste the full redirect URL: ")
    params = parse_redirect_url(redirect_url)

    outcome = await handle_callback(controller, params, home_path)
    if outcome.error:
        print(f"Error: {outcome.error}")
        print(f"Return to: {outcome.home_path}")
        return 1
    if outcome.redirect_to is None:
        print("Error: Could not locate an authorization code in the redirect URL.")
        return 1

    user = controller.user
    print()
    print(f"✓ Signed in as {user.email if user else 'unknown'}")
    print(f"Continue at: {outcome.redirect_to}")
    return 0


async def _whoami(controller: AuthSessionController) -> int:
    user = await controller.initialize()
    if user is None:
        print("Not signed in.")
        return 1
    print(f"{user.email} ({user.id})")
    return 0


async def _logout(controller: AuthSessionController) -> int:
    await controller.logout()
    print("✓ Signed out")
    return 0


async def _debug(controller: AuthSessionController) -> int:
    await controller.initialize()
    await controller.log_debug_info()
    print(f"Session status: {controller.status.value}")
    return 0


async def run(args: argparse.Namespace, navigator: Navigator | None = None) -> int:
    """Execute a parsed command."""
    if navigator is None:
        navigator = PrintNavigator() if args.no_browser else BrowserNavigator()
    settings = load_settings()
    controller = create_controller(settings, navigator=navigator, current_origin=args.origin)

    if args.command in ("login", "register"):
        home_path = home_path_for_origin(args.origin, settings.habify_pwa_app_domain)
        return await _login(
            controller, args.command, getattr(args, "redirect_path", None), home_path
        )
    if args.command == "logout":
        return await _logout(controller)
    if args.command == "whoami":
        return await _whoami(controller)
    return await _debug(controller)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="habify-auth", description="Habify sign-in")
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print provider URLs instead of opening a browser",
    )
    parser.add_argument(
        "--origin",
        default=None,
        help="Origin the app is served from, used to derive the redirect URI",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("login", "Sign in"), ("register", "Create an account")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--redirect-path", default=None, help="Path to continue to after login")

    subparsers.add_parser("logout", help="Sign out")
    subparsers.add_parser("whoami", help="Show the signed-in user")
    subparsers.add_parser("debug", help="Log configuration (requires COGNITO_DEBUG=true)")
    return parser


def main() -> None:
    """Entry point for the ``habify-auth`` command."""
    args = build_parser().parse_args()
    try:
        exit_code = asyncio.run(run(args))
    except AuthError as exc:
        print(f"Error: {exc.message}")
        exit_code = 1
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
