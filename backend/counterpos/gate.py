# Overview: Per-request route gate: session token, role table and subscription state.

"""
Route gate evaluated before every request.

The role table is an ordered list of (path-prefix, allowed-roles) pairs; the
first matching prefix wins. Decisions are pure functions of the path, the
token claims and the clock, so the table can be tested without a request.

Outcomes for protected paths:
- no token / invalid token    -> UNAUTHENTICATED (401, redirect /login)
- role not in the matched rule -> FORBIDDEN (403, redirect /home)
- trial expired, INACTIVE or CANCELED subscription
                              -> PAYMENT_REQUIRED (402, redirect /billing)
  except on the billing, logout and "me" endpoints
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app, g, jsonify, request

from .models.auth import (
    ROLE_ADMIN,
    ROLE_CASHIER,
    ROLE_PHONE_REPAIR,
    SUBSCRIPTION_CANCELED,
    SUBSCRIPTION_INACTIVE,
    SUBSCRIPTION_TRIAL,
)
from .services.auth_service import TokenError, decode_token
from counterpos.time_utils import utcnow


ALLOW = "ALLOW"
UNAUTHENTICATED = "UNAUTHENTICATED"
FORBIDDEN = "FORBIDDEN"
PAYMENT_REQUIRED = "PAYMENT_REQUIRED"

LOGIN_PATH = "/api/auth/login"
LOGOUT_PATH = "/api/auth/logout"
ME_PATH = "/api/auth/me"
BILLING_PATH = "/api/billing"

AUTH_PATHS = (LOGIN_PATH, LOGOUT_PATH)
# Need a valid token but no particular role
TOKEN_ONLY_PATHS = (ME_PATH,)
SUBSCRIPTION_EXEMPT_PATHS = (BILLING_PATH, LOGOUT_PATH, ME_PATH)


@dataclass(frozen=True)
class RouteRule:
    prefix: str
    roles: frozenset


ROUTE_RULES: tuple[RouteRule, ...] = (
    RouteRule("/api/pos", frozenset({ROLE_ADMIN, ROLE_CASHIER})),
    RouteRule("/api/products", frozenset({ROLE_ADMIN, ROLE_CASHIER})),
    RouteRule("/api/sales", frozenset({ROLE_ADMIN})),
    RouteRule(BILLING_PATH, frozenset({ROLE_ADMIN, ROLE_CASHIER, ROLE_PHONE_REPAIR})),
)

_STATUS_CODES = {
    UNAUTHENTICATED: 401,
    FORBIDDEN: 403,
    PAYMENT_REQUIRED: 402,
}

_MESSAGES = {
    UNAUTHENTICATED: "Authentication required",
    FORBIDDEN: "Your role does not have access to this page",
    PAYMENT_REQUIRED: "Subscription inactive or trial expired",
}


@dataclass(frozen=True)
class GateDecision:
    outcome: str
    redirect: str | None = None
    clear_cookie: bool = False
    claims: dict | None = field(default=None, compare=False)

    @property
    def allowed(self) -> bool:
        return self.outcome == ALLOW


def path_matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def match_rule(path: str, rules=ROUTE_RULES) -> RouteRule | None:
    for rule in rules:
        if path_matches(path, rule.prefix):
            return rule
    return None


def is_subscription_blocked(claims: dict, now: datetime | None = None) -> bool:
    status = claims.get("subscriptionStatus")
    if status in (SUBSCRIPTION_INACTIVE, SUBSCRIPTION_CANCELED):
        return True
    trial_ends_at = claims.get("trialEndsAt")
    if status == SUBSCRIPTION_TRIAL and trial_ends_at is not None:
        return (now or utcnow()) > trial_ends_at
    return False


def evaluate(
    path: str,
    token: str | None,
    now: datetime | None = None,
    decode=decode_token,
    rules=ROUTE_RULES,
) -> GateDecision:
    """Decide what happens to a request for `path` carrying `token`."""
    if any(path_matches(path, p) for p in AUTH_PATHS):
        if token:
            try:
                claims = decode(token)
            except TokenError:
                return GateDecision(ALLOW, clear_cookie=True)
            return GateDecision(ALLOW, claims=claims)
        return GateDecision(ALLOW)

    rule = match_rule(path, rules)
    token_only = any(path_matches(path, p) for p in TOKEN_ONLY_PATHS)
    if rule is None and not token_only:
        return GateDecision(ALLOW)

    if not token:
        return GateDecision(UNAUTHENTICATED, redirect="/login")

    try:
        claims = decode(token)
    except TokenError:
        return GateDecision(UNAUTHENTICATED, redirect="/login", clear_cookie=True)

    if rule is not None and claims.get("role") not in rule.roles:
        return GateDecision(FORBIDDEN, redirect="/home", claims=claims)

    exempt = any(path_matches(path, p) for p in SUBSCRIPTION_EXEMPT_PATHS)
    if not exempt and is_subscription_blocked(claims, now):
        return GateDecision(PAYMENT_REQUIRED, redirect="/billing", claims=claims)

    return GateDecision(ALLOW, claims=claims)


def request_token() -> tuple[str | None, bool]:
    """
    Session token for the current request and whether it came from the cookie.

    The cookie is the primary carrier; "Authorization: Bearer" is accepted for
    scanners and scripts.
    """
    token = request.cookies.get(current_app.config["TOKEN_COOKIE_NAME"])
    if token:
        return token, True
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None, False
    return None, False


def install_gate(app) -> None:
    """Register the gate as a before_request hook on `app`."""

    @app.before_request
    def _route_gate():
        if request.method == "OPTIONS":
            return None

        token, from_cookie = request_token()
        decision = evaluate(request.path, token)
        g.token_claims = decision.claims
        g.clear_token_cookie = decision.clear_cookie and from_cookie

        if decision.allowed:
            return None

        current_app.logger.debug(
            "Gate rejected %s %s: %s", request.method, request.path, decision.outcome
        )
        response = jsonify({
            "error": _MESSAGES[decision.outcome],
            "redirect": decision.redirect,
        })
        response.status_code = _STATUS_CODES[decision.outcome]
        return response

    @app.after_request
    def _clear_invalid_token(response):
        if g.get("clear_token_cookie"):
            response.delete_cookie(current_app.config["TOKEN_COOKIE_NAME"], path="/")
        return response
