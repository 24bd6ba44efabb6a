# Overview: Flask API route reporting the account's subscription state.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from counterpos.time_utils import to_utc_z


billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


@billing_bp.get("")
@require_auth
def billing_status_route():
    """Reachable even when the subscription is blocked, so the client can explain why."""
    user = g.current_user
    return jsonify({
        "subscription_status": user.subscription_status,
        "trial_ends_at": to_utc_z(user.trial_ends_at) if user.trial_ends_at else None,
        "trial_expired": user.is_trial_expired(),
    }), 200
