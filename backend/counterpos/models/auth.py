from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z, utcnow


ROLE_ADMIN = "ADMIN"
ROLE_CASHIER = "CASHIER"
ROLE_PHONE_REPAIR = "PHONE_REPAIR"
ROLES = (ROLE_ADMIN, ROLE_CASHIER, ROLE_PHONE_REPAIR)

SUBSCRIPTION_TRIAL = "TRIAL"
SUBSCRIPTION_ACTIVE = "ACTIVE"
SUBSCRIPTION_INACTIVE = "INACTIVE"
SUBSCRIPTION_CANCELED = "CANCELED"
SUBSCRIPTION_STATUSES = (
    SUBSCRIPTION_TRIAL,
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_INACTIVE,
    SUBSCRIPTION_CANCELED,
)


class User(db.Model):
    """
    User accounts for authentication and attribution.

    MULTI-TENANT: The account is the tenant. Products, customers and sales
    carry user_id and every query is filtered by it.

    Role and subscription state are copied into the session token at login,
    so the route gate can decide without touching the database.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_ADMIN)

    subscription_status = db.Column(db.String(16), nullable=False, default=SUBSCRIPTION_TRIAL)
    trial_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def is_trial_expired(self, now=None) -> bool:
        if self.subscription_status != SUBSCRIPTION_TRIAL or self.trial_ends_at is None:
            return False
        return (now or utcnow()) > self.trial_ends_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "subscription_status": self.subscription_status,
            "trial_ends_at": to_utc_z(self.trial_ends_at) if self.trial_ends_at else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
