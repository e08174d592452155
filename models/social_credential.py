"""
Per-user, per-platform OAuth credential.

At most one row exists for each (user_id, platform) pair; connect flows
overwrite it in place and disconnect deletes it.
"""

from datetime import datetime
from extensions import db

CREDENTIAL_PLATFORMS = ("linkedin", "x", "facebook", "instagram", "google_drive")

# Whether the provider issued a refresh token for this credential.
REFRESH_POLICY_NONE = "none"
REFRESH_POLICY_REFRESH_TOKEN = "refresh_token"


class SocialCredential(db.Model):
    __tablename__ = "social_credentials"
    __table_args__ = (
        db.UniqueConstraint("user_id", "platform", name="uq_social_credentials_user_platform"),
        db.CheckConstraint(
            "platform IN ('linkedin', 'x', 'facebook', 'instagram', 'google_drive')",
            name="ck_social_credentials_platform",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    platform = db.Column(db.Text, nullable=False)
    access_token = db.Column(db.Text, nullable=False)
    refresh_token = db.Column(db.Text, nullable=True)
    refresh_policy = db.Column(db.Text, nullable=False, default=REFRESH_POLICY_NONE)
    token_type = db.Column(db.Text, nullable=False, default="bearer")
    expires_at = db.Column(db.DateTime, nullable=True)
    scopes = db.Column(db.JSON, nullable=False, default=list)
    account_id = db.Column(db.Text, nullable=True)
    account_name = db.Column(db.Text, nullable=True)
    account_metadata = db.Column("metadata", db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = db.relationship("User", back_populates="social_credentials")

    @property
    def can_refresh(self):
        return self.refresh_policy == REFRESH_POLICY_REFRESH_TOKEN and bool(
            self.refresh_token
        )

    def is_expired(self, now=None):
        if not self.expires_at:
            return False
        now = now or datetime.utcnow()
        return self.expires_at < now

    def status(self, now=None):
        """'active', 'refreshable' (expired but renewable) or 'expired'."""
        if not self.is_expired(now):
            return "active"
        return "refreshable" if self.can_refresh else "expired"

    def to_dict(self):
        return {
            "platform": self.platform,
            "account_id": self.account_id,
            "account_name": self.account_name,
            "token_type": self.token_type,
            "scopes": self.scopes or [],
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "refresh_policy": self.refresh_policy,
            "status": self.status(),
            "metadata": dict(self.account_metadata or {}),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<SocialCredential user={self.user_id} platform={self.platform}>"
