"""
User model for authentication and profile information.
"""

from datetime import datetime
import bcrypt
from flask_login import UserMixin
from extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.Text, unique=True, nullable=False)
    password_hash = db.Column(db.Text, nullable=True)
    name = db.Column(db.Text, nullable=False)
    sector = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    campaigns = db.relationship(
        "Campaign",
        back_populates="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    social_credentials = db.relationship(
        "SocialCredential",
        back_populates="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def set_password(self, password):
        """Hash password with bcrypt using work factor 13."""
        salt = bcrypt.gensalt(rounds=13)
        self.password_hash = bcrypt.hashpw(password.encode("utf-8"), salt).decode(
            "utf-8"
        )

    def check_password(self, password):
        """Check if provided password matches the hash."""
        if not self.password_hash:
            return False
        return bcrypt.checkpw(
            password.encode("utf-8"), self.password_hash.encode("utf-8")
        )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "sector": self.sector,
        }

    def __repr__(self):
        return f"<User {self.email}>"
