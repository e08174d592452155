"""
Campaign model: the user-owned configuration that drives content generation
and the leads-to-email pipeline.
"""

from datetime import datetime
from extensions import db

CAMPAIGN_MODES = ("review", "auto")

DEFAULT_CONTENT_TYPES = {"blog": False, "socialPosts": False, "webpages": False}
DEFAULT_WEBPAGE_TYPES = {
    "solution": False,
    "industry": False,
    "product": False,
    "pricing": False,
}
DEFAULT_PLATFORMS = {
    "linkedin": False,
    "facebook": False,
    "twitter": False,
    "instagram": False,
    "gdrive": False,
}
DEFAULT_IMAGE_FOR = {"blog": False, "social": False, "webpages": False}


class Campaign(db.Model):
    __tablename__ = "campaigns"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name = db.Column(db.Text, nullable=False)
    idea = db.Column(db.Text, nullable=True)
    brand_voice = db.Column(db.Text, nullable=True)

    content_types = db.Column(db.JSON, nullable=False, default=dict)
    custom_instructions = db.Column(db.Text, nullable=True)
    webpage_types = db.Column(db.JSON, nullable=False, default=dict)
    platforms = db.Column(db.JSON, nullable=False, default=dict)
    needs_images = db.Column(db.Boolean, nullable=False, default=False)
    image_for = db.Column(db.JSON, nullable=False, default=dict)
    mode = db.Column(db.Text, nullable=False, default="review")

    # Leads-to-email pipeline
    messaging_angle = db.Column(db.Text, nullable=True)
    product_guidelines = db.Column(db.Text, nullable=True)
    smartlead_campaign_id = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", back_populates="campaigns")
    content_items = db.relationship(
        "GeneratedContent",
        back_populates="campaign",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="GeneratedContent.id",
    )
    contacts = db.relationship(
        "Contact",
        back_populates="campaign",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    generated_emails = db.relationship(
        "GeneratedEmail",
        back_populates="campaign",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def is_auto(self):
        return self.mode == "auto"

    def enabled_platforms(self):
        """Names of the platforms switched on for this campaign, in form order."""
        return [name for name, enabled in (self.platforms or {}).items() if enabled]

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "idea": self.idea,
            "brand_voice": self.brand_voice,
            "content_types": self.content_types or {},
            "custom_instructions": self.custom_instructions,
            "webpage_types": self.webpage_types or {},
            "platforms": self.platforms or {},
            "needs_images": self.needs_images,
            "image_for": self.image_for or {},
            "mode": self.mode,
            "messaging_angle": self.messaging_angle,
            "product_guidelines": self.product_guidelines,
            "smartlead_campaign_id": self.smartlead_campaign_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Campaign {self.id}: {self.name}>"
