from datetime import datetime
from extensions import db

SOCIAL_CONTENT_TYPES = ("social_post", "social")


class GeneratedContent(db.Model):
    """A single AI-generated content item belonging to a campaign."""

    __tablename__ = "generated_content"

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(
        db.Integer, db.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    content_type = db.Column(db.Text, nullable=False)  # e.g. 'blog', 'social_post'
    subtype = db.Column(db.Text, nullable=True)  # e.g. 'post', 'product_page'
    platform = db.Column(db.Text, nullable=True)  # e.g. 'linkedin', 'twitter'
    generated_text = db.Column(db.Text, nullable=False, default="")
    # Column is named 'metadata' in the database; the attribute name is reserved.
    item_metadata = db.Column("metadata", db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    campaign = db.relationship("Campaign", back_populates="content_items")

    @property
    def is_social(self):
        return self.content_type in SOCIAL_CONTENT_TYPES

    @property
    def image_url(self):
        return (self.item_metadata or {}).get("generated_image_url")

    def to_dict(self):
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "content_type": self.content_type,
            "subtype": self.subtype,
            "platform": self.platform,
            "generated_text": self.generated_text,
            "metadata": dict(self.item_metadata or {}),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<GeneratedContent {self.id}: {self.content_type}/{self.platform}>"
