"""
Lead contacts imported from CSV and the cold emails generated for them.
"""

from datetime import datetime
from extensions import db


class Contact(db.Model):
    __tablename__ = "contacts"

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(
        db.Integer, db.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    first_name = db.Column(db.Text, nullable=False)
    last_name = db.Column(db.Text, nullable=False)
    email = db.Column(db.Text, nullable=False)
    company = db.Column(db.Text, nullable=False)
    title = db.Column(db.Text, nullable=False)
    raw_data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    campaign = db.relationship("Campaign", back_populates="contacts")
    generated_email = db.relationship(
        "GeneratedEmail",
        back_populates="contact",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "company": self.company,
            "title": self.title,
            "raw_data": dict(self.raw_data or {}),
        }

    def __repr__(self):
        return f"<Contact {self.email}>"


class GeneratedEmail(db.Model):
    __tablename__ = "generated_emails"

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(
        db.Integer, db.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    contact_id = db.Column(
        db.Integer, db.ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False
    )
    subject = db.Column(db.Text, nullable=False)
    body = db.Column(db.Text, nullable=False)
    research_summary = db.Column(db.Text, nullable=True)
    pushed_to_smartlead = db.Column(db.Boolean, nullable=False, default=False)
    pushed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    campaign = db.relationship("Campaign", back_populates="generated_emails")
    contact = db.relationship("Contact", back_populates="generated_email")

    def to_dict(self):
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "contact": self.contact.to_dict() if self.contact else None,
            "subject": self.subject,
            "body": self.body,
            "researchSummary": self.research_summary,
            "pushed_to_smartlead": self.pushed_to_smartlead,
            "pushed_at": self.pushed_at.isoformat() if self.pushed_at else None,
        }

    def __repr__(self):
        return f"<GeneratedEmail {self.id} for contact {self.contact_id}>"
