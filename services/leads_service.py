import logging
from datetime import datetime

from extensions import db
from helpers.content_generator import ContentGenerationError
from helpers.csv_leads import export_to_csv, parse_csv_with_mapping
from helpers.smartlead import build_lead, push_leads_to_smartlead, SmartLeadError
from models.contact import Contact, GeneratedEmail

logger = logging.getLogger(__name__)


def import_contacts(campaign, file_content: str, mapping: dict):
    """
    Parse a lead CSV with the given column mapping and store the contacts.

    Returns:
        Tuple of (list of saved Contact rows, number of invalid rows).

    Raises:
        CsvMappingError: If a required column is not mapped.
    """
    parsed = parse_csv_with_mapping(file_content, mapping)

    contacts = [
        Contact(
            campaign_id=campaign.id,
            first_name=parsed_contact.first_name,
            last_name=parsed_contact.last_name,
            email=parsed_contact.email,
            company=parsed_contact.company,
            title=parsed_contact.title,
            raw_data=parsed_contact.raw_data,
        )
        for parsed_contact in parsed.contacts
    ]

    try:
        db.session.add_all(contacts)
        db.session.commit()
    except Exception as e:
        logger.exception(f"Error importing contacts for campaign {campaign.id}: {e}")
        db.session.rollback()
        raise

    logger.info(
        f"Imported {len(contacts)} contacts into campaign {campaign.id} "
        f"({parsed.invalid_rows} of {parsed.total_rows} rows invalid)"
    )
    return contacts, parsed.invalid_rows


def generate_emails_for_campaign(campaign, generator) -> dict:
    """
    Generate a cold email for every contact that does not have one yet.

    A failure for one contact is logged and counted; the rest continue.

    Returns:
        Dict with `generated` and `failed` counts.
    """
    generated = 0
    failed = 0
    for contact in campaign.contacts.order_by(Contact.id).all():
        if contact.generated_email is not None:
            continue

        try:
            email = generator.generate_contact_email(campaign, contact)
        except ContentGenerationError as e:
            logger.error(f"Skipping contact {contact.id}: {e}")
            failed += 1
            continue

        db.session.add(
            GeneratedEmail(
                campaign_id=campaign.id,
                contact_id=contact.id,
                subject=email.subject,
                body=email.body,
                research_summary=email.research_summary,
            )
        )
        try:
            db.session.commit()
        except Exception as e:
            logger.exception(f"Error saving email for contact {contact.id}: {e}")
            db.session.rollback()
            raise
        generated += 1

    logger.info(
        f"Generated {generated} emails for campaign {campaign.id} ({failed} failed)"
    )
    return {"generated": generated, "failed": failed}


def list_campaign_emails(campaign) -> list:
    return [
        email.to_dict()
        for email in campaign.generated_emails.order_by(GeneratedEmail.id).all()
    ]


def export_campaign_csv(campaign) -> str:
    """SmartLead import CSV of every generated email in the campaign."""
    return export_to_csv(list_campaign_emails(campaign))


def push_campaign_to_smartlead(campaign, api_key: str, smartlead_campaign_id: str) -> dict:
    """
    Push emails that have not been pushed yet as SmartLead leads.

    Raises:
        SmartLeadError: If SmartLead rejects the push. Nothing is marked pushed.
    """
    if not (api_key or "").strip() or not str(smartlead_campaign_id or "").strip():
        raise SmartLeadError("SmartLead API key and campaign id are required.", status_code=400)

    pending = (
        campaign.generated_emails.filter_by(pushed_to_smartlead=False)
        .order_by(GeneratedEmail.id)
        .all()
    )
    if not pending:
        logger.info(f"No unpushed emails for campaign {campaign.id}")
        return {"pushed": 0, "response": None}

    leads = [build_lead(email.to_dict()) for email in pending]
    response = push_leads_to_smartlead(api_key, smartlead_campaign_id, leads)

    pushed_at = datetime.utcnow()
    for email in pending:
        email.pushed_to_smartlead = True
        email.pushed_at = pushed_at
    campaign.smartlead_campaign_id = str(smartlead_campaign_id)
    try:
        db.session.commit()
    except Exception as e:
        logger.exception(f"Error marking emails pushed for campaign {campaign.id}: {e}")
        db.session.rollback()
        raise

    return {"pushed": len(pending), "response": response}
