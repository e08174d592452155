"""
Unified Content Generator

This module wraps the Gemini API for every generation need of the app:
campaign content, single-item text regeneration, images, CSV column
detection and personalised lead emails.
"""

import base64
import json
import logging
import os
import re
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Any, Optional

import google.generativeai as genai

logger = logging.getLogger(__name__)


class Platform(Enum):
    """Platforms a credential can be stored for."""

    LINKEDIN = "linkedin"
    X = "x"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    GOOGLE_DRIVE = "google_drive"

    @classmethod
    def from_name(cls, name) -> "Platform":
        """Resolve campaign/UI platform names ('twitter', 'gdrive', ...) to a Platform."""
        key = str(name or "").strip().lower()
        key = PLATFORM_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unsupported platform: {name}")

    @property
    def content_name(self) -> str:
        """Name used for this platform on generated content items."""
        return CONTENT_PLATFORM_NAMES.get(self, self.value)


PLATFORM_ALIASES = {
    "twitter": "x",
    "x (twitter)": "x",
    "gdrive": "google_drive",
    "google": "google_drive",
    "drive": "google_drive",
    "google drive": "google_drive",
    "google-drive": "google_drive",
}

CONTENT_PLATFORM_NAMES = {Platform.X: "twitter", Platform.GOOGLE_DRIVE: "gdrive"}

SOCIAL_PLATFORM_NAMES = ("linkedin", "twitter", "facebook", "instagram")

EMAIL_FOOTER_KEYWORDS = (
    "thanks",
    "thank you",
    "best",
    "cheers",
    "regards",
    "sincerely",
    "warmly",
    "talk soon",
    "yours",
    "take care",
)

MISSING_RESEARCH_PHRASES = (
    "no specific external research",
    "no external research was provided",
    "no verified research",
)


@dataclass
class ContactEmail:
    """A generated cold email for one lead."""

    subject: str
    body: str
    research_summary: str


class ContentGenerationError(Exception):
    """Base exception for content generation errors."""

    pass


def clean_json_response(raw_text: str) -> str:
    """Strip markdown code fences the model sometimes wraps JSON in."""
    cleaned = re.sub(r"```json", "", raw_text or "", flags=re.IGNORECASE)
    return cleaned.replace("```", "").strip()


def normalize_content_platform(name) -> Optional[str]:
    """Map model-produced platform labels onto content platform names."""
    if not name:
        return None
    key = str(name).strip().lower()
    if not key or key in ("null", "none"):
        return None
    try:
        return Platform.from_name(key).content_name
    except ValueError:
        return key


def normalize_generated_items(raw_items) -> list:
    """
    Reshape the model's `content` array into content item dicts.

    Items targeting Google Drive are dropped. A subtype that names a platform
    is rewritten to 'post' with the platform moved to its own field.
    """
    items = []
    for raw in raw_items or []:
        if not isinstance(raw, dict):
            continue

        content_type = str(raw.get("type") or "").strip().lower()
        subtype = raw.get("subtype")
        platform = normalize_content_platform(raw.get("platform"))
        metadata = dict(raw.get("metadata") or {})

        subtype_platform = normalize_content_platform(subtype)
        if subtype_platform in SOCIAL_PLATFORM_NAMES:
            platform = platform or subtype_platform
            subtype = "post"

        if not platform:
            platform = normalize_content_platform(metadata.get("platform"))

        if platform == "gdrive":
            continue

        if content_type in ("social", "social_post") or (
            platform in SOCIAL_PLATFORM_NAMES and content_type in ("", "post")
        ):
            content_type = "social_post"

        if platform:
            metadata["platform"] = platform

        items.append(
            {
                "content_type": content_type or "content",
                "subtype": subtype,
                "platform": platform,
                "generated_text": str(raw.get("text") or "").strip(),
                "metadata": metadata,
            }
        )
    return items


def strip_email_footer(body: str) -> str:
    """Drop a trailing sign-off block (signature, 'Sent from', dash rule)."""
    lines = body.split("\n")
    for index in range(len(lines) - 1, -1, -1):
        normalized = lines[index].strip().lower()
        if not normalized:
            continue
        if (
            normalized.startswith(EMAIL_FOOTER_KEYWORDS)
            or re.fullmatch(r"[-–—_]{2,}", normalized)
            or normalized.startswith("sent from")
        ):
            return "\n".join(lines[:index]).strip()
    return body.strip()


class ContentGenerator:
    """Gemini-backed generator for campaign content, images and lead emails."""

    def __init__(
        self,
        api_key=None,
        text_model="gemini-2.5-pro",
        fast_model="gemini-2.5-flash",
        image_model="gemini-2.5-flash-image",
    ):
        """Initialize the content generator."""
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self.text_model = text_model
        self.fast_model = fast_model
        self.image_model = image_model

        if not self.api_key:
            raise ContentGenerationError("GEMINI_API_KEY environment variable not set")

        try:
            genai.configure(api_key=self.api_key)
        except Exception as e:
            raise ContentGenerationError(f"Failed to configure Gemini client: {str(e)}")

    @classmethod
    def from_config(cls, config) -> "ContentGenerator":
        """Build a generator from a Flask config mapping."""
        return cls(
            api_key=config.get("GEMINI_API_KEY"),
            text_model=config.get("GEMINI_TEXT_MODEL", "gemini-2.5-pro"),
            fast_model=config.get("GEMINI_FAST_MODEL", "gemini-2.5-flash"),
            image_model=config.get("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
        )

    def generate_campaign_content(self, campaign) -> list:
        """
        Generate every requested content item for a campaign in one call.

        Raises:
            ContentGenerationError: If the call fails or the response is not valid JSON.
        """
        from helpers.prompts import render_campaign_prompt

        prompt = render_campaign_prompt(campaign)
        logger.info(f"Generating content for campaign {campaign.id} ({len(prompt)} char prompt)")

        raw_text = self._call_gemini(prompt, self.text_model, json_output=True)
        try:
            parsed = json.loads(clean_json_response(raw_text))
        except ValueError as e:
            logger.error(f"Gemini returned unparseable JSON for campaign {campaign.id}: {e}")
            raise ContentGenerationError(f"Gemini returned invalid JSON: {str(e)}") from e

        raw_items = parsed.get("content") if isinstance(parsed, dict) else parsed
        if not isinstance(raw_items, list):
            raise ContentGenerationError("Gemini response did not contain a content list")

        items = normalize_generated_items(raw_items)
        logger.info(f"Gemini produced {len(items)} content items for campaign {campaign.id}")
        return items

    def regenerate_text(
        self,
        existing_text: str,
        instructions: str,
        content_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        from helpers.prompts import render_regenerate_prompt

        prompt = render_regenerate_prompt(
            existing_text, instructions, content_type, metadata or {}
        )
        return self._call_gemini(prompt, self.text_model).strip()

    def generate_image(self, prompt: str) -> str:
        """Generate an image and return it as a PNG data URL."""
        try:
            model = genai.GenerativeModel(self.image_model)
            response = model.generate_content(prompt)
        except Exception as e:
            raise ContentGenerationError(f"Gemini image call failed: {str(e)}") from e

        for candidate in response.candidates or []:
            for part in candidate.content.parts:
                inline_data = getattr(part, "inline_data", None)
                if inline_data is not None and inline_data.data:
                    data = inline_data.data
                    if isinstance(data, bytes):
                        data = base64.b64encode(data).decode("ascii")
                    return f"data:image/png;base64,{data}"

        logger.error("Gemini image response contained no inline image data")
        raise ContentGenerationError("Gemini did not return an image.")

    def detect_csv_columns(self, csv_snippet: str) -> Dict[str, Optional[str]]:
        """Ask the model which CSV headers hold the required lead fields."""
        from helpers.prompts import render_column_detection_prompt
        from helpers.csv_leads import REQUIRED_FIELDS

        try:
            raw_text = self._call_gemini(
                render_column_detection_prompt(csv_snippet),
                self.fast_model,
                json_output=True,
            )
            mapping = json.loads(clean_json_response(raw_text))
        except (ContentGenerationError, ValueError) as e:
            logger.error(f"Error detecting CSV columns: {e}")
            raise ContentGenerationError(
                "AI failed to analyze the CSV headers. Please map them manually."
            ) from e

        if not isinstance(mapping, dict):
            raise ContentGenerationError(
                "AI failed to analyze the CSV headers. Please map them manually."
            )

        result = {}
        for field_name in REQUIRED_FIELDS:
            value = mapping.get(field_name)
            result[field_name] = None if value in (None, "", "null") else str(value)
        logger.info(f"Detected CSV column mapping: {result}")
        return result

    def generate_contact_email(self, campaign, contact) -> ContactEmail:
        from helpers.prompts import render_contact_email_prompt

        try:
            raw_text = self._call_gemini(
                render_contact_email_prompt(campaign, contact),
                self.text_model,
                json_output=True,
            )
            parsed = json.loads(clean_json_response(raw_text))
        except (ContentGenerationError, ValueError) as e:
            logger.error(f"Error generating email for {contact.email}: {e}")
            raise ContentGenerationError(
                f"Failed to generate email for {contact.email}."
            ) from e

        summary = str(parsed.get("researchSummary") or "").strip()
        if not summary or any(
            phrase in summary.lower() for phrase in MISSING_RESEARCH_PHRASES
        ):
            summary = (
                f"Personalization approach: Targeting {contact.title} at {contact.company} "
                "based on typical role challenges and how our solution addresses them."
            )

        return ContactEmail(
            subject=str(parsed.get("subject") or "").strip(),
            body=strip_email_footer(str(parsed.get("body") or "")),
            research_summary=summary,
        )

    def _call_gemini(self, prompt: str, model_name: str, json_output=False) -> str:
        """Call Gemini once; no retry or backoff."""
        try:
            model = genai.GenerativeModel(model_name)
            generation_config = (
                genai.types.GenerationConfig(response_mime_type="application/json")
                if json_output
                else None
            )
            response = model.generate_content(prompt, generation_config=generation_config)
            text = response.text
        except Exception as e:
            raise ContentGenerationError(f"Gemini API call failed: {str(e)}") from e

        if not text:
            raise ContentGenerationError("Gemini returned empty response")
        return text
