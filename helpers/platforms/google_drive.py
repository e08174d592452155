"""
Google Drive Platform Manager

Exports content as Google Docs using a multipart/related upload.
"""

import html
import json
import logging
import secrets
from typing import Dict, Any, Optional

from helpers.content_generator import Platform
from .base import BasePlatformManager, PlatformError, ProviderProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_ABOUT_URL = "https://www.googleapis.com/drive/v3/about"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files?uploadType=multipart"
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"


def render_campaign_document(campaign_name: str, items) -> str:
    """Compile content items into one HTML document suitable for Drive import."""
    sections = []
    for index, item in enumerate(items, start=1):
        metadata = item.get("metadata") or {}
        title = metadata.get("title") or f"Item {index}"
        parts = [
            f"<h2>{html.escape(str(title))}</h2>",
            f"<p><strong>Type:</strong> {html.escape(str(item.get('content_type') or ''))}"
            + (
                f" / {html.escape(str(item.get('subtype')))}"
                if item.get("subtype")
                else ""
            )
            + "</p>",
        ]
        if item.get("platform"):
            parts.append(
                f"<p><strong>Platform:</strong> {html.escape(str(item['platform']))}</p>"
            )
        text = item.get("generated_text") or ""
        for paragraph in text.split("\n\n"):
            if paragraph.strip():
                parts.append(
                    f"<p>{html.escape(paragraph.strip()).replace(chr(10), '<br>')}</p>"
                )
        image_url = metadata.get("generated_image_url")
        if image_url:
            parts.append(f'<p><img src="{html.escape(image_url)}" width="480"></p>')
        sections.append("\n".join(parts))

    body = "\n<hr>\n".join(sections)
    return (
        "<html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(campaign_name)}</title></head>"
        f"<body><h1>{html.escape(campaign_name)}</h1>\n{body}</body></html>"
    )


class GoogleDriveManager(BasePlatformManager):
    """Google Drive export."""

    platform = Platform.GOOGLE_DRIVE
    display_name = "Google Drive"
    authorization_url = GOOGLE_AUTHORIZATION_URL
    token_url = GOOGLE_TOKEN_URL
    scopes = "https://www.googleapis.com/auth/drive.file"
    config_prefix = "GOOGLE"
    supports_refresh = True
    extra_auth_params = {"access_type": "offline", "prompt": "consent"}

    def fetch_profile(self, access_token: str) -> ProviderProfile:
        try:
            response = self._make_request(
                "GET",
                DRIVE_ABOUT_URL,
                params={"fields": "user"},
                headers=self._bearer(access_token),
                log_context="Google Drive profile fetch",
            )
        except PlatformError as e:
            e.error_code = "profile_fetch_failed"
            raise

        user = self._json(response).get("user") or {}
        account_id = user.get("permissionId") or user.get("emailAddress")
        if not account_id:
            raise PlatformError(
                "Google Drive profile did not include a user id.",
                error_code="profile_id_missing",
                details=user,
            )
        return ProviderProfile(
            account_id=account_id,
            account_name=user.get("displayName"),
            metadata={"email": user.get("emailAddress")},
        )

    def upload_document(self, credential, name: str, html_content: str) -> Dict[str, Any]:
        """Create a Google Doc from HTML via a multipart/related upload."""
        boundary = f"contentwell_{secrets.token_hex(8)}"
        metadata = {"name": name, "mimeType": GOOGLE_DOC_MIME_TYPE}
        body = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata)}\r\n"
            f"--{boundary}\r\n"
            "Content-Type: text/html; charset=UTF-8\r\n\r\n"
            f"{html_content}\r\n"
            f"--{boundary}--"
        )

        response = self._make_request(
            "POST",
            DRIVE_UPLOAD_URL,
            headers={
                **self._bearer(credential),
                "Content-Type": f"multipart/related; boundary={boundary}",
            },
            data=body.encode("utf-8"),
            log_context="Google Drive upload",
        )
        data = self._json(response)
        file_id = data.get("id")
        file_url = f"https://docs.google.com/document/d/{file_id}/edit" if file_id else None
        logger.info(f"Uploaded '{name}' to Google Drive for user {credential.user_id}: {file_id}")
        return self._success_result(file_id, file_url, platform_response=data)

    def post_content(
        self, credential, text: str, image_url: Optional[str] = None
    ) -> Dict[str, Any]:
        title = text.strip().splitlines()[0][:60] if text.strip() else "Content"
        document = render_campaign_document(
            title,
            [
                {
                    "content_type": "content",
                    "generated_text": text,
                    "metadata": {"title": title, "generated_image_url": image_url},
                }
            ],
        )
        return self.upload_document(credential, f"ContentWell - {title}", document)
