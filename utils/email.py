# utils/email.py
import logging
from datetime import datetime
from urllib.parse import quote

import requests

from config import APP_BASE_URL, BREVO_API_KEY

logger = logging.getLogger(__name__)

BREVO_URL = "https://api.brevo.com/v3/smtp/email"


class EmailDeliveryError(Exception):
     pass


def invitation_link(token: str) -> str:
     return f"{APP_BASE_URL.rstrip('/')}/invitations/accept?token={quote(token)}"


def send_invitation_email(to_email: str, token: str, property_name: str, role: str, expires_at: datetime, api_key=BREVO_API_KEY):
     if not api_key:
          raise EmailDeliveryError("BREVO_API_KEY is not set")

     link = invitation_link(token)
     try:
          response = requests.post(
               BREVO_URL,
               headers={
                    "api-key": api_key,
                    "Content-Type": "application/json",
               },
               json={
                    "sender": {"name": "CondoEase", "email": "noreply@condoease.me"},
                    "to": [{"email": to_email}],
                    "subject": f"You're invited to {property_name} on CondoEase",
                    "htmlContent": f"""
                         <h2>You have been invited to {property_name}</h2>
                         <p>Role: <strong>{role.replace('_', ' ').title()}</strong></p>
                         <p><a href="{link}" style="color:#F28D35">Accept the invitation</a></p>
                         <p>This invitation expires on {expires_at:%B %d, %Y %H:%M} UTC.</p>
                    """,
               },
               timeout=10,
          )
     except requests.RequestException as e:
          raise EmailDeliveryError(f"Brevo request failed: {e}") from e
     if response.status_code not in (200, 201):
          raise EmailDeliveryError(f"Brevo error: {response.text}")
     logger.info("Invitation email sent to %s", to_email)
