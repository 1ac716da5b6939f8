import logging
from datetime import datetime
from typing import Dict, Optional

import httpx

from ..core.http import create_http_client, post_json
from ..core.validation import validate_email, validate_min_length
from ..models import StorefrontModel


logger = logging.getLogger(__name__)

SEND_FAILED_DETAIL = "Failed to send message. Please try again later or contact us directly."


class ContactForm(StorefrontModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: Optional[str] = None
    subject: str = ""
    message: str = ""


def validate_contact_form(form: ContactForm) -> None:
    validate_min_length("First name", form.first_name, 2)
    validate_min_length("Last name", form.last_name, 2)
    validate_email(form.email)
    validate_min_length("Subject", form.subject, 1)
    validate_min_length("Message", form.message, 10)


def build_relay_payload(form: ContactForm, sent_at: Optional[datetime] = None) -> Dict[str, str]:
    name = f"{form.first_name} {form.last_name}"
    phone = form.phone or "Not provided"
    sent_at = sent_at or datetime.now()
    body = (
        f"Subject: {form.subject}\n"
        f"\n"
        f"Name: {name}\n"
        f"Email: {form.email}\n"
        f"Phone: {phone}\n"
        f"\n"
        f"Message:\n"
        f"{form.message}\n"
        f"\n"
        f"---\n"
        f"Sent from InMind Contact Form\n"
        f"Time: {sent_at:%Y-%m-%d %H:%M:%S}"
    )
    return {
        "name": name,
        "email": form.email,
        "phone": phone,
        "subject": form.subject,
        "message": body,
    }


class ContactService:
    """Forwards contact-form submissions to the e-mail relay."""

    def __init__(self, relay_url: str, *, timeout_seconds: float = 10, client: Optional[httpx.Client] = None):
        self.relay_url = relay_url
        self.client = client or create_http_client(timeout_seconds=timeout_seconds)

    def close(self) -> None:
        self.client.close()

    def send_contact_message(self, form: ContactForm) -> Dict:
        validate_contact_form(form)
        payload = build_relay_payload(form)
        response = post_json(self.client, self.relay_url, payload, error_detail=SEND_FAILED_DETAIL)
        logger.info(f"Contact message from {form.email} relayed")
        return response
