# src/notification/services.py
import logging
from datetime import datetime
from typing import Dict, Optional

import requests

from config import settings

logger = logging.getLogger(__name__)

RESEND_ENDPOINT = "https://api.resend.com/emails"


def format_date(value: datetime) -> str:
    return value.strftime("%d %b %Y")


class NotificationService:
    """Email (Resend HTTP API) and WhatsApp text delivery.

    Every send returns {"ok": bool, "reason": ...} instead of raising on
    provider errors; callers decide whether a failure matters.
    """

    def __init__(
        self,
        email_api_key: str = settings.RESEND_API_KEY,
        email_from: str = settings.EMAIL_FROM,
        whatsapp_url: str = settings.WHATSAPP_API_URL,
        whatsapp_token: str = settings.WHATSAPP_API_TOKEN,
        timeout: int = 10,
    ):
        self.email_api_key = email_api_key
        self.email_from = email_from
        self.whatsapp_url = whatsapp_url
        self.whatsapp_token = whatsapp_token
        self.timeout = timeout

    def send_email(self, to: str, subject: str, text: str, html: Optional[str] = None) -> Dict:
        if not self.email_api_key or not self.email_from:
            reason = "Email provider not configured (missing RESEND_API_KEY or EMAIL_FROM)."
            logger.warning(reason)
            return {"ok": False, "reason": reason}

        body = {"from": self.email_from, "to": to, "subject": subject, "text": text}
        if html:
            body["html"] = html
        try:
            response = requests.post(
                RESEND_ENDPOINT,
                json=body,
                headers={"Authorization": f"Bearer {self.email_api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Email send to {to} failed: {str(e)}")
            return {"ok": False, "reason": str(e)}
        if response.status_code >= 400:
            logger.error(f"Email send failed: {response.status_code} - {response.text}")
            return {"ok": False, "reason": response.text}
        return {"ok": True}

    def send_whatsapp_text(self, to: str, message: str) -> Dict:
        if not self.whatsapp_url or not self.whatsapp_token:
            reason = "WhatsApp provider not configured (missing WHATSAPP_API_URL or WHATSAPP_API_TOKEN)."
            logger.warning(reason)
            return {"ok": False, "reason": reason}
        try:
            response = requests.post(
                self.whatsapp_url,
                data={"target": to, "message": message},
                headers={"Authorization": self.whatsapp_token},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"WhatsApp send to {to} failed: {str(e)}")
            return {"ok": False, "reason": str(e)}
        if response.status_code >= 400:
            logger.error(f"WhatsApp send failed: {response.status_code} - {response.text}")
            return {"ok": False, "reason": response.text}
        return {"ok": True}

    def send_purchase_notifications(
        self,
        name: str,
        email: Optional[str],
        phone: Optional[str],
        package_name: str,
        start_date: datetime,
        end_date: datetime,
    ) -> int:
        """Tell the buyer their membership is active. Returns the failure count."""
        body = (
            f"Hi {name}, your payment for the {package_name} package was successful.\n"
            f"Membership active {format_date(start_date)} - {format_date(end_date)}.\n"
            f"Enjoy your training!"
        )
        results = []
        if email:
            results.append(self.send_email(email, f"Payment for {package_name} successful", body))
        if phone:
            results.append(self.send_whatsapp_text(phone, body))

        failures = [r.get("reason") for r in results if not r.get("ok")]
        if failures:
            logger.warning(f"Some purchase notifications failed: {failures}")
        return len(failures)

    def send_booking_notifications(
        self,
        member_name: str,
        member_email: Optional[str],
        trainer_name: str,
        trainer_email: Optional[str],
        scheduled_at: datetime,
        duration_minutes: int,
        notes: Optional[str] = None,
    ) -> int:
        """Confirm a PT booking to the member and the trainer. Returns the failure count."""
        when = f"{scheduled_at.strftime('%A %d %b %Y %H:%M')} UTC, {duration_minutes} minutes"
        results = []
        if member_email:
            lines = [f"Hi {member_name},", "Your PT session is confirmed.", f"Schedule: {when}.", f"Trainer: {trainer_name}."]
            if notes:
                lines.append(f"Notes: {notes}")
            results.append(self.send_email(member_email, "PT Session Booking Confirmation", "\n".join(lines)))
        if trainer_email:
            lines = [f"Hi {trainer_name},", f"New booking from {member_name}.", f"Schedule: {when}."]
            if notes:
                lines.append(f"Member notes: {notes}")
            results.append(self.send_email(trainer_email, "PT Session Booking - New Booking", "\n".join(lines)))

        failures = [r.get("reason") for r in results if not r.get("ok")]
        if failures:
            logger.warning(f"Some booking emails failed: {failures}")
        return len(failures)
