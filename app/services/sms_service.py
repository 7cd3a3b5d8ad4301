"""
SMS Notification Service - authority alerts for newly reported problems.

DESIGN PRINCIPLES:
- Best effort: every failure is logged and swallowed
- Missing Twilio credentials means "do nothing", not an error
- Nothing is persisted about the attempt
"""

from app.core.settings import settings
from typing import Dict, Optional
import logging
import requests

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"


def build_new_problem_message(problem: Dict) -> str:
    """SMS body announcing a new problem."""
    return (
        f"New problem reported: {problem.get('problem_id')}\n"
        f"Title: {problem.get('title')}\n"
        f"Severity: {problem.get('severity')}"
    )


class SMSService:
    """
    Sends SMS through the Twilio Messages REST endpoint.
    """

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        to_number: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.account_sid = account_sid if account_sid is not None else settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token if auth_token is not None else settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number if from_number is not None else settings.TWILIO_PHONE_NUMBER
        self.to_number = to_number if to_number is not None else settings.AUTHORITY_PHONE_NUMBER
        self.timeout_seconds = timeout_seconds or settings.SMS_TIMEOUT_SECONDS

    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    def notify(self, message: str) -> bool:
        """
        Send `message` to the authority number.

        Returns:
            True if Twilio accepted the message, False otherwise. Never raises.
        """
        if not self.is_configured():
            logger.info("SMS skipped: Twilio credentials not configured")
            return False

        if not self.from_number or not self.to_number:
            logger.warning("SMS skipped: TWILIO_PHONE_NUMBER or AUTHORITY_PHONE_NUMBER not set")
            return False

        try:
            response = requests.post(
                TWILIO_MESSAGES_URL.format(account_sid=self.account_sid),
                data={"Body": message, "From": self.from_number, "To": self.to_number},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout_seconds
            )
            if response.status_code >= 300:
                logger.error(f"⚠️ Twilio returned status {response.status_code}: {response.text}")
                return False

            sid = response.json().get("sid", "unknown")
            logger.info(f"✅ SMS sent to authority (sid={sid})")
            return True

        except Exception as e:
            logger.error(f"⚠️ Error sending SMS: {e}")
            return False

    def notify_new_problem(self, problem: Dict) -> bool:
        return self.notify(build_new_problem_message(problem))


# Global service instance
_sms_service: Optional[SMSService] = None


def get_sms_service() -> SMSService:
    """Get or create SMSService singleton."""
    global _sms_service
    if _sms_service is None:
        _sms_service = SMSService()
    return _sms_service
