import os
from typing import Any, Dict, List, Optional, Union

import httpx
import logging

logger = logging.getLogger(__name__)


class SendGridClient:
    """SendGrid v3 mail client.

    Environment variables:
    - SENDGRID_API_KEY
    - SENDGRID_FROM_EMAIL: verified sender
    """

    API_URL = "https://api.sendgrid.com/v3"

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        timeout_seconds: int = 15,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key or os.getenv("SENDGRID_API_KEY") or ""
        self.from_email = from_email or os.getenv("SENDGRID_FROM_EMAIL") or ""
        if not self.api_key:
            raise ValueError("SENDGRID_API_KEY is required")
        if not self.from_email:
            raise ValueError("SENDGRID_FROM_EMAIL is required")

        self._client = httpx.Client(
            base_url=self.API_URL,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            timeout=timeout_seconds,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if hasattr(self, "_client"):
            self._client.close()

    def send_email(
        self,
        to: Union[str, List[str]],
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> int:
        """Send one message. SendGrid answers 202 with an empty body.

        Returns:
            The HTTP status code.
        """
        recipients = [to] if isinstance(to, str) else list(to)
        content = []
        if text:
            content.append({"type": "text/plain", "value": text})
        content.append({"type": "text/html", "value": html})

        body = {
            "personalizations": [{"to": [{"email": address} for address in recipients]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": content,
        }
        response = self._client.post("/mail/send", json=body)
        response.raise_for_status()
        return response.status_code


class EmailJSClient:
    """EmailJS REST client (server-side sending requires the private access token).

    Environment variables:
    - EMAILJS_SERVICE_ID, EMAILJS_TEMPLATE_ID
    - EMAILJS_PUBLIC_KEY (user_id), EMAILJS_PRIVATE_KEY (accessToken)
    """

    API_URL = "https://api.emailjs.com/api/v1.0"

    def __init__(
        self,
        service_id: Optional[str] = None,
        template_id: Optional[str] = None,
        public_key: Optional[str] = None,
        private_key: Optional[str] = None,
        timeout_seconds: int = 15,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.service_id = service_id or os.getenv("EMAILJS_SERVICE_ID") or ""
        self.template_id = template_id or os.getenv("EMAILJS_TEMPLATE_ID") or ""
        self.public_key = public_key or os.getenv("EMAILJS_PUBLIC_KEY") or ""
        self.private_key = private_key or os.getenv("EMAILJS_PRIVATE_KEY") or ""
        if not (self.service_id and self.template_id and self.public_key):
            raise ValueError("EMAILJS_SERVICE_ID, EMAILJS_TEMPLATE_ID and EMAILJS_PUBLIC_KEY are required")

        self._client = httpx.Client(
            base_url=self.API_URL,
            headers={"Content-Type": "application/json"},
            timeout=timeout_seconds,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if hasattr(self, "_client"):
            self._client.close()

    def send(self, template_params: Dict[str, Any]) -> str:
        """Render the configured template with ``template_params`` and send it.

        Returns:
            The response text (``OK`` on success).
        """
        body: Dict[str, Any] = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": template_params,
        }
        if self.private_key:
            body["accessToken"] = self.private_key

        response = self._client.post("/email/send", json=body)
        response.raise_for_status()
        return response.text
