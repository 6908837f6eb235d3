"""Email delivery — the OTP issuer's outbound collaborator.

Learn: EmailSender is a tiny interface: send(recipient, subject, body)
returns True on success, False on failure. It never raises for delivery
problems — the caller decides whether a failed send is fatal (resend-otp)
or just worth a log line (signup).

Two implementations, chosen by settings.email_backend:
- SmtpEmailSender: STARTTLS SMTP. smtplib is blocking, so the actual
  send runs in a worker thread and never stalls the event loop.
- ConsoleEmailSender: logs the message instead of sending it. For local
  development, where there is no mail server and you still need the code.
"""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

logger = structlog.get_logger()


class EmailSender:
    """Interface for outbound email."""

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        raise NotImplementedError


class SmtpEmailSender(EmailSender):
    """Send HTML email through an authenticated STARTTLS SMTP server."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        display_name: str = "Notes App",
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.display_name = display_name
        self.timeout = timeout

    def _build_message(self, recipient: str, subject: str, body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"{self.display_name}" <{self.sender}>'
        msg["To"] = recipient
        msg.attach(MIMEText(body, "html", "utf-8"))
        return msg

    def _send_sync(self, recipient: str, subject: str, body: str) -> None:
        msg = self._build_message(recipient, subject, body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as conn:
            conn.ehlo()
            conn.starttls()
            conn.ehlo()
            if self.username:
                conn.login(self.username, self.password)
            conn.sendmail(self.sender, [recipient], msg.as_string())

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        try:
            await asyncio.to_thread(self._send_sync, recipient, subject, body)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(
                "email.send_failed",
                recipient=recipient,
                subject=subject,
                error=str(e),
            )
            return False
        logger.info("email.sent", recipient=recipient, subject=subject)
        return True


class ConsoleEmailSender(EmailSender):
    """Write outgoing mail to the log. Development only."""

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        logger.info("email.console", recipient=recipient, subject=subject, body=body)
        return True
