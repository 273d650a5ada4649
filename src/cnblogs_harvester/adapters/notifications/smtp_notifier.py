"""SMTP mail notification adapter."""

import asyncio
import logging
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from typing import Optional

from cnblogs_harvester.core import Attachment, NotificationError, Notifier

logger = logging.getLogger(__name__)


class SmtpNotifier(Notifier):
    """Send HTML mail with an optional attachment over SMTP."""
    
    def __init__(
        self,
        host: str,
        port: int = 465,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        sender_name: str = "",
        use_ssl: bool = True,
        starttls: bool = False,
        timeout: float = 30.0,
    ) -> None:
        """Initialize SMTP notifier.
        
        Args:
            host: SMTP server host
            port: SMTP server port
            username: Login name; no login is attempted when empty
            password: Login password
            sender: From address, defaults to ``username``
            sender_name: Display name for the From header
            use_ssl: Connect with implicit TLS (SMTP_SSL)
            starttls: Upgrade a plain connection with STARTTLS
            timeout: Socket timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username or ""
        self.sender_name = sender_name
        self.use_ssl = use_ssl
        self.starttls = starttls
        self.timeout = timeout
    
    def build_message(
        self,
        recipients: list[str],
        subject: str,
        html_body: str,
        attachment: Optional[Attachment] = None,
    ) -> MIMEMultipart:
        message = MIMEMultipart()
        message["Subject"] = subject
        message["From"] = formataddr((self.sender_name, self.sender))
        message["To"] = ", ".join(recipients)
        message["Date"] = formatdate(localtime=True)
        message.attach(MIMEText(html_body, "html", "utf-8"))
        
        if attachment is not None:
            part = MIMEApplication(attachment.content, Name=attachment.filename)
            part["Content-Disposition"] = f'attachment; filename="{attachment.filename}"'
            message.attach(part)
        
        return message
    
    async def send(
        self,
        recipients: list[str],
        subject: str,
        html_body: str,
        attachment: Optional[Attachment] = None,
    ) -> None:
        """Send the message from a worker thread."""
        if not recipients:
            raise NotificationError("No recipients configured")
        
        message = self.build_message(recipients, subject, html_body, attachment)
        await asyncio.to_thread(self._deliver, message, recipients)
        logger.info("Mail %r sent to %d recipients", subject, len(recipients))
    
    def _deliver(self, message: MIMEMultipart, recipients: list[str]) -> None:
        try:
            if self.use_ssl:
                smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            
            with smtp:
                if self.starttls and not self.use_ssl:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message, from_addr=self.sender, to_addrs=recipients)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            # ValueError covers credentials smtplib cannot encode as ASCII
            raise NotificationError(f"Failed to send mail via {self.host}:{self.port}: {e}") from e
