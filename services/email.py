"""Contains all the code related to handing messages to the mail relay"""

import abc
import smtplib

import logfire

from typing import Optional, List

from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formatdate, make_msgid

from models.emails import RelayCredentials, RelayMessage

from utils.settings import get_settings

from .errors import SendFailure


def render_html(content: str) -> str:
    """Render plain text as HTML by turning newlines into line breaks.

    No escaping or templating is applied.
    """
    return content.replace("\n", "<br>")


def build_relay_message(
    credentials: RelayCredentials,
    to: List[str],
    subject: str,
    content: str,
    cc: Optional[List[str]] = None,
    bcc: Optional[List[str]] = None,
    sender: Optional[str] = None,
) -> RelayMessage:
    """Build the message the relay will transmit.

    Args:
        credentials (RelayCredentials): Credentials the message will be sent with
        to (List[str]): Recipient email addresses
        subject (str): Subject of the email, used verbatim
        content (str): Plain text body of the email
        cc (Optional[List[str]], optional): Carbon copy recipients. Defaults to None.
        bcc (Optional[List[str]], optional): Blind carbon copy recipients. Defaults to None.
        sender (Optional[str], optional): Address typed into the form. It only
            becomes the Reply-To header, and only when it differs from the
            authenticated address. Defaults to None.

    Returns:
        RelayMessage: The resolved message, sent from the authenticated address.
    """
    reply_to = sender if sender and sender != credentials.address else None

    return RelayMessage(
        sender=credentials.address,
        reply_to=reply_to,
        to=list(to),
        cc=list(cc or []),
        bcc=list(bcc or []),
        subject=subject,
        text=content,
        html=render_html(content),
    )


class MailRelay(abc.ABC):
    """Capability interface for transmitting a message."""

    @abc.abstractmethod
    def send(self, message: RelayMessage, credentials: RelayCredentials) -> str:
        """Transmit `message` authenticated as `credentials`.

        Returns:
            str: The message identifier assigned to the sent message.

        Raises:
            SendFailure: If the relay rejects the message or cannot be reached.
        """
        ...


class SmtpMailRelay(MailRelay):
    """Relay that sends through an implicit-TLS SMTP server (Gmail by default)."""

    def __init__(self, smtp_server: str = "smtp.gmail.com", smtp_port: int = 465, timeout: float = 30.0):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.timeout = timeout

    def send(self, message: RelayMessage, credentials: RelayCredentials) -> str:
        msg = self._create_multipart_message(message)
        message_id = msg["Message-ID"]

        try:
            with smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
                server.login(credentials.address, credentials.secret)
                server.send_message(msg, from_addr=message.sender, to_addrs=message.recipients)
        except (smtplib.SMTPException, OSError) as e:
            logfire.error(f"Failed to send email to {', '.join(message.to)}: {str(e)}")
            raise SendFailure("Failed to send email", details=str(e)) from e

        logfire.info(f"Email {message_id} sent successfully to {', '.join(message.to)}")
        return message_id

    def _create_multipart_message(self, message: RelayMessage) -> MIMEMultipart:
        """Create a multipart email message (both plain and HTML).

        Args:
            message (RelayMessage): The resolved message

        Returns:
            MIMEMultipart: The created multipart email message.
        """
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = message.sender
        msg["To"] = ", ".join(message.to)
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain=message.sender.rsplit("@", 1)[-1])

        if message.reply_to:
            msg["Reply-To"] = message.reply_to
        if message.cc:
            msg["Cc"] = ", ".join(message.cc)
        if message.bcc:
            # smtplib strips Bcc from the transmitted copy
            msg["Bcc"] = ", ".join(message.bcc)

        msg.attach(MIMEText(message.text, "plain", "utf-8"))
        msg.attach(MIMEText(message.html, "html", "utf-8"))

        return msg


def get_mail_relay() -> MailRelay:
    """Factory function to create the SMTP relay from settings.

    Returns:
        MailRelay: An instance of SmtpMailRelay.
    """
    settings = get_settings()
    return SmtpMailRelay(
        smtp_server=settings.smtp_host,
        smtp_port=settings.smtp_port,
        timeout=settings.smtp_timeout,
    )
