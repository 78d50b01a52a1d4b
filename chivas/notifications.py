import logging
import smtplib
from email.mime.text import MIMEText
from typing import Optional

from fastapi import BackgroundTasks

from chivas.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

class Notifier:
    """Fire-and-forget message sender. Implementations never raise."""
    
    def send(self, to_address: str, subject: str, body: str) -> None:
        raise NotImplementedError

class LogNotifier(Notifier):
    """Writes messages to the log instead of delivering them (development)"""
    
    def send(self, to_address: str, subject: str, body: str) -> None:
        logger.info("Notification to %s: %s\n%s", to_address, subject, body)

class SmtpNotifier(Notifier):
    """Delivers plain-text mail through an SMTP relay with STARTTLS"""
    
    def __init__(self, config: Settings):
        self.config = config
    
    def send(self, to_address: str, subject: str, body: str) -> None:
        msg = MIMEText(body, _charset="utf-8")
        msg["Subject"] = subject
        msg["From"] = self.config.MAIL_FROM
        msg["To"] = to_address
        
        try:
            with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10) as server:
                server.starttls()
                if self.config.SMTP_USER:
                    server.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD)
                server.send_message(msg)
            logger.info("Mail '%s' sent to %s", subject, to_address)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send mail '%s' to %s", subject, to_address)

class BackgroundNotifier(Notifier):
    """Defers delivery until after the response has been sent"""
    
    def __init__(self, background_tasks: BackgroundTasks, delegate: Notifier):
        self.background_tasks = background_tasks
        self.delegate = delegate
    
    def send(self, to_address: str, subject: str, body: str) -> None:
        self.background_tasks.add_task(self.delegate.send, to_address, subject, body)

def build_notifier(config: Optional[Settings] = None) -> Notifier:
    config = config or default_settings
    if config.SMTP_HOST:
        return SmtpNotifier(config)
    return LogNotifier()

def notify_safely(notifier: Optional[Notifier], to_address: str, subject: str, body: str) -> None:
    """Send a notification without letting a failure reach the caller"""
    if notifier is None:
        return
    try:
        notifier.send(to_address, subject, body)
    except Exception:
        logger.exception("Notification to %s could not be dispatched", to_address)
