"""Registration email notifications over SMTP."""

import smtplib
from email.mime.text import MIMEText

from .env import Config
from .logger import get_logger
from .retry import RetryError, exponential_backoff

logger = get_logger()

SUBJECT = "Registration to Job Platform for Graduate Complete"


def build_registration_message(sender: str, receiver: str, username: str) -> MIMEText:
    body = (
        "We are happy to count you in! This platform is a thriving community "
        "for quickstarting your career.\r\n\r\n"
        f"Your username: {username}\r\n"
    )
    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = SUBJECT
    msg["From"] = sender
    msg["To"] = receiver
    return msg


def _log_retry(attempt: int, error: Exception, delay: float):
    logger.warning("SMTP delivery failed, retrying", attempt=attempt, error=str(error), delay=delay)


@exponential_backoff(
    max_retries=2,
    base_delay=2.0,
    exceptions=(smtplib.SMTPException, OSError),
    on_retry=_log_retry,
)
def _smtp_send(host: str, port: int, user: str, password: str, msg: MIMEText) -> None:
    with smtplib.SMTP(host, port, timeout=15) as server:
        server.starttls()
        server.login(user, password)
        server.sendmail(user, [msg["To"]], msg.as_string())


def send_registration_email(config: Config, receiver: str, username: str) -> bool:
    """
    Send the welcome email to a newly registered user.

    Returns:
        True if the email was sent; False if email is disabled or delivery failed.
        Delivery failures are logged, never raised, so registration still succeeds.
    """
    if not config.email_enabled:
        logger.info("Email notifications disabled, skipping registration email", username=username)
        return False

    msg = build_registration_message(config.smtp_account, receiver, username)
    try:
        _smtp_send(config.smtp_host, config.smtp_port, config.smtp_account, config.smtp_password, msg)
    except RetryError as e:
        logger.error("Failed to send the email notification", username=username, error=str(e))
        return False

    logger.info("Registration email sent", username=username)
    return True
