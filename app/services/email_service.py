import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
import logging

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html_body: str) -> bool:
    """
    Send an HTML email over SMTP (TLS).
    This function MUST NOT crash the caller. Returns True when handed to SMTP.
    """

    try:
        smtp_host = os.getenv("SMTP_HOST")
        smtp_port = int(os.getenv("SMTP_PORT", 587))
        smtp_user = os.getenv("SMTP_USERNAME")
        smtp_pass = os.getenv("SMTP_PASSWORD")

        from_name = os.getenv("EMAIL_FROM_NAME", "Breach Monitor")
        from_email = os.getenv("EMAIL_FROM_ADDRESS")

        if not all([smtp_host, smtp_user, smtp_pass, from_email]):
            logger.error("SMTP configuration incomplete. Email not sent.")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{from_name} <{from_email}>"
        msg["To"] = to_email

        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(smtp_host, smtp_port, timeout=15) as server:
            server.starttls()
            server.login(smtp_user, smtp_pass)
            server.sendmail(from_email, to_email, msg.as_string())

        logger.info("Email sent to %s", to_email)
        return True

    except Exception as e:
        logger.error("Email send failed to %s: %s", to_email, e)
        return False


def breach_alert_subject(breach_count: int) -> str:
    return f"Breach Alert: {breach_count} breach{'es' if breach_count > 1 else ''} detected"


def build_breach_alert_email(monitored_email: str, breach_count: int, breach_names: list[str]) -> str:
    items = "".join(f"<li>{escape(name)}</li>" for name in breach_names)
    more = breach_count - len(breach_names)
    more_line = f"<p>...and {more} more.</p>" if more > 0 else ""

    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #1f2937;">
        <h2>New breach detected</h2>
        <p>
          Your monitored email <strong>{escape(monitored_email)}</strong>
          was found in {breach_count} data breach{'es' if breach_count > 1 else ''}.
        </p>
        <ul>{items}</ul>
        {more_line}
        <p>Change the passwords used with this address and enable two-factor authentication where possible.</p>
      </body>
    </html>
    """
