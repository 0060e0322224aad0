import logging
import smtplib
from email.message import EmailMessage

from .report import render_text

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 30


def build_message(report, mail):
    msg = EmailMessage()
    msg["Subject"] = report.subject
    msg["From"] = mail.sender
    msg["To"] = ", ".join(mail.recipients)
    msg.set_content(render_text(report))
    msg.add_alternative(report.html, subtype="html")
    return msg


def _connect(mail, smtp_factory=None, smtp_ssl_factory=None):
    if mail.use_ssl:
        factory = smtp_ssl_factory or smtplib.SMTP_SSL
        return factory(host=mail.host, port=mail.port, timeout=SMTP_TIMEOUT)

    factory = smtp_factory or smtplib.SMTP
    smtp = factory(host=mail.host, port=mail.port, timeout=SMTP_TIMEOUT)
    smtp.ehlo()
    if smtp.has_extn("starttls"):
        smtp.starttls()
        smtp.ehlo()
    return smtp


def send_report(report, mail, smtp_factory=None, smtp_ssl_factory=None):
    """Send the report. Transport errors are not retried and propagate unchanged."""
    mail.validate()
    msg = build_message(report, mail)

    smtp = _connect(mail, smtp_factory, smtp_ssl_factory)
    try:
        smtp.login(mail.user, mail.password)
        smtp.send_message(msg, from_addr=mail.sender, to_addrs=list(mail.recipients))
    finally:
        try:
            smtp.quit()
        except smtplib.SMTPServerDisconnected:
            pass

    logger.info("Health check report email sent")
    logger.info("Summary: %s", ", ".join(f"{r.name}: {r.status}" for r in report.results))
    return msg
