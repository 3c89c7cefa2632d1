import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from jinja2 import Template

from attendqr import config

logger = logging.getLogger(__name__)

WELCOME_TEMPLATE = Template("""
<h2>Welcome to AttendQR!</h2>
<p>Your account has been created. Here are your login credentials:</p>
<p><strong>Email:</strong> {{ email }}</p>
<p><strong>Temporary Password:</strong> {{ temp_password }}</p>
<p>Please login and change your password as soon as possible.</p>
<p>Best regards,<br>The AttendQR Team</p>
""", autoescape=True)

ENROLLMENT_TEMPLATE = Template("""
<h2>Class Enrollment Notification</h2>
<p>You have been enrolled in the class: {{ class_name }}</p>
<p>You can now access this class through your dashboard.</p>
<p>Best regards,<br>The AttendQR Team</p>
""", autoescape=True)


def mail_configured():
    return bool(config.MAIL_USERNAME and config.MAIL_PASSWORD)


def send_email(to, subject, html):
    """Send one HTML email. Returns False instead of raising on any failure."""
    if not mail_configured():
        logger.warning("Email is not configured; skipping message to %s", to)
        return False

    msg = MIMEMultipart()
    msg["From"] = config.MAIL_SENDER
    msg["To"] = to
    msg["Subject"] = subject
    msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP(config.MAIL_SERVER, config.MAIL_PORT, timeout=30) as server:
            server.starttls()
            server.login(config.MAIL_USERNAME, config.MAIL_PASSWORD)
            server.sendmail(config.MAIL_SENDER, [to], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", to, e)
        return False

    logger.info("Sent '%s' to %s", subject, to)
    return True


def send_welcome_email(email, temp_password):
    return send_email(
        email,
        "Welcome to AttendQR - Your Account Details",
        WELCOME_TEMPLATE.render(email=email, temp_password=temp_password),
    )


def send_enrollment_email(email, class_name):
    return send_email(
        email,
        f"Enrolled in {class_name}",
        ENROLLMENT_TEMPLATE.render(class_name=class_name),
    )
