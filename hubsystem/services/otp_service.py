import logging
import secrets
import smtplib
from datetime import datetime, timedelta
from email.message import EmailMessage

from flask import current_app

from hubsystem.models import db, OTP

logger = logging.getLogger(__name__)


class OTPService:
    """Six digit one-time codes keyed by email, used for sign-up and password reset."""

    @staticmethod
    def generate_code():
        return str(100000 + secrets.randbelow(900000))

    @staticmethod
    def get_active(email):
        otp = OTP.query.filter_by(email=email).first()
        if otp and not otp.is_expired():
            return otp
        return None

    @staticmethod
    def issue(email):
        """Create or replace the code for this email and return it."""
        expiry = datetime.utcnow() + timedelta(minutes=current_app.config['OTP_EXPIRY_MINUTES'])
        code = OTPService.generate_code()

        otp = OTP.query.filter_by(email=email).first()
        if otp:
            otp.code = code
            otp.expires_at = expiry
            otp.created_at = datetime.utcnow()
        else:
            otp = OTP(email=email, code=code, expires_at=expiry)
            db.session.add(otp)
        db.session.commit()
        return otp

    @staticmethod
    def check(email, code):
        otp = OTP.query.filter_by(email=email).first()
        if not otp or otp.code != str(code) or otp.is_expired():
            return None
        return otp

    @staticmethod
    def consume(otp):
        db.session.delete(otp)
        db.session.commit()

    @staticmethod
    def send_email(receiver_email, subject, body):
        config = current_app.config
        if not config.get('MAIL_SERVER'):
            logger.warning("MAIL_SERVER not configured; email to %s not sent", receiver_email)
            return False

        msg = EmailMessage()
        msg["From"] = config['MAIL_SENDER']
        msg["To"] = receiver_email
        msg["Subject"] = subject
        msg.set_content(body)
        try:
            with smtplib.SMTP(config['MAIL_SERVER'], config['MAIL_PORT']) as server:
                server.starttls()
                if config.get('MAIL_USERNAME'):
                    server.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
                server.send_message(msg)
            logger.info("Email sent to %s", receiver_email)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", receiver_email, e)
            return False

    @staticmethod
    def send_signup_code(email, code):
        minutes = current_app.config['OTP_EXPIRY_MINUTES']
        return OTPService.send_email(
            email,
            "Your OTP Code for Sign-Up",
            f"Your OTP code is: {code}. It expires in {minutes} minutes.",
        )

    @staticmethod
    def send_reset_code(email, code):
        minutes = current_app.config['OTP_EXPIRY_MINUTES']
        return OTPService.send_email(
            email,
            "Your OTP Code for Password Reset",
            f"Your OTP code is: {code}. It expires in {minutes} minutes.\n"
            "If you did not request this, please ignore this email.",
        )
