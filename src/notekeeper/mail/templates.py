"""Email bodies."""

from html import escape


def otp_email(app_name: str, first_name: str, otp: str, ttl_minutes: int) -> tuple[str, str]:
    """Return (subject, html body) for an email verification code."""
    subject = f"Email Verification - {app_name}"
    body = f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #333; text-align: center;">Welcome to {escape(app_name)}!</h2>
        <p>Hi {escape(first_name)},</p>
        <p>Thank you for signing up! Please use the following code to verify your email address:</p>
        <div style="background-color: #f5f5f5; padding: 20px; text-align: center; margin: 20px 0;">
          <h1 style="color: #007bff; font-size: 36px; margin: 0; letter-spacing: 5px;">{otp}</h1>
        </div>
        <p>This code will expire in {ttl_minutes} minutes.</p>
        <p>If you didn't create an account with us, please ignore this email.</p>
      </div>
    """
    return subject, body
