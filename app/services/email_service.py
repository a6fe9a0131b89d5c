"""Email service for appointment confirmations over SMTP."""
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.logger import logger
from app.db.models import Appointment


class EmailService:
    """Sends transactional email; a no-op when SMTP is not configured."""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.sender = settings.EMAIL_FROM

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host)

    def build_confirmation(self, to_email: str, patient_name: str, doctor_name: str,
                           appointment: Appointment) -> MIMEMultipart:
        message = MIMEMultipart()
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = "Appointment Confirmed"

        visit = "Online Consultation" if appointment.appointment_type == "ONLINE" else "In-Person Visit"
        lines = [
            f"Dear {patient_name},",
            "",
            "Your appointment has been successfully booked.",
            "",
            f"Date & Time (UTC): {appointment.appointment_date:%A, %d %B %Y %H:%M}",
            f"Appointment Type: {visit}",
            f"Service: {appointment.service_type.replace('_', ' ').title()}",
            f"Doctor: {doctor_name}",
            f"Duration: {appointment.duration} minutes",
        ]
        if appointment.google_meet_link:
            lines.append(f"Meeting link: {appointment.google_meet_link}")

        message.attach(MIMEText("\n".join(lines), "plain"))
        return message

    def _send(self, message: MIMEMultipart):
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            if self.smtp_user:
                server.login(self.smtp_user, self.smtp_password or "")
            server.send_message(message)

    async def send_appointment_confirmation(self, to_email: str, patient_name: str, doctor_name: str,
                                            appointment: Appointment) -> bool:
        if not self.enabled:
            logger.info(f"SMTP not configured, skipping confirmation for appointment {appointment.id}")
            return False

        message = self.build_confirmation(to_email, patient_name, doctor_name, appointment)
        await run_in_threadpool(self._send, message)
        logger.info(f"Confirmation email sent to {to_email} for appointment {appointment.id}")
        return True
