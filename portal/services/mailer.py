"""
Mail Notifier
Account notifications sent over SMTP.

Messages are meant to be queued with FastAPI ``BackgroundTasks``: the send
methods are synchronous, run after the response is written, and never
raise.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Optional

from portal.config import Settings, settings

logger = logging.getLogger(__name__)

_LOGO_URL = "https://i.pinimg.com/736x/8b/7d/ff/8b7dff72f53c290933f1e652b326d8d2.jpg"
_FOOTER = "Mensaje automático – MDVA Sistema de Usuarios"


def _layout(title: str, body: str) -> str:
    return f"""
    <div style="font-family:Arial,sans-serif;max-width:600px;margin:auto;border:1px solid #ddd;border-radius:8px;">
      <div style="background:#FFD2D0;padding:20px;text-align:center;">
        <img src="{_LOGO_URL}" alt="MDVA Logo" style="height:50px;">
      </div>
      <div style="padding:20px;">
        <h2 style="color:#C01702;">{escape(title)}</h2>
        {body}
        <hr style="border:none;border-top:1px solid #eee;">
        <p style="font-size:12px;color:#666;">{_FOOTER}</p>
      </div>
    </div>"""


def security_alert_html(nombres: str, failed_attempts: int) -> str:
    return _layout(
        "Alerta de Seguridad",
        f"<p>Hola <strong>{escape(nombres)}</strong>,</p>"
        f"<p>Se han registrado <strong>{failed_attempts}</strong> intentos fallidos de inicio de sesión en tu cuenta.</p>"
        "<p>Si no fuiste tú, por favor contacta con la Oficina de Transformación Digital.</p>",
    )


def welcome_html(nombres: str, dni: str, telefono: str, area: str, cargo: str, login_url: str) -> str:
    return _layout(
        "¡Bienvenido/a al sistema MDVA!",
        f"<p>Hola <strong>{escape(nombres)}</strong>, tu cuenta ha sido creada exitosamente.</p>"
        f"<p><strong>Usuario:</strong> {escape(dni)}<br>"
        f"<strong>Teléfono:</strong> {escape(telefono or '')}<br>"
        f"<strong>Área:</strong> {escape(area or '')}<br>"
        f"<strong>Cargo:</strong> {escape(cargo or '')}</p>"
        "<p>Ya puedes iniciar sesión haciendo clic en el botón:</p>"
        f'<p style="text-align:center;margin:30px 0"><a href="{escape(login_url)}" '
        'style="background-color:#C01702;color:white;padding:12px 24px;border-radius:4px;text-decoration:none;">'
        "Iniciar Sesión</a></p>",
    )


def state_change_label(estado: str) -> str:
    return "Suspendida" if estado.lower() == "suspendido" else "Reactivada"


def state_change_html(nombres: str, estado: str) -> str:
    label = state_change_label(estado)
    return _layout(
        f"Cuenta {label}",
        f"<p>Hola <strong>{escape(nombres)}</strong>, tu cuenta ha sido {label.lower()}.</p>"
        "<p>Si crees que fue un error, contacta al administrador.</p>",
    )


def password_changed_html(nombres: str) -> str:
    return _layout(
        "Contraseña actualizada",
        f"<p>Hola <strong>{escape(nombres)}</strong>, tu contraseña ha sido actualizada correctamente.</p>"
        "<p>Si no reconoces este cambio, contacta al administrador.</p>",
    )


def account_deleted_html(nombres: str) -> str:
    return _layout(
        "Cuenta Eliminada",
        f"<p>Hola <strong>{escape(nombres)}</strong>,</p>"
        "<p>Tu cuenta ha sido <strong>eliminada permanentemente</strong> del sistema MDVA.</p>"
        "<p>Si crees que fue un error, contacta con la Oficina de Transformación Digital.</p>",
    )


class Notifier:
    """SMTP sender for account notifications."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings

    @property
    def enabled(self) -> bool:
        return bool(self.config.smtp_host)

    def send(self, to: str, subject: str, html: str) -> bool:
        """
        Send one HTML message.

        Returns:
            True when the server accepted the message
        """
        if not self.enabled:
            logger.debug(f"SMTP not configured, skipping '{subject}' to {to}")
            return False

        message = EmailMessage()
        message["From"] = formataddr(("MDVA Sistema", self.config.mail_sender))
        message["To"] = to
        message["Subject"] = subject
        message.set_content("Este mensaje requiere un cliente de correo con soporte HTML.")
        message.add_alternative(html, subtype="html")

        try:
            if self.config.smtp_secure:
                server = smtplib.SMTP_SSL(
                    self.config.smtp_host, self.config.smtp_port, context=ssl.create_default_context()
                )
            else:
                server = smtplib.SMTP(self.config.smtp_host, self.config.smtp_port)

            with server:
                if not self.config.smtp_secure:
                    server.starttls(context=ssl.create_default_context())
                if self.config.smtp_user:
                    server.login(self.config.smtp_user, self.config.smtp_pass)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {to}: {e}")
            return False

        logger.info(f"Email sent: '{subject}' to {to}")
        return True

    def send_security_alert(self, email: str, nombres: str, failed_attempts: int) -> bool:
        return self.send(email, "Alerta: intentos fallidos de acceso", security_alert_html(nombres, failed_attempts))

    def send_welcome(self, email: str, nombres: str, dni: str, telefono: str, area: str, cargo: str) -> bool:
        html = welcome_html(nombres, dni, telefono, area, cargo, self.config.frontend_login_url)
        return self.send(email, "¡Bienvenido al sistema MDVA!", html)

    def send_state_change(self, email: str, nombres: str, estado: str) -> bool:
        return self.send(email, f"Cuenta {state_change_label(estado)}", state_change_html(nombres, estado))

    def send_password_changed(self, email: str, nombres: str) -> bool:
        return self.send(email, "Contraseña actualizada", password_changed_html(nombres))

    def send_account_deleted(self, email: str, nombres: str) -> bool:
        return self.send(email, "Cuenta eliminada", account_deleted_html(nombres))


# Shared instance
notifier = Notifier()


def get_notifier() -> Notifier:
    """Dependency returning the process-wide notifier."""
    return notifier
