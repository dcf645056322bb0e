"""
services/notification/templates.py
Transactional email templates. Every payload value is HTML-escaped
before it reaches the markup; subjects are plain text.
"""

import html
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo

from shared.middleware.auth import AuthLevel


class TemplateKind(str, Enum):
    NEW_CABIN_PENDING = "new-cabin-pending"
    NEW_USER_REGISTERED = "new-user-registered"
    PAYOUT_VERIFIED = "payout-verified"
    BOOKING_REQUEST_EXPIRED_GUEST = "booking-request-expired-guest"
    BOOKING_REQUEST_EXPIRED_HOST = "booking-request-expired-host"
    CABIN_STATUS = "cabin-status"
    CABIN_EXPIRED = "cabin-expired"


class Recipient(str, Enum):
    ADMIN = "admin"          # operator address from NotificationConfig
    SUPPLIED = "supplied"    # address passed by the caller


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


@dataclass(frozen=True)
class EmailTemplate:
    recipient: Recipient
    render: Callable[[Mapping[str, Any]], RenderedEmail]


# Auth needed to trigger each kind over HTTP. Kinds absent here are internal.
REQUIRED_AUTH: dict[TemplateKind, AuthLevel] = {
    TemplateKind.NEW_CABIN_PENDING: AuthLevel.USER,
    TemplateKind.NEW_USER_REGISTERED: AuthLevel.USER,
    TemplateKind.PAYOUT_VERIFIED: AuthLevel.ADMIN,
    TemplateKind.CABIN_STATUS: AuthLevel.ADMIN,
}

WARSAW = ZoneInfo("Europe/Warsaw")


def escape(value: Any) -> str:
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def _layout(color: str, title: str, subtitle: str, content: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: {color}; color: white; padding: 30px; border-radius: 12px 12px 0 0; }}
    .content {{ background: #f9f9f9; padding: 30px; border-radius: 0 0 12px 12px; }}
    .info-box {{ background: white; padding: 15px; border-radius: 8px; margin: 15px 0; }}
    .footer {{ text-align: center; color: #999; font-size: 12px; margin-top: 20px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1 style="margin: 0;">{title}</h1>
      <p style="margin: 10px 0 0 0; opacity: 0.9;">{subtitle}</p>
    </div>
    <div class="content">
      {content}
      <div class="footer">
        <p>Ta wiadomość została wysłana automatycznie przez NaOdludzie.</p>
      </div>
    </div>
  </div>
</body>
</html>
"""


# ── Renderers ─────────────────────────────────────────────────

def render_new_cabin_pending(payload: Mapping[str, Any]) -> RenderedEmail:
    title = escape(payload.get("cabin_title")) or "Brak tytułu"
    address = escape(payload.get("cabin_address")) or "Brak adresu"
    host_email = escape(payload.get("host_email"))
    added_by = escape(payload.get("host_name")) or host_email or "Nieznany host"

    content = f"""<p>Nowa oferta oczekuje na akceptację:</p>
      <div class="info-box">
        <p style="margin: 0;"><strong>Tytuł:</strong> {title}</p>
        <p style="margin: 8px 0 0 0;"><strong>Adres:</strong> {address}</p>
        <p style="margin: 8px 0 0 0;"><strong>Dodane przez:</strong> {added_by}</p>
        <p style="margin: 8px 0 0 0;"><strong>Email hosta:</strong> {host_email or "Brak email"}</p>
      </div>
      <p>Zaloguj się do panelu administracyjnego, aby zaakceptować lub odrzucić ofertę.</p>"""

    return RenderedEmail(
        subject=f'🏠 Nowa oferta do akceptacji: "{payload.get("cabin_title") or ""}"',
        html=_layout("#d97706", "🏠 Nowa oferta do akceptacji", "Panel administracyjny NaOdludzie", content),
    )


def render_new_user_registered(payload: Mapping[str, Any]) -> RenderedEmail:
    role_label = "Gospodarz" if payload.get("role") == "host" else "Gość"
    email = escape(payload.get("email"))
    name = escape(payload.get("name"))
    phone = escape(payload.get("phone"))
    registered_at = datetime.now(WARSAW).strftime("%d.%m.%Y, %H:%M:%S")

    rows = [("Email", email)]
    if name:
        rows.append(("Imię", name))
    if phone:
        rows.append(("Telefon", phone))
    rows.append(("Rola", role_label))
    rows.append(("Data", registered_at))
    content = "\n      ".join(
        f'<p style="margin: 0; padding: 10px 0; border-bottom: 1px solid #eee;"><strong>{label}:</strong> {value}</p>'
        for label, value in rows
    )

    return RenderedEmail(
        subject=f"👤 Nowy {role_label.lower()}: {payload.get('name') or payload.get('email') or ''}",
        html=_layout("#16a34a", "👤 Nowy użytkownik", "Ktoś właśnie się zarejestrował!", content),
    )


def render_payout_verified(payload: Mapping[str, Any]) -> RenderedEmail:
    host_name = escape(payload.get("host_name"))
    cabin_title = escape(payload.get("cabin_title"))
    greeting = f"Cześć {host_name}!" if host_name else "Cześć!"

    content = f"""<p>{greeting}</p>
      <div class="info-box" style="background: #d1fae5; text-align: center;">
        <h2 style="margin: 0; color: #059669;">Gratulacje!</h2>
        <p style="margin: 10px 0 0 0;">Twój przelew weryfikacyjny został potwierdzony.</p>
      </div>
      <div class="info-box">
        <p style="margin: 0;"><strong>Oferta:</strong> {cabin_title}</p>
      </div>
      <ul>
        <li>Twoja oferta jest teraz gotowa do przyjmowania rezerwacji online</li>
        <li>Goście mogą płacić bezpośrednio przez naszą platformę</li>
        <li>Otrzymasz wypłaty bezpośrednio na swoje konto</li>
      </ul>"""

    return RenderedEmail(
        subject=f"✅ Przelew weryfikacyjny potwierdzony - {payload.get('cabin_title') or ''}",
        html=_layout("#059669", "✅ Przelew weryfikacyjny potwierdzony!", "NaOdludzie", content),
    )


def render_booking_request_expired_guest(payload: Mapping[str, Any]) -> RenderedEmail:
    cabin_title = escape(payload.get("cabin_title")) or "Domek"
    name = escape(payload.get("name"))
    greeting = f"Cześć {name}!" if name else "Cześć!"

    content = f"""<p>{greeting}</p>
      <p>Niestety, Twoje zapytanie o rezerwację domku <strong>"{cabin_title}"</strong> wygasło.</p>
      <p>Host nie odpowiedział w ciągu {escape(payload.get("hours", 24))} godzin, dlatego zapytanie zostało automatycznie anulowane.</p>
      <p>Zachęcamy do przeglądania innych dostępnych domków!</p>"""

    return RenderedEmail(
        subject=f'⏰ Twoje zapytanie o "{payload.get("cabin_title") or "Domek"}" wygasło',
        html=_layout("#d97706", "⏰ Zapytanie wygasło", cabin_title, content),
    )


def render_booking_request_expired_host(payload: Mapping[str, Any]) -> RenderedEmail:
    cabin_title = escape(payload.get("cabin_title")) or "Domek"
    name = escape(payload.get("name"))
    greeting = f"Cześć {name}!" if name else "Cześć!"

    content = f"""<p>{greeting}</p>
      <p>Zapytanie o rezerwację domku <strong>"{cabin_title}"</strong> zostało automatycznie anulowane.</p>
      <p>Powodem jest brak odpowiedzi w ciągu {escape(payload.get("hours", 24))} godzin od otrzymania zapytania.</p>
      <p style="color: #666; font-size: 14px;">Pamiętaj, aby regularnie sprawdzać panel hosta i odpowiadać na zapytania!</p>"""

    return RenderedEmail(
        subject=f'⚠️ Przegapione zapytanie o "{payload.get("cabin_title") or "Domek"}"',
        html=_layout("#dc2626", "⚠️ Przegapione zapytanie", cabin_title, content),
    )


def render_cabin_status(payload: Mapping[str, Any]) -> RenderedEmail:
    """Host email after an admin approves (status=active) or rejects a listing."""
    approved = payload.get("status") == "active"
    cabin_title = escape(payload.get("cabin_title"))
    host_name = escape(payload.get("host_name")) or "Gospodarzu"
    subject_title = " ".join(str(payload.get("cabin_title") or "").splitlines()).strip()

    if approved:
        subject = f'Twój domek "{subject_title}" został aktywowany!'
        body = f"""<p>Gratulacje! Twój domek <strong>„{cabin_title}"</strong> został zaakceptowany i jest teraz widoczny dla gości na platformie NaOdludzie.</p>
      <p>Możesz teraz oczekiwać zapytań rezerwacyjnych od zainteresowanych gości.</p>"""
    else:
        subject = f'Domek "{subject_title}" wymaga poprawek'
        body = f"""<p>Niestety, Twój domek <strong>„{cabin_title}"</strong> nie został zaakceptowany.</p>
      <p>Prosimy o sprawdzenie i zaktualizowanie informacji o domku, a następnie ponowne przesłanie do weryfikacji.</p>
      <p>Jeśli masz pytania, skontaktuj się z nami.</p>"""

    return RenderedEmail(
        subject=subject,
        html=_layout(
            "#16a34a" if approved else "#dc2626",
            "Domek aktywowany!" if approved else "Wymagane poprawki",
            cabin_title,
            f"<p>Cześć {host_name}!</p>\n      {body}",
        ),
    )


def render_cabin_expired(payload: Mapping[str, Any]) -> RenderedEmail:
    cabin_title = escape(payload.get("cabin_title"))
    name = escape(payload.get("name"))
    greeting = f"Cześć {name}!" if name else "Cześć!"

    content = f"""<p>{greeting}</p>
      <p>Twoja oferta domku <strong>"{cabin_title}"</strong> wygasła po {escape(payload.get("days", 60))} dniach.</p>
      <p>Oferta została automatycznie dezaktywowana. Aby ponownie ją opublikować, zaloguj się do panelu hosta i wznów ofertę.</p>
      <p style="color: #666; font-size: 14px;">Jeśli nie chcesz odnawiać oferty, nie musisz podejmować żadnych działań.</p>"""

    return RenderedEmail(
        subject=f'⏰ Twoja oferta "{payload.get("cabin_title") or ""}" wygasła',
        html=_layout("#d97706", "⏰ Twoja oferta wygasła", cabin_title, content),
    )


TEMPLATES: dict[TemplateKind, EmailTemplate] = {
    TemplateKind.NEW_CABIN_PENDING: EmailTemplate(Recipient.ADMIN, render_new_cabin_pending),
    TemplateKind.NEW_USER_REGISTERED: EmailTemplate(Recipient.ADMIN, render_new_user_registered),
    TemplateKind.PAYOUT_VERIFIED: EmailTemplate(Recipient.SUPPLIED, render_payout_verified),
    TemplateKind.BOOKING_REQUEST_EXPIRED_GUEST: EmailTemplate(
        Recipient.SUPPLIED, render_booking_request_expired_guest
    ),
    TemplateKind.BOOKING_REQUEST_EXPIRED_HOST: EmailTemplate(
        Recipient.SUPPLIED, render_booking_request_expired_host
    ),
    TemplateKind.CABIN_STATUS: EmailTemplate(Recipient.SUPPLIED, render_cabin_status),
    TemplateKind.CABIN_EXPIRED: EmailTemplate(Recipient.SUPPLIED, render_cabin_expired),
}
