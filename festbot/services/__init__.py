from festbot.services.registration_service import (
    upsert_user, get_user, set_user_email,
    create_event, get_event, list_events, team_capacity, event_entry_counts,
    get_team, get_my_team, get_my_registrations, get_registration, get_subject,
    set_confirmed,
    register_solo, create_team, join_team, edit_team, confirm_team,
)
from festbot.services.payment_service import (
    Outcome, ReconcileResult,
    create_order, begin_checkout, reconcile, get_order, list_orders,
)
from festbot.services.payment_provider import (
    PaymentProvider, HttpPaymentProvider, ProviderOrder, sign_callback, verify_callback,
)
from festbot.services.code_service import (
    CodeKind, encode, decode, parse, team_code, participant_code,
)
from festbot.services.status_service import (
    Status, Action, registration_status, allowed_actions,
)
from festbot.services.view_service import (
    RegistrationView, build_registration_view, render_view_text,
)
from festbot.services.notification_service import order_recipients, notify_payment_confirmed
from festbot.services.qr_service import generate_ticket_png

__all__ = [
    # users / events
    "upsert_user", "get_user", "set_user_email",
    "create_event", "get_event", "list_events", "team_capacity", "event_entry_counts",
    # reads
    "get_team", "get_my_team", "get_my_registrations", "get_registration", "get_subject",
    "set_confirmed",
    # registration operations
    "register_solo", "create_team", "join_team", "edit_team", "confirm_team",
    # payments
    "Outcome", "ReconcileResult",
    "create_order", "begin_checkout", "reconcile", "get_order", "list_orders",
    "PaymentProvider", "HttpPaymentProvider", "ProviderOrder", "sign_callback", "verify_callback",
    # codes
    "CodeKind", "encode", "decode", "parse", "team_code", "participant_code",
    # state machine
    "Status", "Action", "registration_status", "allowed_actions",
    # view projection
    "RegistrationView", "build_registration_view", "render_view_text",
    # notifications / QR
    "order_recipients", "notify_payment_confirmed", "generate_ticket_png",
]
