from festbot.keyboards.callbacks import MainMenuCb, EventCb, TeamCb, PayCb, AdminPanelCb
from festbot.keyboards.main_menu import participant_main_menu, admin_main_menu, back_to_main
from festbot.keyboards.event_kb import event_list_kb, event_card_kb, cancel_input_kb, checkout_kb

__all__ = [
    # callbacks
    "MainMenuCb", "EventCb", "TeamCb", "PayCb", "AdminPanelCb",
    # main menu
    "participant_main_menu", "admin_main_menu", "back_to_main",
    # events
    "event_list_kb", "event_card_kb", "cancel_input_kb", "checkout_kb",
]
