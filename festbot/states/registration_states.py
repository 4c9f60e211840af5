from aiogram.fsm.state import State, StatesGroup


class RegistrationStates(StatesGroup):
    """Text-input steps of the registration flow."""
    enter_email     = State()   # Text input: contact email (needed for checkout)
    enter_team_name = State()   # Text input: name for a new team
    enter_team_code = State()   # Text input: code of the team to join, e.g. T23-00001
    rename_team     = State()   # Text input: leader renames an unconfirmed team
