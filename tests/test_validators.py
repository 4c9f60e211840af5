"""
Unit tests — Input validation (validators.py).

Tests Pydantic v2 models for robustness against malformed user input:
  - TeamNameData / TeamChanges: team names
  - EmailData: contact email
  - EventData: the admin /newevent command
  - PaymentCallback: the provider's callback body

All tests are synchronous; no database session required.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from festbot.validators import EmailData, EventData, PaymentCallback, TeamChanges, TeamNameData


# ─────────────────────────── Team names ──────────────────────────────────────

class TestTeamName:
    @pytest.mark.parametrize("name", ["Sharks", "Tiger Sharks", "R&D", "Team-42", "O'Neil's", "Ab"])
    def test_valid(self, name: str) -> None:
        assert TeamNameData(name=name).name == name

    def test_whitespace_collapsed(self) -> None:
        assert TeamNameData(name="  Tiger   Sharks ").name == "Tiger Sharks"

    def test_unicode_letters(self) -> None:
        assert TeamNameData(name="Тигры").name == "Тигры"

    @pytest.mark.parametrize("name", ["", "A", " ", "x" * 41, "<script>", "-Sharks", "Sharks!", "🦈🦈"])
    def test_invalid(self, name: str) -> None:
        with pytest.raises(ValidationError):
            TeamNameData(name=name)

    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TeamNameData(name="Sharks", leader_id=1)


class TestTeamChanges:
    def test_name_change(self) -> None:
        assert TeamChanges(name=" Dolphins ").model_dump(exclude_none=True) == {"name": "Dolphins"}

    def test_no_changes(self) -> None:
        assert TeamChanges().model_dump(exclude_none=True) == {}

    def test_invalid_name(self) -> None:
        with pytest.raises(ValidationError):
            TeamChanges(name="!")

    def test_protected_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TeamChanges(confirmed=True)


# ─────────────────────────── Email ───────────────────────────────────────────

class TestEmail:
    def test_normalised(self) -> None:
        assert EmailData(email="  Asha@Example.COM ").email == "asha@example.com"

    @pytest.mark.parametrize("email", ["asha", "asha@", "@example.com", "asha@example", "a b@example.com"])
    def test_invalid(self, email: str) -> None:
        with pytest.raises(ValidationError):
            EmailData(email=email)


# ─────────────────────────── /newevent ───────────────────────────────────────

class TestEventData:
    def test_team_event(self) -> None:
        d = EventData.from_command("team 200 4 Robo Wars")
        assert d.event_type == "TEAM"
        assert d.fees == 200
        assert d.max_team_size == 4
        assert d.name == "Robo Wars"

    def test_unlimited_team_size(self) -> None:
        d = EventData.from_command("SOLO_MULTI 0 - Photo Walk")
        assert d.max_team_size is None
        assert d.fees == 0

    def test_missing_arguments(self) -> None:
        with pytest.raises(ValueError, match="Usage"):
            EventData.from_command("TEAM 200")

    @pytest.mark.parametrize("args", [
        "DUO 100 - Quiz",
        "TEAM -5 4 Robo Wars",
        "TEAM abc 4 Robo Wars",
        "TEAM 100 0 Robo Wars",
        "TEAM 100 99 Robo Wars",
        "TEAM 100000000 4 Robo Wars",
    ])
    def test_invalid(self, args: str) -> None:
        with pytest.raises(ValidationError):
            EventData.from_command(args)


# ─────────────────────────── Payment callback ────────────────────────────────

class TestPaymentCallback:
    def test_valid(self) -> None:
        cb = PaymentCallback.model_validate({"order_id": 7, "outcome": "SUCCESS", "signature": "ab"})
        assert cb.order_id == 7

    def test_unknown_outcome(self) -> None:
        with pytest.raises(ValidationError):
            PaymentCallback.model_validate({"order_id": 7, "outcome": "PENDING", "signature": "ab"})

    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PaymentCallback.model_validate(
                {"order_id": 7, "outcome": "SUCCESS", "signature": "ab", "amount": 1}
            )

    @pytest.mark.parametrize("order_id", [0, -1, 2**31, 10**30])
    def test_order_id_out_of_range(self, order_id: int) -> None:
        with pytest.raises(ValidationError):
            PaymentCallback.model_validate({"order_id": order_id, "outcome": "SUCCESS", "signature": "ab"})
