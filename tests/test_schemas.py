"""Tests for envelope and per-action payload schemas."""

import pytest
from pydantic import ValidationError

from miniapp_relay.schemas import (
    CallEndedPayload, CallInitiatedPayload, SmsSentPayload,
    UserAddedPayload, UserRemovedPayload, validate_envelope,
)


def _envelope(**overrides) -> dict:
    data = {"action": "sms_sent", "initData": "auth_date=1&hash=abc"}
    data.update(overrides)
    return data


class TestEnvelope:
    def test_minimal(self):
        env = validate_envelope(_envelope())
        assert env.action == "sms_sent"
        assert env.init_data == "auth_date=1&hash=abc"
        assert env.timestamp is None
        assert env.payload is None

    def test_full(self):
        env = validate_envelope(_envelope(timestamp="2024-05-01T12:00:00Z", payload={"x": [1, 2]}))
        assert env.timestamp == "2024-05-01T12:00:00Z"
        assert env.payload == {"x": [1, 2]}

    def test_unknown_keys_ignored(self):
        env = validate_envelope(_envelope(version="2.1"))
        assert env.action == "sms_sent"

    @pytest.mark.parametrize("key", ["action", "initData"])
    def test_missing_required(self, key):
        data = _envelope()
        del data[key]
        with pytest.raises(ValidationError):
            validate_envelope(data)

    @pytest.mark.parametrize("key", ["action", "initData"])
    def test_empty_required(self, key):
        with pytest.raises(ValidationError):
            validate_envelope(_envelope(**{key: ""}))

    def test_wrong_types(self):
        with pytest.raises(ValidationError):
            validate_envelope(_envelope(action=5))
        with pytest.raises(ValidationError):
            validate_envelope(_envelope(timestamp=1714564800))

    def test_snake_case_keys_rejected(self):
        with pytest.raises(ValidationError):
            validate_envelope({"action": "sms_sent", "init_data": "auth_date=1&hash=abc"})

    def test_null_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            validate_envelope(_envelope(timestamp=None))

    def test_null_payload_allowed(self):
        assert validate_envelope(_envelope(payload=None)).payload is None

    @pytest.mark.parametrize("raw", [None, [], "sms_sent", 42])
    def test_not_an_object(self, raw):
        with pytest.raises(ValidationError):
            validate_envelope(raw)


class TestCallPayloads:
    def test_call_initiated_minimal(self):
        p = CallInitiatedPayload.model_validate({"callSid": "CA1"})
        assert p.call_sid == "CA1"
        assert p.to is None
        assert p.status is None

    def test_call_initiated_empty_to_rejected(self):
        with pytest.raises(ValidationError):
            CallInitiatedPayload.model_validate({"callSid": "CA1", "to": ""})

    def test_call_ended_requires_status(self):
        with pytest.raises(ValidationError):
            CallEndedPayload.model_validate({"callSid": "CA1"})

    def test_call_ended_duration(self):
        p = CallEndedPayload.model_validate({"callSid": "CA1", "status": "completed", "duration": 125})
        assert p.duration == 125

    def test_call_ended_negative_duration(self):
        with pytest.raises(ValidationError):
            CallEndedPayload.model_validate({"callSid": "CA1", "status": "completed", "duration": -1})

    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_call_ended_non_finite_duration(self, value):
        with pytest.raises(ValidationError):
            CallEndedPayload.model_validate({"callSid": "CA1", "status": "completed", "duration": value})

    def test_call_ended_snake_case_rejected(self):
        with pytest.raises(ValidationError):
            CallEndedPayload.model_validate({"call_sid": "CA1", "status": "completed"})

    def test_call_ended_string_duration(self):
        with pytest.raises(ValidationError):
            CallEndedPayload.model_validate({"callSid": "CA1", "status": "completed", "duration": "125"})


class TestOtherPayloads:
    def test_sms_sent(self):
        p = SmsSentPayload.model_validate({"phoneNumber": "+15551234567", "messageId": "SM1"})
        assert p.phone_number == "+15551234567"
        assert p.message_id == "SM1"

    def test_sms_sent_null_message_id_rejected(self):
        with pytest.raises(ValidationError):
            SmsSentPayload.model_validate({"phoneNumber": "1", "messageId": None})

    def test_sms_sent_requires_phone(self):
        with pytest.raises(ValidationError):
            SmsSentPayload.model_validate({})

    def test_user_added(self):
        p = UserAddedPayload.model_validate({"userId": "u1", "username": "ann"})
        assert p.user_id == "u1"
        assert p.name is None
        assert p.username == "ann"

    def test_user_id_must_be_string(self):
        with pytest.raises(ValidationError):
            UserRemovedPayload.model_validate({"userId": 17})

    def test_user_removed_empty_id(self):
        with pytest.raises(ValidationError):
            UserRemovedPayload.model_validate({"userId": ""})
