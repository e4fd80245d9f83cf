import json

import pytest

from notification_dispatch.classifier import MessageClassifier
from notification_dispatch.errors import DecodeError
from notification_dispatch.models import DirectMessage, TemplatedMessage

from conftest import direct_payload, templated_payload


@pytest.fixture
def classifier():
    return MessageClassifier()


def test_template_field_selects_templated_variant(classifier):
    msg = classifier.classify(templated_payload())
    assert isinstance(msg, TemplatedMessage)
    assert msg.template == "welcome.html"
    assert msg.parameters == {"Name": "Jane"}


def test_missing_template_field_selects_direct_variant(classifier):
    msg = classifier.classify(direct_payload())
    assert isinstance(msg, DirectMessage)
    assert msg.html_body == "<p>Your report is ready</p>"


@pytest.mark.parametrize("value", [None, 42])
def test_classification_depends_on_presence_not_value(classifier, value):
    document = json.loads(direct_payload())
    document["Template"] = value
    # Presence alone picks the variant; an unusable value then fails its validation.
    with pytest.raises(DecodeError) as exc_info:
        classifier.classify(json.dumps(document))
    assert "TemplatedMessage" in str(exc_info.value)


def test_empty_template_value_is_still_templated(classifier):
    msg = classifier.classify(templated_payload(Template=""))
    assert isinstance(msg, TemplatedMessage)
    assert msg.template == ""


def test_missing_payload_is_decode_error(classifier):
    with pytest.raises(DecodeError):
        classifier.classify(None)


def test_accepts_bytes(classifier):
    msg = classifier.classify(direct_payload().encode("utf-8"))
    assert isinstance(msg, DirectMessage)


def test_missing_sender_is_decode_error(classifier):
    document = json.loads(direct_payload())
    del document["Sender"]
    with pytest.raises(DecodeError) as exc_info:
        classifier.classify(json.dumps(document))
    assert exc_info.value.code == "decode_error"
    assert "Sender" in str(exc_info.value)


@pytest.mark.parametrize(
    "payload",
    ["not json", "[1, 2]", '"text"', b"\xff\xfe", '{"Sender": "a@example.com", "To": "jane@example.com"}'],
)
def test_malformed_payloads(classifier, payload):
    with pytest.raises(DecodeError):
        classifier.classify(payload)


def test_unknown_fields_are_ignored(classifier):
    msg = classifier.classify(direct_payload(Extra="value"))
    assert isinstance(msg, DirectMessage)
