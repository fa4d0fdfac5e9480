from __future__ import annotations

from commagg_core.domain.messages import DeliveryRequest
from commagg_gateway.fingerprint import content_hash


def _request(**overrides: object) -> DeliveryRequest:
    payload: dict[str, object] = {
        "channel": "email",
        "to": "a@b.com",
        "from": "ops@b.com",
        "subject": "Hi",
        "body": "hello",
        "metadata": {"a": 1, "b": {"y": 2, "x": 1}},
    }
    payload.update(overrides)
    return DeliveryRequest.parse(payload)


def test_hash_is_deterministic_sha256() -> None:
    digest = content_hash(_request())
    assert digest == content_hash(_request())
    assert len(digest) == 64
    int(digest, 16)


def test_metadata_key_order_does_not_matter() -> None:
    reordered = _request(metadata={"b": {"x": 1, "y": 2}, "a": 1})
    assert content_hash(reordered) == content_hash(_request())


def test_every_significant_field_changes_the_hash() -> None:
    base = content_hash(_request())
    for field, value in [
        ("channel", "sms"),
        ("to", "c@d.com"),
        ("from", "other@b.com"),
        ("subject", "Bye"),
        ("body", "goodbye"),
        ("metadata", {"a": 2}),
    ]:
        assert content_hash(_request(**{field: value})) != base, field


def test_missing_optional_fields_match_explicit_empties() -> None:
    bare = DeliveryRequest.parse({"channel": "email", "to": "x", "body": "b"})
    explicit = DeliveryRequest.parse(
        {"channel": "email", "to": "x", "body": "b", "from": "", "metadata": None}
    )
    assert content_hash(bare) == content_hash(explicit)
