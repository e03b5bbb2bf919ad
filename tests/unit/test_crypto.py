"""Tests for the decryption engine."""

import base64
import copy

import pytest

from crema_client.crypto import (
    EnvelopeNode,
    MappingNode,
    ScalarNode,
    SequenceNode,
    classify,
    contains_envelope,
    decrypt_document,
    decrypt_tree,
    decrypt_value,
    derive_key,
)
from crema_client.errors import DecryptionError
from tests.conftest import ITERATIONS, SALT, SECRET, encrypt_value


@pytest.fixture
def key():
    return derive_key(SECRET, SALT, ITERATIONS)


class TestClassify:
    def test_scalars(self):
        for value in ("x", 1, 2.5, True, None):
            assert classify(value) == ScalarNode(value)

    def test_sequence(self):
        assert isinstance(classify([1, 2]), SequenceNode)

    def test_mapping(self):
        assert isinstance(classify({"a": 1}), MappingNode)

    def test_envelope(self):
        assert classify({"_encrypted": True, "_data": "abc"}) == EnvelopeNode("abc")

    def test_flag_false_is_plain_mapping(self):
        assert isinstance(classify({"_encrypted": False, "_data": "abc"}), MappingNode)

    def test_truthy_flag_is_envelope(self):
        assert classify({"_encrypted": 1, "_data": "abc"}) == EnvelopeNode("abc")
        assert classify({"_encrypted": "yes", "_data": "abc"}) == EnvelopeNode("abc")
        with pytest.raises(DecryptionError):
            classify({"_encrypted": 1})

    def test_malformed_envelope_is_rejected(self):
        with pytest.raises(DecryptionError):
            classify({"_encrypted": True, "_data": 42})
        with pytest.raises(DecryptionError):
            classify({"_encrypted": True})

    def test_non_json_value(self):
        with pytest.raises(TypeError):
            classify(object())

    def test_contains_envelope(self):
        assert contains_envelope({"a": [1, {"b": encrypt_value(3)}]})
        assert not contains_envelope({"a": [1, {"b": 3}]})


class TestDeriveKey:
    def test_deterministic(self):
        assert derive_key(SECRET, SALT, ITERATIONS) == derive_key(SECRET, SALT, ITERATIONS)

    def test_256_bit(self):
        assert len(derive_key(SECRET, SALT, ITERATIONS)) == 32

    def test_depends_on_every_input(self):
        base = derive_key(SECRET, SALT, ITERATIONS)
        assert derive_key("other", SALT, ITERATIONS) != base
        assert derive_key(SECRET, base64.b64encode(b"another salt....").decode(), ITERATIONS) != base
        assert derive_key(SECRET, SALT, ITERATIONS + 1) != base

    def test_bad_salt(self):
        with pytest.raises(DecryptionError):
            derive_key(SECRET, "not base64!!", ITERATIONS)

    def test_empty_secret(self):
        with pytest.raises(DecryptionError):
            derive_key("", SALT, ITERATIONS)

    def test_bad_iterations(self):
        with pytest.raises(DecryptionError):
            derive_key(SECRET, SALT, 0)
        with pytest.raises(DecryptionError):
            derive_key(SECRET, SALT, 1000.5)
        with pytest.raises(DecryptionError):
            derive_key(SECRET, SALT, True)

    def test_integral_float_iterations(self):
        assert derive_key(SECRET, SALT, 1000.0) == derive_key(SECRET, SALT, 1000)


class TestDecryptValue:
    def test_round_trip(self, key):
        value = {"donors": [{"name": "Ada", "total": 120.5}], "ok": True}
        assert decrypt_value(encrypt_value(value)["_data"], key) == value

    def test_wrong_key(self):
        wrong = derive_key("wrong secret", SALT, ITERATIONS)
        with pytest.raises(DecryptionError, match="Invalid key or corrupted data"):
            decrypt_value(encrypt_value([1, 2, 3])["_data"], wrong)

    def test_tampered_ciphertext(self, key):
        raw = bytearray(base64.b64decode(encrypt_value("secret")["_data"]))
        raw[-1] ^= 0x01
        with pytest.raises(DecryptionError):
            decrypt_value(base64.b64encode(bytes(raw)).decode(), key)

    def test_too_short(self, key):
        with pytest.raises(DecryptionError):
            decrypt_value(base64.b64encode(b"short").decode(), key)

    def test_not_base64(self, key):
        with pytest.raises(DecryptionError):
            decrypt_value("%%%", key)


class TestDecryptTree:
    async def test_nested_envelopes(self, key):
        doc = {
            "a": encrypt_value({"x": 1}),
            "b": [1, encrypt_value("two"), {"c": encrypt_value([3])}],
            "d": {"e": {"f": encrypt_value(None)}},
            "g": "plain",
        }
        assert await decrypt_tree(doc, key) == {
            "a": {"x": 1},
            "b": [1, "two", {"c": [3]}],
            "d": {"e": {"f": None}},
            "g": "plain",
        }

    async def test_sequence_order_preserved(self, key):
        values = list(range(25))
        assert await decrypt_tree([encrypt_value(v) for v in values], key) == values

    async def test_empty_sequence(self, key):
        assert await decrypt_tree([], key) == []

    async def test_metadata_keys_dropped(self, key):
        doc = {"_encryption": {"salt": SALT}, "_data": "x", "keep": 1}
        assert await decrypt_tree(doc, key) == {"keep": 1}

    async def test_idempotent_on_plain_document(self, key):
        doc = {"metrics": {"this_year": {"metrics": {"revenue": 100}}}, "list": [1, [2, 3]]}
        once = await decrypt_tree(doc, key)
        assert once == doc
        assert await decrypt_tree(once, key) == once

    async def test_envelope_replaced_wholesale(self, key):
        doc = {"outer": encrypt_value({"inner": {"deep": [1, 2]}})}
        result = await decrypt_tree(doc, key)
        assert result == {"outer": {"inner": {"deep": [1, 2]}}}


class TestDecryptDocument:
    async def test_identity_without_encryption(self):
        doc = {"metrics": {"this_year": {"metrics": {"revenue": 1}}}}
        snapshot = copy.deepcopy(doc)
        assert await decrypt_document(doc, None) == snapshot

    async def test_top_donors_example(self):
        donors = [{"name": "Ada", "amount": 500}, {"name": "Grace", "amount": 250}]
        doc = {
            "_encryption": {"salt": SALT, "iterations": 100000},
            "metrics": {"top_donors": encrypt_value(donors, iterations=100000)},
        }
        result = await decrypt_document(doc, SECRET)
        assert result == {"metrics": {"top_donors": donors}}

    async def test_wrong_secret(self):
        doc = {
            "_encryption": {"salt": SALT, "iterations": ITERATIONS},
            "metrics": {"top_donors": encrypt_value(["Ada"])},
        }
        with pytest.raises(DecryptionError):
            await decrypt_document(doc, "wrong secret")

    async def test_missing_secret(self):
        doc = {"_encryption": {"salt": SALT}, "metrics": {}}
        with pytest.raises(DecryptionError, match="not provided"):
            await decrypt_document(doc, None)

    async def test_missing_salt(self):
        with pytest.raises(DecryptionError):
            await decrypt_document({"_encryption": {"iterations": 10}}, SECRET)

    async def test_input_not_mutated(self):
        doc = {
            "_encryption": {"salt": SALT, "iterations": ITERATIONS},
            "crema": {"sources": encrypt_value(["crm"])},
        }
        before = copy.deepcopy(doc)
        await decrypt_document(doc, SECRET)
        assert doc == before

    async def test_truthy_flag_decrypted(self):
        doc = {
            "_encryption": {"salt": SALT, "iterations": ITERATIONS},
            "metrics": {"top_donors": {**encrypt_value(["Ada"]), "_encrypted": 1}},
        }
        assert await decrypt_document(doc, SECRET) == {"metrics": {"top_donors": ["Ada"]}}

    async def test_float_iterations(self):
        doc = {
            "_encryption": {"salt": SALT, "iterations": float(ITERATIONS)},
            "metrics": {"top_donors": encrypt_value(["Ada"])},
        }
        assert await decrypt_document(doc, SECRET) == {"metrics": {"top_donors": ["Ada"]}}

    async def test_fractional_iterations_rejected(self):
        doc = {"_encryption": {"salt": SALT, "iterations": 1000.5}, "metrics": {}}
        with pytest.raises(DecryptionError, match="Malformed encryption metadata"):
            await decrypt_document(doc, SECRET)

    async def test_malformed_metadata(self):
        for meta in ({"salt": 123}, {"salt": SALT, "iterations": "many"}):
            with pytest.raises(DecryptionError, match="Malformed encryption metadata"):
                await decrypt_document({"_encryption": meta, "metrics": {}}, SECRET)

    async def test_missing_iterations_uses_default(self):
        doc = {"_encryption": {"salt": SALT, "iterations": None}, "metrics": {"n": encrypt_value(1, iterations=100000)}}
        assert await decrypt_document(doc, SECRET) == {"metrics": {"n": 1}}
