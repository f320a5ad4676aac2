import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from identity_seed.adapters.keys import Ed25519KeyGenerator, UnsupportedKeyError

PARAMS = {"algorithm": "EdDSA", "curve": "Ed25519"}


def test_generates_usable_ed25519_pair():
    pair = Ed25519KeyGenerator().generate(PARAMS)

    private_key = serialization.load_pem_private_key(pair.private_key_pem.encode(), password=None)
    assert isinstance(private_key, ed25519.Ed25519PrivateKey)

    padded = pair.public_key + "=" * (-len(pair.public_key) % 4)
    public_raw = base64.urlsafe_b64decode(padded)
    public_key = ed25519.Ed25519PublicKey.from_public_bytes(public_raw)
    signature = private_key.sign(b"payload")
    public_key.verify(signature, b"payload")


def test_each_call_generates_a_new_key():
    generator = Ed25519KeyGenerator()

    assert generator.generate(PARAMS).public_key != generator.generate(PARAMS).public_key


def test_params_are_case_insensitive():
    assert Ed25519KeyGenerator().supports({"algorithm": "eddsa", "curve": "ED25519"})


@pytest.mark.parametrize(
    "params",
    [
        {"algorithm": "EC", "curve": "secp256r1"},
        {"algorithm": "EdDSA", "curve": "X25519"},
        {},
    ],
)
def test_unsupported_params_rejected(params):
    with pytest.raises(UnsupportedKeyError):
        Ed25519KeyGenerator().generate(params)


def test_private_key_hidden_from_repr():
    pair = Ed25519KeyGenerator().generate(PARAMS)

    assert "PRIVATE KEY" not in repr(pair)
