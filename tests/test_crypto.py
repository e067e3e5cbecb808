"""
Tests for the medical record cipher engine.
"""
import os

import pytest

from telehealth.exceptions import DecryptionError
from telehealth.medical_records.crypto import IV_SIZE, CipherConfig, CipherEngine


@pytest.mark.parametrize("plaintext", [b"", b"a", b"0123456789abcdef", os.urandom(1000)])
def test_round_trip(cipher, plaintext):
    ciphertext, iv = cipher.encrypt(plaintext)
    assert cipher.decrypt(ciphertext, iv) == plaintext


def test_fresh_iv_per_encryption(cipher):
    first, first_iv = cipher.encrypt(b"same content")
    second, second_iv = cipher.encrypt(b"same content")
    assert len(first_iv) == IV_SIZE
    assert first_iv != second_iv
    assert first != second


def test_ciphertext_does_not_contain_plaintext(cipher):
    plaintext = b"patient has condition X" * 4
    ciphertext, _ = cipher.encrypt(plaintext)
    assert plaintext not in ciphertext


def test_every_flipped_byte_is_detected(cipher):
    ciphertext, iv = cipher.encrypt(b"blood panel results")
    for position in range(len(ciphertext)):
        tampered = bytearray(ciphertext)
        tampered[position] ^= 0x01
        with pytest.raises(DecryptionError):
            cipher.decrypt(bytes(tampered), iv)


def test_wrong_iv_is_rejected(cipher):
    ciphertext, iv = cipher.encrypt(b"prescription")
    wrong_iv = bytes(b ^ 0xFF for b in iv)
    with pytest.raises(DecryptionError):
        cipher.decrypt(ciphertext, wrong_iv)


def test_iv_of_wrong_length_is_rejected(cipher):
    ciphertext, iv = cipher.encrypt(b"prescription")
    with pytest.raises(DecryptionError):
        cipher.decrypt(ciphertext, iv[:8])


def test_truncated_ciphertext_is_rejected(cipher):
    ciphertext, iv = cipher.encrypt(b"x" * 100)
    for length in (0, 10, len(ciphertext) - 1, len(ciphertext) - 16):
        with pytest.raises(DecryptionError):
            cipher.decrypt(ciphertext[:length], iv)


def test_changed_key_is_rejected(cipher):
    ciphertext, iv = cipher.encrypt(b"history")
    other = CipherEngine(CipherConfig(secret="a-different-secret"))
    with pytest.raises(DecryptionError):
        other.decrypt(ciphertext, iv)


def test_same_secret_derives_same_key(cipher):
    ciphertext, iv = cipher.encrypt(b"history")
    again = CipherEngine(CipherConfig(secret="test-encryption-key"))
    assert again.decrypt(ciphertext, iv) == b"history"
