"""Unit tests: certificate requests, and certificates issued from them."""

import pytest
from cryptography import x509

from pypomes_openssl import (
    InvalidArgumentError, MalformedMaterialError,
    cert_export, cert_parse, cert_verify_signature, csr_export, csr_get_public_key, csr_get_subject,
    csr_new, csr_read, csr_save, csr_sign, pkey_export_private, pkey_export_public, pkey_new
)


def test_csr_subject(leaf_csr):
    assert csr_get_subject(csr_data=leaf_csr) == {"CN": "leaf.example.com", "OU": ["Dev", "Ops"]}
    assert csr_get_subject(csr_data=leaf_csr, short_names=False)["commonName"] == "leaf.example.com"
    assert leaf_csr.is_signature_valid


def test_csr_export_and_read(tmp_path, leaf_csr):
    pem = csr_export(csr_data=leaf_csr)
    assert pem.startswith("-----BEGIN CERTIFICATE REQUEST-----")
    assert csr_read(csr_data=pem) == leaf_csr
    assert csr_export(csr_data=leaf_csr, fmt="der")[:1] == b"\x30"

    path = tmp_path / "leaf.csr"
    csr_save(csr_data=leaf_csr, file_name=path)
    assert csr_read(csr_data=f"file://{path}") == leaf_csr


def test_csr_read_rejects_other_pem_types(rsa_key, ca_cert):
    with pytest.raises(MalformedMaterialError, match=r"Certificate request PEM expected \(argument #1\), got 'PRIVATE KEY'"):
        csr_read(csr_data=pkey_export_private(key=rsa_key))
    with pytest.raises(MalformedMaterialError, match="got 'CERTIFICATE'"):
        csr_read(csr_data=cert_export(x509_data=ca_cert))


def test_csr_public_key(leaf_csr, leaf_key):
    assert pkey_export_public(key=csr_get_public_key(csr_data=leaf_csr)) == pkey_export_public(key=leaf_key)


def test_csr_new_with_protected_key(rsa_key):
    pem = pkey_export_private(key=rsa_key, passphrase="pw")
    csr = csr_new(dn={"CN": "protected"}, private_key=pem, passphrase="pw", hash_alg="sha384")
    assert csr.signature_hash_algorithm.name == "sha384"


def test_self_signed_is_ca(ca_cert):
    constraints = ca_cert.extensions.get_extension_for_class(x509.BasicConstraints)
    assert constraints.critical
    assert constraints.value.ca


def test_issued_is_not_ca(leaf_cert):
    assert not leaf_cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    assert leaf_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)


def test_csr_sign_random_serial(leaf_csr, ca_cert, rsa_key):
    """Serials of None or 0 are replaced by random positive serials."""
    first = csr_sign(csr_data=leaf_csr, ca_cert=ca_cert, ca_key=rsa_key)
    second = csr_sign(csr_data=leaf_csr, ca_cert=ca_cert, ca_key=rsa_key, serial=0)
    assert first.serial_number > 0
    assert second.serial_number > 0
    assert first.serial_number != second.serial_number


def test_csr_sign_rejects_bad_days(leaf_csr, ca_cert, rsa_key):
    with pytest.raises(InvalidArgumentError, match=r"Int expected \(argument #4\)"):
        csr_sign(csr_data=leaf_csr, ca_cert=ca_cert, ca_key=rsa_key, days="a year")


def test_ed25519_self_signed():
    """EdDSA keys sign requests and certificates without a separate digest."""
    key = pkey_new(key_type="ed25519")
    csr = csr_new(dn={"CN": "edwards"}, private_key=key)
    cert = csr_sign(csr_data=csr, ca_cert=None, ca_key=key, days=1)
    assert cert.signature_hash_algorithm is None
    assert cert_verify_signature(x509_data=cert, issuer=cert)
    assert cert_parse(x509_data=cert)["signatureHash"] is None


def test_ec_self_signed(ec_key):
    csr = csr_new(dn={"CN": "elliptic"}, private_key=ec_key)
    cert = csr_sign(csr_data=csr, ca_cert=None, ca_key=ec_key, days=1)
    assert cert_verify_signature(x509_data=cert, issuer=cert)
