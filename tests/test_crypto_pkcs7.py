"""Unit tests: PKCS#7 signing, verification and enveloped data."""

import hashlib

import pytest

from pypomes_openssl import (
    CryptoPkcs7, MalformedMaterialError, MissingArgumentError, PemType, TypeMismatchError,
    cert_export, csr_new, csr_sign, der_to_pem, pkcs12_export,
    pkcs7_decrypt, pkcs7_encrypt, pkcs7_read_certs, pkcs7_verify, pkey_export_public
)

DOCUMENT = b"The quick brown fox jumps over the lazy dog"


def test_sign_attached(ca_cert, rsa_key):
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, x509_data=ca_cert, private_key=rsa_key, sig_mode="attached")
    assert p7.is_valid()
    assert p7.payload == DOCUMENT
    assert len(p7.signatures) == 1
    assert p7.signatures[0].signer_common_name == "Test Root CA"
    assert pkcs7_verify(p7s_in=p7.p7s_bytes)


def test_sign_detached(leaf_cert, leaf_key):
    """Detached signatures need the document, and fail on an altered one."""
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, x509_data=leaf_cert, private_key=leaf_key)
    assert p7.is_valid()
    assert pkcs7_verify(p7s_in=p7.p7s_bytes, doc_in=DOCUMENT)
    assert not pkcs7_verify(p7s_in=p7.p7s_bytes, doc_in=DOCUMENT + b"!")
    with pytest.raises(MissingArgumentError, match="payload file must be provided"):
        pkcs7_verify(p7s_in=p7.p7s_bytes)


def test_sign_without_attributes(leaf_cert, leaf_key):
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, x509_data=leaf_cert, private_key=leaf_key,
                          embed_attrs=False, hash_alg="sha512")
    assert p7.is_valid()
    assert p7.signatures[0].signature_timestamp is None
    assert p7.get_digest(fmt="bytes") == hashlib.sha512(DOCUMENT).digest()


def test_signature_accessors(leaf_cert, leaf_key):
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, x509_data=leaf_cert, private_key=leaf_key, sig_mode="attached")
    assert p7.get_digest(fmt="bytes") == hashlib.sha256(DOCUMENT).digest()
    assert len(p7.get_signature(fmt="bytes")) == 256
    assert p7.get_public_key(fmt="der") == pkey_export_public(key=leaf_key, fmt="der")
    assert p7.get_public_key(fmt="pem").startswith("-----BEGIN PUBLIC KEY-----")

    metadata = p7.get_metadata()
    assert metadata["signer-common-name"] == "leaf.example.com"
    assert metadata["signature-valid"] is True
    assert metadata["cert-serial-number"] == 0x1234
    assert metadata["cert-chain-length"] == 1
    assert "tsa-timestamp" not in metadata


def test_sign_with_ec_key(ec_key):
    cert = csr_sign(csr_data=csr_new(dn={"CN": "ec signer"}, private_key=ec_key),
                    ca_cert=None,
                    ca_key=ec_key,
                    days=1)
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, x509_data=cert, private_key=ec_key, sig_mode="attached")
    assert p7.is_valid()


def test_sign_from_pkcs12(tmp_path, leaf_cert, leaf_key, ca_cert):
    """PKCS#12 signers carry their issuing chain into the signature."""
    pfx = pkcs12_export(x509_data=leaf_cert, private_key=leaf_key, passphrase="pw", extra_certs=[ca_cert])
    path = tmp_path / "document.p7s"
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, pfx_in=pfx, pfx_pwd="pw", p7s_out=path)
    assert p7.is_valid()
    assert len(p7.get_cert_chain()) == 2
    assert path.read_bytes() == p7.p7s_bytes
    assert CryptoPkcs7(p7s_in=path, doc_in=DOCUMENT).get_metadata()["signer-common-name"] == "leaf.example.com"


def test_sign_requires_signer():
    with pytest.raises(MissingArgumentError, match="Either PKCS#12 data"):
        CryptoPkcs7.sign(doc_in=DOCUMENT)


def test_pem_input(ca_cert, rsa_key):
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, x509_data=ca_cert, private_key=rsa_key, sig_mode="attached")
    pem = der_to_pem(der=p7.p7s_bytes, pem_type=PemType.PKCS7)
    assert CryptoPkcs7(p7s_in=pem.encode()).is_valid()

    wrong = der_to_pem(der=p7.p7s_bytes, pem_type=PemType.CERTIFICATE)
    with pytest.raises(MalformedMaterialError, match="PKCS#7 PEM expected"):
        CryptoPkcs7(p7s_in=wrong.encode())


def test_invalid_input():
    with pytest.raises(MalformedMaterialError):
        CryptoPkcs7(p7s_in=b"\x30\x03\x02\x01\x01")


def test_read_certs(leaf_cert, leaf_key, ca_cert):
    pfx = pkcs12_export(x509_data=leaf_cert, private_key=leaf_key, extra_certs=[ca_cert])
    p7 = CryptoPkcs7.sign(doc_in=DOCUMENT, pfx_in=pfx)
    certs = pkcs7_read_certs(p7_in=p7.p7s_bytes)
    assert sorted(certs) == sorted([cert_export(x509_data=leaf_cert), cert_export(x509_data=ca_cert)])


@pytest.mark.parametrize("fmt", ["der", "pem"])
def test_encrypt_decrypt(ca_cert, rsa_key, leaf_cert, leaf_key, fmt):
    """Every recipient decrypts the same envelope."""
    envelope = pkcs7_encrypt(data=DOCUMENT, recipients=[ca_cert, leaf_cert], fmt=fmt)
    if fmt == "pem":
        assert envelope.startswith("-----BEGIN PKCS7-----")
        envelope = envelope.encode()
    assert pkcs7_decrypt(p7_in=envelope, x509_data=ca_cert, private_key=rsa_key) == DOCUMENT
    assert pkcs7_decrypt(p7_in=envelope, x509_data=leaf_cert, private_key=leaf_key) == DOCUMENT


def test_encrypt_requires_rsa_recipients(ec_key):
    cert = csr_sign(csr_data=csr_new(dn={"CN": "ec recipient"}, private_key=ec_key),
                    ca_cert=None,
                    ca_key=ec_key,
                    days=1)
    with pytest.raises(TypeMismatchError, match="RSA key expected"):
        pkcs7_encrypt(data=DOCUMENT, recipients=[cert])
    with pytest.raises(MissingArgumentError):
        pkcs7_encrypt(data=DOCUMENT, recipients=[])


def test_decrypt_requires_rsa_key(ca_cert, ec_key):
    envelope = pkcs7_encrypt(data=DOCUMENT, recipients=[ca_cert])
    with pytest.raises(TypeMismatchError, match=r"\(argument #3\)"):
        pkcs7_decrypt(p7_in=envelope, x509_data=ca_cert, private_key=ec_key)
