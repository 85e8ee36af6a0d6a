"""Shared key material: generated once per session, as RSA key generation is slow."""

import logging

import pytest

from pypomes_openssl import csr_new, csr_sign, pkey_new


@pytest.fixture(scope="session")
def rsa_key():
    """CA private key (RSA 2048)."""
    return pkey_new(key_type="rsa",
                    key_bits=2048)


@pytest.fixture(scope="session")
def ec_key():
    """EC private key on P-256."""
    return pkey_new(key_type="ec",
                    curve="secp256r1")


@pytest.fixture(scope="session")
def ca_cert(rsa_key):
    """Self-signed CA certificate, serial 1, valid for 30 days."""
    csr = csr_new(dn={"CN": "Test Root CA", "O": "Pomes", "C": "BR"},
                  private_key=rsa_key)
    return csr_sign(csr_data=csr,
                    ca_cert=None,
                    ca_key=rsa_key,
                    days=30,
                    serial=1)


@pytest.fixture(scope="session")
def leaf_key():
    """End-entity private key (RSA 2048)."""
    return pkey_new(key_type="rsa",
                    key_bits=2048)


@pytest.fixture(scope="session")
def leaf_csr(leaf_key):
    """Certificate request with a repeated OU field."""
    return csr_new(dn={"CN": "leaf.example.com", "OU": ["Dev", "Ops"]},
                   private_key=leaf_key)


@pytest.fixture(scope="session")
def leaf_cert(leaf_csr, ca_cert, rsa_key):
    """End-entity certificate issued by the CA, serial 0x1234."""
    return csr_sign(csr_data=leaf_csr,
                    ca_cert=ca_cert,
                    ca_key=rsa_key,
                    serial=0x1234)


@pytest.fixture
def logger():
    return logging.getLogger("pypomes_openssl.tests")
