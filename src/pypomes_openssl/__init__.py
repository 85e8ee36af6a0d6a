from .assert_pomes import (
    FILE_PROTO,
    assert_algorithm, assert_bool, assert_file, assert_passphrase, assert_positive_int,
    assert_readable_file, assert_string, assert_writable_file,
    file_has_proto_prefix, file_read_content, file_strip_proto_prefix, file_write_content
)
from .cert_pomes import (
    DN_FIELDS,
    cert_check_private_key, cert_export, cert_fingerprint, cert_get_issuer_dn,
    cert_get_subject_dn, cert_parse, cert_read, cert_save, cert_verify_signature,
    x509_name_build, x509_name_to_dict
)
from .codec_pomes import (
    base64_decode, base64_encode, base64url_decode, base64url_encode,
    hex_decode, hex_encode, hex_pack, hex_unpack, is_base64, is_hex
)
from .crypto_common import (
    CRYPTO_BASE64_CHUNK_SIZE, CRYPTO_DEFAULT_CIPHER, CRYPTO_DEFAULT_HASH_ALGORITHM,
    CRYPTO_DEFAULT_PEM_EOL, CRYPTO_FINGERPRINT_ALGORITHM, CRYPTO_PBKDF2_ITERATIONS,
    CipherAlgorithm, DataFormat, HashAlgorithm, PemEol, PemType, ResourceKind, RsaPadding, SignatureMode
)
from .crypto_errors import (
    CryptoToolboxError, EngineSignal, FailureKind, InvalidArgumentError, InvalidPemFormatError,
    MalformedMaterialError, MissingArgumentError, NativeOperationFailedError, TypeMismatchError
)
from .crypto_pkcs7 import (
    CryptoPkcs7, pkcs7_decrypt, pkcs7_encrypt, pkcs7_read_certs, pkcs7_verify
)
from .crypto_pkcs12 import (
    pkcs12_export, pkcs12_read, pkcs12_save
)
from .crypto_pomes import (
    CryptoCipher,
    crypto_cipher_iv_length, crypto_cipher_key_length, crypto_decrypt, crypto_encrypt,
    crypto_open, crypto_private_decrypt, crypto_public_decrypt, crypto_public_encrypt, crypto_seal,
    crypto_sign, crypto_verify
)
from .csr_pomes import (
    csr_export, csr_get_public_key, csr_get_subject, csr_new, csr_read, csr_save, csr_sign
)
from .guard_pomes import (
    NativeCallGuard, engine_errors_clear, engine_errors_get, engine_errors_push, guarded_call
)
from .hash_pomes import (
    hash_digest, hash_equals, hash_file, hash_hmac, hash_hmac_file, hash_pbkdf2, hash_totp
)
from .material_pomes import (
    MaterialForm, MaterialReference,
    material_get_text, material_resolve, material_resolve_key, resource_kind_of
)
from .pem_pomes import (
    PemEnvelope,
    der_file_to_pem_file, der_length, der_length_decode, der_to_pem,
    pem_assert, pem_assert_type, pem_file_get_type, pem_file_to_der_file, pem_get_type,
    pem_is_type, pem_is_valid, pem_parse, pem_split, pem_to_der, pem_to_der_asn1
)
from .pkey_pomes import (
    pkey_export_private, pkey_export_public, pkey_get_details, pkey_get_private,
    pkey_get_public, pkey_new, pkey_new_pair, pkey_save_private, pkey_save_public
)

__all__ = [
    # assert_pomes
    "FILE_PROTO",
    "assert_algorithm", "assert_bool", "assert_file", "assert_passphrase", "assert_positive_int",
    "assert_readable_file", "assert_string", "assert_writable_file",
    "file_has_proto_prefix", "file_read_content", "file_strip_proto_prefix", "file_write_content",
    # cert_pomes
    "DN_FIELDS",
    "cert_check_private_key", "cert_export", "cert_fingerprint", "cert_get_issuer_dn",
    "cert_get_subject_dn", "cert_parse", "cert_read", "cert_save", "cert_verify_signature",
    "x509_name_build", "x509_name_to_dict",
    # codec_pomes
    "base64_decode", "base64_encode", "base64url_decode", "base64url_encode",
    "hex_decode", "hex_encode", "hex_pack", "hex_unpack", "is_base64", "is_hex",
    # crypto_common
    "CRYPTO_BASE64_CHUNK_SIZE", "CRYPTO_DEFAULT_CIPHER", "CRYPTO_DEFAULT_HASH_ALGORITHM",
    "CRYPTO_DEFAULT_PEM_EOL", "CRYPTO_FINGERPRINT_ALGORITHM", "CRYPTO_PBKDF2_ITERATIONS",
    "CipherAlgorithm", "DataFormat", "HashAlgorithm", "PemEol", "PemType", "ResourceKind",
    "RsaPadding", "SignatureMode",
    # crypto_errors
    "CryptoToolboxError", "EngineSignal", "FailureKind", "InvalidArgumentError", "InvalidPemFormatError",
    "MalformedMaterialError", "MissingArgumentError", "NativeOperationFailedError", "TypeMismatchError",
    # crypto_pkcs7
    "CryptoPkcs7", "pkcs7_decrypt", "pkcs7_encrypt", "pkcs7_read_certs", "pkcs7_verify",
    # crypto_pkcs12
    "pkcs12_export", "pkcs12_read", "pkcs12_save",
    # crypto_pomes
    "CryptoCipher",
    "crypto_cipher_iv_length", "crypto_cipher_key_length", "crypto_decrypt", "crypto_encrypt",
    "crypto_open", "crypto_private_decrypt", "crypto_public_decrypt", "crypto_public_encrypt", "crypto_seal",
    "crypto_sign", "crypto_verify",
    # csr_pomes
    "csr_export", "csr_get_public_key", "csr_get_subject", "csr_new", "csr_read", "csr_save", "csr_sign",
    # guard_pomes
    "NativeCallGuard", "engine_errors_clear", "engine_errors_get", "engine_errors_push", "guarded_call",
    # hash_pomes
    "hash_digest", "hash_equals", "hash_file", "hash_hmac", "hash_hmac_file", "hash_pbkdf2", "hash_totp",
    # material_pomes
    "MaterialForm", "MaterialReference",
    "material_get_text", "material_resolve", "material_resolve_key", "resource_kind_of",
    # pem_pomes
    "PemEnvelope",
    "der_file_to_pem_file", "der_length", "der_length_decode", "der_to_pem",
    "pem_assert", "pem_assert_type", "pem_file_get_type", "pem_file_to_der_file", "pem_get_type",
    "pem_is_type", "pem_is_valid", "pem_parse", "pem_split", "pem_to_der", "pem_to_der_asn1",
    # pkey_pomes
    "pkey_export_private", "pkey_export_public", "pkey_get_details", "pkey_get_private",
    "pkey_get_public", "pkey_new", "pkey_new_pair", "pkey_save_private", "pkey_save_public"
]

from importlib.metadata import version
__version__ = version("pypomes_openssl")
__version_info__ = tuple(int(i) for i in __version__.split(".") if i.isdigit())
