from datetime import datetime, timezone

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from crlkit import schema
from crlkit.asn1_util import der_encode, get_optional
from crlkit.codec import decode_asn1
from crlkit.config import CRLProcessingSettings
from crlkit.crl import CertificateList
from crlkit.errors import DecodeError, EncodeError, SchemaMismatchError
from crlkit.extensions import CRL_NUMBER
from crlkit.model import Extension, Time, TimeType

from .common import (
    ISSUER,
    NEXT_UPDATE,
    REVOCATION_DATE,
    SHA256_RSA,
    THIS_UPDATE,
    build_pyca_crl,
    crl_number_extension,
    der_header,
    rsa_key,
    signed_crl,
    split_header,
    spki_for,
    unsigned_crl,
)


def _decode_tbs_tree(tbs_bytes):
    return decode_asn1(tbs_bytes, schema.TBSCertList(), 'TBSCertList')


def test_decode_third_party_crl():
    pyca_crl = build_pyca_crl(
        rsa_key(), revoked=[(42, REVOCATION_DATE)], crl_number=5
    )
    der = pyca_crl.public_bytes(serialization.Encoding.DER)
    crl = CertificateList.load(der)

    assert crl.tbs.version == 2
    assert crl.tbs.issuer == ISSUER
    assert crl.tbs.this_update.value == THIS_UPDATE
    assert crl.tbs.this_update.kind == TimeType.UTC_TIME
    assert crl.tbs.next_update.value == NEXT_UPDATE
    assert [e.serial_number for e in crl.tbs.revoked_certificates] == [42]
    entry = crl.tbs.revoked_certificates[0]
    assert entry.revocation_date.value == REVOCATION_DATE
    assert entry.entry_extensions is None

    (ext,) = crl.tbs.crl_extensions
    assert ext.extn_id == CRL_NUMBER
    assert not ext.critical
    # nothing is interpreted by default
    assert not ext.understood

    assert crl.tbs_bytes == pyca_crl.tbs_certlist_bytes
    assert crl.signature_value == pyca_crl.signature
    assert crl.signature_algorithm == SHA256_RSA
    assert crl.tbs.signature == SHA256_RSA


def test_reencode_is_identical():
    pyca_crl = build_pyca_crl(
        rsa_key(), revoked=[(42, REVOCATION_DATE), (7, REVOCATION_DATE)]
    )
    der = pyca_crl.public_bytes(serialization.Encoding.DER)
    assert CertificateList.load(der).dump() == der


def test_understood_extension():
    pyca_crl = build_pyca_crl(rsa_key(), crl_number=1234)
    der = pyca_crl.public_bytes(serialization.Encoding.DER)
    settings = CRLProcessingSettings(
        understood_extensions=frozenset([CRL_NUMBER])
    )
    crl = CertificateList.load(der, settings)
    ext = crl.tbs.get_extension(CRL_NUMBER)
    assert ext.understood
    assert ext.parsed == 1234


def test_uninterpretable_extension_not_understood(caplog):
    crl = unsigned_crl(
        crl_extensions=[Extension(CRL_NUMBER, b'\x04\x00', critical=True)],
        signature=SHA256_RSA,
    )
    crl.signature_algorithm = SHA256_RSA
    settings = CRLProcessingSettings(
        understood_extensions=frozenset([CRL_NUMBER])
    )
    loaded = CertificateList.load(crl.dump(), settings)
    ext = loaded.tbs.get_extension(CRL_NUMBER)
    assert ext.critical
    assert not ext.understood
    assert 'Failed to interpret' in caplog.text


def test_absent_optionals_stay_absent():
    crl = unsigned_crl(next_update=False, signature=SHA256_RSA)
    crl.signature_algorithm = SHA256_RSA
    crl.signature_value = b'\x00'
    loaded = CertificateList.load(crl.dump())

    assert loaded.tbs.version == 1
    assert loaded.tbs.next_update is None
    assert loaded.tbs.revoked_certificates is None
    assert loaded.tbs.crl_extensions is None

    tree = _decode_tbs_tree(loaded.tbs_bytes)
    for name in (
        'version',
        'nextUpdate',
        'revokedCertificates',
        'crlExtensions',
    ):
        assert get_optional(tree, name) is None

    exported = loaded.to_dict()
    for key in (
        'version',
        'next_update',
        'revoked_certificates',
        'crl_extensions',
    ):
        assert key not in exported
    assert exported['signature_value'] == '00'


def test_empty_revoked_list_is_not_absent():
    crl = unsigned_crl(revoked=[], signature=SHA256_RSA)
    crl.signature_algorithm = SHA256_RSA
    der = crl.dump()
    loaded = CertificateList.load(der)
    assert loaded.tbs.revoked_certificates == []
    assert loaded.to_dict()['revoked_certificates'] == []

    tree = _decode_tbs_tree(loaded.tbs_bytes)
    assert get_optional(tree, 'revokedCertificates') is not None
    # the empty sequence is still there when encoding again
    assert loaded.dump(regenerate_tbs=True) == der


def test_version_encoding():
    v1 = unsigned_crl(signature=SHA256_RSA)
    v1.signature_algorithm = SHA256_RSA
    tree = _decode_tbs_tree(CertificateList.load(v1.dump()).tbs_bytes)
    assert get_optional(tree, 'version') is None

    v2 = unsigned_crl(
        signature=SHA256_RSA, crl_extensions=[crl_number_extension()]
    )
    v2.signature_algorithm = SHA256_RSA
    loaded = CertificateList.load(v2.dump())
    assert loaded.tbs.version == 2
    assert loaded.to_dict()['version'] == 2
    tree = _decode_tbs_tree(loaded.tbs_bytes)
    assert int(tree['version']) == 1


def test_v1_with_extensions_warns(caplog):
    crl = unsigned_crl(
        signature=SHA256_RSA,
        crl_extensions=[crl_number_extension()],
        version=1,
    )
    crl.signature_algorithm = SHA256_RSA
    crl.dump()
    assert 'requires v2' in caplog.text


def test_ber_body_preserved_byte_for_byte():
    template = signed_crl()
    _, contents = split_header(template.tbs_bytes)
    # same contents, but with a non-minimal length encoding
    ber_tbs = b'\x30\x84' + len(contents).to_bytes(4, 'big') + contents
    assert ber_tbs != template.tbs_bytes

    key = rsa_key()
    crl = CertificateList(
        tbs=template.tbs,
        tbs_bytes=ber_tbs,
        signature_algorithm=template.signature_algorithm,
        signature_value=key.sign(
            ber_tbs, padding.PKCS1v15(), hashes.SHA256()
        ),
    )
    data = crl.dump()

    loaded = CertificateList.load(data)
    assert loaded.tbs_bytes == ber_tbs
    assert loaded.tbs.revoked_certificates[0].serial_number == 42
    assert loaded.dump() == data
    assert loaded.verify(public_key_info=spki_for(key))


def test_fields_do_not_affect_retained_body():
    crl = signed_crl()
    der = crl.dump()
    loaded = CertificateList.load(der)
    loaded.tbs.next_update = Time.for_moment(
        datetime(2024, 3, 1, tzinfo=timezone.utc)
    )
    assert loaded.dump() == der

    regenerated = CertificateList.load(loaded.dump(regenerate_tbs=True))
    assert regenerated.tbs.next_update.value == datetime(
        2024, 3, 1, tzinfo=timezone.utc
    )


def test_trailing_data_rejected():
    der = signed_crl().dump()
    with pytest.raises(SchemaMismatchError, match='trailing'):
        CertificateList.load(der + b'\x00')


def test_truncated_data_rejected():
    der = signed_crl().dump()
    with pytest.raises(DecodeError):
        CertificateList.load(der[:-5])


def test_wrong_tag_rejected():
    with pytest.raises(SchemaMismatchError):
        CertificateList.load(b'\x02\x01\x00')


def test_missing_signature_value_rejected():
    crl = signed_crl()
    alg = crl.to_asn1()['signatureAlgorithm']
    contents = crl.tbs_bytes + der_encode(alg)
    with pytest.raises(SchemaMismatchError):
        CertificateList.load(der_header(len(contents)) + contents)


def test_non_bytes_rejected():
    with pytest.raises(DecodeError):
        CertificateList.load('not bytes')


def test_encode_without_signature_algorithm():
    crl = unsigned_crl()
    with pytest.raises(EncodeError):
        crl.dump()

    crl = unsigned_crl(signature=SHA256_RSA)
    # outer algorithm still missing
    with pytest.raises(EncodeError):
        crl.dump()


def test_encode_empty_extension_list():
    crl = unsigned_crl(signature=SHA256_RSA, crl_extensions=[])
    crl.signature_algorithm = SHA256_RSA
    with pytest.raises(EncodeError):
        crl.dump()


@pytest.mark.parametrize(
    'moment,expected_kind',
    [
        (datetime(1955, 6, 1, 12, tzinfo=timezone.utc), TimeType.UTC_TIME),
        (
            datetime(2049, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
            TimeType.UTC_TIME,
        ),
        (
            datetime(2050, 1, 1, tzinfo=timezone.utc),
            TimeType.GENERALIZED_TIME,
        ),
        (
            datetime(1949, 12, 31, tzinfo=timezone.utc),
            TimeType.GENERALIZED_TIME,
        ),
    ],
)
def test_time_types(moment, expected_kind):
    t = Time.for_moment(moment)
    assert t.kind == expected_kind
    crl = unsigned_crl(signature=SHA256_RSA)
    crl.tbs.next_update = t
    crl.signature_algorithm = SHA256_RSA
    loaded = CertificateList.load(crl.dump())
    assert loaded.tbs.next_update == t


def test_utc_time_out_of_range():
    t = Time(datetime(2050, 1, 1, tzinfo=timezone.utc), TimeType.UTC_TIME)
    with pytest.raises(EncodeError):
        t.to_asn1()


def test_naive_time_rejected():
    with pytest.raises(ValueError):
        Time(datetime(2024, 1, 1))


def test_export():
    crl = signed_crl()
    exported = CertificateList.load(crl.dump()).to_dict()
    assert exported['issuer'][2] == [
        {'type': 'common_name', 'value': 'Example CA'}
    ]
    assert exported['this_update'] == '2024-01-01T00:00:00+00:00'
    assert exported['signature_algorithm'] == {
        'algorithm': '1.2.840.113549.1.1.11',
        'parameters': '0500',
    }
    assert exported['signature'] == exported['signature_algorithm']
    assert exported['revoked_certificates'] == [
        {'serial_number': 42, 'revocation_date': '2023-12-15T10:30:00+00:00'}
    ]
    assert exported['crl_extensions'] == [
        {
            'extn_id': CRL_NUMBER,
            'name': 'crl_number',
            'critical': False,
            'value': '020105',
        }
    ]
    assert exported['tbs'] == crl.tbs_bytes.hex()


def test_export_unsigned():
    exported = unsigned_crl(revoked=[42]).to_dict()
    assert 'tbs' not in exported
    assert 'signature_value' not in exported
    assert 'signature_algorithm' not in exported
    assert exported['revoked_certificates'][0]['serial_number'] == 42
