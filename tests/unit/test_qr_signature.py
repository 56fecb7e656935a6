import base64
import hashlib
import hmac

from app.schemas.qr import QRPayload
from app.services.qr import render_qr_data_url, sign_payload, verify_signature


def test_sign_payload_matches_hmac_sha256():
    expected = hmac.new(b"secret", b"12:34:1700000000000", hashlib.sha256).hexdigest()
    assert sign_payload(12, 34, 1700000000000, secret="secret") == expected


def test_verify_signature_roundtrip():
    signature = sign_payload(5, 7, 1700000000000, secret="secret")
    payload = QRPayload(booking_id=5, user_id=7, child_id=None, timestamp=1700000000000, signature=signature)
    assert verify_signature(payload, secret="secret")


def test_verify_signature_detects_tampering():
    signature = sign_payload(5, 7, 1700000000000, secret="secret")
    tampered = QRPayload(booking_id=6, user_id=7, timestamp=1700000000000, signature=signature)
    assert not verify_signature(tampered, secret="secret")
    assert not verify_signature(
        QRPayload(booking_id=5, user_id=7, timestamp=1700000000000, signature=signature), secret="other"
    )


def test_render_qr_data_url_is_png():
    data_url = render_qr_data_url('{"booking_id":1}')
    assert data_url.startswith("data:image/png;base64,")
    raw = base64.b64decode(data_url.split(",", 1)[1])
    assert raw[:8] == b"\x89PNG\r\n\x1a\n"
