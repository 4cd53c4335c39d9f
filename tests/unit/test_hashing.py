import hashlib

from mediaregistry.core.hashing import compute_bytes_digest, sign_request_params


def test_compute_bytes_digest_sha256() -> None:
    assert (
        compute_bytes_digest(b"")
        == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )


def test_sign_request_params_sorts_keys_and_skips_empty_values() -> None:
    signature = sign_request_params(
        {"timestamp": "1315060510", "public_id": "sample_image", "folder": ""},
        "abcd",
    )
    expected = hashlib.sha1(b"public_id=sample_image&timestamp=1315060510abcd").hexdigest()
    assert signature == expected
