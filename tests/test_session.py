"""Tests for the split and recover pipelines."""

import base64
import random
from dataclasses import replace

import pytest

from secretsplit import (
    MAX_SECRET_SIZE,
    DuplicateShareIndex,
    EmptySecret,
    ErrorKind,
    FormatVersion,
    InvalidShareCount,
    InvalidSignature,
    InvalidThreshold,
    MalformedEnvelope,
    MalformedShare,
    NotEnoughShares,
    SecretSharingError,
    SecretTooLarge,
    ShareCountTooSmall,
    ShareGroupMismatch,
    SignatureModeMismatch,
    ThresholdTooSmall,
    recover_secret,
    recover_wrapped_secret,
    split_secret,
    split_wrapped_secret,
)
from secretsplit.core import session
from secretsplit.core.share import SESSION_ID_SIZE, Share
from secretsplit.crypto.merkle import HASH_SIZE
from secretsplit.crypto.shamir import generate_shares


SECRET = (
    b"I do not want to live in a world where everything I do and say is "
    b"recorded. That is not something I am willing to support or live under."
)
MIME = b"text/plain"

HEADER_SIZE = 1 + SESSION_ID_SIZE + 4


def no_randomness(n):
    raise AssertionError("randomness drawn before validation")


class TestSplitSecret:
    """Tests for split_secret."""

    def test_hello_world_scenario(self):
        """7-of-10 split: shares 2..8 recover, shares 2..7 do not."""
        shares = split_secret(7, 10, b"Hello, World")

        assert len(shares) == 10
        assert len(set(shares)) == 10
        for i, share in enumerate(shares, start=1):
            assert share.startswith(f"7-{i}-")

        assert recover_secret(shares[1:8]) == b"Hello, World"

        with pytest.raises(NotEnoughShares) as excinfo:
            recover_secret(shares[1:7])
        assert excinfo.value.required == 7
        assert excinfo.value.provided == 6

    @pytest.mark.parametrize("sign", [True, False])
    def test_split_recover_works(self, sign):
        """Seven of ten shares recover a longer secret."""
        shares = split_secret(7, 10, SECRET, sign)
        assert recover_secret(shares[1:8], verify=sign) == SECRET

    @pytest.mark.parametrize("sign", [True, False])
    def test_fails_when_shares_missing(self, sign):
        """Six of a 7-of-10 split are not enough."""
        shares = split_secret(7, 10, SECRET, sign)
        with pytest.raises(NotEnoughShares):
            recover_secret(shares[:6], verify=sign)

    def test_text_secret_is_utf8(self):
        """A str secret is split as its UTF-8 encoding."""
        shares = split_secret(2, 3, "pässword")
        assert recover_secret(shares[:2]) == "pässword".encode("utf-8")

    def test_seeded_split_is_reproducible(self):
        """The same random stream yields identical share strings."""
        first = split_secret(3, 5, SECRET, rng=random.Random(1).randbytes)
        second = split_secret(3, 5, SECRET, rng=random.Random(1).randbytes)
        assert first == second

    def test_minimum_and_maximum_parameters(self):
        """2-of-2 and 255-of-255 both round trip."""
        assert recover_secret(split_secret(2, 2, b"x")) == b"x"

        shares = split_secret(255, 255, b"max", sign=True)
        assert recover_secret(shares, verify=True) == b"max"


class TestSplitValidation:
    """Parameter errors are raised before any randomness is drawn."""

    @pytest.mark.parametrize("threshold", [-10, 1000])
    def test_invalid_threshold(self, threshold):
        """Thresholds outside the encodable range are invalid."""
        with pytest.raises(InvalidThreshold, match="Invalid threshold"):
            split_secret(threshold, 10, SECRET, rng=no_randomness)

    def test_threshold_too_small(self):
        """A threshold of one is too small."""
        with pytest.raises(ThresholdTooSmall, match="Threshold is too small"):
            split_secret(1, 10, SECRET, rng=no_randomness)

    @pytest.mark.parametrize("share_count", [-10, 1000])
    def test_invalid_share_count(self, share_count):
        """Share counts outside the encodable range are invalid."""
        with pytest.raises(InvalidShareCount, match="Invalid shares count"):
            split_secret(7, share_count, SECRET, rng=no_randomness)

    def test_share_count_too_small(self):
        """Fewer shares than the threshold is too small."""
        with pytest.raises(ShareCountTooSmall, match="Number of shares is too small"):
            split_secret(7, 2, SECRET, rng=no_randomness)

    def test_empty_secret(self):
        """An empty secret is rejected."""
        with pytest.raises(EmptySecret):
            split_secret(2, 3, b"", rng=no_randomness)

    def test_secret_too_large(self):
        """Secrets above the size limit are rejected."""
        with pytest.raises(SecretTooLarge) as excinfo:
            split_secret(2, 3, b"x" * (MAX_SECRET_SIZE + 1), rng=no_randomness)
        assert excinfo.value.maximum == MAX_SECRET_SIZE

    def test_wrong_secret_type(self):
        """Only bytes-like and str secrets are accepted."""
        with pytest.raises(TypeError):
            split_secret(2, 3, 12345)

    def test_short_random_source(self):
        """A random source returning too few bytes is an error."""
        with pytest.raises(ValueError, match="Random source"):
            split_secret(2, 3, b"abc", rng=lambda n: b"\x00")


class TestSplitScrubbing:
    """Working copies of the secret are zeroed before split returns."""

    def test_coefficient_randomness_zeroed(self):
        """The coefficient bytes drawn from the random source are wiped."""
        drawn = []

        def rng(n):
            buffer = bytearray(b"\xaa" * n)
            drawn.append(buffer)
            return buffer

        shares = split_secret(3, 5, b"secret", rng=rng)

        assert [len(b) for b in drawn] == [SESSION_ID_SIZE, 6 * 2]
        assert drawn[1] == bytearray(12)
        assert recover_secret(shares[:3]) == b"secret"

    @pytest.mark.parametrize("wrapped", [True, False])
    def test_engine_input_zeroed(self, monkeypatch, wrapped):
        """The buffer handed to the polynomial engine is wiped afterwards."""
        seen = []

        def recording_generate_shares(secret, *args, **kwargs):
            seen.append(secret)
            return generate_shares(secret, *args, **kwargs)

        monkeypatch.setattr(session, "generate_shares", recording_generate_shares)

        if wrapped:
            shares = split_wrapped_secret(2, 3, b"hunter2", MIME)
            assert recover_wrapped_secret(shares[:2]).secret == b"hunter2"
        else:
            shares = split_secret(2, 3, b"hunter2")
            assert recover_secret(shares[:2]) == b"hunter2"

        assert len(seen) == 1
        assert isinstance(seen[0], bytearray)
        assert len(seen[0]) > 0
        assert not any(seen[0])

    def test_caller_buffer_left_intact(self):
        """A bytearray passed in by the caller is not modified."""
        secret = bytearray(b"caller owned")
        shares = split_wrapped_secret(2, 3, secret, MIME)

        assert secret == bytearray(b"caller owned")
        assert recover_wrapped_secret(shares[:2]).secret == b"caller owned"


class TestRecoverSecret:
    """Tests for recover_secret."""

    def test_any_order(self):
        """Shares may be given in any order."""
        shares = split_secret(4, 8, SECRET)
        assert recover_secret([shares[7], shares[2], shares[5], shares[0]]) == SECRET

    def test_superset_of_threshold(self):
        """All n shares recover as well as k do."""
        shares = split_secret(3, 9, SECRET, sign=True)
        assert recover_secret(shares, verify=True) == SECRET

    def test_empty_list(self):
        """No shares at all is not enough."""
        with pytest.raises(NotEnoughShares):
            recover_secret([])

    def test_single_string_rejected(self):
        """A bare string is not mistaken for a list of characters."""
        shares = split_secret(2, 3, SECRET)
        with pytest.raises(TypeError):
            recover_secret(shares[0])

    def test_duplicate_index(self):
        """Supplying the same share twice is rejected."""
        shares = split_secret(3, 5, SECRET)
        with pytest.raises(DuplicateShareIndex) as excinfo:
            recover_secret([shares[0], shares[1], shares[1]])
        assert excinfo.value.share_index == 2

    def test_malformed_share_position(self):
        """Parse errors report where in the input the bad share was."""
        shares = split_secret(3, 5, SECRET)
        with pytest.raises(MalformedShare) as excinfo:
            recover_secret([shares[0], "3-2-not base64!", shares[2]])
        assert excinfo.value.position == 1
        assert excinfo.value.share_index == 2


class TestIncompatibleSets:
    """Shares from different sessions are reported as groups."""

    @pytest.mark.parametrize("sign", [True, False])
    def test_different_thresholds(self, sign):
        """Groups list the indices of each session."""
        shares1 = split_secret(7, 10, SECRET, sign)
        shares2 = split_secret(6, 9, SECRET + b" RANDOM", sign)

        with pytest.raises(ShareGroupMismatch) as excinfo:
            recover_secret(shares1[:3] + shares2[3:8], verify=sign)

        assert excinfo.value.share_groups == [[1, 2, 3], [4, 5, 6, 7, 8]]
        assert excinfo.value.kind == ErrorKind.SHARE_GROUP_MISMATCH

    @pytest.mark.parametrize("sign", [True, False])
    def test_same_threshold_same_length(self, sign):
        """Identical parameters are still told apart by session."""
        shares1 = split_secret(3, 5, b"first secret", sign)
        shares2 = split_secret(3, 5, b"other secret", sign)

        with pytest.raises(ShareGroupMismatch) as excinfo:
            recover_secret([shares1[0], shares2[1], shares1[2]], verify=sign)

        groups = excinfo.value.groups
        assert len(groups) == 2
        assert groups[0].indices == (1, 3)
        assert groups[1].indices == (2,)

    def test_mismatch_reported_before_duplicates(self):
        """Two sessions reusing an index report the group split."""
        shares1 = split_secret(3, 5, SECRET)
        shares2 = split_secret(3, 5, SECRET)

        with pytest.raises(ShareGroupMismatch):
            recover_secret([shares1[0], shares2[0], shares1[1]])


class TestSignatures:
    """Tests for signature enforcement on recovery."""

    def test_verify_unsigned_shares(self):
        """verify=True on unsigned shares is a mode mismatch."""
        shares = split_secret(3, 5, SECRET, sign=False)
        with pytest.raises(SignatureModeMismatch) as excinfo:
            recover_secret(shares[:3], verify=True)
        assert excinfo.value.signed is False

    def test_skip_verification_of_signed_shares(self):
        """verify=False on signed shares is a mode mismatch."""
        shares = split_secret(3, 5, SECRET, sign=True)
        with pytest.raises(SignatureModeMismatch) as excinfo:
            recover_secret(shares[:3], verify=False)
        assert excinfo.value.signed is True

    def test_altered_payload_byte(self):
        """A flipped data bit is an invalid signature on that share."""
        shares = split_secret(3, 5, SECRET, sign=True)

        share = Share.decode(shares[1])
        data = bytearray(share.data)
        data[0] ^= 0x01
        tampered = replace(share, data=bytes(data)).encode()

        with pytest.raises(InvalidSignature) as excinfo:
            recover_secret([shares[0], tampered, shares[2]], verify=True)
        assert excinfo.value.share_index == 2

    def test_altered_unused_share_detected(self):
        """Every supplied share is verified, not only the first threshold."""
        shares = split_secret(3, 5, SECRET, sign=True)

        share = Share.decode(shares[4])
        tampered = replace(share, data=bytes(len(share.data))).encode()

        with pytest.raises(InvalidSignature):
            recover_secret(shares[:3] + [tampered], verify=True)

    @pytest.mark.parametrize(
        "field, kind",
        [
            ("flags", ErrorKind.MALFORMED_SHARE),
            ("session_id", ErrorKind.INVALID_SIGNATURE),
            ("length", ErrorKind.MALFORMED_SHARE),
            ("data", ErrorKind.INVALID_SIGNATURE),
            ("root", ErrorKind.INVALID_SIGNATURE),
            ("depth", ErrorKind.MALFORMED_SHARE),
            ("path", ErrorKind.INVALID_SIGNATURE),
        ],
    )
    def test_body_bit_flip(self, field, kind):
        """Layout fields fail to parse; committed content fails to verify."""
        shares = split_secret(3, 5, SECRET, sign=True)
        length = len(SECRET)
        offsets = {
            "flags": 0,
            "session_id": 1,
            "length": HEADER_SIZE - 1,
            "data": HEADER_SIZE,
            "root": HEADER_SIZE + length,
            "depth": HEADER_SIZE + length + HASH_SIZE,
            "path": HEADER_SIZE + length + HASH_SIZE + 1,
        }

        body = bytearray(Share.decode(shares[1]).to_bytes())
        body[offsets[field]] ^= 0x01
        tampered = "3-2-" + base64.b64encode(bytes(body)).decode("ascii").rstrip("=")

        with pytest.raises(SecretSharingError) as excinfo:
            recover_secret([shares[0], tampered, shares[2]], verify=True)
        assert excinfo.value.kind == kind


class TestWrappedSecret:
    """Tests for the enveloped variant."""

    @pytest.mark.parametrize("mime", [MIME, None])
    @pytest.mark.parametrize("sign", [True, False])
    def test_split_recover_works(self, mime, sign):
        """Secret, tag and version come back from seven of ten shares."""
        shares = split_wrapped_secret(7, 10, SECRET, mime, sign)
        recovered = recover_wrapped_secret(shares[1:8], verify=sign)

        assert recovered.secret == SECRET
        assert recovered.metadata_tag == mime
        assert recovered.version == FormatVersion.INITIAL_RELEASE

    @pytest.mark.parametrize("sign", [True, False])
    def test_fails_when_shares_missing(self, sign):
        """Six of a 7-of-10 split are not enough."""
        shares = split_wrapped_secret(7, 10, SECRET, MIME, sign)
        with pytest.raises(NotEnoughShares):
            recover_wrapped_secret(shares[:6], verify=sign)

    @pytest.mark.parametrize("sign", [True, False])
    def test_fails_on_incompatible_sets(self, sign):
        """Mixed sessions report two groups."""
        shares1 = split_wrapped_secret(7, 10, SECRET, MIME, sign)
        shares2 = split_wrapped_secret(6, 9, SECRET + b" RANDOM", MIME, sign)

        with pytest.raises(ShareGroupMismatch) as excinfo:
            recover_wrapped_secret(shares1[:3] + shares2[3:8], verify=sign)
        assert len(excinfo.value.groups) == 2

    def test_text_tag(self):
        """A str tag comes back as UTF-8 bytes."""
        shares = split_wrapped_secret(2, 3, b"data", "application/json")
        assert recover_wrapped_secret(shares[:2]).metadata_tag == b"application/json"

    def test_tag_does_not_affect_validation(self):
        """Parameter errors win over anything about the tag."""
        with pytest.raises(ThresholdTooSmall):
            split_wrapped_secret(1, 10, SECRET, MIME, rng=no_randomness)
        with pytest.raises(ShareCountTooSmall):
            split_wrapped_secret(7, 2, SECRET, 12345, rng=no_randomness)

    def test_empty_secret_with_tag(self):
        """A tag does not make an empty secret acceptable."""
        with pytest.raises(EmptySecret):
            split_wrapped_secret(2, 3, b"", MIME, rng=no_randomness)

    def test_unwrapped_shares_rejected(self):
        """Plain shares do not carry an envelope header."""
        shares = split_secret(2, 3, b"\x63 not an envelope")
        with pytest.raises(MalformedEnvelope):
            recover_wrapped_secret(shares[:2])
