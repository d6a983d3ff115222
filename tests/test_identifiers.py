"""
CertSeal Certificate Identifier Tests
"""

import unittest

from certseal import (
    MalformedIdError,
    create_claim,
    claim_digest,
    derive_id,
    course_tag,
    is_well_formed,
    validate_certificate_id,
    parse_certificate_id,
    id_matches_digest,
)
from certseal.identifiers import CERTIFICATE_ID_PATTERN, MAX_ID_LENGTH


NONCE = "0123456789abcdef0123456789abcdef"


def make_claim(**overrides):
    values = {
        "subject_name": "Jane Doe",
        "course_or_exam_name": "Intro to Cryptography",
        "issued_at_epoch_millis": 1700000000000,
        "nonce": NONCE,
    }
    values.update(overrides)
    return create_claim(**values)


class TestDeriveId(unittest.TestCase):

    def setUp(self):
        self.claim = make_claim()
        self.digest = claim_digest(self.claim)
        self.certificate_id = derive_id(self.digest, self.claim)

    def test_matches_public_format(self):
        self.assertIsNotNone(CERTIFICATE_ID_PATTERN.fullmatch(self.certificate_id))
        self.assertLessEqual(len(self.certificate_id), MAX_ID_LENGTH)

    def test_segments_are_digest_slices(self):
        parts = parse_certificate_id(self.certificate_id)
        d = self.digest.upper()
        self.assertEqual(parts.segment1, d[0:4])
        self.assertEqual(parts.segment2, d[4:8])
        self.assertEqual(parts.segment3, d[8:12])
        self.assertEqual(parts.checksum, d[124:128])

    def test_course_tag_segment(self):
        parts = parse_certificate_id(self.certificate_id)
        self.assertEqual(parts.course_tag, course_tag("Intro to Cryptography"))

    def test_deterministic(self):
        for _ in range(10):
            self.assertEqual(derive_id(self.digest, self.claim), self.certificate_id)

    def test_different_nonce_different_id(self):
        other = make_claim(nonce="f" * 32)
        self.assertNotEqual(derive_id(claim_digest(other), other), self.certificate_id)

    def test_rejects_non_digest(self):
        with self.assertRaises(ValueError):
            derive_id("not-a-digest", self.claim)

    def test_id_matches_digest(self):
        self.assertTrue(id_matches_digest(self.certificate_id, self.digest))
        other = claim_digest(make_claim(nonce="f" * 32))
        self.assertFalse(id_matches_digest(self.certificate_id, other))
        self.assertFalse(id_matches_digest("CERT-garbage", self.digest))


class TestCourseTag(unittest.TestCase):

    def test_shape(self):
        tag = course_tag("Intro to Cryptography")
        self.assertEqual(len(tag), 6)
        self.assertTrue(tag.startswith("INT"))
        self.assertTrue(tag.isalnum() and tag == tag.upper())

    def test_pads_short_hint(self):
        self.assertTrue(course_tag("A. B.").startswith("ABX"))

    def test_skips_punctuation(self):
        self.assertTrue(course_tag("C++ (Part 1)").startswith("CPA"))

    def test_same_prefix_different_courses(self):
        self.assertNotEqual(course_tag("Intro to Cryptography"), course_tag("Intro to Networking"))

    def test_deterministic(self):
        self.assertEqual(course_tag("Data Science 101"), course_tag("Data Science 101"))


class TestIdFormatValidation(unittest.TestCase):

    VALID = "CERT-1A2B-3C4D-5E6F-INT4K2-9A8B"

    def test_valid(self):
        self.assertTrue(is_well_formed(self.VALID))
        self.assertEqual(validate_certificate_id(self.VALID), self.VALID)

    def test_rejects_lowercase(self):
        self.assertFalse(is_well_formed(self.VALID.lower()))

    def test_rejects_trailing_newline(self):
        self.assertFalse(is_well_formed(self.VALID + "\n"))

    def test_rejects_surrounding_whitespace(self):
        self.assertFalse(is_well_formed(" " + self.VALID))

    def test_rejects_wrong_prefix(self):
        self.assertFalse(is_well_formed("CRT-1A2B-3C4D-5E6F-INT4K2-9A8B"))

    def test_rejects_short_segment(self):
        self.assertFalse(is_well_formed("CERT-1A2-3C4D-5E6F-INT4K2-9A8B"))

    def test_rejects_non_hex_segment(self):
        self.assertFalse(is_well_formed("CERT-1A2G-3C4D-5E6F-INT4K2-9A8B"))

    def test_rejects_missing_tag(self):
        self.assertFalse(is_well_formed("CERT-1A2B-3C4D-5E6F--9A8B"))

    def test_rejects_overlong(self):
        overlong = "CERT-1A2B-3C4D-5E6F-" + "A" * 60 + "-9A8B"
        self.assertFalse(is_well_formed(overlong))

    def test_rejects_non_string(self):
        self.assertFalse(is_well_formed(None))
        self.assertFalse(is_well_formed(12345))

    def test_injection_attempt(self):
        self.assertFalse(is_well_formed("CERT-1A2B-3C4D-5E6F-INT' OR '1'='1-9A8B"))

    def test_validate_raises(self):
        with self.assertRaises(MalformedIdError):
            validate_certificate_id("garbage")

    def test_parse_raises(self):
        with self.assertRaises(MalformedIdError):
            parse_certificate_id("garbage")


if __name__ == "__main__":
    unittest.main(verbosity=2)
