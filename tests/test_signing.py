"""
CertSeal Issuer Signing Tests
"""

import json
import os
import stat
import tempfile
import unittest

from certseal import SealSigner, seal_payload


class TestSealSigner(unittest.TestCase):

    def setUp(self):
        self.signer = SealSigner.generate(key_id="kid:test-001")
        self.payload = seal_payload("CERT-1A2B-3C4D-5E6F-INT4K2-9A8B", "a" * 128, 1700000000000)

    def test_sign_and_verify(self):
        sealed = self.signer.sign(self.payload)
        self.assertEqual(sealed["key_id"], "kid:test-001")
        self.assertEqual(sealed["algorithm"], "Ed25519")
        self.assertTrue(self.signer.verify(self.payload, sealed["sig"]))

    def test_modified_payload_fails(self):
        sealed = self.signer.sign(self.payload)
        other = seal_payload("CERT-1A2B-3C4D-5E6F-INT4K2-9A8B", "b" * 128, 1700000000000)
        self.assertFalse(self.signer.verify(other, sealed["sig"]))

    def test_other_key_fails(self):
        sealed = SealSigner.generate(key_id="kid:test-001").sign(self.payload)
        self.assertFalse(self.signer.verify(self.payload, sealed["sig"]))

    def test_foreign_key_id_fails(self):
        sealed = self.signer.sign(self.payload)
        self.assertFalse(self.signer.verify(self.payload, sealed["sig"], key_id="kid:other"))

    def test_garbage_signature_fails(self):
        self.assertFalse(self.signer.verify(self.payload, "!!not base64!!"))
        self.assertFalse(self.signer.verify(self.payload, ""))
        self.assertFalse(self.signer.verify(self.payload, None))
        self.assertFalse(self.signer.verify(self.payload, "AAAA"))

    def test_seal_payload_format(self):
        self.assertEqual(
            seal_payload("CERT-X", "ab", 42),
            b"CERT-X:ab:42",
        )


class TestKeyFile(unittest.TestCase):

    def test_write_and_load(self):
        signer = SealSigner.generate(key_id="kid:file-001")
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "keys", "issuer.json")
            signer.write_key_file(path)

            mode = stat.S_IMODE(os.stat(path).st_mode)
            self.assertEqual(mode & 0o077, 0)

            loaded = SealSigner.from_key_file(path)
            self.assertEqual(loaded.key_id, "kid:file-001")

            payload = b"payload"
            self.assertTrue(loaded.verify(payload, signer.sign(payload)["sig"]))
            self.assertTrue(signer.verify(payload, loaded.sign(payload)["sig"]))

    def test_public_entry_has_no_private_key(self):
        entry = SealSigner.generate().key_pair.to_public_entry()
        self.assertNotIn("private_key_b64", entry)
        self.assertIn("public_key_b64", entry)

    def test_minimal_key_file(self):
        signer = SealSigner.generate(key_id="kid:min")
        full = signer.key_pair.to_key_file()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "k.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"kid": full["kid"], "private_key_b64": full["private_key_b64"]}, f)
            loaded = SealSigner.from_key_file(path)
        self.assertEqual(loaded.key_pair.verify_key, signer.key_pair.verify_key)


if __name__ == "__main__":
    unittest.main(verbosity=2)
