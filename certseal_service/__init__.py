"""HTTP service exposing CertSeal issuance and verification."""
