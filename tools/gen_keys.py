import os, json, sys
from certseal import SealSigner

# Writes the issuer key the service loads via CERTSEAL_SIGNING_KEY_PATH
path = sys.argv[1] if len(sys.argv) > 1 else "secrets/certseal_signing_key.json"
kid = os.getenv("CERTSEAL_KEY_ID", "kid:certseal-issuer-001")

signer = SealSigner.generate(key_id=kid)
signer.write_key_file(path)

os.makedirs("trust", exist_ok=True)
with open("trust/issuer_public_key.json","w",encoding="utf-8") as f:
    json.dump(signer.key_pair.to_public_entry(), f, indent=2)

print(f"Generated issuer key {kid} -> {path}")
