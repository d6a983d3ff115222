import json, os, requests

BASE = os.getenv("CERTSEAL_BASE_URL", "http://127.0.0.1:8000")

issued = requests.post(BASE + "/certificates", json={
    "subject_name": "Jane Doe",
    "course_or_exam_name": "Intro to Cryptography",
})
issued.raise_for_status()
cert = issued.json()
print("Issued:", cert["certificate_id"])

r = requests.get(BASE + "/verify/" + cert["certificate_id"])
print("ID lookup:", r.json()["security_level"])

r = requests.post(BASE + "/verify/document/text", json={"text": cert["embedded_metadata"]})
print("Document re-hash:", r.json()["security_level"])

forged = dict(cert["metadata"])
forged["claimFields"] = dict(forged["claimFields"], subjectName="John Doe")
r = requests.post(BASE + "/verify/document", json=forged)
verdict = r.json()
print("Forged document:", verdict["security_level"], json.dumps(verdict["details"].get("failed_checks")))

print("Stats:", json.dumps(requests.get(BASE + "/stats").json(), indent=2))
